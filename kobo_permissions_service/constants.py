__all__ = [
    "SERVICE_NAME",
    "TRUE_MARKER",
    "FALSE_MARKER",
    "KOBO_API_PREFIX",
    "TEMPLATE_FILENAME",
]

SERVICE_NAME = "KoboToolbox Bulk Permission Updater"

# Exact, case-sensitive markers used in the tabular representation for boolean columns
TRUE_MARKER = "TRUE"
FALSE_MARKER = "FALSE"

KOBO_API_PREFIX = "/api/v2"

TEMPLATE_FILENAME = "kobo_permissions_template.tsv"
