from typing import NamedTuple

__all__ = [
    "SimpleKind",
    "PartialKind",
    "SIMPLE_KINDS",
    "PARTIAL_KINDS",
    "PARTIAL_SUBMISSIONS",
    "SIMPLE_KINDS_BY_CODENAME",
    "PARTIAL_KINDS_BY_CODENAME",
    "TSV_COLUMNS",
]

# Asset-level (form/project) permissions, in KoboToolbox terms:
# view_asset - view the form
# change_asset - edit the form
# manage_asset - manage the project, including sharing it

# Submission-level permissions:
# add_submissions, view_submissions, change_submissions, delete_submissions, validate_submissions

# Partial permissions:
# partial_submissions - a container permission; its partial_permissions list carries one or more of the submission
#   codenames above, each restricted by a list of {field: value} filters.


class SimpleKind(NamedTuple):
    column: str  # tabular column holding the TRUE/FALSE flag
    codename: str  # KoboToolbox permission codename


class PartialKind(NamedTuple):
    column: str
    codename: str

    @property
    def field_column(self) -> str:
        return f"{self.column}_filter_field"

    @property
    def value_column(self) -> str:
        return f"{self.column}_filter_value"


SIMPLE_KINDS: tuple[SimpleKind, ...] = (
    SimpleKind("view_form", "view_asset"),
    SimpleKind("edit_form", "change_asset"),
    SimpleKind("manage_project", "manage_asset"),
    SimpleKind("add_submissions", "add_submissions"),
    SimpleKind("view_submissions", "view_submissions"),
    SimpleKind("edit_submissions", "change_submissions"),
    SimpleKind("delete_submissions", "delete_submissions"),
    SimpleKind("validate_submissions", "validate_submissions"),
)

PARTIAL_KINDS: tuple[PartialKind, ...] = (
    PartialKind("partial_view", "view_submissions"),
    PartialKind("partial_edit", "change_submissions"),
    PartialKind("partial_delete", "delete_submissions"),
    PartialKind("partial_validate", "validate_submissions"),
)

PARTIAL_SUBMISSIONS = "partial_submissions"

SIMPLE_KINDS_BY_CODENAME: dict[str, SimpleKind] = {k.codename: k for k in SIMPLE_KINDS}
PARTIAL_KINDS_BY_CODENAME: dict[str, PartialKind] = {k.codename: k for k in PARTIAL_KINDS}

# Fixed column order of the spreadsheet template; exports must reproduce it exactly.
TSV_COLUMNS: tuple[str, ...] = (
    "username",
    *(k.column for k in SIMPLE_KINDS),
    *(c for k in PARTIAL_KINDS for c in (k.column, k.field_column, k.value_column)),
)
