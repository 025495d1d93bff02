from typing import Iterable

from ..constants import KOBO_API_PREFIX, TRUE_MARKER, FALSE_MARKER
from ..models import PermissionRow, PartialPermissionAssignment, PermissionAssignment
from ..utils import last_path_segment
from .filters import (
    FilterClause,
    decode_filter_spec,
    filters_from_clauses,
    format_filters_for_export,
    spec_to_clauses,
)
from .kinds import (
    PartialKind,
    SIMPLE_KINDS,
    PARTIAL_KINDS,
    PARTIAL_SUBMISSIONS,
    SIMPLE_KINDS_BY_CODENAME,
    PARTIAL_KINDS_BY_CODENAME,
)

__all__ = [
    "user_reference",
    "permission_reference",
    "partial_filter_clauses",
    "conflicting_partial_kinds",
    "row_to_assignments",
    "assignments_to_rows",
]


def user_reference(base_url: str, username: str) -> str:
    return f"{base_url.rstrip('/')}{KOBO_API_PREFIX}/users/{username}/"


def permission_reference(base_url: str, codename: str) -> str:
    return f"{base_url.rstrip('/')}{KOBO_API_PREFIX}/permissions/{codename}/"


def partial_filter_clauses(row: PermissionRow, kind: PartialKind) -> list[FilterClause] | None:
    """
    Returns the filter clauses for a partial permission kind on a row, or None if the kind is not enabled or its filter
    specifiers are incomplete (in which case it is skipped without error).
    """

    if getattr(row, kind.column) != TRUE_MARKER:
        return None

    filter_field: str = getattr(row, kind.field_column)
    filter_value: str = getattr(row, kind.value_column)
    if not filter_field or not filter_value:
        return None

    # With the multi-field encoding in the value column, the field column is ignored.
    return spec_to_clauses(decode_filter_spec(filter_field, filter_value))


def conflicting_partial_kinds(row: PermissionRow) -> list[str]:
    """
    Lists the partial kind columns enabled on a row alongside the full permission they restrict (e.g. partial_view
    together with view_submissions). KoboToolbox expects these to be mutually exclusive; rows are not rejected for it.
    """
    return [
        pk.column
        for pk in PARTIAL_KINDS
        if getattr(row, pk.column) == TRUE_MARKER
        and getattr(row, SIMPLE_KINDS_BY_CODENAME[pk.codename].column) == TRUE_MARKER
    ]


def row_to_assignments(row: PermissionRow, base_url: str) -> list[PermissionAssignment]:
    user_ref = user_reference(base_url, row.username)

    assignments: list[PermissionAssignment] = [
        PermissionAssignment(user=user_ref, permission=permission_reference(base_url, sk.codename))
        for sk in SIMPLE_KINDS
        if getattr(row, sk.column) == TRUE_MARKER
    ]

    partial_permissions: list[PartialPermissionAssignment] = [
        PartialPermissionAssignment(url=permission_reference(base_url, pk.codename), filters=filters_from_clauses(cs))
        for pk in PARTIAL_KINDS
        if (cs := partial_filter_clauses(row, pk)) is not None
    ]

    if partial_permissions:
        assignments.append(
            PermissionAssignment(
                user=user_ref,
                permission=permission_reference(base_url, PARTIAL_SUBMISSIONS),
                partial_permissions=partial_permissions,
            )
        )

    return assignments


def _blank_row(username: str) -> dict[str, str]:
    return {
        "username": username,
        **{sk.column: FALSE_MARKER for sk in SIMPLE_KINDS},
        **{
            c: v
            for pk in PARTIAL_KINDS
            for c, v in ((pk.column, FALSE_MARKER), (pk.field_column, ""), (pk.value_column, ""))
        },
    }


def assignments_to_rows(assignments: Iterable[PermissionAssignment]) -> list[PermissionRow]:
    # Insertion-ordered, so rows come out in order of each user's first assignment
    rows: dict[str, dict[str, str]] = {}

    for assignment in assignments:
        username = last_path_segment(assignment.user)
        row = rows.setdefault(username, _blank_row(username))

        codename = last_path_segment(assignment.permission)

        if (sk := SIMPLE_KINDS_BY_CODENAME.get(codename)) is not None:
            row[sk.column] = TRUE_MARKER
            continue

        if codename != PARTIAL_SUBMISSIONS or not assignment.partial_permissions:
            continue

        for pp in assignment.partial_permissions:
            if (pk := PARTIAL_KINDS_BY_CODENAME.get(last_path_segment(pp.url))) is None:
                continue
            filter_field, filter_value = format_filters_for_export(pp.filters)
            row[pk.column] = TRUE_MARKER
            row[pk.field_column] = filter_field
            row[pk.value_column] = filter_value

    return [PermissionRow(**r) for r in rows.values()]
