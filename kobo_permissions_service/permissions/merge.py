from typing import Iterable

from ..models import PermissionRow, PermissionAssignment
from ..utils import last_path_segment
from .tabular import row_to_assignments

__all__ = [
    "is_owner_assignment",
    "kept_assignments",
    "compute_replacement",
]


def is_owner_assignment(assignment: PermissionAssignment, owner: str | None) -> bool:
    # The owner is matched as a substring of the raw user reference, so it may also match users whose username
    # contains the owner's.
    return bool(owner) and owner in assignment.user


def kept_assignments(
    current: Iterable[PermissionAssignment],
    usernames: frozenset[str],
    owner: str,
) -> list[PermissionAssignment]:
    return [a for a in current if not is_owner_assignment(a, owner) and last_path_segment(a.user) not in usernames]


def compute_replacement(
    current: Iterable[PermissionAssignment],
    desired_rows: Iterable[PermissionRow],
    owner: str,
    base_url: str,
) -> list[PermissionAssignment]:
    """
    Computes the full set of permission assignments to bulk-submit for an asset:
     - assignments of users not mentioned in desired_rows are kept as-is, in their original order;
     - the owner's assignments are dropped, since KoboToolbox manages them itself;
     - every user in desired_rows has their assignments fully replaced by the ones built from their row.
    """

    desired_rows = list(desired_rows)
    usernames = frozenset(r.username for r in desired_rows)

    return [
        *kept_assignments(current, usernames, owner),
        *(a for row in desired_rows for a in row_to_assignments(row, base_url)),
    ]
