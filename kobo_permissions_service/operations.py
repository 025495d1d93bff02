from structlog.stdlib import BoundLogger

from .kobo_client import BaseKoboClient
from .models import ExportRequest, PermissionAssignment, PermissionRow, UpdateRequest, UpdatePermissionsResponse
from .permissions.merge import compute_replacement, is_owner_assignment
from .permissions.tabular import assignments_to_rows, conflicting_partial_kinds

__all__ = [
    "export_permission_rows",
    "plan_permission_update",
    "update_permissions",
]


async def export_permission_rows(client: BaseKoboClient, req: ExportRequest) -> list[PermissionRow]:
    assignments = await client.get_permission_assignments(req.token, req.base_url, req.asset_uid)
    return assignments_to_rows(a for a in assignments if not is_owner_assignment(a, req.owner))


async def plan_permission_update(
    client: BaseKoboClient,
    req: UpdateRequest,
    logger: BoundLogger,
) -> list[PermissionAssignment]:
    """
    Fetches the asset's current permission assignments and computes their replacement, without submitting anything.
    """

    users = req.users or []

    for row in users:
        if conflicts := conflicting_partial_kinds(row):
            await logger.awarning(
                "row enables both full and partial variants of a permission",
                username=row.username,
                partial_kinds=conflicts,
            )

    current = await client.get_permission_assignments(req.token, req.base_url, req.asset_uid)
    return compute_replacement(current, users, req.owner, req.base_url)


async def update_permissions(
    client: BaseKoboClient,
    req: UpdateRequest,
    logger: BoundLogger,
) -> UpdatePermissionsResponse:
    # Fetch -> merge -> submit, strictly in order; the replacement must be complete before it is submitted.
    replacement = await plan_permission_update(client, req, logger)
    res = await client.bulk_assign_permissions(req.token, req.base_url, req.asset_uid, replacement)

    return UpdatePermissionsResponse(
        success=res.ok,
        status=res.status,
        message=f"Updated permissions for {len(req.users or [])} users on asset {req.asset_uid}",
        data=res.data,
    )
