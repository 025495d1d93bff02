import aiohttp
import asyncio

from fastapi import APIRouter, HTTPException, Request, Response

from ..kobo_client import KoboClientDependency, KoboRemoteError
from ..logger import LoggerDependency
from ..models import ExportRequest, UpdateRequest, UpdatePermissionsResponse
from ..operations import export_permission_rows, update_permissions
from ..permissions.tsv import rows_to_tsv
from .utils import raise_if_missing_fields, remote_error, remote_unreachable, remote_bad_response

__all__ = [
    "permissions_router",
]

permissions_router = APIRouter(prefix="/api")

TSV_MEDIA_TYPE = "text/tab-separated-values"


async def _translate_remote_errors(request: Request, logger, e: Exception, fetch_message: str) -> HTTPException:
    logger = logger.bind(request={"method": request.method, "path": request.url.path})
    match e:
        case KoboRemoteError():
            # Already logged by the client
            return remote_error(e, fetch_message)
        case aiohttp.ClientError() | asyncio.TimeoutError():
            await logger.aexception("error contacting KoboToolbox", exc_info=e)
            return remote_unreachable(e)
        case _:
            await logger.aexception("could not interpret KoboToolbox response", exc_info=e)
            return remote_bad_response(e)


@permissions_router.post("/export-permissions")
async def export_permissions(
    request: Request,
    export_request: ExportRequest,
    client: KoboClientDependency,
    logger: LoggerDependency,
) -> Response:
    raise_if_missing_fields(export_request)

    try:
        rows = await export_permission_rows(client, export_request)
    except (KoboRemoteError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise await _translate_remote_errors(request, logger, e, "Failed to fetch permissions")

    await logger.ainfo("exported permissions", asset_uid=export_request.asset_uid, n_users=len(rows))

    return Response(
        content=rows_to_tsv(rows),
        media_type=TSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="kobo_permissions_{export_request.asset_uid}.tsv"'},
    )


@permissions_router.post("/update-permissions")
async def update_permissions_endpoint(
    request: Request,
    response: Response,
    update_request: UpdateRequest,
    client: KoboClientDependency,
    logger: LoggerDependency,
) -> UpdatePermissionsResponse:
    raise_if_missing_fields(update_request)

    try:
        res = await update_permissions(client, update_request, logger)
    except (KoboRemoteError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise await _translate_remote_errors(request, logger, e, "Failed to fetch existing permissions")

    # Mirror the status of the bulk submission, successful or not
    response.status_code = res.status
    return res
