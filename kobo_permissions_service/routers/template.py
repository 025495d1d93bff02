from fastapi import APIRouter, Response

from ..constants import TEMPLATE_FILENAME
from ..permissions.tsv import template_tsv
from .permissions import TSV_MEDIA_TYPE

__all__ = ["template_router"]

template_router = APIRouter()


@template_router.get("/download-template")
def download_template() -> Response:
    return Response(
        content=template_tsv(),
        media_type=TSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )
