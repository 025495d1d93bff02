from fastapi import APIRouter
from fastapi.responses import HTMLResponse
from functools import lru_cache
from importlib import resources

__all__ = ["index_router"]

index_router = APIRouter()


@lru_cache()
def index_html() -> str:
    return resources.files("kobo_permissions_service").joinpath("static").joinpath("index.html").read_text("utf-8")


@index_router.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    return HTMLResponse(index_html())
