import time
import uvicorn

from fastapi import FastAPI, Request

from . import __version__
from .config import get_config
from .logger import get_logger
from .routers.index import index_router
from .routers.permissions import permissions_router
from .routers.template import template_router


config_for_setup = get_config()
logger_for_setup = get_logger(config_for_setup)

app = FastAPI(title=config_for_setup.service_name, version=__version__)

app.include_router(index_router)
app.include_router(template_router)
app.include_router(permissions_router)


@app.middleware("http")
async def access_log_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    await logger_for_setup.ainfo(
        "request",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return response


def run():  # pragma: no cover
    cfg = get_config()
    uvicorn.run(app, host=cfg.host, port=cfg.port)
