import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from classifieds.adapters.registry import Backends, build_backends
from classifieds.api.v1.router import router as v1_router
from classifieds.core.config import Settings, settings
from classifieds.core.db import engine
from classifieds.core.errors import ClassifiedsError, ValidationError
from classifieds.core.telemetry import setup_telemetry
from classifieds.schemas.common import ErrorResponse

log = logging.getLogger(__name__)


async def classifieds_error_handler(request: Request, exc: ClassifiedsError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = ErrorResponse(code=exc.code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [{"loc": [str(p) for p in e["loc"]], "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
    body = ErrorResponse(code=ValidationError.code, message="Request validation failed.", details=details)
    return JSONResponse(status_code=ValidationError.status_code, content=body.model_dump())


def create_app(cfg: Settings = settings, backends: Backends | None = None) -> FastAPI:
    logging.basicConfig(level=cfg.log_level.upper())

    if backends is None:
        backends = build_backends(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.backends.aclose()

    app = FastAPI(title="Classifieds API", version="0.1.0", lifespan=lifespan)
    app.state.backends = backends

    setup_telemetry(app, cfg, engine=engine)
    app.add_exception_handler(ClassifiedsError, classifieds_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(v1_router)

    # uploaded listing images
    app.mount(cfg.media_url, StaticFiles(directory=cfg.media_root, check_dir=False), name="media")
    return app


app = create_app()
