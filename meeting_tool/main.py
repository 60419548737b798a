import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from meeting_tool.config import Settings, get_settings
from meeting_tool.dependencies import Services, build_services
from meeting_tool.errors import StorageError, StorageUnavailableError, TransferError
from meeting_tool.meetings.routes import router as meetings_router
from meeting_tool.transcripts.routes import router as transcripts_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.services is None:
            # Misconfiguration aborts startup instead of failing the first request.
            app.state.services = build_services(settings)
        yield

    app = FastAPI(title="AI Meeting Tool API", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.cors_origins],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(StorageError)
    async def storage_failure(request: Request, exc: StorageError):
        status_code = 503 if isinstance(exc, StorageUnavailableError) else 500
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(TransferError)
    async def transfer_failure(request: Request, exc: TransferError):
        logger.error("Transfer failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    app.include_router(meetings_router, prefix="/api", tags=["meetings"])
    app.include_router(transcripts_router, prefix="/api/transcript", tags=["transcripts"])

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
