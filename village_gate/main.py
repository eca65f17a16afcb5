# =======================================================================================
# village_gate/main.py - FastAPI Application Entry Point
# =======================================================================================
import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import config
from .api.routes.auth import router as auth_router
from .api.routes.sync import router as sync_router
from .api.routes.approvals import router as approvals_router
from .api.dependencies import get_database
from .database import DatabaseManager, db_manager
from .models.schemas import HealthResponse
from .utils.exceptions import VillageGateError
from .workers.expiry_worker import start_expiry_worker, stop_expiry_worker

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Root logging from LOG_LEVEL; API_DEBUG forces DEBUG."""
    level_name = "DEBUG" if config.API_DEBUG else (config.LOG_LEVEL or "INFO")
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.basicConfig(level=getattr(logging, level_name.upper(), logging.INFO), handlers=[handler])


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.DB_AUTO_CREATE:
        db_manager.create_tables()
    start_expiry_worker()
    logger.info("Village gate API started")
    yield
    stop_expiry_worker()
    db_manager.dispose()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(VillageGateError)
    async def village_gate_error_handler(request: Request, exc: VillageGateError):
        if exc.status_code >= 500:
            logger.error("Error in %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request payload", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error in %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Village Gate Sync API",
        version="1.0.0",
        description="Offline gate log synchronization and guest approval coordination",
        debug=config.API_DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(auth_router, prefix="/api", tags=["auth"])
    app.include_router(sync_router, prefix="/api", tags=["sync"])
    app.include_router(approvals_router, prefix="/api", tags=["guest-approvals"])

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def api_health(db: DatabaseManager = Depends(get_database)):
        try:
            db.fetch_one("SELECT 1")
            return HealthResponse(status="ok", dataAvailable=True, message=None)
        except Exception as e:
            return HealthResponse(status="error", dataAvailable=False, message=str(e))

    return app


def run() -> None:
    import uvicorn

    configure_logging()
    uvicorn.run("village_gate.main:app", host=config.API_HOST, port=config.API_PORT)


app = create_app()
