import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import Config
from app.core.container import ServiceContainer
from app.core.exceptions import (
    AppException,
    app_exception_handler,
    catch_unhandled_exceptions,
    database_unavailable_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.database import Base, engine

# import models so they are registered on the metadata
import app.models  # noqa: F401

from app.routes.auth import router as auth_router
from app.routes.categories import router as categories_router
from app.routes.files import router as files_router
from app.routes.funkos import router as funkos_router
from app.routes.health import router as health_router
from app.routes.user import router as users_router
from app.routes.ws import router as ws_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = ServiceContainer.from_config()
    app.state.container = container
    await container.start()
    logger.info(f"{Config.APP_NAME} started")
    yield
    await container.stop()
    logger.info(f"{Config.APP_NAME} stopped")


app = FastAPI(
    title="Funko API",
    version="1.0.0",
    description="Funko catalog with categories, uploads, JWT auth and live change notifications",
    lifespan=lifespan
)

# Create uploads directory if it doesn't exist
os.makedirs(os.path.join(Config.UPLOAD_ROOT, Config.IMAGES_FOLDER), exist_ok=True)

# Mount static files for uploaded images
app.mount("/uploads", StaticFiles(directory=Config.UPLOAD_ROOT), name="uploads")

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(OperationalError, database_unavailable_handler)
app.middleware("http")(catch_unhandled_exceptions)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)

# Create tables (after models are imported)
Base.metadata.create_all(bind=engine)

app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(funkos_router, prefix="/api/funkos", tags=["funkos"])
app.include_router(categories_router, prefix="/api/categoria", tags=["categorias"])
app.include_router(files_router, prefix="/api/files", tags=["files"])
app.include_router(users_router, prefix="/api/users", tags=["users"])
app.include_router(health_router)
app.include_router(ws_router)

@app.get("/")
def read_root():
    return {"status": "ok"}
