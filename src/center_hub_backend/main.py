'''
Application entry point: builds the FastAPI app, wires the database
lifespan, CORS and one router per API module.
'''
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import IntegrityError

from .database.engine import create_db_engine_and_session_factory, dispose_db_engine
from .common.logger import log
from .common.config import settings
from .api import auth, users, permissions, finance, meetings, chat, catalogs

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    create_db_engine_and_session_factory()

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    if not settings.TEST_MODE:
        log.info("Application lifespan shutdown...")
        await dispose_db_engine()
    else:
        log.info("Skipping database engine disposal in TEST_MODE.")


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    "http://0.0.0.0:8080",
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
]
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """
    A unique or check constraint fired after the service-level checks passed,
    i.e. a concurrent request won. The session has already been rolled back.
    """
    log.warning(f"Constraint violation on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "The request conflicts with existing data. Please retry."}
    )


@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(permissions.router)
app.include_router(finance.router)
app.include_router(meetings.router)
app.include_router(chat.router)
app.include_router(catalogs.router)
