from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .logging_setup import setup_logging
from .routers import auth as auth_router
from .routers import categories as categories_router
from .routers import sync as sync_router
from .routers import todos as todos_router
from .settings import get_settings
from .sync import PushFailedError

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Register accounts and log in to obtain the bearer token."},
    {
        "name": "sync",
        "description": "Pull deltas since a checkpoint and push client batches with last-write-wins resolution.",
    },
    {"name": "categories", "description": "Single-record operations on categories."},
    {"name": "todos", "description": "Single-record operations on todos."},
]

_settings = get_settings()
setup_logging(_settings.log_level, _settings.log_file)

app = FastAPI(
    title="Sync Backend",
    description="Server of record for offline-first clients: change-log pulls and conflict-resolving pushes.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(PushFailedError)
async def push_failed_handler(request: Request, exc: PushFailedError) -> JSONResponse:
    """
    A rolled-back push: nothing was applied and no conflict ledger is returned.

    Response format:
        {"error": "PushFailed", "message": "...", "ok": false}
    """
    return JSONResponse(
        status_code=500,
        content={"error": "PushFailed", "message": str(exc), "ok": False},
    )


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": _settings.persistence_backend}


app.include_router(auth_router.router)
app.include_router(sync_router.router)
app.include_router(categories_router.router)
app.include_router(todos_router.router)
