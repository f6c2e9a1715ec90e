import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .controller import TodoController
from .repositories import TodoStore, get_store
from .routers import todos as todos_router
from .settings import Settings, get_cors_origins, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Todo list view state and actions: submit, toggle and soft-delete.",
    },
]


# PUBLIC_INTERFACE
def create_app(store: Optional[TodoStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        store: Todo store to use. When omitted, settings are resolved at
            startup and the configured store is built (and closed on shutdown).
        settings: Explicit settings; read from the environment when omitted.

    Startup fails with ConfigurationError if the store has to be built and
    the hosted store's URL or key is missing.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings
        if resolved is None and store is None:
            resolved = get_settings()
        if resolved is not None:
            logging.basicConfig(level=resolved.log_level)

        owned = store is None
        active_store = get_store(resolved) if owned else store
        controller = TodoController(active_store)
        result = await controller.load()
        if result.ok:
            logger.info(f"Loaded {len(controller.todos)} todos from {active_store.backend} store")
        else:
            logger.warning(f"Starting with an empty list: {result.message}")

        app.state.controller = controller
        app.state.backend = active_store.backend
        try:
            yield
        finally:
            if owned:
                await active_store.aclose()

    app = FastAPI(
        title="Todo Web Client",
        description="Single-user todo list backed by a hosted Supabase table.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    origins = settings.cors_allow_origins if settings is not None else get_cors_origins()
    allow_all = (origins == ["*"]) or (len(origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers for consistent JSON on validation errors
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
                "detail": exc.errors(),
            },
        )

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and the active store backend.
        """
        return {"message": "Healthy", "backend": request.app.state.backend}

    app.include_router(todos_router.router)
    return app


app = create_app()
