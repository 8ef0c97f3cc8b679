import logging

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute

from env_api.config.settings import Settings, get_settings
from env_api.errors import (
    handle_broad_exceptions,
    handle_pydantic_validation_errors,
)
from env_api.routers.environment import router as environment_router
from env_api.routers.health import router as health_router
from env_api.routers.pages import router as pages_router

# Set up logging
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Environment API",
        summary="Inspect the environment a container runs with",
        version=settings.app_version,
        docs_url="/docs",  # the base url serves the welcome page
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    app.include_router(pages_router, tags=["pages"])
    app.include_router(environment_router, tags=["environment"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


def run() -> None:
    """Entrypoint of the ``myapp`` command baked into the image."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    logger.info(f"Listening on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
