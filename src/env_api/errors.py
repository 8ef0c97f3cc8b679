"""Error handlers wired into the FastAPI app by ``create_app``."""
import logging

import pydantic
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Return a 422 with the field errors instead of a bare 500."""
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({
            "detail": [
                {
                    "msg": error["msg"],
                    "input": error.get("input"),
                }
                for error in errors
            ]
        }),
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that propagates out of a route."""
    try:
        return await call_next(request)
    except Exception as err:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {err}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
