"""Translate domain exceptions into JSON error responses.

Body shape: ``{"error": <code>, "message": <text>, "details": <field messages>}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.errors import NotFound, OrderingError

logger = structlog.get_logger(__name__)


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, list) and value:
                return str(value[0])
            if value:
                return str(value)
    return str(messages)


def error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": code, "message": message, "details": details or {}},
    )


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    logger.info("Domain rule rejected request", path=request.url.path, code=exc.code, message=exc.message)
    return error_response(exc.status_code, exc.code, exc.message, exc.messages)


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    # Protean raises a bare ObjectNotFoundError from repository lookups
    messages = getattr(exc, "messages", None)
    if isinstance(exc, NotFound):
        message = exc.message
    elif messages is not None:
        message = _first_message(messages)
    else:
        message = str(exc) or "Not found"
    return error_response(404, NotFound.code, message, messages if isinstance(messages, dict) else None)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return error_response(422, "validation_error", _first_message(exc.messages), exc.messages)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderingError, ordering_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
