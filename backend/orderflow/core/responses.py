"""ORDERFLOW — Error envelopes and FastAPI exception handlers."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from orderflow.core.errors import (
    CollaboratorFailure,
    InvalidStateTransition,
    NotFound,
    OrderflowError,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[OrderflowError], int] = {
    NotFound: 404,
    InvalidStateTransition: 409,
    ValidationFailure: 422,
    CollaboratorFailure: 502,
}


def error_response(code: str, message: str, field_errors: list[dict] | None = None, meta: dict | None = None) -> dict:
    return {
        "data": None,
        "error": {
            "code": code,
            "message": message,
            "field_errors": field_errors or [],
        },
        "meta": meta,
    }


def status_code_for(exc: OrderflowError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


async def orderflow_error_handler(request: Request, exc: OrderflowError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    field_errors = [{"message": msg} for msg in exc.errors] if isinstance(exc, ValidationFailure) else None
    return JSONResponse(
        status_code=status_code,
        content=error_response(exc.code, str(exc), field_errors=field_errors, meta=exc.to_meta()),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "invalid")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_response(ValidationFailure.code, "Request validation failed", field_errors=field_errors),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderflowError, orderflow_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
