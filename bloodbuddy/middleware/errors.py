"""
Maps engine failures onto HTTP responses.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException

from bloodbuddy.services.errors import DomainError

logger = logging.getLogger(__name__)


def error_body(message: str, **extra) -> dict:
    return {"success": False, "message": message, **extra}


async def domain_error_handler(request: Request, exc: DomainError):
    logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)))


async def validation_error_handler(request: Request, exc: Exception):
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_body("Invalid input data", errors=errors)
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
