from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException


def _error_body(detail) -> dict:
    if isinstance(detail, dict):
        body = dict(detail)
        body.setdefault("error", body.pop("message", "Error"))
        return body
    return {"error": str(detail)}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_error_body(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Datos inválidos", "details": jsonable_encoder(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("❌ [{} {}] Error inesperado: {}", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Error interno del servidor"})


def register_exception_handlers(app: FastAPI) -> None:
    """Todas las respuestas de error comparten el formato {"error": "..."}."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
