from starlette.middleware.base import BaseHTTPMiddleware

from nodo360.core.context import current_request


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Guarda el Request actual en el contexto para leerlo desde los services."""

    async def dispatch(self, request, call_next):
        token = current_request.set(request)
        try:
            response = await call_next(request)
        finally:
            current_request.reset(token)
        return response
