"""Exception handlers mapping domain errors onto HTTP status codes.

Protean's handlers cover ``ValidationError`` (400) and
``ObjectNotFoundError`` (404). The delivery errors below subclass
``ValidationError`` and get their own, more specific status codes.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from delivery.errors import ForbiddenActionError, IllegalTransitionError, TrustError


def _handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"error": exc.messages})

    return handle


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(TrustError, _handler(403))
    app.add_exception_handler(ForbiddenActionError, _handler(403))
    app.add_exception_handler(IllegalTransitionError, _handler(409))
