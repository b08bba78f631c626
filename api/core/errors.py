"""
Exception handlers that render every error as `{"message": "..."}`.

Validation problems become 400, anything unexpected becomes a generic 500.
Details of server errors go to the log only. The `Exception` handler only
sees errors raised outside `CatchServerErrorsMiddleware`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Server error"


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # loc looks like ("body", "userid") or ("path", "product_id").
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
    return f"Invalid request: {field}: {first.get('msg', 'invalid value')}"


async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": _validation_message(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error method=%s path=%s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": SERVER_ERROR_MESSAGE})


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


class CatchServerErrorsMiddleware:
    """
    Turn unexpected errors into the generic 500 before they leave the app.

    Added before `CORSMiddleware` so it sits inside it and the 500 response
    still gets CORS headers. Starlette's own server-error handling is outside
    every user middleware.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            logger.exception("unhandled_error method=%s path=%s", scope.get("method"), scope.get("path"), exc_info=exc)
            response = JSONResponse(status_code=500, content={"message": SERVER_ERROR_MESSAGE})
            await response(scope, receive, send)
