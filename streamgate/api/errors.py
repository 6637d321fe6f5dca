"""Map the service error taxonomy onto JSON responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from streamgate.errors import StreamGateError, VaultError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI):
    @app.exception_handler(StreamGateError)
    async def streamgate_error_handler(request: Request, exc: StreamGateError):
        if isinstance(exc, VaultError):
            logger.error("Unusable stored credentials on %s: %s", request.url.path, exc.message)
        elif exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "detail": exc.detail},
        )
