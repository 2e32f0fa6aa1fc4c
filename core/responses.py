"""
JSON error responses shared by the routers.
Engine errors carry no HTTP knowledge; the status mapping lives here.
"""
from fastapi.responses import JSONResponse

from core.config import logger
from core.errors import EngineError, NotFoundError, ConflictError, IntegrityWarning


def engine_error_response(ex: EngineError) -> JSONResponse:
    if isinstance(ex, NotFoundError):
        status = 404
    elif isinstance(ex, ConflictError):
        status = 409
    elif isinstance(ex, IntegrityWarning):
        status = 422
    else:
        status = 400
    return JSONResponse(ex.to_dict(), status_code=status)


def unauthorized() -> JSONResponse:
    return JSONResponse({"error": "Unauthorized"}, status_code=401)


def forbidden() -> JSONResponse:
    return JSONResponse({"error": "Forbidden"}, status_code=403)


def internal_error(action: str, ex: Exception) -> JSONResponse:
    logger.exception(f"{action} failed: {ex}")
    return JSONResponse({"error": "Internal server error"}, status_code=500)
