import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Error rendered as ``{"success": false, "error": ...}``."""
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, headers: dict | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers

    def body(self) -> dict:
        return {"success": False, "error": self.message}


class ValidationFailed(ApiError):
    status_code = 400

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(self.errors[0].message if self.errors else "Invalid request")

    def body(self) -> dict:
        data = super().body()
        data["errors"] = [{"field": e.field, "message": e.message} for e in self.errors]
        return data


class NotFound(ApiError):
    status_code = 404


class Unauthorized(ApiError):
    status_code = 401


class RateLimited(ApiError):
    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__(
            "Too many requests. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )


class UploadRejected(ApiError):
    status_code = 400


async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.body(), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # body parsing problems (bad JSON, wrong shape) are client errors
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request body"})


def unhandled_error_handler(development: bool):
    async def handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if development else "Server error"
        return JSONResponse(status_code=500, content={"success": False, "error": message})
    return handler


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )
