"""Error envelope shared by every endpoint: ``{error, details?}``."""

from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ApiError(Exception):
    status_code = 500

    def __init__(self, error: str, details: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(error)
        self.error = error
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class UpstreamUnavailable(ApiError):
    status_code = 503


class InvalidUpstreamResponse(ApiError):
    status_code = 502


class AuthRedirect(ApiError):
    """Raised by the role guard; tells the client where to send the user."""

    status_code = 401

    def __init__(self, error: str, redirect: str, status_code: Optional[int] = None):
        super().__init__(error, status_code=status_code)
        self.redirect = redirect

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["redirect"] = self.redirect
        return body


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(loc) for loc in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": "Permintaan tidak valid.", "details": details},
    )
