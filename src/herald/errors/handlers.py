"""Exception handlers rendering every error as an ErrorResponse envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from herald.errors.exceptions import AuthorizationError, HeraldError
from herald.models.common import SCHEMA_VERSION, ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _render(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        schema_version=SCHEMA_VERSION,
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=getattr(request.state, "trace_id", "unknown"),
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def _field_errors(exc: RequestValidationError) -> list[dict]:
    # loc[0] is the request part (body, query, path)
    return [
        {
            "field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HeraldError)
    async def herald_error_handler(request: Request, exc: HeraldError):
        if isinstance(exc, AuthorizationError):
            user = getattr(request.state, "user", None) or {}
            logger.warning(
                "access_denied",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "user_sub": user.get("sub", "anonymous"),
                    "user_roles": user.get("roles", []),
                },
            )
        return _render(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _render(
            request,
            400,
            "VALIDATION_ERROR",
            "Request failed validation",
            _field_errors(exc),
        )
