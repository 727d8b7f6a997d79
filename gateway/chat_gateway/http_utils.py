"""HTTP helpers for gateway route handlers."""

from fastapi.responses import JSONResponse

from .dispatcher import status_for
from .models import ErrorResponse, Failure


def failure_response(failure: Failure) -> JSONResponse:
    """Render a typed failure as the gateway's stable error envelope."""
    status, hint = status_for(failure)
    body = ErrorResponse(error_kind=failure.kind, message=failure.detail, hint=hint)
    return JSONResponse(status_code=status, content=body.model_dump(by_alias=True, mode="json"))
