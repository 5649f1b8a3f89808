"""
Standardized response utilities
"""

from typing import Any
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.errors import DomainError, ErrorCode
from app.schemas.common import MessageResponse

# HTTP status for each domain error surfaced to callers
ERROR_STATUS_CODES = {
    ErrorCode.INVALID_PARTY: 400,
    ErrorCode.PARTY_NOT_FOUND: 404,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.ACTIVE_PARTY_EXISTS: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}

def json_response(content: Any, status_code: int = 200) -> JSONResponse:
    """Serialize a schema or plain data into a JSON response"""
    return JSONResponse(
        content=jsonable_encoder(content, by_alias=True),
        status_code=status_code
    )

def error_response(message: str, status_code: int = 400) -> JSONResponse:
    """Create standardized error response"""
    return JSONResponse(
        content=MessageResponse(message=message).model_dump(),
        status_code=status_code
    )

def domain_error_response(error: DomainError) -> JSONResponse:
    """Map a domain error to its HTTP response"""
    return error_response(
        message=error.message,
        status_code=ERROR_STATUS_CODES.get(error.code, 500)
    )
