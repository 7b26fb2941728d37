"""
Utilities module - Common helpers for API responses and typed exceptions.
"""

from common.utils.responses import success_response, error_response, list_response
from common.utils.exceptions import (
    APIException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    InvalidStateException,
    ValidationException,
    TransientStoreException,
)
from common.utils.handlers import register_exception_handlers

__all__ = [
    "success_response",
    "error_response",
    "list_response",
    "APIException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "InvalidStateException",
    "ValidationException",
    "TransientStoreException",
    "register_exception_handlers",
]
