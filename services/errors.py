"""
Domain error taxonomy.
Services raise these; main.py maps every ServiceError to {"message": ...}
with its status_code.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)


class Unauthorized(ServiceError):
    status_code = 401
    default_message = "Not authorized"


class InvalidToken(Unauthorized):
    default_message = "Not authorized, token failed"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Forbidden: access denied"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Validation failed"


class DeadlineExceeded(ValidationError):
    default_message = "Deadline has passed"


class ConflictError(ServiceError):
    status_code = 400
    default_message = "Already exists"


class InternalError(ServiceError):
    pass
