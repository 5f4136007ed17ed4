from typing import Dict, Any, Optional
from datetime import datetime
from fastapi import status
import logging

logger = logging.getLogger(__name__)


class BaseCustomException(Exception):
    """Base class for errors that map straight onto an HTTP response"""
    
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"
    
    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message or self.default_message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)


class ValidationError(BaseCustomException):
    """Missing or malformed input"""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class AuthenticationError(BaseCustomException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTHENTICATION_ERROR"
    default_message = "Authentication required"


class AuthorizationError(BaseCustomException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "AUTHORIZATION_ERROR"
    default_message = "Insufficient permissions"


class NotFoundError(BaseCustomException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND_ERROR"
    default_message = "Resource not found"


class ConflictError(BaseCustomException):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT_ERROR"
    default_message = "Resource conflict"


class BedUnavailableError(ConflictError):
    """Bed is occupied, under maintenance or blocked"""
    error_code = "BED_UNAVAILABLE"
    default_message = "Bed is not available"


class AdmissionClosedError(ConflictError):
    """Admission is already discharged"""
    error_code = "ADMISSION_CLOSED"
    default_message = "Admission is already discharged"


class DatabaseError(BaseCustomException):
    error_code = "DATABASE_ERROR"
    default_message = "Database operation failed"


def create_error_response(
    exception: BaseCustomException,
    request_id: Optional[str] = None,
    validation_errors: Optional[Dict[str, list]] = None
) -> Dict[str, Any]:
    """Create standardized error response"""
    response = {
        "error": exception.__class__.__name__.replace("Error", " Error").strip(),
        "message": exception.message,
        "error_code": exception.error_code,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id
    }
    
    if validation_errors:
        response["validation_errors"] = validation_errors
    
    if exception.details:
        response["details"] = exception.details
    
    return response


def handle_database_error(error: Exception, operation: str = "database operation") -> DatabaseError:
    """Convert a SQLAlchemy failure into a DatabaseError; the original error is only logged"""
    logger.error("Database error during %s: %s", operation, error)
    
    text = str(error).lower()
    if "connection" in text:
        message = "Database connection failed"
    elif "timeout" in text or "locked" in text:
        message = "Database operation timed out"
    elif "constraint" in text:
        message = "Database constraint violation"
    else:
        message = None
    
    return DatabaseError(
        message=message,
        details={"operation": operation},
        error_code="DATABASE_OPERATION_ERROR"
    )
