"""
Custom Exceptions for the datacore library

Only failures that originate in this library are defined here.
Errors raised by SQLAlchemy propagate to callers unchanged.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes"""
    INTERNAL_ERROR = "INTERNAL_ERROR"
    
    # Injection errors
    NO_SERVICE = "NO_SERVICE"
    SERVICE_NOT_REGISTERED = "SERVICE_NOT_REGISTERED"
    
    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"
    
    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


_DEFAULT_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.INTERNAL_ERROR: "An internal error occurred",
    ErrorCode.NO_SERVICE: "No service found: no class marked with @service in the scanned scope",
    ErrorCode.SERVICE_NOT_REGISTERED: "Service type is not registered",
    ErrorCode.DATABASE_ERROR: "Database operation failed",
    ErrorCode.CONFIGURATION_ERROR: "Invalid configuration",
}


class CoreException(Exception):
    """
    Base exception class for all datacore exceptions.
    
    Provides structured error information with a stable error code.
    """
    
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)
    
    @classmethod
    def format(cls, error_code: ErrorCode, **details: Any) -> "CoreException":
        """
        Build an exception carrying the standard message for a code.
        
        Args:
            error_code: Error code
            **details: Extra context stored on the exception
            
        Returns:
            Exception instance (not raised)
        """
        return cls(_DEFAULT_MESSAGES[error_code], error_code, details)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }
    
    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


class ServiceNotRegisteredError(CoreException):
    """Raised when resolving a service type that has no registration"""
    
    def __init__(self, service_type: type):
        super().__init__(
            f"Service {service_type.__qualname__} is not registered",
            ErrorCode.SERVICE_NOT_REGISTERED,
            {"service_type": f"{service_type.__module__}.{service_type.__qualname__}"}
        )
        self.service_type = service_type


class DatabaseError(CoreException):
    """Raised when the database manager cannot be initialized"""
    
    def __init__(self, message: str = "Database operation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.DATABASE_ERROR, details)
