from typing import Optional, Dict, Any, List


class AppException(Exception):
    """Base application exception"""
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "APP_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Configuration, sale or rule set not found"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details
        )


class ValidationError(AppException):
    """Commission configuration (or input record) failed validation.

    The full ordered list of violations travels in ``details["errors"]``.
    """
    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if errors is not None:
            details["errors"] = list(errors)
        self.errors = details.get("errors", [])
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=details
        )


class ComputationError(AppException):
    """A required denominator (area) is zero or negative"""
    def __init__(self, message: str = "Computation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="COMPUTATION_ERROR",
            details=details
        )


class MalformedRuleError(AppException):
    """A rule's period descriptor cannot be parsed.

    Raised by the period parser and caught by the resolver: a malformed rule
    simply does not apply.
    """
    def __init__(self, message: str = "Malformed rule period", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="MALFORMED_RULE",
            details=details
        )
