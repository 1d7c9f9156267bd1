"""
Custom Exception Classes for the talent matching service
"""
from typing import Dict, Any
from fastapi import HTTPException


class TalentMatchBaseException(Exception):
    """Base exception for the talent matching service"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(TalentMatchBaseException):
    """Raised when data validation fails"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, **kwargs)


class DatabaseError(TalentMatchBaseException):
    """Raised when document store operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ModelError(TalentMatchBaseException):
    """Raised when the text-understanding model misbehaves"""

    def __init__(self, message: str, model_name: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if model_name:
            details['model_name'] = model_name
        super().__init__(message, error_code="MODEL_ERROR", details=details, **kwargs)


class ProcessingError(TalentMatchBaseException):
    """Raised when CV/job processing fails"""

    def __init__(self, message: str, document_id: str = None, document_type: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if document_id:
            details['document_id'] = document_id
        if document_type:
            details['document_type'] = document_type
        error_code = kwargs.pop('error_code', None) or "PROCESSING_ERROR"
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class ChunkSkipped(ProcessingError):
    """A single chunk produced no usable record. Never escapes the extractor."""

    def __init__(self, message: str, chunk_index: int = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if chunk_index is not None:
            details['chunk_index'] = chunk_index
        super().__init__(message, error_code="CHUNK_SKIPPED", details=details, **kwargs)


class ExtractionFailed(ProcessingError):
    """The whole analysis request failed: invalid text or no parseable chunk"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code="EXTRACTION_FAILED", **kwargs)


class ConfigurationError(TalentMatchBaseException):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class ExternalServiceError(TalentMatchBaseException):
    """Raised when external service calls fail"""

    def __init__(self, message: str, service_name: str = None, status_code: int = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if service_name:
            details['service_name'] = service_name
        if status_code:
            details['status_code'] = status_code
        error_code = kwargs.pop('error_code', None) or "EXTERNAL_SERVICE_ERROR"
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class NotificationDeliveryFailed(ExternalServiceError):
    """Raised by notification sinks; logged and swallowed by the emitter"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            service_name=kwargs.pop('service_name', "notification_sink"),
            error_code="NOTIFICATION_DELIVERY_FAILED",
            **kwargs
        )


class NotFoundError(TalentMatchBaseException):
    """Raised when a stored profile does not exist"""

    def __init__(self, message: str, resource: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if resource:
            details['resource'] = resource
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


# HTTP Exception Mapping
def map_to_http_exception(exc: TalentMatchBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        ValidationError: 400,
        ConfigurationError: 400,
        NotFoundError: 404,
        ExtractionFailed: 422,
        DatabaseError: 500,
        ModelError: 500,
        ProcessingError: 500,
        ExternalServiceError: 502,
        NotificationDeliveryFailed: 502,
    }

    status_code = status_code_mapping.get(type(exc), 500)

    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)


# Exception context manager for better error handling
class ExceptionContext:
    """Context manager for handling exceptions with additional context"""

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        # Re-raise custom exceptions as-is
        if isinstance(exc_val, TalentMatchBaseException):
            return False

        if isinstance(exc_val, (KeyError, ValueError, TypeError)):
            raise ValidationError(
                f"Validation error in {self.operation}: {str(exc_val)}",
                details=dict(self.context),
                cause=exc_val
            ) from exc_val
        if "database" in str(exc_val).lower() or "mongo" in exc_type.__module__.lower():
            raise DatabaseError(
                f"Database error in {self.operation}: {str(exc_val)}",
                operation=self.operation,
                details=dict(self.context),
                cause=exc_val
            ) from exc_val
        raise ProcessingError(
            f"Processing error in {self.operation}: {str(exc_val)}",
            details=dict(self.context),
            cause=exc_val
        ) from exc_val


def retry_with_logging(
    max_attempts: int = 3,
    backoff_factor: float = 1.0,
    exceptions: tuple = (Exception,),
    logger=None
):
    """
    Retry a sync or async callable on the given exceptions.

    Attempt n (0-based) is followed by a pause of backoff_factor * 2**n seconds
    plus up to one second of jitter. The last failure is re-raised.
    """
    import asyncio
    import functools
    import inspect
    import time
    from random import uniform

    def pause_after(func, attempt: int, error: Exception):
        """Seconds to wait before the next attempt, or None when attempts are used up."""
        if logger:
            logger.warning(f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {error}")
        if attempt == max_attempts - 1:
            if logger:
                logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
            return None
        return backoff_factor * (2 ** attempt) + uniform(0, 1)

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                for attempt in range(max_attempts):
                    try:
                        return await func(*args, **kwargs)
                    except exceptions as e:
                        delay = pause_after(func, attempt, e)
                        if delay is None:
                            raise
                        await asyncio.sleep(delay)
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    delay = pause_after(func, attempt, e)
                    if delay is None:
                        raise
                    time.sleep(delay)
        return sync_wrapper

    return decorator
