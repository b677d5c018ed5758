"""
Custom Exception Classes for the Resume Parser API
"""
from typing import Dict, Any, List
from fastapi import HTTPException


class ResumeParserException(Exception):
    """Base exception for the Resume Parser API"""

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


class ValidationError(ResumeParserException):
    """Raised when request data validation fails"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        kwargs.setdefault('error_code', "VALIDATION_ERROR")
        super().__init__(message, details=details, **kwargs)


class UnsupportedFileTypeError(ValidationError):
    """Raised when an uploaded file is not one of the accepted document types"""

    def __init__(self, mime_type: str, filename: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if filename:
            details['filename'] = filename
        super().__init__(
            "File type not supported. Please upload PDF, Word, Image or Text files.",
            field="content_type",
            value=mime_type,
            error_code="UNSUPPORTED_FILE_TYPE",
            details=details,
            **kwargs
        )


class EmptyExportError(ResumeParserException):
    """Raised when an export is requested for an empty visible set"""

    def __init__(self, message: str = "Nothing to export: no resumes match the current filters", **kwargs):
        super().__init__(message, error_code="EMPTY_EXPORT", **kwargs)


class DatabaseError(ResumeParserException):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ExtractionError(ResumeParserException):
    """Raised when a document cannot be turned into a resume record"""

    def __init__(self, message: str, filename: str = None, mime_type: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if filename:
            details['filename'] = filename
        if mime_type:
            details['mime_type'] = mime_type
        super().__init__(message, error_code="EXTRACTION_ERROR", details=details, **kwargs)


class FileStorageError(ResumeParserException):
    """Raised when an uploaded original cannot be written to the upload directory"""

    def __init__(self, message: str, filename: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if filename:
            details['filename'] = filename
        super().__init__(message, error_code="FILE_STORAGE_ERROR", details=details, **kwargs)


class BatchIngestionError(ResumeParserException):
    """Raised when any document of an upload batch fails; nothing from the batch is kept"""

    def __init__(self, message: str, failed_files: List[str] = None, batch_size: int = None, **kwargs):
        details = kwargs.pop('details', {})
        details['failed_files'] = list(failed_files or [])
        if batch_size is not None:
            details['batch_size'] = batch_size
        super().__init__(message, error_code="BATCH_INGESTION_ERROR", details=details, **kwargs)


class MatchingError(ResumeParserException):
    """Raised when the job-description match pass fails"""

    def __init__(self, message: str, record_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if record_id:
            details['record_id'] = record_id
        super().__init__(message, error_code="MATCHING_ERROR", details=details, **kwargs)


class ExternalServiceError(ResumeParserException):
    """Raised when external service calls fail"""

    def __init__(self, message: str, service_name: str = None, status_code: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if service_name:
            details['service_name'] = service_name
        if status_code:
            details['status_code'] = status_code
        super().__init__(message, error_code="EXTERNAL_SERVICE_ERROR", details=details, **kwargs)


STATUS_CODE_MAPPING = {
    ValidationError: 400,
    UnsupportedFileTypeError: 400,
    EmptyExportError: 400,
    DatabaseError: 500,
    ExtractionError: 500,
    FileStorageError: 500,
    BatchIngestionError: 500,
    MatchingError: 500,
    ExternalServiceError: 502,
}


def status_code_for(exc: ResumeParserException) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODE_MAPPING:
            return STATUS_CODE_MAPPING[cls]
    return 500


def map_to_http_exception(exc: ResumeParserException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""
    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }
    return HTTPException(status_code=status_code_for(exc), detail=detail)


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

        if isinstance(exc_val, (ResumeParserException, HTTPException)):
            return False

        if "database" in str(exc_val).lower() or "mongo" in str(exc_val).lower() \
                or exc_type.__module__.startswith(("pymongo", "motor")):
            raise DatabaseError(
                f"Database error in {self.operation}: {str(exc_val)}",
                operation=self.operation,
                details=dict(self.context),
                cause=exc_val
            ) from exc_val

        if isinstance(exc_val, (KeyError, ValueError, TypeError)):
            raise ValidationError(
                f"Validation error in {self.operation}: {str(exc_val)}",
                details=dict(self.context),
                cause=exc_val
            ) from exc_val

        return False
