"""Blueprint Estimator error handling.

Custom exceptions and error codes for the blueprint-to-estimate pipeline.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""
    
    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"
    INVALID_FILE_DATA = "INVALID_FILE_DATA"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_REVIEW_ACTION = "INVALID_REVIEW_ACTION"
    
    # Stage Errors (2xxx)
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    GENERATION_FAILED = "GENERATION_FAILED"
    
    # Pipeline Errors (3xxx)
    PIPELINE_FAILED = "PIPELINE_FAILED"
    REVIEW_FAILED = "REVIEW_FAILED"
    
    # LLM Errors (6xxx)
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"


class EstimatorError(Exception):
    """Base exception for Blueprint Estimator errors.
    
    Provides structured error information for API responses.
    
    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """
    
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize EstimatorError.
        
        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.
        
        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }
    
    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(EstimatorError):
    """Validation-specific error."""
    
    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict] = None,
        code: str = ErrorCode.VALIDATION_ERROR
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )


class StageError(EstimatorError):
    """Failure of a single pipeline stage."""
    
    def __init__(
        self,
        code: str,
        message: str,
        stage: str,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "stage": stage}
        )
        self.stage = stage


class ExtractionFailure(StageError):
    """Format decode or vision call failed; fatal to the invocation."""
    
    def __init__(self, message: str, file_type: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.EXTRACTION_FAILED,
            message=message,
            stage="extraction",
            details={**(details or {}), "file_type": file_type}
        )
        self.file_type = file_type


class AnalysisFailure(StageError):
    """Analyzer generative call failed; fatal to the invocation."""
    
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.ANALYSIS_FAILED,
            message=message,
            stage="analysis",
            details=details
        )


class GenerationFailure(StageError):
    """Line item generation failed, including its text fallback."""
    
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.GENERATION_FAILED,
            message=message,
            stage="line_items",
            details=details
        )
