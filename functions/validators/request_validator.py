"""Request body validation for the blueprint functions.

Parses raw JSON into typed request models and reports every problem at
once so the endpoint can answer 400 with the full list.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
import structlog

from config.errors import ErrorCode
from models.requests import ProcessBlueprintRequest, ReviewLineItemsRequest

logger = structlog.get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of request validation."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    parsed: Optional[Any] = None
    code: str = ErrorCode.VALIDATION_ERROR


def _missing(data: Dict[str, Any], required: List[str]) -> List[str]:
    return [f"Missing {name} in request" for name in required if data.get(name) in (None, "")]


def _parse(model: Any, data: Dict[str, Any]) -> ValidationResult:
    try:
        return ValidationResult(is_valid=True, parsed=model.model_validate(data))
    except PydanticValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        logger.warning("request_validation_failed", model=model.__name__, errors=errors)
        return ValidationResult(is_valid=False, errors=errors)


def validate_process_request(data: Any) -> ValidationResult:
    """Validate a process_blueprint body.

    Requires non-empty ``fileData`` and ``fileType``; ``projectContext``
    must be an object when given.
    """
    if not isinstance(data, dict):
        return ValidationResult(is_valid=False, errors=["Request body must be a JSON object"])
    
    errors = _missing(data, ["fileData", "fileType"])
    if errors:
        return ValidationResult(is_valid=False, errors=errors, code=ErrorCode.MISSING_FIELD)
    
    return _parse(ProcessBlueprintRequest, data)


def validate_review_request(data: Any) -> ValidationResult:
    """Validate a review_line_items body.

    Requires ``lineItems``, ``projectId`` and ``reviewAction``. The action
    itself is checked by the review service.
    """
    if not isinstance(data, dict):
        return ValidationResult(is_valid=False, errors=["Request body must be a JSON object"])
    
    errors = _missing(data, ["lineItems", "projectId", "reviewAction"])
    if errors:
        return ValidationResult(is_valid=False, errors=errors, code=ErrorCode.MISSING_FIELD)
    
    return _parse(ReviewLineItemsRequest, data)
