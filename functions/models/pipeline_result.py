"""Pipeline stage results and the final PipelineResult.

CoverageResult and ScoringResult carry a ``degraded`` flag: the coverage
and scoring stages never raise, they return their deterministic default
with ``degraded=True`` and the error message instead.
"""

from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field

from models.line_item import LineItem, total_value, categories_of


class ValidationSummary(BaseModel):
    """Confidence buckets over scored items."""
    
    total_items: int = Field(default=0, alias="totalItems")
    high_confidence_items: int = Field(
        default=0,
        alias="highConfidenceItems",
        description="aiConfidence >= 0.8"
    )
    medium_confidence_items: int = Field(
        default=0,
        alias="mediumConfidenceItems",
        description="0.5 <= aiConfidence < 0.8"
    )
    low_confidence_items: int = Field(
        default=0,
        alias="lowConfidenceItems",
        description="aiConfidence < 0.5"
    )
    
    class Config:
        populate_by_name = True
    
    @classmethod
    def from_items(cls, items: List[LineItem]) -> "ValidationSummary":
        return cls(
            total_items=len(items),
            high_confidence_items=sum(1 for i in items if i.ai_confidence >= 0.8),
            medium_confidence_items=sum(1 for i in items if 0.5 <= i.ai_confidence < 0.8),
            low_confidence_items=sum(1 for i in items if i.ai_confidence < 0.5),
        )


class CoverageResult(BaseModel):
    """Output of the coverage enhancement stage."""
    
    items: List[LineItem] = Field(default_factory=list)
    added_categories: List[str] = Field(
        default_factory=list,
        alias="addedCategories",
        description="Categories synthesized by this stage"
    )
    degraded: bool = Field(
        default=False,
        description="True when enhancement failed and input items were returned"
    )
    error: Optional[str] = None
    
    class Config:
        populate_by_name = True


class ScoringResult(BaseModel):
    """Output of the validation and scoring stage."""
    
    items: List[LineItem] = Field(default_factory=list)
    average_confidence: float = Field(default=0.0, alias="averageConfidence")
    coverage_percentage: float = Field(default=0.0, alias="coveragePercentage")
    total_value: float = Field(default=0.0, alias="totalValue")
    validation_summary: Optional[ValidationSummary] = Field(
        default=None,
        alias="validationSummary"
    )
    degraded: bool = Field(
        default=False,
        description="True when scoring failed and defaults were applied"
    )
    error: Optional[str] = None
    
    class Config:
        populate_by_name = True


class PipelineMetadata(BaseModel):
    """Metadata block of a PipelineResult."""
    
    blueprint_types: List[str] = Field(default_factory=list, alias="blueprintTypes")
    confidence: float = 0.0
    coverage: float = Field(default=0.0, description="Category coverage (0-100)")
    processing_time: int = Field(
        default=0,
        alias="processingTime",
        description="Pipeline duration in milliseconds"
    )
    timestamp: Optional[str] = None
    project_context: Dict[str, Any] = Field(default_factory=dict, alias="projectContext")
    fallback_used: Optional[bool] = Field(default=None, alias="fallbackUsed")
    error: Optional[str] = None
    errors: Optional[List[str]] = None
    extraction: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Extraction metadata (diagnostics on the fallback path)"
    )
    validation_summary: Optional[ValidationSummary] = Field(
        default=None,
        alias="validationSummary"
    )
    
    class Config:
        populate_by_name = True


class PipelineSummary(BaseModel):
    """Summary block of a PipelineResult."""
    
    total_items: int = Field(default=0, alias="totalItems")
    total_value: float = Field(default=0.0, alias="totalValue")
    categories: List[str] = Field(default_factory=list)
    requires_pm_review: bool = Field(default=True, alias="requiresPMReview")
    manual_review_required: Optional[bool] = Field(default=None, alias="manualReviewRequired")
    system_error: Optional[bool] = Field(default=None, alias="systemError")
    
    class Config:
        populate_by_name = True
    
    @classmethod
    def from_items(
        cls,
        items: List[LineItem],
        confidence: float,
        review_threshold: float = 0.8,
        **extra: Any
    ) -> "PipelineSummary":
        """Build a summary whose totals are derived from ``items``."""
        return cls(
            total_items=len(items),
            total_value=total_value(items),
            categories=categories_of(items),
            requires_pm_review=confidence < review_threshold,
            **extra
        )


class PipelineResult(BaseModel):
    """Final result of a blueprint pipeline invocation.
    
    Always well-formed, including on total failure.
    """
    
    success: bool = Field(description="Whether every stage completed")
    line_items: List[LineItem] = Field(default_factory=list, alias="lineItems")
    metadata: PipelineMetadata = Field(default_factory=PipelineMetadata)
    summary: PipelineSummary = Field(default_factory=PipelineSummary)
    
    class Config:
        populate_by_name = True
    
    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON response shape (camelCase keys)."""
        return {
            "success": self.success,
            "lineItems": [item.to_dict() for item in self.line_items],
            "metadata": self.metadata.model_dump(by_alias=True, exclude_none=True),
            "summary": self.summary.model_dump(by_alias=True, exclude_none=True),
        }
