# Blueprint pipeline models
from models.blueprint import (
    UploadedBlueprint,
    ExtractedContent,
    BlueprintAnalysis,
    ProjectContext,
)
from models.line_item import LineItem, LineItemCategory, ReviewStatus, generate_item_id
from models.pipeline_result import (
    CoverageResult,
    ScoringResult,
    ValidationSummary,
    PipelineMetadata,
    PipelineSummary,
    PipelineResult,
)

__all__ = [
    "UploadedBlueprint",
    "ExtractedContent",
    "BlueprintAnalysis",
    "ProjectContext",
    "LineItem",
    "LineItemCategory",
    "ReviewStatus",
    "generate_item_id",
    "CoverageResult",
    "ScoringResult",
    "ValidationSummary",
    "PipelineMetadata",
    "PipelineSummary",
    "PipelineResult",
]
