"""Fallback Processor.

Runs when Extract, Analyze or Generate fails. Re-runs extraction alone for
diagnostics and returns a single manual-review placeholder item. If that
extraction fails too, returns an empty result flagged ``systemError``.
Always returns a PipelineResult.
"""

from typing import Dict, Any, Optional
import structlog

from agents.extraction_agent import TextExtractionAgent
from models.blueprint import UploadedBlueprint, ProjectContext
from models.line_item import LineItem, LineItemCategory, generate_item_id
from models.pipeline_result import PipelineResult, PipelineMetadata, PipelineSummary

logger = structlog.get_logger()


FALLBACK_CONFIDENCE = 0.2
FALLBACK_COVERAGE = 10.0


def manual_review_item(error: str) -> LineItem:
    """Placeholder item carrying the pipeline error."""
    return LineItem(
        item_id=generate_item_id("FB"),
        name="Blueprint Analysis - Manual Review Required",
        description=(
            f"Automated processing failed: {error}. "
            "Manual review and estimation required."
        ),
        quantity=0,
        unit="N/A",
        category=LineItemCategory.GENERAL,
        unit_price=0,
        is_ai_generated=True,
        ai_confidence=FALLBACK_CONFIDENCE,
        notes=f"Fallback processing used. Original error: {error}",
    )


class FallbackProcessor:
    """Builds the degraded PipelineResult after a fatal stage failure."""
    
    def __init__(
        self,
        extractor: TextExtractionAgent,
        max_upload_bytes: Optional[int] = None
    ):
        self.extractor = extractor
        self.max_upload_bytes = max_upload_bytes
    
    async def run(
        self,
        file_data: Any,
        file_type: Any,
        project_context: ProjectContext,
        error: str,
        processing_time: int = 0,
        timestamp: Optional[str] = None
    ) -> PipelineResult:
        """Produce the fallback result. Never raises."""
        logger.warning("fallback_processing_started", error=error)
        
        try:
            diagnostics = await self._diagnose(file_data, file_type)
        except Exception as e:
            logger.error("fallback_extraction_failed", error=str(e), original_error=error)
            return self.system_error(
                error,
                str(e),
                project_context,
                processing_time=processing_time,
                timestamp=timestamp
            )
        
        items = [manual_review_item(error)]
        return PipelineResult(
            success=False,
            line_items=items,
            metadata=PipelineMetadata(
                blueprint_types=["unknown"],
                confidence=FALLBACK_CONFIDENCE,
                coverage=FALLBACK_COVERAGE,
                processing_time=processing_time,
                timestamp=timestamp,
                project_context=project_context or {},
                fallback_used=True,
                error=error,
                extraction=diagnostics,
            ),
            summary=PipelineSummary.from_items(
                items,
                confidence=FALLBACK_CONFIDENCE,
                manual_review_required=True
            ),
        )
    
    async def _diagnose(self, file_data: Any, file_type: Any) -> Dict[str, Any]:
        blueprint = UploadedBlueprint.from_request(
            file_data,
            file_type,
            max_bytes=self.max_upload_bytes
        )
        extracted = await self.extractor.run(blueprint)
        return {
            "fileType": blueprint.file_type,
            "textLength": len(extracted.text),
            "pages": extracted.pages,
            "metadata": extracted.metadata,
        }
    
    @staticmethod
    def system_error(
        error: str,
        fallback_error: str,
        project_context: Optional[ProjectContext] = None,
        processing_time: int = 0,
        timestamp: Optional[str] = None
    ) -> PipelineResult:
        """Empty result for when even the fallback extraction fails."""
        return PipelineResult(
            success=False,
            line_items=[],
            metadata=PipelineMetadata(
                blueprint_types=["error"],
                confidence=0.0,
                coverage=0.0,
                processing_time=processing_time,
                timestamp=timestamp,
                project_context=project_context or {},
                fallback_used=True,
                errors=[error, fallback_error],
            ),
            summary=PipelineSummary(
                total_items=0,
                total_value=0.0,
                categories=[],
                requires_pm_review=True,
                manual_review_required=True,
                system_error=True,
            ),
        )
