"""Blueprint Pipeline Orchestrator.

Sequences the five pipeline stages:

    Extract -> Analyze -> Generate -> Enhance -> Validate

A failure in Extract, Analyze or Generate aborts the run and hands over to
the FallbackProcessor. Enhance and Validate recover on their own and
report ``degraded`` instead of raising. There are no retries between
stages. The caller always receives a PipelineResult.
"""

import time
from enum import Enum
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List
from uuid import uuid4
import structlog

from agents.analysis_agent import BlueprintAnalysisAgent
from agents.coverage_agent import CoverageAgent
from agents.extraction_agent import TextExtractionAgent
from agents.fallback import FallbackProcessor
from agents.line_item_agent import LineItemAgent
from agents.scorers.confidence_scorer import ConfidenceScorer
from config.settings import settings
from models.blueprint import UploadedBlueprint, ProjectContext
from models.pipeline_result import PipelineResult, PipelineMetadata, PipelineSummary
from services.llm_service import LLMService
from utils.agent_logger import (
    log_pipeline_start,
    log_pipeline_complete,
    log_pipeline_fallback,
    log_stage_start,
    log_stage_complete,
)

logger = structlog.get_logger()


class PipelineStage(str, Enum):
    """Pipeline stages in execution order."""
    
    EXTRACT = "extraction"
    ANALYZE = "analysis"
    GENERATE = "line_items"
    ENHANCE = "coverage"
    VALIDATE = "validation"


class BlueprintPipelineOrchestrator:
    """Runs the blueprint-to-estimate pipeline.
    
    The LLM service is injected and shared across invocations. Stage agents
    are built per invocation, so concurrent runs share no mutable state
    beyond the service's token counter.
    """
    
    def __init__(
        self,
        llm_service: LLMService,
        analysis_text_limit: Optional[int] = None,
        line_item_analysis_limit: Optional[int] = None,
        default_estimated_value: Optional[float] = None,
        review_threshold: Optional[float] = None,
        max_upload_bytes: Optional[int] = None
    ):
        """Initialize BlueprintPipelineOrchestrator.
        
        Args:
            llm_service: Generative capability, owned by the caller.
            analysis_text_limit: Characters of extracted text in the analysis prompt.
            line_item_analysis_limit: Characters of analysis in the generation prompt.
            default_estimated_value: Project value used for overhead items.
            review_threshold: Confidence below which PM review is required.
            max_upload_bytes: Upload size cap.
        """
        self.llm = llm_service
        self.analysis_text_limit = (
            analysis_text_limit if analysis_text_limit is not None
            else settings.analysis_text_limit
        )
        self.line_item_analysis_limit = (
            line_item_analysis_limit if line_item_analysis_limit is not None
            else settings.line_item_analysis_limit
        )
        self.default_estimated_value = (
            default_estimated_value if default_estimated_value is not None
            else settings.default_estimated_value
        )
        self.review_threshold = (
            review_threshold if review_threshold is not None
            else settings.pm_review_threshold
        )
        self.max_upload_bytes = (
            max_upload_bytes if max_upload_bytes is not None
            else settings.max_upload_bytes
        )
    
    async def run_pipeline(
        self,
        file_data: Any,
        file_type: Any,
        project_context: Optional[ProjectContext] = None
    ) -> PipelineResult:
        """Run the full pipeline for one uploaded blueprint.
        
        Args:
            file_data: Base64 string or data URL.
            file_type: Type tag (pdf, docx, dwg, dxf, image, ...).
            project_context: Caller-supplied context, passed to every stage.
            
        Returns:
            PipelineResult. Never raises.
        """
        start_time = time.time()
        pipeline_id = uuid4().hex[:12]
        context: Dict[str, Any] = (
            dict(project_context) if isinstance(project_context, dict) else {}
        )
        
        extractor = TextExtractionAgent(self.llm)
        analyzer = BlueprintAnalysisAgent(self.llm, text_limit=self.analysis_text_limit)
        generator = LineItemAgent(self.llm, analysis_limit=self.line_item_analysis_limit)
        enhancer = CoverageAgent(self.llm, default_estimated_value=self.default_estimated_value)
        scorer = ConfidenceScorer()
        
        log_pipeline_start(pipeline_id, str(file_type), list(context.keys()))
        logger.info("pipeline_started", pipeline_id=pipeline_id, file_type=file_type)
        
        completed: List[str] = []
        stage = PipelineStage.EXTRACT
        
        try:
            log_stage_start(stage.value, pipeline_id)
            blueprint = UploadedBlueprint.from_request(
                file_data,
                file_type,
                max_bytes=self.max_upload_bytes
            )
            extracted = await extractor.run(blueprint)
            log_stage_complete(
                stage.value,
                pipeline_id,
                {
                    "textLength": len(extracted.text),
                    "pages": extracted.pages,
                    "metadata": extracted.metadata,
                },
                duration_ms=extractor.duration_ms,
                tokens_used=extractor.tokens_used
            )
            completed.append(stage.value)
            
            stage = PipelineStage.ANALYZE
            log_stage_start(stage.value, pipeline_id)
            analysis = await analyzer.run(extracted, context)
            log_stage_complete(
                stage.value,
                pipeline_id,
                {
                    "blueprintTypes": analysis.blueprint_types,
                    "structured": analysis.structured,
                },
                duration_ms=analyzer.duration_ms,
                tokens_used=analyzer.tokens_used
            )
            completed.append(stage.value)
            
            stage = PipelineStage.GENERATE
            log_stage_start(stage.value, pipeline_id)
            items = await generator.run(analysis, context)
            log_stage_complete(
                stage.value,
                pipeline_id,
                {"itemCount": len(items)},
                duration_ms=generator.duration_ms,
                tokens_used=generator.tokens_used
            )
            completed.append(stage.value)
        except Exception as e:
            processing_time = self._elapsed_ms(start_time)
            fallback = FallbackProcessor(
                TextExtractionAgent(self.llm),
                max_upload_bytes=self.max_upload_bytes
            )
            result = await fallback.run(
                file_data,
                file_type,
                context,
                error=str(e),
                processing_time=processing_time,
                timestamp=self._timestamp()
            )
            log_pipeline_fallback(
                pipeline_id=pipeline_id,
                failed_stage=stage.value,
                error=str(e),
                completed_stages=completed,
                fallback_error=(
                    result.metadata.errors[-1] if result.summary.system_error else None
                )
            )
            return result
        
        stage = PipelineStage.ENHANCE
        log_stage_start(stage.value, pipeline_id)
        coverage = await enhancer.run(items, analysis, context)
        log_stage_complete(
            stage.value,
            pipeline_id,
            {
                "itemCount": len(coverage.items),
                "addedCategories": coverage.added_categories,
            },
            duration_ms=enhancer.duration_ms,
            tokens_used=enhancer.tokens_used,
            degraded=coverage.degraded
        )
        completed.append(stage.value)
        
        stage = PipelineStage.VALIDATE
        log_stage_start(stage.value, pipeline_id)
        scoring = await scorer.run(coverage.items, analysis)
        log_stage_complete(
            stage.value,
            pipeline_id,
            {
                "averageConfidence": scoring.average_confidence,
                "coveragePercentage": scoring.coverage_percentage,
                "totalValue": scoring.total_value,
            },
            duration_ms=scorer.duration_ms,
            degraded=scoring.degraded
        )
        completed.append(stage.value)
        
        soft_errors = [e for e in (coverage.error, scoring.error) if e]
        processing_time = self._elapsed_ms(start_time)
        
        result = PipelineResult(
            success=True,
            line_items=scoring.items,
            metadata=PipelineMetadata(
                blueprint_types=analysis.blueprint_types,
                confidence=scoring.average_confidence,
                coverage=scoring.coverage_percentage,
                processing_time=processing_time,
                timestamp=self._timestamp(),
                project_context=context,
                errors=soft_errors or None,
                extraction=dict(extracted.metadata),
                validation_summary=scoring.validation_summary,
            ),
            summary=PipelineSummary.from_items(
                scoring.items,
                confidence=scoring.average_confidence,
                review_threshold=self.review_threshold
            ),
        )
        
        total_tokens = sum(
            agent.tokens_used for agent in (extractor, analyzer, generator, enhancer)
        )
        log_pipeline_complete(
            pipeline_id=pipeline_id,
            item_count=len(result.line_items),
            confidence=result.metadata.confidence,
            duration_ms=processing_time,
            total_tokens=total_tokens
        )
        logger.info(
            "pipeline_completed",
            pipeline_id=pipeline_id,
            stages=completed,
            item_count=len(result.line_items),
            requires_pm_review=result.summary.requires_pm_review
        )
        return result
    
    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.time() - start_time) * 1000)
    
    @staticmethod
    def _timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()


# Convenience function for Cloud Function entry point
async def run_blueprint_pipeline(
    file_data: Any,
    file_type: Any,
    project_context: Optional[ProjectContext] = None,
    llm_service: Optional[LLMService] = None
) -> PipelineResult:
    """Run the blueprint pipeline.
    
    Convenience function wrapping BlueprintPipelineOrchestrator. Builds an
    LLMService from settings when none is supplied.
    
    Args:
        file_data: Base64 string or data URL.
        file_type: Type tag.
        project_context: Caller-supplied context.
        llm_service: Optional LLM service instance.
        
    Returns:
        PipelineResult.
    """
    orchestrator = BlueprintPipelineOrchestrator(llm_service or LLMService())
    return await orchestrator.run_pipeline(file_data, file_type, project_context)
