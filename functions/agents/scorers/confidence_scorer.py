"""Confidence Scorer.

Final pipeline stage. Recomputes per-item confidence from the item's own
base confidence, then aggregates average confidence, category coverage and
total value. Never raises: on internal error it returns the degraded
default (confidence 0.7 everywhere, coverage 75).
"""

from typing import Any, Iterable, List, Optional
from collections import Counter
import time
import structlog

from models.blueprint import BlueprintAnalysis
from models.line_item import LineItem, LineItemCategory, total_value
from models.pipeline_result import ScoringResult, ValidationSummary
from utils.coercion import clamp

logger = structlog.get_logger()


# Fixed checklist for coverage percentage. Independent of the coverage
# enhancer's category list.
COVERAGE_CATEGORIES = (
    LineItemCategory.FOUNDATION,
    LineItemCategory.STRUCTURAL,
    LineItemCategory.MEP,
    LineItemCategory.FINISHES,
)

LOW_EXTRACTION_FACTOR = 0.8
SINGLE_MEMBER_CATEGORY_FACTOR = 0.9
NON_POSITIVE_VALUE_FACTOR = 0.5

DEGRADED_CONFIDENCE = 0.7
DEGRADED_COVERAGE = 75.0


class ConfidenceScorer:
    """Validates and scores line items."""
    
    name = "validation"
    
    def __init__(self):
        self._start_time: Optional[float] = None
    
    @property
    def duration_ms(self) -> int:
        if self._start_time is None:
            return 0
        return int((time.time() - self._start_time) * 1000)
    
    async def run(
        self,
        items: List[LineItem],
        analysis: Optional[BlueprintAnalysis]
    ) -> ScoringResult:
        """Score items against the analysis. Never raises."""
        self._start_time = time.time()
        
        try:
            result = self.score(items, analysis)
        except Exception as e:
            logger.error("confidence_scoring_failed", error=str(e))
            return self.degraded(items, str(e))
        
        logger.info(
            "confidence_scored",
            item_count=len(result.items),
            average_confidence=round(result.average_confidence, 3),
            coverage_percentage=result.coverage_percentage,
            total_value=result.total_value,
            duration_ms=self.duration_ms
        )
        return result
    
    def score(
        self,
        items: Iterable[Any],
        analysis: Optional[BlueprintAnalysis]
    ) -> ScoringResult:
        """Score items. May raise; ``run`` is the non-raising entry point."""
        normalized = [self._as_line_item(item) for item in items or []]
        
        low_extraction = (
            analysis is not None and analysis.extraction_confidence == "low"
        )
        category_counts = Counter(item.category for item in normalized)
        
        scored = [
            item.model_copy(update={
                "ai_confidence": self.adjust_confidence(
                    item,
                    low_extraction=low_extraction,
                    category_size=category_counts[item.category]
                )
            })
            for item in normalized
        ]
        
        average = (
            sum(item.ai_confidence for item in scored) / len(scored)
            if scored else 0.0
        )
        
        return ScoringResult(
            items=scored,
            average_confidence=average,
            coverage_percentage=self.coverage_percentage(scored),
            total_value=total_value(scored),
            validation_summary=ValidationSummary.from_items(scored),
        )
    
    @staticmethod
    def adjust_confidence(
        item: LineItem,
        low_extraction: bool = False,
        category_size: int = 2
    ) -> float:
        """Apply the multiplicative penalties to one item's own confidence."""
        confidence = item.ai_confidence
        
        if low_extraction:
            confidence *= LOW_EXTRACTION_FACTOR
        
        if category_size == 1:
            confidence *= SINGLE_MEMBER_CATEGORY_FACTOR
        
        if item.quantity <= 0 or item.unit_price <= 0:
            confidence *= NON_POSITIVE_VALUE_FACTOR
        
        return clamp(confidence)
    
    @staticmethod
    def coverage_percentage(items: List[LineItem]) -> float:
        """Share of the four checklist categories present, 0-100."""
        present = {item.category for item in items}
        covered = sum(1 for category in COVERAGE_CATEGORIES if category in present)
        return covered / len(COVERAGE_CATEGORIES) * 100
    
    @staticmethod
    def degraded(items: Iterable[Any], error: Optional[str] = None) -> ScoringResult:
        """Default result used when scoring fails."""
        kept = [
            item.model_copy(update={"ai_confidence": DEGRADED_CONFIDENCE})
            for item in items or []
            if isinstance(item, LineItem)
        ]
        return ScoringResult(
            items=kept,
            average_confidence=DEGRADED_CONFIDENCE,
            coverage_percentage=DEGRADED_COVERAGE,
            total_value=total_value(kept),
            validation_summary=ValidationSummary.from_items(kept),
            degraded=True,
            error=error,
        )
    
    @staticmethod
    def _as_line_item(item: Any) -> LineItem:
        if isinstance(item, LineItem):
            return item
        if isinstance(item, dict):
            return LineItem.from_generated(item)[0]
        raise TypeError(f"Cannot score item of type {type(item).__name__}")
