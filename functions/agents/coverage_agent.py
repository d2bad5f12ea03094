"""Coverage Agent.

Fills category gaps in a generated estimate. Checks run in a fixed order
because contingencies are sized off everything appended before them:

1. Demolition (only when the analysis reports structural elements):
   generated by the model, with a fixed two-item fallback.
2. Site Preparation: two fixed items.
3. Project Overhead: four items sized off the estimated project value.
4. Contingencies: two items sized off the running subtotal.

Enhancement is best-effort. Any internal error yields the input items
unchanged with ``degraded=True``.
"""

import math
from typing import Dict, Any, Optional, List
import structlog

from agents.base_agent import BaseStageAgent
from config.settings import settings
from models.blueprint import BlueprintAnalysis, ProjectContext
from models.line_item import LineItem, LineItemCategory, total_value
from models.pipeline_result import CoverageResult
from services.llm_service import LLMService
from utils.json_parsing import parse_json_array, StructuredResponse

logger = structlog.get_logger()


# Full checklist of categories a complete estimate should touch
REQUIRED_CATEGORIES = [
    LineItemCategory.DEMOLITION,
    LineItemCategory.SITE_PREPARATION,
    LineItemCategory.FOUNDATION,
    LineItemCategory.STRUCTURAL,
    LineItemCategory.EXTERIOR,
    LineItemCategory.INTERIOR,
    LineItemCategory.MEP,
    LineItemCategory.FINISHES,
    LineItemCategory.SPECIALTIES,
    LineItemCategory.PROJECT_OVERHEAD,
    LineItemCategory.CONTINGENCIES,
]

DEMOLITION_PROMPT_TEMPLATE = """Based on this blueprint analysis, generate demolition line items.

Consider:
- Existing structures to be removed
- Hazardous material abatement (asbestos, lead)
- Site clearing
- Utility disconnections
- Waste disposal and recycling

Return a JSON array of objects with keys name, description, quantity, unit, category ("Demolition"), unitPrice, aiConfidence, notes.

Blueprint analysis:
{analysis}

Project context:
{context}"""

FALLBACK_DEMOLITION_ITEMS: List[Dict[str, Any]] = [
    {
        "name": "Site Demolition and Clearing",
        "description": "Demolition of existing structures and site clearing",
        "quantity": 1,
        "unit": "ls",
        "unitPrice": 5000,
        "aiConfidence": 0.6,
    },
    {
        "name": "Waste Disposal and Recycling",
        "description": "Removal and disposal of construction waste",
        "quantity": 1,
        "unit": "ls",
        "unitPrice": 2000,
        "aiConfidence": 0.6,
    },
]

SITE_PREPARATION_ITEMS: List[Dict[str, Any]] = [
    {
        "name": "Site Preparation and Earthwork",
        "description": "Excavation, grading, and site preparation",
        "quantity": 1,
        "unit": "ls",
        "unitPrice": 8000,
        "aiConfidence": 0.7,
    },
    {
        "name": "Temporary Utilities and Facilities",
        "description": "Temporary power, water, and sanitation facilities",
        "quantity": 1,
        "unit": "ls",
        "unitPrice": 3000,
        "aiConfidence": 0.7,
    },
]

# Fractions of estimated project value
PROJECT_MANAGEMENT_RATE = 0.08
PERMITS_RATE = 0.03
TEMPORARY_FACILITIES_RATE = 0.02
SAFETY_RATE = 0.02

# Fractions of the running subtotal
OWNER_CONTINGENCY_RATE = 0.10
WEATHER_ALLOWANCE_RATE = 0.02


class CoverageAgent(BaseStageAgent):
    """Coverage stage: appends items for missing categories."""
    
    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        default_estimated_value: Optional[float] = None
    ):
        super().__init__(name="coverage", llm_service=llm_service)
        self.default_estimated_value = (
            default_estimated_value
            if default_estimated_value is not None
            else settings.default_estimated_value
        )
    
    async def run(
        self,
        items: List[LineItem],
        analysis: BlueprintAnalysis,
        project_context: ProjectContext
    ) -> CoverageResult:
        """Append items for missing categories. Never raises."""
        self._begin()
        
        try:
            result = await self._enhance(items, analysis, project_context)
        except Exception as e:
            logger.error("coverage_enhancement_failed", error=str(e))
            return CoverageResult(items=list(items), degraded=True, error=str(e))
        
        logger.info(
            "coverage_enhanced",
            input_count=len(items),
            output_count=len(result.items),
            added_categories=result.added_categories,
            missing_categories=self.missing_categories(result.items),
            duration_ms=self.duration_ms
        )
        return result
    
    async def _enhance(
        self,
        items: List[LineItem],
        analysis: BlueprintAnalysis,
        project_context: ProjectContext
    ) -> CoverageResult:
        enhanced = list(items)
        present = {item.category for item in items}
        added: List[str] = []
        
        if LineItemCategory.DEMOLITION not in present and analysis.structural_elements:
            enhanced.extend(await self._demolition_items(analysis, project_context))
            added.append(LineItemCategory.DEMOLITION)
        
        if LineItemCategory.SITE_PREPARATION not in present:
            enhanced.extend(self._site_preparation_items())
            added.append(LineItemCategory.SITE_PREPARATION)
        
        if LineItemCategory.PROJECT_OVERHEAD not in present:
            enhanced.extend(self._project_overhead_items(analysis))
            added.append(LineItemCategory.PROJECT_OVERHEAD)
        
        if LineItemCategory.CONTINGENCIES not in present:
            enhanced.extend(self._contingency_items(enhanced))
            added.append(LineItemCategory.CONTINGENCIES)
        
        completed = [
            item if item.notes else item.model_copy(
                update={"notes": f"Enhanced coverage item - {item.category}"}
            )
            for item in enhanced
        ]
        return CoverageResult(items=completed, added_categories=added)
    
    @staticmethod
    def missing_categories(items: List[LineItem]) -> List[str]:
        """Checklist categories with no item."""
        present = {item.category for item in items}
        return [c for c in REQUIRED_CATEGORIES if c not in present]
    
    def _build(self, templates: List[Dict[str, Any]], category: str) -> List[LineItem]:
        return [
            LineItem.from_generated(template, default_category=category)[0]
            for template in templates
        ]
    
    async def _demolition_items(
        self,
        analysis: BlueprintAnalysis,
        project_context: ProjectContext
    ) -> List[LineItem]:
        prompt = DEMOLITION_PROMPT_TEMPLATE.format(
            analysis=self.serialize_context(analysis.to_prompt_dict()),
            context=self.serialize_context(project_context or {})
        )
        
        try:
            response = await self._generate(prompt)
        except Exception as e:
            logger.warning("demolition_generation_failed", error=str(e))
            return self._build(FALLBACK_DEMOLITION_ITEMS, LineItemCategory.DEMOLITION)
        
        parsed = parse_json_array(response)
        generated = (
            [raw for raw in parsed.value if isinstance(raw, dict)]
            if isinstance(parsed, StructuredResponse) else []
        )
        if not generated:
            logger.warning("demolition_response_unusable")
            return self._build(FALLBACK_DEMOLITION_ITEMS, LineItemCategory.DEMOLITION)
        
        # Generated demolition rows are filed under Demolition regardless of label
        return [
            item.model_copy(update={"category": LineItemCategory.DEMOLITION})
            for item in self._build(generated, LineItemCategory.DEMOLITION)
        ]
    
    def _site_preparation_items(self) -> List[LineItem]:
        return self._build(SITE_PREPARATION_ITEMS, LineItemCategory.SITE_PREPARATION)
    
    def _project_overhead_items(self, analysis: BlueprintAnalysis) -> List[LineItem]:
        value = analysis.estimated_value
        if not value or value <= 0:
            value = self.default_estimated_value
        
        # Project management carries its figure in quantity (unit price 1);
        # the sibling items carry theirs in unit price. Totals are the same.
        templates = [
            {
                "name": "Project Management and Supervision",
                "description": "Project management, supervision, and coordination",
                "quantity": math.ceil(value * PROJECT_MANAGEMENT_RATE),
                "unit": "ea",
                "unitPrice": 1,
            },
            {
                "name": "Permits and Inspections",
                "description": "Building permits, inspections, and regulatory compliance",
                "quantity": 1,
                "unit": "ls",
                "unitPrice": math.ceil(value * PERMITS_RATE),
            },
            {
                "name": "Temporary Facilities and Equipment",
                "description": "Jobsite trailer, equipment rental, and temporary facilities",
                "quantity": 1,
                "unit": "ls",
                "unitPrice": math.ceil(value * TEMPORARY_FACILITIES_RATE),
            },
            {
                "name": "Safety and Security",
                "description": "Jobsite safety equipment, security, and compliance",
                "quantity": 1,
                "unit": "ls",
                "unitPrice": math.ceil(value * SAFETY_RATE),
            },
        ]
        for template in templates:
            template["aiConfidence"] = 0.8
        return self._build(templates, LineItemCategory.PROJECT_OVERHEAD)
    
    def _contingency_items(self, items_so_far: List[LineItem]) -> List[LineItem]:
        subtotal = total_value(items_so_far)
        if not math.isfinite(subtotal):
            logger.warning("contingency_subtotal_not_finite", subtotal=str(subtotal))
            subtotal = 0.0
        
        templates = [
            {
                "name": "Owner Contingency",
                "description": "Owner contingency for unforeseen conditions and changes",
                "quantity": max(1, math.ceil(subtotal * OWNER_CONTINGENCY_RATE)),
                "unit": "ea",
                "unitPrice": 1,
                "aiConfidence": 0.9,
            },
            {
                "name": "Weather Delay Allowance",
                "description": "Allowance for weather-related delays and impacts",
                "quantity": max(1, math.ceil(subtotal * WEATHER_ALLOWANCE_RATE)),
                "unit": "ea",
                "unitPrice": 1,
                "aiConfidence": 0.7,
            },
        ]
        return self._build(templates, LineItemCategory.CONTINGENCIES)
