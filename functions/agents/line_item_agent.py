"""Line Item Agent.

Generates the initial estimate line items from a blueprint analysis.

Parsing policy:
1. Parse the response as a JSON array (markdown fences allowed).
2. Otherwise scan the text line by line for "name - description ... <unit>"
   rows and price them with placeholders.
3. If the scan finds nothing, emit a single review-flag item.

Every item, whichever path produced it, goes through
LineItem.from_generated for ids, defaults, coercion and clamping.
"""

import re
from typing import Dict, Any, Optional, List
import structlog

from agents.base_agent import BaseStageAgent
from config.errors import GenerationFailure
from config.settings import settings
from models.blueprint import BlueprintAnalysis, ProjectContext
from models.line_item import LineItem, LineItemCategory
from services.llm_service import LLMService
from utils.json_parsing import parse_json_array, StructuredResponse

logger = structlog.get_logger()


LINE_ITEM_PROMPT_TEMPLATE = """Generate construction cost estimate line items for this project as a JSON array.

Cover every applicable category, using these exact category names:
- "Site Preparation" (clearing, excavation, grading, temporary utilities)
- "Foundation" and "Structural" (footings, slabs, framing, masonry, roof structure)
- "Finishes" (flooring, wall and ceiling finishes, paint, trim)
- "MEP" (electrical, plumbing, HVAC)
- "Specialties" (fixtures, cabinetry, built-ins)
- "Project Overhead" and "Contingencies" (supervision, permits, allowances)

Each array element must be an object with these keys:
{{
  "name": "short item name",
  "description": "scope of work or material",
  "quantity": number,
  "unit": "ea | sq ft | ln ft | cu yd | ls | ...",
  "category": "one of the categories above",
  "unitPrice": number,
  "lineTotal": number,
  "aiConfidence": number between 0 and 1,
  "materialDatabaseId": null,
  "notes": "where in the blueprint this item comes from"
}}

Base quantities on the dimensions and elements in the analysis and use realistic current market unit prices.

Blueprint analysis:
{analysis}

Project context:
{context}

Return the JSON array only."""

# "name - description ... 500 sq ft" style rows
_UNIT_TOKEN = re.compile(r"\b(?:ea|sq\.?\s?ft|ln\.?\s?ft)\b", re.IGNORECASE)
_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
_FENCED_ARRAY = re.compile(r"```(?:json)?\s*(\[[\s\S]*?\])\s*```")

TEXT_FALLBACK_UNIT_PRICE = 100.0
TEXT_FALLBACK_CONFIDENCE = 0.6

REVIEW_REQUIRED_ITEM: Dict[str, Any] = {
    "name": "Blueprint Analysis Review Required",
    "description": "The generated estimate could not be parsed into line items. Review the blueprint and price the scope manually.",
    "quantity": 1,
    "unit": "ea",
    "category": LineItemCategory.GENERAL,
    "unitPrice": 0,
    "aiConfidence": 0.3,
    "notes": "Placeholder created because no line items could be recovered from the model response",
}


def parse_line_items_from_text(text: str) -> List[Dict[str, Any]]:
    """Recover raw line item dicts from an unstructured model response.
    
    A fenced JSON array anywhere in the text is used first. Otherwise each
    line containing a hyphen and a unit token (ea, sq ft, ln ft) becomes an
    item named by the text before the first hyphen. When nothing is found,
    a single review-flag item is returned.
    """
    if not isinstance(text, str):
        return [dict(REVIEW_REQUIRED_ITEM)]
    
    match = _FENCED_ARRAY.search(text)
    if match:
        fenced = parse_json_array(match.group(1))
        if isinstance(fenced, StructuredResponse):
            logger.info("text_fallback_fenced_json", count=len(fenced.value))
            return fenced.value
    
    items: List[Dict[str, Any]] = []
    for line in text.splitlines():
        if "-" not in line or not _UNIT_TOKEN.search(line):
            continue
        
        name, _, description = _LIST_MARKER.sub("", line).partition("-")
        name = name.strip().strip("*").strip()
        if not name:
            continue
        
        items.append({
            "name": name,
            "description": description.strip(),
            "quantity": 1,
            "unit": "ea",
            "category": LineItemCategory.GENERAL,
            "unitPrice": TEXT_FALLBACK_UNIT_PRICE,
            "aiConfidence": TEXT_FALLBACK_CONFIDENCE,
            "notes": "Recovered from unstructured model response; quantity and price are placeholders",
        })
    
    if not items:
        logger.warning("text_fallback_no_items")
        return [dict(REVIEW_REQUIRED_ITEM)]
    
    return items


def default_note(analysis: BlueprintAnalysis) -> str:
    """Provenance note naming the detected blueprint types."""
    types = ", ".join(analysis.blueprint_types) or "general construction"
    return f"Generated from blueprint analysis - {types}"


class LineItemAgent(BaseStageAgent):
    """Line item stage: BlueprintAnalysis in, unscored LineItems out."""
    
    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        analysis_limit: Optional[int] = None
    ):
        super().__init__(name="line_items", llm_service=llm_service)
        self.analysis_limit = analysis_limit if analysis_limit is not None else settings.line_item_analysis_limit
    
    def build_prompt(self, analysis: BlueprintAnalysis, project_context: ProjectContext) -> str:
        return LINE_ITEM_PROMPT_TEMPLATE.format(
            analysis=self.serialize_context(analysis.to_prompt_dict(), limit=self.analysis_limit or None),
            context=self.serialize_context(project_context or {})
        )
    
    async def run(
        self,
        analysis: BlueprintAnalysis,
        project_context: ProjectContext
    ) -> List[LineItem]:
        """Generate line items for an analyzed blueprint.
        
        Raises:
            GenerationFailure: If generation or both parse paths fail.
        """
        self._begin()
        
        try:
            response = await self._generate(self.build_prompt(analysis, project_context))
            
            parsed = parse_json_array(response)
            if isinstance(parsed, StructuredResponse):
                raw_items = parsed.value
                source = "json"
            else:
                logger.warning("line_items_unstructured", reason=parsed.reason)
                raw_items = parse_line_items_from_text(response)
                source = "text"
            
            items = self.normalize(raw_items, analysis)
        except Exception as e:
            logger.error("line_item_generation_failed", error=str(e))
            raise GenerationFailure(
                message=f"Line item extraction failed: {e}",
                details={"original_error": str(e)}
            ) from e
        
        logger.info(
            "line_items_generated",
            source=source,
            count=len(items),
            duration_ms=self.duration_ms,
            tokens_used=self.tokens_used
        )
        return items
    
    def normalize(
        self,
        raw_items: List[Any],
        analysis: BlueprintAnalysis
    ) -> List[LineItem]:
        """Normalize raw item dicts; non-dict entries are skipped."""
        note = default_note(analysis)
        items: List[LineItem] = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                logger.debug("line_item_skipped", reason="not an object")
                continue
            item, _ = LineItem.from_generated(raw, default_notes=note)
            items.append(item)
        return items
