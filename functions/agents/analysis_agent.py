"""Blueprint Analysis Agent.

Turns extracted text plus project context into a BlueprintAnalysis. The
model is asked for JSON; when the answer is not parseable the analysis
degrades to ``{"rawAnalysis": <text>}``. Later stages accept unstructured
analysis, so this lossy path is kept on purpose.
"""

from typing import Dict, Any, Optional, List
import structlog
from pydantic import ValidationError as PydanticValidationError

from agents.base_agent import BaseStageAgent
from config.errors import AnalysisFailure
from config.settings import settings
from models.blueprint import ExtractedContent, BlueprintAnalysis, ProjectContext
from services.llm_service import LLMService
from utils.json_parsing import parse_json_object, StructuredResponse

logger = structlog.get_logger()


ANALYSIS_PROMPT_TEMPLATE = """Analyze this construction blueprint and return JSON only, with this shape:
{{
  "blueprintTypes": ["architectural", "structural", "MEP", "civil"],
  "buildingType": "residential | commercial | industrial",
  "squareFootage": number,
  "stories": number,
  "estimatedValue": number,
  "scope": "short description of the construction scope",
  "structuralElements": {{"foundation": "...", "walls": "...", "roof": "...", "floors": "..."}},
  "mepSystems": {{"electrical": "...", "plumbing": "...", "hvac": "..."}},
  "finishes": {{"flooring": "...", "walls": "...", "ceilings": "..."}},
  "siteWork": {{"landscaping": "...", "parking": "...", "utilities": "..."}}
}}

Checklist:
1. Blueprint types present in the drawings
2. Construction scope
3. Structural elements
4. MEP systems
5. Finishes
6. Site work

Blueprint content:
{content}

Project context:
{context}"""

# Keyword scan used when the model does not report blueprint types
BLUEPRINT_TYPE_TERMS: Dict[str, tuple] = {
    "architectural": ("architectural", "floor plan", "elevation"),
    "structural": ("structural", "foundation", "beam", "column"),
    "MEP": ("electrical", "plumbing", "hvac", "mechanical"),
    "civil": ("site", "civil", "grading", "utility"),
}


def detect_blueprint_types(text: Any) -> List[str]:
    """Detect blueprint disciplines by case-insensitive substring match.
    
    Returns:
        Matched tags in scan order, or ``["general"]`` when nothing matches.
    """
    if not isinstance(text, str) or not text:
        return ["general"]
    
    content = text.lower()
    types = [
        tag for tag, terms in BLUEPRINT_TYPE_TERMS.items()
        if any(term in content for term in terms)
    ]
    return types or ["general"]


class BlueprintAnalysisAgent(BaseStageAgent):
    """Analysis stage: ExtractedContent in, BlueprintAnalysis out."""
    
    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        text_limit: Optional[int] = None
    ):
        super().__init__(name="analysis", llm_service=llm_service)
        self.text_limit = text_limit if text_limit is not None else settings.analysis_text_limit
    
    def build_prompt(self, extracted: ExtractedContent, project_context: ProjectContext) -> str:
        text = extracted.text
        if self.text_limit and len(text) > self.text_limit:
            text = text[:self.text_limit] + "..."
        return ANALYSIS_PROMPT_TEMPLATE.format(
            content=text,
            context=self.serialize_context(project_context or {})
        )
    
    async def run(
        self,
        extracted: ExtractedContent,
        project_context: ProjectContext
    ) -> BlueprintAnalysis:
        """Analyze extracted blueprint content.
        
        Raises:
            AnalysisFailure: If the generative call fails.
        """
        self._begin()
        
        try:
            response = await self._generate(self.build_prompt(extracted, project_context))
        except Exception as e:
            logger.error("analysis_failed", error=str(e))
            raise AnalysisFailure(
                message=f"Blueprint analysis failed: {e}",
                details={"original_error": str(e)}
            ) from e
        
        parsed = parse_json_object(response)
        if isinstance(parsed, StructuredResponse):
            data: Dict[str, Any] = dict(parsed.value)
            structured = True
        else:
            logger.warning("analysis_unstructured", reason=parsed.reason)
            data = {"rawAnalysis": parsed.text}
            structured = False
        
        analysis = self._build_analysis(data, extracted, structured, response)
        
        logger.info(
            "analysis_completed",
            structured=analysis.structured,
            blueprint_types=analysis.blueprint_types,
            duration_ms=self.duration_ms,
            tokens_used=self.tokens_used
        )
        return analysis
    
    def _build_analysis(
        self,
        data: Dict[str, Any],
        extracted: ExtractedContent,
        structured: bool,
        response: str
    ) -> BlueprintAnalysis:
        # Stage-owned keys always come from the extraction, not the model
        for key in ("metadata", "rawContent", "raw_content", "structured"):
            data.pop(key, None)
        
        camel_types = data.pop("blueprintTypes", None)
        snake_types = data.pop("blueprint_types", None)
        types = camel_types or snake_types
        if not types:
            types = detect_blueprint_types(extracted.text)
        
        try:
            return BlueprintAnalysis.model_validate({
                **data,
                "blueprintTypes": types,
                "metadata": dict(extracted.metadata),
                "rawContent": extracted.text,
                "structured": structured,
            })
        except PydanticValidationError as e:
            logger.warning("analysis_shape_invalid", error=str(e))
            return BlueprintAnalysis(
                blueprint_types=detect_blueprint_types(extracted.text),
                raw_analysis=response,
                raw_content=extracted.text,
                metadata=dict(extracted.metadata),
                structured=False
            )
