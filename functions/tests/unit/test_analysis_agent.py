"""Unit tests for the blueprint analysis stage."""

import json
import pytest

from agents.analysis_agent import BlueprintAnalysisAgent, detect_blueprint_types
from config.errors import AnalysisFailure, ErrorCode
from models.blueprint import ExtractedContent
from tests.fixtures.mock_blueprint_data import (
    get_analysis_response,
    get_analysis_response_text,
    RESIDENTIAL_BLUEPRINT_TEXT,
)


class TestDetectBlueprintTypes:
    """Tests for the keyword scan."""
    
    def test_detects_all_disciplines(self):
        types = detect_blueprint_types(
            "ARCHITECTURAL floor plan; foundation detail; HVAC ducting; site grading"
        )
        
        assert types == ["architectural", "structural", "MEP", "civil"]
    
    def test_general_when_nothing_matches(self):
        assert detect_blueprint_types("Lorem ipsum") == ["general"]
        assert detect_blueprint_types("") == ["general"]
        assert detect_blueprint_types(None) == ["general"]


class TestBlueprintAnalysisAgent:
    """Tests for BlueprintAnalysisAgent."""
    
    @pytest.mark.asyncio
    async def test_structured_analysis(self, make_llm, extracted_content, project_context):
        llm = make_llm(get_analysis_response_text())
        agent = BlueprintAnalysisAgent(llm)
        
        analysis = await agent.run(extracted_content, project_context)
        
        assert analysis.structured is True
        assert analysis.blueprint_types == ["architectural", "structural", "MEP"]
        assert analysis.estimated_value == 250000
        assert analysis.structural_elements["foundation"] == "600 x 250 strip footing"
        assert analysis.raw_content == RESIDENTIAL_BLUEPRINT_TEXT
        assert analysis.metadata == extracted_content.metadata
        assert agent.tokens_used == 10
    
    @pytest.mark.asyncio
    async def test_prompt_embeds_text_and_context(self, make_llm, extracted_content, project_context):
        llm = make_llm(get_analysis_response_text())
        
        await BlueprintAnalysisAgent(llm).run(extracted_content, project_context)
        
        prompt = llm.generate_text.call_args.args[0]
        assert RESIDENTIAL_BLUEPRINT_TEXT in prompt
        assert '"projectId": "proj-test-001"' in prompt
        assert "Site work" in prompt
    
    @pytest.mark.asyncio
    async def test_text_limit_truncates(self, make_llm, project_context):
        llm = make_llm("{}")
        extracted = ExtractedContent(text="x" * 50)
        
        await BlueprintAnalysisAgent(llm, text_limit=10).run(extracted, project_context)
        
        prompt = llm.generate_text.call_args.args[0]
        assert "x" * 10 + "..." in prompt
        assert "x" * 11 not in prompt
    
    @pytest.mark.asyncio
    async def test_missing_types_backfilled_by_keyword_scan(self, make_llm, extracted_content):
        response = get_analysis_response()
        del response["blueprintTypes"]
        llm = make_llm(json.dumps(response))
        
        analysis = await BlueprintAnalysisAgent(llm).run(extracted_content, {})
        
        assert analysis.blueprint_types == ["architectural", "structural", "MEP"]
    
    @pytest.mark.asyncio
    async def test_unparseable_response_kept_raw(self, make_llm):
        llm = make_llm("This drawing shows a small office building.")
        extracted = ExtractedContent(text="Lorem ipsum")
        
        analysis = await BlueprintAnalysisAgent(llm).run(extracted, {})
        
        assert analysis.structured is False
        assert analysis.raw_analysis == "This drawing shows a small office building."
        assert analysis.blueprint_types == ["general"]
        assert analysis.structural_elements is None
    
    @pytest.mark.asyncio
    async def test_model_cannot_override_stage_fields(self, make_llm, extracted_content):
        llm = make_llm(json.dumps({"rawContent": "spoofed", "metadata": {"confidence": "low"}}))
        
        analysis = await BlueprintAnalysisAgent(llm).run(extracted_content, {})
        
        assert analysis.raw_content == RESIDENTIAL_BLUEPRINT_TEXT
        assert analysis.extraction_confidence is None
    
    @pytest.mark.asyncio
    async def test_generation_error_raises_analysis_failure(self, make_llm, extracted_content):
        llm = make_llm(RuntimeError("LLM generation failed: timeout"))
        
        with pytest.raises(AnalysisFailure) as exc_info:
            await BlueprintAnalysisAgent(llm).run(extracted_content, {})
        
        assert exc_info.value.code == ErrorCode.ANALYSIS_FAILED
        assert "timeout" in exc_info.value.message
        assert exc_info.value.stage == "analysis"
