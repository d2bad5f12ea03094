"""Pytest configuration and shared fixtures for blueprint pipeline tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from typing import Any, Dict

# Settings are read at import time; keep tests off Secret Manager.
os.environ.setdefault("USE_FIREBASE_EMULATORS", "true")
os.environ.setdefault("OPENAI_API_KEY", "test-api-key")


# ============================================================================
# Ensure local imports work (agents/, models/, services/, config/)
# ============================================================================
#
# Our codebase uses absolute imports like `from models...` / `from agents...`.
# This guarantees that `functions/` is importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content="Mock response content",
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """Real LLMService with a mocked ChatOpenAI client."""
    from services.llm_service import LLMService
    
    with patch('services.llm_service.ChatOpenAI', return_value=mock_chat_openai):
        service = LLMService(api_key="test-api-key", model="gpt-4o", vision_model="gpt-4o")
        service._client = mock_chat_openai
        return service


def _llm_result(content: str) -> Dict[str, Any]:
    return {"content": content, "tokens_used": 10}


@pytest.fixture
def make_llm():
    """Build a stand-in LLM service that answers generate_text in order.
    
    Each response is either response text or an exception to raise.
    """
    def _make(*responses: Any) -> MagicMock:
        llm = MagicMock()
        llm.generate_text = AsyncMock(side_effect=[
            r if isinstance(r, Exception) else _llm_result(r)
            for r in responses
        ])
        return llm
    return _make


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def project_context():
    from tests.fixtures.mock_blueprint_data import get_project_context
    return get_project_context()


@pytest.fixture
def extracted_content():
    from models.blueprint import ExtractedContent
    from tests.fixtures.mock_blueprint_data import RESIDENTIAL_BLUEPRINT_TEXT
    
    return ExtractedContent(
        text=RESIDENTIAL_BLUEPRINT_TEXT,
        pages=1,
        metadata={"title": "A-101", "extractedBy": "pypdf"}
    )


@pytest.fixture
def blueprint_analysis():
    """Structured analysis with structural elements and a project value."""
    from models.blueprint import BlueprintAnalysis
    from tests.fixtures.mock_blueprint_data import (
        get_analysis_response,
        RESIDENTIAL_BLUEPRINT_TEXT,
    )
    
    return BlueprintAnalysis.model_validate({
        **get_analysis_response(),
        "rawContent": RESIDENTIAL_BLUEPRINT_TEXT,
        "metadata": {"extractedBy": "pypdf"},
    })


@pytest.fixture
def minimal_analysis():
    """Unstructured analysis: no structural elements, no project value."""
    from models.blueprint import BlueprintAnalysis
    
    return BlueprintAnalysis(
        raw_analysis="Some notes about the drawing",
        raw_content="floor plan",
        structured=False
    )


@pytest.fixture
def sample_line_items():
    from models.line_item import LineItem
    from tests.fixtures.mock_blueprint_data import get_line_items_response
    
    return [
        LineItem.from_generated(raw, default_notes="Generated from blueprint analysis")[0]
        for raw in get_line_items_response()
    ]
