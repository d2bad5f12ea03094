"""Unit tests for LLM service."""

import base64
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from config.errors import EstimatorError, ErrorCode


class TestLLMService:
    """Tests for LLMService."""
    
    def test_initialization(self):
        """Test LLMService initialization."""
        with patch('services.llm_service.ChatOpenAI'):
            from services.llm_service import LLMService
            
            service = LLMService(
                model="gpt-4-turbo",
                temperature=0.2,
                api_key="test-key"
            )
            
            assert service.model == "gpt-4-turbo"
            assert service.temperature == 0.2
            assert service.api_key == "test-key"
    
    @pytest.mark.asyncio
    async def test_generate(self, mock_llm_service):
        """Test generate method."""
        from langchain_core.messages import HumanMessage
        
        result = await mock_llm_service.generate([HumanMessage(content="Hello")])
        
        assert result["content"] == "Mock response content"
        assert result["tokens_used"] == 100
    
    @pytest.mark.asyncio
    async def test_generate_text_sends_system_prompt(self, mock_llm_service):
        """Prompts carry the construction system prompt."""
        from langchain_core.messages import SystemMessage, HumanMessage
        from services.llm_service import CONSTRUCTION_SYSTEM_PROMPT
        
        await mock_llm_service.generate_text("Analyze this blueprint")
        
        messages = mock_llm_service._client.ainvoke.call_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert messages[0].content == CONSTRUCTION_SYSTEM_PROMPT
        assert isinstance(messages[1], HumanMessage)
        assert messages[1].content == "Analyze this blueprint"
    
    @pytest.mark.asyncio
    async def test_generate_text_with_image(self, mock_llm_service):
        """Images are sent as a base64 data URL content block."""
        await mock_llm_service.generate_text(
            "Extract details",
            image=b"imagebytes",
            image_mime_type="image/jpeg"
        )
        
        human = mock_llm_service._client.ainvoke.call_args.args[0][1]
        text_block, image_block = human.content
        expected = "data:image/jpeg;base64," + base64.b64encode(b"imagebytes").decode()
        assert text_block == {"type": "text", "text": "Extract details"}
        assert image_block == {"type": "image_url", "image_url": {"url": expected}}
    
    @pytest.mark.asyncio
    async def test_vision_model_routing(self, mock_chat_openai):
        """Image prompts use the vision client when the models differ."""
        from services.llm_service import LLMService
        
        text_client = AsyncMock()
        service = LLMService(api_key="k", model="gpt-4o-mini", vision_model="gpt-4o")
        service._client = text_client
        service._vision_client = mock_chat_openai
        
        await service.generate_text("Read this", image=b"png")
        
        mock_chat_openai.ainvoke.assert_awaited_once()
        text_client.ainvoke.assert_not_called()
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("message,code", [
        ("Error code: 429 - rate_limit_exceeded", ErrorCode.LLM_RATE_LIMIT),
        ("This model's maximum context length is 128000 tokens", ErrorCode.LLM_CONTEXT_TOO_LONG),
        ("connection reset", ErrorCode.LLM_ERROR),
    ])
    async def test_errors_are_mapped(self, mock_llm_service, message, code):
        """Provider errors become EstimatorError with a specific code."""
        mock_llm_service._client.ainvoke.side_effect = RuntimeError(message)
        
        with pytest.raises(EstimatorError) as exc_info:
            await mock_llm_service.generate_text("Hello")
        
        assert exc_info.value.code == code
        assert exc_info.value.details["original_error"] == message
    
    def test_create_chat_model(self, mock_llm_service):
        """Test creating a new chat model."""
        with patch('services.llm_service.ChatOpenAI') as mock_chat:
            mock_chat.return_value = MagicMock()
            
            mock_llm_service.create_chat_model(
                model="gpt-4-turbo",
                temperature=0.5
            )
            
            mock_chat.assert_called_once_with(
                model="gpt-4-turbo",
                temperature=0.5,
                api_key=mock_llm_service.api_key
            )
    
    @pytest.mark.asyncio
    async def test_token_tracking(self, mock_llm_service):
        """Test token usage tracking."""
        assert mock_llm_service.total_tokens_used == 0
        
        await mock_llm_service.generate_text("one")
        await mock_llm_service.generate_text("two")
        
        assert mock_llm_service.total_tokens_used == 200
