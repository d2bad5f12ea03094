"""LLM service for the blueprint pipeline.

Provides the generative text/vision capability through LangChain's
ChatOpenAI. One instance is created by whoever wires the service up and is
passed into the pipeline; stages never construct their own.
"""

import base64
from typing import Dict, Any, Optional, List
import structlog
from langchain_openai import ChatOpenAI
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from config.settings import settings
from config.errors import EstimatorError, ErrorCode

logger = structlog.get_logger()


CONSTRUCTION_SYSTEM_PROMPT = """You are a construction analysis AI specialized in reading building blueprints and preparing cost estimates.

Read drawings and specifications the way an experienced quantity surveyor would: note dimensions, scales, materials, structural members, MEP systems, finishes and site work, and say so when information is missing rather than inventing it."""


class LLMService:
    """Service for LLM operations using LangChain.
    
    Provides a wrapper around ChatOpenAI with token tracking
    and error handling.
    """
    
    def __init__(
        self,
        model: Optional[str] = None,
        vision_model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None,
        max_tokens: Optional[int] = None
    ):
        """Initialize LLMService.
        
        Args:
            model: Model name (default from settings).
            vision_model: Model used for image prompts (default from settings).
            temperature: Temperature (default from settings).
            api_key: OpenAI API key (default from settings).
            max_tokens: Optional response token cap (default from settings).
        """
        self.model = model or settings.llm_model
        self.vision_model = vision_model or settings.llm_vision_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.api_key = api_key or settings.openai_api_key
        self.max_tokens = max_tokens or settings.llm_max_tokens
        
        self._client: Optional[ChatOpenAI] = None
        self._vision_client: Optional[ChatOpenAI] = None
        self._total_tokens_used = 0
    
    @property
    def client(self) -> ChatOpenAI:
        """Get LangChain ChatOpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = self.create_chat_model()
        return self._client
    
    @property
    def vision_client(self) -> ChatOpenAI:
        """Get the vision-capable client, shared with ``client`` when the models match."""
        if self.vision_model == self.model:
            return self.client
        if self._vision_client is None:
            self._vision_client = self.create_chat_model(model=self.vision_model)
        return self._vision_client
    
    @property
    def total_tokens_used(self) -> int:
        """Get total tokens used across all calls."""
        return self._total_tokens_used
    
    async def generate(
        self,
        messages: List[BaseMessage],
        max_tokens: Optional[int] = None,
        vision: bool = False
    ) -> Dict[str, Any]:
        """Generate a response from the LLM.
        
        Args:
            messages: List of LangChain messages.
            max_tokens: Optional max tokens for response.
            vision: Route the call to the vision model.
            
        Returns:
            Dict with content and token usage.
            
        Raises:
            EstimatorError: If LLM call fails.
        """
        client = self.vision_client if vision else self.client
        model = self.vision_model if vision else self.model
        
        try:
            kwargs = {}
            if max_tokens or self.max_tokens:
                kwargs["max_tokens"] = max_tokens or self.max_tokens
            
            response = await client.ainvoke(messages, **kwargs)
            
            tokens_used = 0
            if hasattr(response, "response_metadata"):
                usage = response.response_metadata.get("token_usage", {})
                tokens_used = usage.get("total_tokens", 0)
                self._total_tokens_used += tokens_used
            
            content = response.content if isinstance(response.content, str) else str(response.content)
            
            logger.info(
                "llm_generated",
                model=model,
                vision=vision,
                tokens_used=tokens_used,
                content_length=len(content)
            )
            
            return {
                "content": content,
                "tokens_used": tokens_used
            }
            
        except Exception as e:
            error_msg = str(e)
            
            if "rate_limit" in error_msg.lower():
                raise EstimatorError(
                    code=ErrorCode.LLM_RATE_LIMIT,
                    message="OpenAI rate limit exceeded",
                    details={"original_error": error_msg}
                )
            elif "context_length" in error_msg.lower() or "maximum context" in error_msg.lower():
                raise EstimatorError(
                    code=ErrorCode.LLM_CONTEXT_TOO_LONG,
                    message="Input too long for model context",
                    details={"original_error": error_msg}
                )
            else:
                raise EstimatorError(
                    code=ErrorCode.LLM_ERROR,
                    message=f"LLM generation failed: {error_msg}",
                    details={"original_error": error_msg}
                )
    
    async def generate_text(
        self,
        prompt: str,
        image: Optional[bytes] = None,
        image_mime_type: Optional[str] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate text from a prompt, optionally grounded on an image.
        
        Args:
            prompt: User prompt.
            image: Optional raw image bytes, sent to the vision model.
            image_mime_type: Mime type of ``image`` (default image/png).
            max_tokens: Optional max tokens for response.
            
        Returns:
            Dict with content (str) and token usage.
        """
        if image is None:
            human = HumanMessage(content=prompt)
        else:
            encoded = base64.b64encode(image).decode("ascii")
            data_url = f"data:{image_mime_type or 'image/png'};base64,{encoded}"
            human = HumanMessage(content=[
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": data_url}},
            ])
        
        messages = [
            SystemMessage(content=CONSTRUCTION_SYSTEM_PROMPT),
            human
        ]
        return await self.generate(messages, max_tokens, vision=image is not None)
    
    def create_chat_model(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> ChatOpenAI:
        """Create a new ChatOpenAI instance.
        
        Args:
            model: Model name (default from settings).
            temperature: Temperature (default from settings).
            
        Returns:
            Configured ChatOpenAI instance.
        """
        return ChatOpenAI(
            model=model or self.model,
            temperature=temperature if temperature is not None else self.temperature,
            api_key=self.api_key
        )
