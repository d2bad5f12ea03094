"""Base stage agent for the blueprint pipeline.

Each pipeline stage is an agent with a name, an optional injected LLM
service, and token/duration tracking for logging.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
import json
import time
import structlog

from services.llm_service import LLMService

logger = structlog.get_logger()


class BaseStageAgent(ABC):
    """Abstract base class for pipeline stage agents.
    
    Provides:
    - Injected LLM service (stages never build their own client)
    - Token and duration tracking
    - Project context serialization for prompts
    
    Subclasses must implement:
    - run(...) - the stage's main logic
    """
    
    def __init__(self, name: str, llm_service: Optional[LLMService] = None):
        """Initialize BaseStageAgent.
        
        Args:
            name: Stage name (e.g., "extraction", "analysis").
            llm_service: LLM service instance, owned by the caller.
        """
        self.name = name
        self.llm = llm_service
        
        self._tokens_used = 0
        self._start_time: Optional[float] = None
    
    @property
    def tokens_used(self) -> int:
        """Get tokens used in current run."""
        return self._tokens_used
    
    @property
    def duration_ms(self) -> int:
        """Get duration of current run in milliseconds."""
        if self._start_time is None:
            return 0
        return int((time.time() - self._start_time) * 1000)
    
    def _begin(self) -> None:
        self._start_time = time.time()
        self._tokens_used = 0
    
    async def _generate(
        self,
        prompt: str,
        image: Optional[bytes] = None,
        image_mime_type: Optional[str] = None
    ) -> str:
        """Call the LLM and return the response text.
        
        Raises:
            RuntimeError: If the agent was built without an LLM service.
        """
        if self.llm is None:
            raise RuntimeError(f"{self.name} agent has no LLM service configured")
        
        result = await self.llm.generate_text(
            prompt,
            image=image,
            image_mime_type=image_mime_type
        )
        self._tokens_used += result.get("tokens_used", 0)
        return result.get("content") or ""
    
    @staticmethod
    def serialize_context(data: Any, limit: Optional[int] = None) -> str:
        """JSON-serialize prompt context, optionally truncated."""
        text = json.dumps(data, indent=2, default=str, ensure_ascii=False)
        if limit is not None and len(text) > limit:
            return text[:limit] + "..."
        return text
    
    @abstractmethod
    async def run(self, *args: Any, **kwargs: Any) -> Any:
        """Run the stage's main logic."""
        raise NotImplementedError("Subclasses must implement run()")
