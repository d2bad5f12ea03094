"""Unit tests for BaseStageAgent."""

import pytest

from agents.base_agent import BaseStageAgent


class EchoAgent(BaseStageAgent):
    async def run(self, prompt):
        self._begin()
        return await self._generate(prompt)


class TestBaseStageAgent:
    """Tests for BaseStageAgent."""
    
    @pytest.mark.asyncio
    async def test_generate_tracks_tokens(self, make_llm):
        agent = EchoAgent(name="echo", llm_service=make_llm("first", "second"))
        
        assert await agent.run("a") == "first"
        assert agent.tokens_used == 10
        assert agent.duration_ms >= 0
    
    @pytest.mark.asyncio
    async def test_generate_without_llm_raises(self):
        agent = EchoAgent(name="echo")
        
        with pytest.raises(RuntimeError, match="no LLM service"):
            await agent.run("a")
    
    def test_duration_before_run(self):
        assert EchoAgent(name="echo").duration_ms == 0
    
    def test_serialize_context(self):
        text = BaseStageAgent.serialize_context({"projectId": "p1", "area": 120})
        
        assert '"projectId": "p1"' in text
        
        truncated = BaseStageAgent.serialize_context({"notes": "x" * 100}, limit=20)
        assert len(truncated) == 23
        assert truncated.endswith("...")
