"""Blueprint pipeline agents.

This package contains the pipeline stages:
- Text extraction (PDF, DOCX, CAD placeholder, vision)
- Blueprint analysis
- Line item generation
- Coverage enhancement
- Confidence scoring
- Orchestrator and fallback processing
"""

from agents.base_agent import BaseStageAgent

__all__ = ["BaseStageAgent"]
