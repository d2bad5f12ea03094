"""Utility modules for the blueprint estimator functions."""

from utils.agent_logger import (
    log_pipeline_start,
    log_pipeline_complete,
    log_pipeline_fallback,
    log_stage_start,
    log_stage_complete,
)
from utils.coercion import Coerced, coerce_float, clamp
from utils.json_parsing import (
    StructuredResponse,
    RawResponse,
    ParsedResponse,
    parse_json_object,
    parse_json_array,
)

__all__ = [
    "log_pipeline_start",
    "log_pipeline_complete",
    "log_pipeline_fallback",
    "log_stage_start",
    "log_stage_complete",
    "Coerced",
    "coerce_float",
    "clamp",
    "StructuredResponse",
    "RawResponse",
    "ParsedResponse",
    "parse_json_object",
    "parse_json_array",
]
