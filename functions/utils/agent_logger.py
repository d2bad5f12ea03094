"""Pipeline Stage Logger.

Formatted, highly visible logging for blueprint pipeline runs. Every
banner is mirrored by a structlog event for log aggregation.
"""

import json
import structlog
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

logger = structlog.get_logger()

BANNER_WIDTH = 80
STAGE_BANNER_CHAR = "═"
PIPELINE_BANNER_CHAR = "█"
FALLBACK_BANNER_CHAR = "!"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _format_json(data: Dict[str, Any], indent: int = 2) -> str:
    """Format dictionary as pretty JSON string."""
    try:
        return json.dumps(data, indent=indent, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(data)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_pipeline_start(pipeline_id: str, file_type: str, context_keys: List[str]) -> None:
    """Log pipeline start with prominent banner."""
    print("\n")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PIPELINE_BANNER_CHAR, "BLUEPRINT PIPELINE STARTED"))
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Pipeline ID : {pipeline_id}")
    print(f"║ Timestamp   : {_now()}")
    print(f"║ File Type   : {file_type}")
    print(f"║ Context     : {', '.join(context_keys) if context_keys else 'None'}")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "pipeline_start_logged",
        pipeline_id=pipeline_id,
        file_type=file_type
    )


def log_stage_start(stage: str, pipeline_id: str) -> None:
    """Log when a stage starts processing."""
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(STAGE_BANNER_CHAR, f"▶ STAGE: {stage.upper()}"))
    print(f"║ Pipeline ID  : {pipeline_id}")
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)

    logger.info("stage_start_logged", stage=stage, pipeline_id=pipeline_id)


def log_stage_complete(
    stage: str,
    pipeline_id: str,
    summary: Dict[str, Any],
    duration_ms: int = 0,
    tokens_used: int = 0,
    degraded: bool = False
) -> None:
    """Log a stage's output summary."""
    status = "DEGRADED" if degraded else "COMPLETED"

    print(STAGE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(STAGE_BANNER_CHAR, f"✓ STAGE {status}: {stage.upper()}"))
    print(f"║ Pipeline ID  : {pipeline_id}")
    print(f"║ Duration     : {duration_ms:,} ms")
    print(f"║ Tokens Used  : {tokens_used:,}")
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)
    for line in _format_json(summary).split('\n'):
        print(f"  {line}")
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)

    log = logger.warning if degraded else logger.info
    log(
        "stage_complete_logged",
        stage=stage,
        pipeline_id=pipeline_id,
        duration_ms=duration_ms,
        tokens_used=tokens_used,
        degraded=degraded
    )


def log_pipeline_complete(
    pipeline_id: str,
    item_count: int,
    confidence: float,
    duration_ms: int,
    total_tokens: int
) -> None:
    """Log pipeline completion with summary."""
    print("\n")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PIPELINE_BANNER_CHAR, "✓ PIPELINE COMPLETED SUCCESSFULLY"))
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Pipeline ID  : {pipeline_id}")
    print(f"║ Timestamp    : {_now()}")
    print(f"║ Duration     : {duration_ms:,} ms ({duration_ms / 1000:.2f}s)")
    print(f"║ Total Tokens : {total_tokens:,}")
    print(f"║ Line Items   : {item_count}")
    print(f"║ Confidence   : {confidence:.2f}")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "pipeline_complete_logged",
        pipeline_id=pipeline_id,
        item_count=item_count,
        duration_ms=duration_ms,
        total_tokens=total_tokens
    )


def log_pipeline_fallback(
    pipeline_id: str,
    failed_stage: str,
    error: str,
    completed_stages: List[str],
    fallback_error: Optional[str] = None
) -> None:
    """Log a pipeline falling back to manual review."""
    print("\n")
    print(FALLBACK_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(FALLBACK_BANNER_CHAR, "✗ PIPELINE FELL BACK TO MANUAL REVIEW"))
    print(FALLBACK_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Pipeline ID      : {pipeline_id}")
    print(f"║ Timestamp        : {_now()}")
    print(f"║ Failed Stage     : {failed_stage}")
    print(f"║ Error            : {error}")
    if fallback_error:
        print(f"║ Fallback Error   : {fallback_error}")
    print(f"║ Completed Before : {', '.join(completed_stages) if completed_stages else 'None'}")
    print(FALLBACK_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.error(
        "pipeline_fallback_logged",
        pipeline_id=pipeline_id,
        failed_stage=failed_stage,
        error=error,
        fallback_error=fallback_error
    )
