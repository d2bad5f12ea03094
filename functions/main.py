"""Cloud Function entry points for the Blueprint Estimator.

Provides HTTP endpoints for:
- Processing an uploaded blueprint into estimate line items
- PM review of generated line items
- Health check
"""

import asyncio
import json
from typing import Dict, Any
from datetime import datetime, date, timezone

import structlog
from firebase_functions import https_fn, options

from config.settings import settings
from config.errors import EstimatorError, ErrorCode, ValidationError
from models.requests import ProcessBlueprintRequest, ReviewLineItemsRequest
from services.llm_service import LLMService
from services.review_service import review_line_items as apply_review
from validators.request_validator import validate_process_request, validate_review_request

logger = structlog.get_logger()

PROCESSING_VERSION = "enhanced-v1.0"
SERVICE_NAME = "blueprint-estimator-functions"


def get_llm_service() -> LLMService:
    """Build an LLM service for one request.
    
    Not cached: each request runs in its own event loop and the chat
    clients bind their connections to the loop that opened them.
    """
    settings.validate()
    return LLMService()


# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Build success response."""
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Build error response."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def get_request_json(req: https_fn.Request) -> Dict[str, Any]:
    """Extract JSON from request body.
    
    Args:
        req: HTTP request object.
        
    Returns:
        Parsed JSON data.
        
    Raises:
        ValidationError: If JSON is invalid.
    """
    try:
        return req.get_json(force=True) or {}
    except Exception as e:
        raise ValidationError(
            message=f"Invalid JSON in request body: {str(e)}"
        )


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Blueprint Processing
# ============================================================================


@https_fn.on_request(
    timeout_sec=540,
    memory=options.MemoryOption.GB_1,
    region="us-central1"
)
def process_blueprint(req: https_fn.Request) -> https_fn.Response:
    """Run the blueprint-to-estimate pipeline.
    
    The pipeline always produces a result; a failed run comes back with
    ``result.success = false`` and a manual-review item, not an HTTP error.
    
    Request body:
    {
        "fileData": "data:application/pdf;base64,JVBERi0...",
        "fileType": "pdf",
        "projectContext": {"projectId": "proj-123", "buildingType": "residential"}
    }
    
    Response:
    {
        "success": true,
        "data": {
            "result": {...},  // PipelineResult
            "timestamp": "2025-01-01T00:00:00+00:00",
            "processingVersion": "enhanced-v1.0"
        }
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()
    
    try:
        data = get_request_json(req)
        
        validation = validate_process_request(data)
        if not validation.is_valid:
            return _json_response(
                error_response(
                    validation.code,
                    "File data and file type are required"
                    if validation.code == ErrorCode.MISSING_FIELD
                    else "Invalid process_blueprint request",
                    {"errors": validation.errors}
                ),
                status=400
            )
        
        request_body: ProcessBlueprintRequest = validation.parsed
        
        logger.info(
            "process_blueprint_request_received",
            file_type=request_body.file_type,
            payload_chars=len(request_body.file_data),
            context_keys=list(request_body.project_context.keys())
        )
        
        result = asyncio.run(_process_blueprint_async(request_body))
        
        return _json_response(success_response({
            "result": result,
            "timestamp": _timestamp(),
            "processingVersion": PROCESSING_VERSION,
        }))
        
    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except EstimatorError as e:
        logger.error("process_blueprint_error", error=e.message, code=e.code)
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=500
        )
    except Exception as e:
        logger.exception("process_blueprint_exception", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.PIPELINE_FAILED,
                f"Failed to process blueprint: {str(e)}"
            ),
            status=500
        )


async def _process_blueprint_async(request_body: ProcessBlueprintRequest) -> Dict[str, Any]:
    """Run the pipeline and serialize its result."""
    from agents.orchestrator import BlueprintPipelineOrchestrator

    orchestrator = BlueprintPipelineOrchestrator(get_llm_service())
    result = await orchestrator.run_pipeline(
        file_data=request_body.file_data,
        file_type=request_body.file_type,
        project_context=request_body.project_context
    )
    return result.to_dict()


# ============================================================================
# PM Review
# ============================================================================


@https_fn.on_request(
    timeout_sec=60,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def review_line_items(req: https_fn.Request) -> https_fn.Response:
    """Apply a PM review action to line items.
    
    Request body:
    {
        "lineItems": [...],
        "projectId": "proj-123",
        "reviewAction": "approve" | "adjust" | "add" | "remove",
        "adjustments": [...]
    }
    
    Response:
    {
        "success": true,
        "data": {"result": {...}, "timestamp": "..."}
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()
    
    try:
        data = get_request_json(req)
        
        validation = validate_review_request(data)
        if not validation.is_valid:
            return _json_response(
                error_response(
                    validation.code,
                    "Line items, project ID, and review action are required"
                    if validation.code == ErrorCode.MISSING_FIELD
                    else "Invalid review_line_items request",
                    {"errors": validation.errors}
                ),
                status=400
            )
        
        request_body: ReviewLineItemsRequest = validation.parsed
        
        result = apply_review(
            line_items=request_body.line_items,
            project_id=request_body.project_id,
            action=request_body.review_action,
            adjustments=request_body.adjustments
        )
        
        return _json_response(success_response({
            "result": result.to_dict(),
            "timestamp": _timestamp(),
        }))
        
    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except Exception as e:
        logger.exception("review_line_items_exception", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.REVIEW_FAILED,
                f"Failed to process PM review: {str(e)}"
            ),
            status=500
        )


# ============================================================================
# Health
# ============================================================================


@https_fn.on_request(region="us-central1")
def health(req: https_fn.Request) -> https_fn.Response:
    """Health check endpoint."""
    if req.method == "OPTIONS":
        return _cors_response()
    
    return _json_response({
        "status": "ok",
        "service": SERVICE_NAME,
        "processingVersion": PROCESSING_VERSION,
        "model": settings.llm_model,
        "timestamp": _timestamp(),
    })


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "3600"
}


def _cors_response() -> https_fn.Response:
    """Return CORS preflight response."""
    return https_fn.Response(
        "",
        status=204,
        headers=CORS_HEADERS
    )


def _json_response(data: dict, status: int = 200) -> https_fn.Response:
    """Return JSON response with CORS headers."""

    def _json_default(o: Any):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return str(o)

    return https_fn.Response(
        json.dumps(data, default=_json_default),
        status=status,
        mimetype="application/json",
        headers=CORS_HEADERS
    )
