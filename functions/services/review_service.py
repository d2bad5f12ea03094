"""PM review of generated line items.

Applies one review action (approve, adjust, add, remove) to a list of
line items and recomputes the summary. Works on caller-supplied items;
nothing is persisted here.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional, List, Union
import structlog
from pydantic import ValidationError as PydanticValidationError

from config.errors import ErrorCode, ValidationError
from models.line_item import (
    LineItem,
    LineItemCategory,
    ReviewStatus,
    generate_item_id,
    total_value,
    categories_of,
)
from models.review import ReviewResult, ReviewMetadata, ReviewSummary
from utils.coercion import coerce_float

logger = structlog.get_logger()


class ReviewAction:
    """Supported review actions."""
    
    APPROVE = "approve"
    ADJUST = "adjust"
    ADD = "add"
    REMOVE = "remove"
    
    ALL = (APPROVE, ADJUST, ADD, REMOVE)


PM_ITEM_CONFIDENCE = 1.0

# Fields a PM adjustment may overwrite, keyed by request name
_ADJUSTABLE_TEXT = {
    "name": "name",
    "description": "description",
    "unit": "unit",
    "category": "category",
    "notes": "notes",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_line_items(raw_items: List[Union[LineItem, Dict[str, Any]]]) -> List[LineItem]:
    items = []
    for index, raw in enumerate(raw_items):
        if isinstance(raw, LineItem):
            items.append(raw)
            continue
        try:
            items.append(LineItem.model_validate(raw))
        except PydanticValidationError as e:
            raise ValidationError(
                message=f"Invalid line item at index {index}",
                field="lineItems",
                details={"index": index, "errors": e.errors(include_url=False)},
                code=ErrorCode.INVALID_FIELD
            )
    return items


def approve_items(items: List[LineItem], review_date: str) -> List[LineItem]:
    """Mark every item reviewed and approved."""
    return [
        item.model_copy(update={
            "pm_reviewed": True,
            "pm_approved": True,
            "review_date": review_date,
            "review_status": ReviewStatus.APPROVED,
        })
        for item in items
    ]


def adjust_items(
    items: List[LineItem],
    adjustments: List[Dict[str, Any]],
    review_date: str
) -> List[LineItem]:
    """Apply field changes to items matched by itemId.

    The first adjustment for an id wins. Matched items keep their previous
    name, description, quantity, unit price and line total in
    ``original_values``.
    """
    by_id: Dict[str, Dict[str, Any]] = {}
    for adjustment in adjustments:
        by_id.setdefault(adjustment.get("itemId"), adjustment)
    
    adjusted = []
    for item in items:
        adjustment = by_id.get(item.item_id)
        if adjustment is None:
            adjusted.append(item)
            continue
        
        # Null or empty text keeps the current value
        update: Dict[str, Any] = {
            field: str(adjustment[key])
            for key, field in _ADJUSTABLE_TEXT.items()
            if adjustment.get(key) not in (None, "")
        }
        if "quantity" in adjustment:
            update["quantity"] = coerce_float(adjustment["quantity"], item.quantity).value
        if "unitPrice" in adjustment:
            update["unit_price"] = coerce_float(adjustment["unitPrice"], item.unit_price).value
        
        update.update({
            "pm_reviewed": True,
            "pm_approved": True,
            "review_date": review_date,
            "review_status": ReviewStatus.ADJUSTED,
            "original_values": {
                "name": item.name,
                "description": item.description,
                "quantity": item.quantity,
                "unitPrice": item.unit_price,
                "lineTotal": item.line_total,
            },
        })
        adjusted.append(item.model_copy(update=update))
    
    return adjusted


def build_pm_item(adjustment: Dict[str, Any], review_date: str) -> LineItem:
    """Create a PM-entered line item."""
    quantity = coerce_float(adjustment.get("quantity"), 1.0).value or 1.0
    unit_price = coerce_float(adjustment.get("unitPrice"), 0.0).value
    
    return LineItem(
        item_id=generate_item_id("PM"),
        name=adjustment.get("name") or "Unnamed Item",
        description=adjustment.get("description") or "",
        quantity=quantity,
        unit=adjustment.get("unit") or "ea",
        category=adjustment.get("category") or LineItemCategory.GENERAL,
        unit_price=unit_price,
        is_ai_generated=False,
        ai_confidence=PM_ITEM_CONFIDENCE,
        notes=adjustment.get("notes") or "Added by Project Manager",
        pm_reviewed=True,
        pm_approved=True,
        review_date=review_date,
        review_status=ReviewStatus.ADDED,
    )


def review_line_items(
    line_items: List[Union[LineItem, Dict[str, Any]]],
    project_id: str,
    action: str,
    adjustments: Optional[List[Dict[str, Any]]] = None,
    reviewed_by: str = "Project Manager"
) -> ReviewResult:
    """Apply one PM review action.
    
    Args:
        line_items: Current items (LineItem or camelCase dicts).
        project_id: Project the items belong to.
        action: approve, adjust, add or remove.
        adjustments: Per-action payload; item changes, new items or ids to drop.
        reviewed_by: Reviewer label recorded in metadata.
        
    Returns:
        ReviewResult with the reviewed items, metadata and summary.
        
    Raises:
        ValidationError: On an unknown action or malformed items.
    """
    if action not in ReviewAction.ALL:
        raise ValidationError(
            message="Invalid review action. Must be approve, adjust, add, or remove",
            field="reviewAction",
            code=ErrorCode.INVALID_REVIEW_ACTION
        )
    
    adjustments = adjustments or []
    items = _to_line_items(line_items)
    review_date = _now()
    
    if action == ReviewAction.APPROVE:
        reviewed = approve_items(items, review_date)
    elif action == ReviewAction.ADJUST:
        reviewed = adjust_items(items, adjustments, review_date)
    elif action == ReviewAction.ADD:
        reviewed = items + [build_pm_item(adj, review_date) for adj in adjustments]
    else:
        remove_ids = {adj.get("itemId") for adj in adjustments}
        reviewed = [item for item in items if item.item_id not in remove_ids]
    
    logger.info(
        "line_items_reviewed",
        project_id=project_id,
        action=action,
        original_count=len(items),
        final_count=len(reviewed),
        adjustments=len(adjustments)
    )
    
    return ReviewResult(
        success=True,
        line_items=reviewed,
        metadata=ReviewMetadata(
            original_item_count=len(items),
            final_item_count=len(reviewed),
            adjustments_made=len(adjustments),
            review_date=review_date,
            reviewed_by=reviewed_by,
            project_id=project_id,
        ),
        summary=ReviewSummary(
            total_items=len(reviewed),
            total_value=total_value(reviewed),
            categories=categories_of(reviewed),
            ai_generated_items=sum(1 for item in reviewed if item.is_ai_generated),
            pm_added_items=sum(
                1 for item in reviewed if item.review_status == ReviewStatus.ADDED
            ),
            adjusted_items=sum(
                1 for item in reviewed if item.review_status == ReviewStatus.ADJUSTED
            ),
        ),
    )
