"""Estimate line item model.

A LineItem is one priced row of a cost estimate. Items produced by the
blueprint pipeline are always AI-generated; items added during PM review
are not.
"""

import time
from typing import Dict, Any, Optional, List, Tuple
from uuid import uuid4
from pydantic import BaseModel, Field, computed_field
import structlog

from utils.coercion import coerce_float, clamp

logger = structlog.get_logger()


class LineItemCategory:
    """Conventional category vocabulary (open, not enforced)."""
    
    DEMOLITION = "Demolition"
    SITE_PREPARATION = "Site Preparation"
    FOUNDATION = "Foundation"
    STRUCTURAL = "Structural"
    EXTERIOR = "Exterior"
    INTERIOR = "Interior"
    MEP = "MEP"
    FINISHES = "Finishes"
    SPECIALTIES = "Specialties"
    PROJECT_OVERHEAD = "Project Overhead"
    CONTINGENCIES = "Contingencies"
    GENERAL = "General"


class ReviewStatus:
    """PM review states recorded on reviewed items."""
    
    APPROVED = "approved"
    ADJUSTED = "adjusted_by_pm"
    ADDED = "added_by_pm"


_REVIEW_KEYS = ("pmReviewed", "pmApproved", "reviewDate", "reviewStatus", "originalValues")


def generate_item_id(prefix: str = "LI") -> str:
    """Generate a unique line item id, e.g. ``LI_1718000000000_3f9a2b7c1``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


class LineItem(BaseModel):
    """One row of a cost estimate.
    
    ``line_total`` is derived from quantity and unit price on every read,
    so it cannot drift from its inputs.
    """
    
    item_id: str = Field(
        default_factory=generate_item_id,
        alias="itemId",
        description="Unique line item id"
    )
    name: str = Field(
        default="Unnamed Item",
        description="Short item name"
    )
    description: str = Field(
        default="",
        description="Scope description"
    )
    quantity: float = Field(
        default=1.0,
        description="Quantity in `unit`"
    )
    unit: str = Field(
        default="ea",
        description="Unit of measure"
    )
    category: str = Field(
        default=LineItemCategory.GENERAL,
        description="Cost category"
    )
    unit_price: float = Field(
        default=0.0,
        alias="unitPrice",
        description="Price per unit"
    )
    is_ai_generated: bool = Field(
        default=True,
        alias="isAiGenerated",
        description="True for items produced by the pipeline"
    )
    ai_confidence: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        alias="aiConfidence",
        description="Heuristic confidence (0-1)"
    )
    material_database_id: Optional[str] = Field(
        default=None,
        alias="materialDatabaseId",
        description="Opaque reference into the material database"
    )
    notes: Optional[str] = Field(
        default=None,
        description="Provenance annotation"
    )
    
    # PM review fields
    pm_reviewed: Optional[bool] = Field(default=None, alias="pmReviewed")
    pm_approved: Optional[bool] = Field(default=None, alias="pmApproved")
    review_date: Optional[str] = Field(default=None, alias="reviewDate")
    review_status: Optional[str] = Field(default=None, alias="reviewStatus")
    original_values: Optional[Dict[str, Any]] = Field(default=None, alias="originalValues")
    
    class Config:
        populate_by_name = True
    
    @computed_field(alias="lineTotal")
    @property
    def line_total(self) -> float:
        """quantity * unit_price."""
        return self.quantity * self.unit_price
    
    @classmethod
    def from_generated(
        cls,
        raw: Dict[str, Any],
        default_notes: Optional[str] = None,
        default_category: str = LineItemCategory.GENERAL,
        default_confidence: float = 0.7
    ) -> Tuple["LineItem", List[str]]:
        """Normalize one loosely-typed generated item.

        A fresh item id is always assigned. Missing text fields get their
        defaults, numeric fields are coerced (quantity defaults to 1, unit
        price to 0, confidence to ``default_confidence``) and confidence is
        clamped into [0, 1].

        Args:
            raw: Item dict from model output (camelCase or snake_case keys).
            default_notes: Provenance note used when the item has none.
            default_category: Category used when the item has none.
            default_confidence: Confidence used when missing or unparseable.

        Returns:
            Tuple of (LineItem, names of numeric fields that fell back to defaults).
        """
        def pick(*keys: str) -> Any:
            for key in keys:
                if raw.get(key) not in (None, ""):
                    return raw[key]
            return None

        quantity = coerce_float(pick("quantity"), 1.0)
        unit_price = coerce_float(pick("unitPrice", "unit_price"), 0.0)
        confidence = coerce_float(pick("aiConfidence", "ai_confidence"), default_confidence)
        defaulted = [
            name for name, coerced in (
                ("quantity", quantity),
                ("unitPrice", unit_price),
                ("aiConfidence", confidence),
            ) if coerced.defaulted
        ]

        material_id = pick("materialDatabaseId", "material_database_id")
        notes = pick("notes")

        item = cls(
            name=str(pick("name") or "Unnamed Item"),
            description=str(pick("description") or ""),
            quantity=quantity.value,
            unit=str(pick("unit") or "ea"),
            category=str(pick("category") or default_category),
            unit_price=unit_price.value,
            is_ai_generated=True,
            ai_confidence=clamp(confidence.value),
            material_database_id=str(material_id) if material_id is not None else None,
            notes=str(notes) if notes is not None else default_notes,
        )

        if defaulted:
            logger.debug("line_item_defaults_applied", name=item.name, fields=defaulted)

        return item, defaulted

    def to_dict(self) -> dict:
        """Serialize with camelCase keys, omitting unset review fields."""
        data = self.model_dump(by_alias=True)
        for key in _REVIEW_KEYS:
            if data.get(key) is None:
                data.pop(key, None)
        return data


def total_value(items: List[LineItem]) -> float:
    """Sum of line totals."""
    return sum(item.line_total for item in items)


def categories_of(items: List[LineItem]) -> List[str]:
    """Distinct categories in first-seen order."""
    seen: List[str] = []
    for item in items:
        if item.category not in seen:
            seen.append(item.category)
    return seen
