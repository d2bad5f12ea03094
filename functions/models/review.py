"""PM review result models."""

from typing import Dict, Any, List
from pydantic import BaseModel, Field

from models.line_item import LineItem


class ReviewMetadata(BaseModel):
    """Bookkeeping for one review action."""
    
    original_item_count: int = Field(alias="originalItemCount")
    final_item_count: int = Field(alias="finalItemCount")
    adjustments_made: int = Field(alias="adjustmentsMade")
    review_date: str = Field(alias="reviewDate")
    reviewed_by: str = Field(default="Project Manager", alias="reviewedBy")
    project_id: str = Field(alias="projectId")
    
    class Config:
        populate_by_name = True


class ReviewSummary(BaseModel):
    """Totals over reviewed items."""
    
    total_items: int = Field(alias="totalItems")
    total_value: float = Field(alias="totalValue")
    categories: List[str] = Field(default_factory=list)
    ai_generated_items: int = Field(alias="aiGeneratedItems")
    pm_added_items: int = Field(alias="pmAddedItems")
    adjusted_items: int = Field(alias="adjustedItems")
    
    class Config:
        populate_by_name = True


class ReviewResult(BaseModel):
    """Result of applying one PM review action."""
    
    success: bool = True
    line_items: List[LineItem] = Field(default_factory=list, alias="lineItems")
    metadata: ReviewMetadata
    summary: ReviewSummary
    
    class Config:
        populate_by_name = True
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "lineItems": [item.to_dict() for item in self.line_items],
            "metadata": self.metadata.model_dump(by_alias=True),
            "summary": self.summary.model_dump(by_alias=True),
        }
