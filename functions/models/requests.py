"""HTTP request bodies for the blueprint functions."""

from typing import Dict, Any, List
from pydantic import BaseModel, Field, field_validator


class ProcessBlueprintRequest(BaseModel):
    """Body of a process_blueprint request."""
    
    file_data: str = Field(
        alias="fileData",
        description="Base64 string or data URL"
    )
    file_type: str = Field(
        alias="fileType",
        description="pdf, docx, dwg, dxf, image, ..."
    )
    project_context: Dict[str, Any] = Field(
        default_factory=dict,
        alias="projectContext"
    )
    
    class Config:
        populate_by_name = True
    
    @field_validator("project_context", mode="before")
    @classmethod
    def _none_context(cls, value: Any) -> Any:
        return {} if value is None else value


class ReviewLineItemsRequest(BaseModel):
    """Body of a review_line_items request."""
    
    line_items: List[Dict[str, Any]] = Field(alias="lineItems")
    project_id: str = Field(alias="projectId")
    review_action: str = Field(alias="reviewAction")
    adjustments: List[Dict[str, Any]] = Field(default_factory=list)
    
    class Config:
        populate_by_name = True
    
    @field_validator("adjustments", mode="before")
    @classmethod
    def _none_adjustments(cls, value: Any) -> Any:
        return [] if value is None else value
