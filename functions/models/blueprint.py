"""Blueprint input and intermediate stage models.

UploadedBlueprint is the decoded request payload; ExtractedContent and
BlueprintAnalysis are the outputs of the first two pipeline stages.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field, field_validator

from config.errors import ErrorCode, ValidationError
from utils.coercion import coerce_float

# Free-form caller context (project id, building type, square footage, ...)
ProjectContext = Dict[str, Any]

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)

MIME_TYPES: Dict[str, str] = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "dwg": "image/vnd.dwg",
    "dxf": "image/vnd.dxf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
    "image": "image/png",
}


@dataclass(frozen=True)
class UploadedBlueprint:
    """Decoded upload. Created once per request, never persisted."""
    
    content: bytes
    file_type: str
    mime_type: str
    
    @classmethod
    def from_request(
        cls,
        file_data: str,
        file_type: str,
        max_bytes: Optional[int] = None
    ) -> "UploadedBlueprint":
        """Decode a base64 or data-URL payload.
        
        Args:
            file_data: Raw base64 string or ``data:<mime>;base64,<payload>``.
            file_type: Declared type tag (pdf, docx, dwg, dxf, image, ...).
            max_bytes: Optional upper bound on decoded size.
            
        Returns:
            UploadedBlueprint.
            
        Raises:
            ValidationError: If the payload is not valid base64 or too large.
        """
        if not isinstance(file_data, str) or not file_data.strip():
            raise ValidationError("fileData must be a non-empty string", field="fileData")
        if not isinstance(file_type, str) or not file_type.strip():
            raise ValidationError("fileType must be a non-empty string", field="fileType")
        
        tag = file_type.strip().lower()
        mime_type = MIME_TYPES.get(tag, "application/octet-stream")
        payload = file_data.strip()
        
        match = _DATA_URL.match(payload)
        if match:
            payload = match.group("data")
            mime_type = match.group("mime") or mime_type
        
        try:
            content = base64.b64decode(re.sub(r"\s+", "", payload), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(
                f"fileData is not valid base64: {e}",
                field="fileData",
                code=ErrorCode.INVALID_FILE_DATA
            )
        
        if max_bytes is not None and len(content) > max_bytes:
            raise ValidationError(
                f"Uploaded file is {len(content)} bytes, limit is {max_bytes}",
                field="fileData",
                code=ErrorCode.FILE_TOO_LARGE
            )
        
        return cls(content=content, file_type=tag, mime_type=mime_type)
    

class ExtractedContent(BaseModel):
    """Plain text pulled out of an upload, plus format metadata."""
    
    text: str = Field(
        description="Extracted text; a diagnostic placeholder for unsupported formats"
    )
    pages: Optional[int] = Field(
        default=None,
        description="Page count when the format has pages"
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Format-specific metadata"
    )
    
    @field_validator("text", mode="before")
    @classmethod
    def text_never_null(cls, v: Any) -> str:
        if v is None:
            return "No text content available for analysis"
        return v if isinstance(v, str) else str(v)


class BlueprintAnalysis(BaseModel):
    """Structured (or best-effort) analysis of a blueprint.
    
    Generated keys beyond the declared fields are kept. When the model
    response was not valid JSON, only ``raw_analysis`` is populated and
    ``structured`` is False.
    """
    
    blueprint_types: List[str] = Field(
        default_factory=lambda: ["general"],
        alias="blueprintTypes",
        description="Detected blueprint disciplines, never empty"
    )
    building_type: Optional[Any] = Field(default=None, alias="buildingType")
    square_footage: Optional[float] = Field(default=None, alias="squareFootage")
    stories: Optional[Any] = None
    estimated_value: Optional[float] = Field(default=None, alias="estimatedValue")
    scope: Optional[Any] = None
    structural_elements: Optional[Any] = Field(default=None, alias="structuralElements")
    mep_systems: Optional[Any] = Field(default=None, alias="mepSystems")
    finishes: Optional[Any] = None
    site_work: Optional[Any] = Field(default=None, alias="siteWork")
    raw_analysis: Optional[str] = Field(default=None, alias="rawAnalysis")
    raw_content: str = Field(default="", alias="rawContent")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    structured: bool = Field(
        default=True,
        description="False when the analysis response could not be parsed"
    )
    
    class Config:
        populate_by_name = True
        extra = "allow"
    
    @field_validator("blueprint_types", mode="before")
    @classmethod
    def ensure_types(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return ["general"]
        ordered: List[str] = []
        for tag in v:
            if tag is None:
                continue
            tag = str(tag).strip()
            if tag and tag not in ordered:
                ordered.append(tag)
        return ordered or ["general"]
    
    @field_validator("square_footage", "estimated_value", mode="before")
    @classmethod
    def numeric_or_none(cls, v: Any) -> Optional[float]:
        coerced = coerce_float(v, 0.0)
        return None if coerced.defaulted else coerced.value
    
    @property
    def extraction_confidence(self) -> Optional[str]:
        """Confidence tag the extraction stage attached, if any."""
        return self.metadata.get("confidence")
    
    def to_prompt_dict(self) -> Dict[str, Any]:
        """Serializable view for prompts (no raw extracted text)."""
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            exclude={"raw_content", "structured"}
        )
