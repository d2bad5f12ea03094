"""Text Extraction Agent.

Converts an uploaded blueprint into plain text plus format metadata,
dispatching on the declared file type:

- pdf: pypdf text layer, page count, title/author/creation date
- docx: python-docx text, word count, image flag
- dwg/dxf: no decoding; returns a fixed diagnostic text. CAD support is
  intentionally degraded and flagged with ``requiresSpecialProcessing``.
- anything else: treated as an image and read by the vision model
"""

from typing import Optional
import structlog

from agents.base_agent import BaseStageAgent
from config.errors import ExtractionFailure
from models.blueprint import UploadedBlueprint, ExtractedContent
from services.document_decoders import decode_pdf, decode_docx
from services.llm_service import LLMService

logger = structlog.get_logger()


VISION_EXTRACTION_PROMPT = """Extract every construction detail from this blueprint image:
- Measurements and dimensions, with units
- Material specifications
- Annotations, callouts and general notes
- Drawing scale
- Room names, layouts and areas
- Structural elements (foundations, walls, beams, columns, roof, floors)
- MEP details (electrical, plumbing, HVAC)

Return the details as structured plain text grouped under headings. Write "not shown" for anything the drawing does not include."""

CAD_PLACEHOLDER_TEXT = "CAD file detected - manual processing may be required for accurate extraction"

CAD_FILE_TYPES = ("dwg", "dxf")


class TextExtractionAgent(BaseStageAgent):
    """Extraction stage: raw upload in, ExtractedContent out."""
    
    def __init__(self, llm_service: Optional[LLMService] = None):
        super().__init__(name="extraction", llm_service=llm_service)
    
    async def run(self, blueprint: UploadedBlueprint) -> ExtractedContent:
        """Extract text from a decoded upload.
        
        Raises:
            ExtractionFailure: If decoding or the vision call fails.
        """
        return await self.extract(
            blueprint.content,
            blueprint.file_type,
            mime_type=blueprint.mime_type
        )
    
    async def extract(
        self,
        content: bytes,
        file_type: str,
        mime_type: Optional[str] = None
    ) -> ExtractedContent:
        """Extract text from raw bytes of the given declared type.
        
        Args:
            content: File bytes.
            file_type: Type tag, matched case-insensitively.
            mime_type: Mime type used for vision requests.
            
        Returns:
            ExtractedContent with non-null text.
            
        Raises:
            ExtractionFailure: Wraps any decoder or LLM error.
        """
        self._begin()
        kind = (file_type or "").strip().lower()
        
        try:
            if kind == "pdf":
                extracted = self._extract_pdf(content)
            elif kind == "docx":
                extracted = self._extract_docx(content)
            elif kind in CAD_FILE_TYPES:
                extracted = self._cad_placeholder(kind)
            else:
                extracted = await self._extract_with_vision(content, mime_type)
        except Exception as e:
            logger.error("extraction_failed", file_type=kind, error=str(e))
            raise ExtractionFailure(
                message=f"Failed to extract text from {kind} file: {e}",
                file_type=kind,
                details={"original_error": str(e)}
            ) from e
        
        logger.info(
            "extraction_completed",
            file_type=kind,
            text_length=len(extracted.text),
            pages=extracted.pages,
            duration_ms=self.duration_ms
        )
        return extracted
    
    def _extract_pdf(self, content: bytes) -> ExtractedContent:
        decoded = decode_pdf(content)
        return ExtractedContent(
            text=decoded.text or "No text extracted from PDF",
            pages=decoded.pages,
            metadata={**decoded.metadata, "extractedBy": "pypdf"}
        )
    
    def _extract_docx(self, content: bytes) -> ExtractedContent:
        decoded = decode_docx(content)
        return ExtractedContent(
            text=decoded.text or "No text extracted from document",
            metadata={**decoded.metadata, "extractedBy": "python-docx"}
        )
    
    def _cad_placeholder(self, kind: str) -> ExtractedContent:
        logger.warning("cad_file_unsupported", file_type=kind)
        return ExtractedContent(
            text=CAD_PLACEHOLDER_TEXT,
            metadata={
                "fileType": kind,
                "requiresSpecialProcessing": True,
            }
        )
    
    async def _extract_with_vision(
        self,
        content: bytes,
        mime_type: Optional[str]
    ) -> ExtractedContent:
        text = await self._generate(
            VISION_EXTRACTION_PROMPT,
            image=content,
            image_mime_type=mime_type if mime_type and mime_type.startswith("image/") else None
        )
        return ExtractedContent(
            text=text or "No text extracted from image",
            metadata={
                "extractedBy": "vision-ai",
                "confidence": "medium",
            }
        )
