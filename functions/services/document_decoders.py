"""Format decoders for uploaded blueprint documents.

PDF text is read with pypdf, DOCX text with python-docx. Both return a
DecodedDocument; decode errors propagate to the caller.
"""

import io
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List

import structlog
from docx import Document
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from pypdf import PdfReader

logger = structlog.get_logger()


@dataclass
class DecodedDocument:
    """Plain text and metadata from a decoder."""
    text: str
    pages: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def _info_value(info: Any, attr: str) -> Optional[str]:
    """Read a document-info attribute; malformed entries read as None."""
    if info is None:
        return None
    try:
        value = getattr(info, attr)
    except Exception as e:
        logger.debug("pdf_metadata_unreadable", attr=attr, error=str(e))
        return None
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def decode_pdf(content: bytes) -> DecodedDocument:
    """Decode a PDF into text, page count and title/author/creation date."""
    reader = PdfReader(io.BytesIO(content))
    
    page_texts: List[str] = []
    for page in reader.pages:
        page_text = (page.extract_text() or "").strip()
        if page_text:
            page_texts.append(page_text)
    
    info = reader.metadata
    metadata = {
        "title": _info_value(info, "title") or "Unknown",
        "author": _info_value(info, "author") or "Unknown",
        "creationDate": _info_value(info, "creation_date"),
    }
    
    return DecodedDocument(
        text="\n\n".join(page_texts),
        pages=len(reader.pages),
        metadata=metadata
    )


def decode_docx(content: bytes) -> DecodedDocument:
    """Decode a DOCX into text, word count and an image flag."""
    document = Document(io.BytesIO(content))
    
    parts = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    
    text = "\n".join(parts)
    has_images = any(
        rel.reltype == RT.IMAGE for rel in document.part.rels.values()
    )
    
    return DecodedDocument(
        text=text,
        metadata={
            "wordCount": len(text.split()),
            "hasImages": has_images,
        }
    )
