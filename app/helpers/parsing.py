import base64
import io
import re
from typing import Optional

from pdfminer.high_level import extract_text as pdf_extract
from docx import Document
from unstructured.partition.auto import partition

PDF = "application/pdf"
DOC = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
JPEG = "image/jpeg"
PNG = "image/png"
TXT = "text/plain"

SUPPORTED_MIME_TYPES = (PDF, DOC, DOCX, JPEG, PNG, TXT)
IMAGE_MIME_TYPES = (JPEG, PNG)

EXTENSIONS = {
    PDF: ".pdf",
    DOC: ".doc",
    DOCX: ".docx",
    JPEG: ".jpg",
    PNG: ".png",
    TXT: ".txt",
}


def is_supported(mime_type: Optional[str]) -> bool:
    return mime_type in SUPPORTED_MIME_TYPES


def is_image(mime_type: Optional[str]) -> bool:
    return mime_type in IMAGE_MIME_TYPES


def read_txt(content: bytes) -> str:
    return content.decode("utf-8", errors="ignore")


def read_docx(content: bytes) -> str:
    doc = Document(io.BytesIO(content))
    return "\n".join([p.text for p in doc.paragraphs])


def read_with_unstructured(content: bytes, mime_type: str) -> str:
    elems = partition(file=io.BytesIO(content), content_type=mime_type)
    return "\n".join([e.text for e in elems if hasattr(e, "text") and e.text])


def read_pdf(content: bytes) -> str:
    try:
        return pdf_extract(io.BytesIO(content))
    except Exception:
        # fallback to unstructured
        return read_with_unstructured(content, PDF)


def clean_text(x: str) -> str:
    x = re.sub(r'\s+', ' ', x).strip()
    return x


def extract_text(content: bytes, mime_type: str) -> str:
    """Plain text of a non-image document, whitespace-collapsed"""
    if mime_type == TXT:
        t = read_txt(content)
    elif mime_type == PDF:
        t = read_pdf(content)
    elif mime_type == DOCX:
        t = read_docx(content)
    elif mime_type == DOC:
        t = read_with_unstructured(content, DOC)
    else:
        raise ValueError(f"No text extractor for {mime_type}")
    return clean_text(t)


def encode_image(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")
