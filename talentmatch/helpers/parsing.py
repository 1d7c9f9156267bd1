import io
import re
from pathlib import Path

from docx import Document
from pdfminer.high_level import extract_text as pdf_extract

from talentmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".docx", ".txt")


def read_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


def read_docx(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    return "\n".join([p.text for p in doc.paragraphs])


def read_pdf(data: bytes) -> str:
    try:
        return pdf_extract(io.BytesIO(data))
    except Exception as e:
        # fallback to unstructured
        from unstructured.partition.auto import partition

        logger.warning(f"pdfminer could not read PDF, falling back to unstructured: {e}")
        elems = partition(file=io.BytesIO(data), content_type="application/pdf")
        return "\n".join([el.text for el in elems if getattr(el, "text", None)])


def clean_text(x: str) -> str:
    """Collapse runs of spaces and blank lines but keep paragraph breaks."""
    x = x.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
    x = re.sub(r"[ \t\f\v]+", " ", x)
    x = re.sub(r" *\n *", "\n", x)
    x = re.sub(r"\n{3,}", "\n\n", x)
    return x.strip()


def extract_text(data: bytes, file_name: str) -> str:
    """Plain text of an uploaded document; unknown extensions are read as UTF-8 text."""
    ext = Path(file_name).suffix.lower()
    if ext == ".pdf":
        text = read_pdf(data)
    elif ext == ".docx":
        text = read_docx(data)
    else:
        if ext not in SUPPORTED_EXTENSIONS:
            logger.debug(f"Unknown extension {ext!r} for {file_name}, reading as text")
        text = read_txt(data)
    return clean_text(text or "")
