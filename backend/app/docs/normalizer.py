"""File normalizer - turn an upload into AI-ready content plus a preview.

Every supported format ends up as one of two modalities:

- text: extracted text is sent to the extraction service
- image: a base64 JPEG/PNG payload is sent instead (scans, photos)

Anticipated fallbacks (scanned PDF, unreadable text layer, failed preview
render) are expressed as result values, not exceptions. Only genuinely
unusable input raises.
"""

import base64
import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import PurePath
from typing import Literal

import pdfplumber
from docx import Document as DocxDocument
from PIL import Image, UnidentifiedImageError

from backend.app.config import Settings
from backend.app.errors import FileReadError, UnsupportedFormatError

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

FileKind = Literal["pdf", "image", "docx", "text"]


@dataclass(frozen=True)
class TextExtraction:
    """Outcome of pulling a text layer out of a file."""

    status: Literal["ok", "empty", "failed"]
    text: str = ""
    error: str | None = None


@dataclass(frozen=True)
class NormalizedFile:
    """Canonical form of an upload."""

    is_text: bool
    text: str | None
    image_base64: str | None
    image_mime_type: str | None
    preview: str  # data URL, "" when no preview could be produced
    storage_bytes: bytes
    storage_file_name: str
    storage_mime_type: str

    @property
    def ai_content(self) -> str:
        """Content handed to the extraction service."""
        return (self.text or "") if self.is_text else (self.image_base64 or "")

    @property
    def ai_mime_type(self) -> str:
        """Media type handed to the extraction service."""
        return "text/plain" if self.is_text else (self.image_mime_type or "image/jpeg")


def detect_kind(mime_type: str | None, file_name: str) -> FileKind:
    """Classify an upload by declared media type, falling back to the extension.

    Raises:
        UnsupportedFormatError: For anything other than PDF, image, DOCX or text
    """
    declared = (mime_type or "").split(";")[0].strip().lower()
    if not declared or declared == "application/octet-stream":
        declared = (mimetypes.guess_type(file_name)[0] or "").lower()

    suffix = PurePath(file_name).suffix.lower()

    if declared == "application/pdf" or suffix == ".pdf":
        return "pdf"
    if declared.startswith("image/"):
        return "image"
    if declared == DOCX_MIME or suffix == ".docx":
        return "docx"
    if declared == "text/plain" or suffix == ".txt":
        return "text"

    raise UnsupportedFormatError(declared, file_name)


def extract_pdf_text(content: bytes, *, max_pages: int) -> TextExtraction:
    """Read the text layer of the first ``max_pages`` pages."""
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            page_texts = [(page.extract_text() or "") for page in pdf.pages[:max_pages]]
    except Exception as e:  # noqa: BLE001 - any parser failure means "use the image branch"
        logger.warning(f"PDF text extraction failed: {e}")
        return TextExtraction(status="failed", error=str(e))

    text = "\n".join(page_texts)
    if not text.strip():
        return TextExtraction(status="empty")
    return TextExtraction(status="ok", text=text)


def route_pdf(extraction: TextExtraction, *, min_chars: int) -> Literal["text", "image"]:
    """Decide which modality a PDF is sent as.

    Fewer than ``min_chars`` non-whitespace-trimmed characters means the PDF is
    most likely a scan, so the rendered first page is used instead.
    """
    if extraction.status == "ok" and len(extraction.text.strip()) >= min_chars:
        return "text"
    return "image"


def render_pdf_preview(content: bytes, *, scale: float, quality: int) -> str:
    """Render page 1 to a JPEG data URL, or "" if rendering fails."""
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            if not pdf.pages:
                return ""
            page_image = pdf.pages[0].to_image(resolution=int(72 * scale))
            image = page_image.original
            return _to_data_url(_encode_jpeg(image, quality), "image/jpeg")
    except Exception as e:  # noqa: BLE001 - a missing preview must not abort the upload
        logger.warning(f"PDF preview render failed: {e}")
        return ""


def compress_image(
    content: bytes,
    file_name: str,
    mime_type: str,
    *,
    threshold_bytes: int,
    max_dimension: int,
    quality: int,
) -> tuple[bytes, str, str]:
    """Recompress large images to a bounded JPEG.

    Files at or below ``threshold_bytes`` pass through unchanged. Larger ones
    have their longer edge bounded to ``max_dimension`` and are re-encoded as
    JPEG at ``quality``.

    Returns:
        (bytes, file_name, mime_type) of the file to store and analyze
    """
    if len(content) <= threshold_bytes:
        return content, file_name, mime_type

    image = _open_image(content, file_name)
    image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    compressed = _encode_jpeg(image, quality)

    new_name = str(PurePath(file_name).with_suffix(".jpg"))
    logger.info(f"Compressed {file_name}: {len(content)} -> {len(compressed)} bytes")
    return compressed, new_name, "image/jpeg"


def extract_docx_text(content: bytes, file_name: str = "") -> str:
    """Extract raw paragraph text from a Word document.

    Raises:
        FileReadError: If the file is not a readable .docx
    """
    try:
        doc = DocxDocument(io.BytesIO(content))
    except Exception as e:  # noqa: BLE001 - python-docx raises several unrelated types
        raise FileReadError(f"Failed to parse .docx {file_name}: {e}") from e

    return "\n".join(p.text for p in doc.paragraphs if p.text.strip())


def normalize_file(
    content: bytes,
    file_name: str,
    mime_type: str | None,
    settings: Settings,
) -> NormalizedFile:
    """Normalize an upload into text or image content plus a preview.

    Raises:
        UnsupportedFormatError: For unsupported types
        FileReadError: If the file cannot be interpreted at all
    """
    kind = detect_kind(mime_type, file_name)
    declared = mime_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"

    if kind == "pdf":
        return _normalize_pdf(content, file_name, settings)

    if kind == "image":
        stored, stored_name, stored_mime = compress_image(
            content,
            file_name,
            declared,
            threshold_bytes=settings.image_compress_threshold_bytes,
            max_dimension=settings.image_max_dimension,
            quality=settings.image_jpeg_quality,
        )
        return NormalizedFile(
            is_text=False,
            text=None,
            image_base64=base64.b64encode(stored).decode("ascii"),
            image_mime_type=stored_mime,
            preview=_image_preview(stored, stored_name, settings),
            storage_bytes=stored,
            storage_file_name=stored_name,
            storage_mime_type=stored_mime,
        )

    if kind == "docx":
        text = extract_docx_text(content, file_name)
        return _text_result(text, content, file_name, DOCX_MIME)

    text = content.decode("utf-8", errors="replace")
    return _text_result(text, content, file_name, "text/plain")


def _normalize_pdf(content: bytes, file_name: str, settings: Settings) -> NormalizedFile:
    preview = render_pdf_preview(
        content, scale=settings.pdf_preview_scale, quality=settings.image_jpeg_quality
    )
    extraction = extract_pdf_text(content, max_pages=settings.pdf_max_pages)
    route = route_pdf(extraction, min_chars=settings.pdf_min_text_chars)

    if route == "text":
        return NormalizedFile(
            is_text=True,
            text=extraction.text,
            image_base64=None,
            image_mime_type=None,
            preview=preview,
            storage_bytes=content,
            storage_file_name=file_name,
            storage_mime_type="application/pdf",
        )

    if preview:
        return NormalizedFile(
            is_text=False,
            text=None,
            image_base64=preview.split(",", 1)[1],
            image_mime_type="image/jpeg",
            preview=preview,
            storage_bytes=content,
            storage_file_name=file_name,
            storage_mime_type="application/pdf",
        )

    # Neither a usable text layer nor a render: send whatever text there is
    logger.warning(
        f"PDF {file_name} could not be rendered, sending {len(extraction.text.strip())} chars of text"
    )
    return NormalizedFile(
        is_text=True,
        text=extraction.text,
        image_base64=None,
        image_mime_type=None,
        preview="",
        storage_bytes=content,
        storage_file_name=file_name,
        storage_mime_type="application/pdf",
    )


def _text_result(text: str, content: bytes, file_name: str, mime_type: str) -> NormalizedFile:
    return NormalizedFile(
        is_text=True,
        text=text,
        image_base64=None,
        image_mime_type=None,
        preview="",
        storage_bytes=content,
        storage_file_name=file_name,
        storage_mime_type=mime_type,
    )


def _open_image(content: bytes, file_name: str) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise FileReadError(f"Cannot read image {file_name}: {e}") from e
    return image


def _image_preview(content: bytes, file_name: str, settings: Settings) -> str:
    try:
        image = _open_image(content, file_name)
    except FileReadError as e:
        logger.warning(f"Image preview failed: {e}")
        return ""
    image.thumbnail((settings.preview_max_dimension, settings.preview_max_dimension))
    return _to_data_url(_encode_jpeg(image, settings.image_jpeg_quality), "image/jpeg")


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def _to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
