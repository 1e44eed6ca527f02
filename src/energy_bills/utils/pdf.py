"""PDF utilities using PyMuPDF."""

from __future__ import annotations

import base64

import fitz  # PyMuPDF


def detect_file_type(file_bytes: bytes) -> str:
    """Detect file type from magic bytes.

    Returns one of ``"pdf"``, ``"png"``, ``"jpeg"`` or ``"unknown"``.
    """
    if file_bytes[:4] == b"%PDF":
        return "pdf"
    if file_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if file_bytes[:2] == b"\xff\xd8":
        return "jpeg"
    return "unknown"


def render_pdf_to_images(file_bytes: bytes, dpi: int = 150, max_pages: int | None = None) -> list[bytes]:
    """Render PDF pages to PNG image bytes at the given DPI."""
    zoom = dpi / 72
    matrix = fitz.Matrix(zoom, zoom)
    images: list[bytes] = []
    with fitz.open(stream=file_bytes, filetype="pdf") as doc:
        for index, page in enumerate(doc):
            if max_pages is not None and index >= max_pages:
                break
            pix = page.get_pixmap(matrix=matrix)
            images.append(pix.tobytes("png"))
    return images


def extract_text(file_bytes: bytes, max_pages: int | None = None) -> list[str]:
    """Extract the text layer of each page. Scanned pages yield empty strings."""
    with fitz.open(stream=file_bytes, filetype="pdf") as doc:
        pages = list(doc)
        if max_pages is not None:
            pages = pages[:max_pages]
        return [page.get_text() for page in pages]


def image_to_base64(image_bytes: bytes) -> str:
    """Encode raw image bytes to a Base64 string."""
    return base64.b64encode(image_bytes).decode("utf-8")
