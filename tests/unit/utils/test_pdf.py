"""Test PDF utilities."""
import base64
from energy_bills.utils.pdf import (
    detect_file_type, extract_text, image_to_base64, render_pdf_to_images,
)
from tests.factories import make_pdf_bytes


class TestDetectFileType:
    def test_pdf_magic(self):
        assert detect_file_type(b'%PDF-1.4') == "pdf"

    def test_png_magic(self):
        assert detect_file_type(b'\x89PNG\r\n\x1a\n') == "png"

    def test_jpeg_magic(self):
        assert detect_file_type(b'\xff\xd8\xff\xe0') == "jpeg"

    def test_unknown(self):
        assert detect_file_type(b'\x00\x01\x02\x03') == "unknown"


class TestRendering:
    def test_render_respects_max_pages(self):
        images = render_pdf_to_images(make_pdf_bytes(pages=3), dpi=72, max_pages=2)
        assert len(images) == 2
        assert all(detect_file_type(img) == "png" for img in images)

    def test_extract_text(self):
        texts = extract_text(make_pdf_bytes("CLIENTE 123"))
        assert len(texts) == 1
        assert "CLIENTE 123" in texts[0]

    def test_image_to_base64(self):
        assert base64.b64decode(image_to_base64(b"\x89PNG")) == b"\x89PNG"
