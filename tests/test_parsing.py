import io
import sys
import unittest
from pathlib import Path

from docx import Document

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ats_optimizer.parsing import DocumentExtractionError, detect_file_type, extract_text  # noqa: E402


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class ExtractionTests(unittest.TestCase):
    def test_txt_is_returned_verbatim(self):
        content = "Line one\n- Bullet item\nLine three"
        extracted = extract_text(content.encode("utf-8"), "cv.txt", "text/plain")
        self.assertEqual(extracted.file_type, "txt")
        self.assertEqual(extracted.text, content)
        self.assertEqual(extracted.file_name, "cv.txt")

    def test_docx_paragraphs_are_joined(self):
        data = _docx_bytes("Jane Doe", "", "Skills: Python")
        extracted = extract_text(data, "resume.docx")
        self.assertEqual(extracted.file_type, "docx")
        self.assertEqual(extracted.text, "Jane Doe\nSkills: Python")

    def test_file_type_detection(self):
        self.assertEqual(detect_file_type("CV.PDF"), "pdf")
        self.assertEqual(detect_file_type("upload", "text/plain; charset=utf-8"), "txt")
        with self.assertRaises(DocumentExtractionError):
            detect_file_type("photo.png", "image/png")

    def test_empty_text_fails(self):
        with self.assertRaises(DocumentExtractionError) as ctx:
            extract_text(b"   \n", "cv.txt")
        self.assertEqual(str(ctx.exception), "Could not extract text from file")

    def test_corrupt_docx_fails(self):
        with self.assertRaises(DocumentExtractionError):
            extract_text(b"not a zip archive", "cv.docx")


if __name__ == "__main__":
    unittest.main()
