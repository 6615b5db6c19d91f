import os
import shutil
import tempfile
import unittest
from types import SimpleNamespace

from study_aid.ocr_service import OCRService, process_extracted_text
from tests.fakes import unconfigured_settings


def word(text):
    return SimpleNamespace(symbols=[SimpleNamespace(text=char) for char in text])


def paragraph(sentence):
    return SimpleNamespace(words=[word(w) for w in sentence.split()])


class FakeVisionClient:
    def __init__(self, paragraphs=None, plain_text="", fail_document=False):
        self.paragraphs = paragraphs or []
        self.plain_text = plain_text
        self.fail_document = fail_document
        self.calls = []

    def document_text_detection(self, image):
        self.calls.append("document")
        if self.fail_document:
            raise RuntimeError("quota exceeded")
        pages = [SimpleNamespace(blocks=[SimpleNamespace(paragraphs=[paragraph(p) for p in self.paragraphs])])] if self.paragraphs else []
        return SimpleNamespace(
            error=SimpleNamespace(message=""),
            full_text_annotation=SimpleNamespace(pages=pages, text="\n".join(self.paragraphs)),
        )

    def text_detection(self, image):
        self.calls.append("text")
        annotations = [SimpleNamespace(description=self.plain_text, confidence=0.0)] if self.plain_text else []
        return SimpleNamespace(error=SimpleNamespace(message=""), text_annotations=annotations)


class ProcessTextTest(unittest.TestCase):
    def test_collapses_whitespace(self):
        self.assertEqual(process_extracted_text("  Line   one \n\n\n  Line\ttwo  "), "Line one\nLine two")

    def test_empty(self):
        self.assertEqual(process_extracted_text(""), "")
        self.assertEqual(process_extracted_text(None), "")


class OCRServiceTest(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.image_path = os.path.join(self.tmpdir, "biology-notes.png")
        with open(self.image_path, "wb") as f:
            f.write(b"\x89PNG\r\n\x1a\nfake")

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_unconfigured_service_returns_placeholder(self):
        service = OCRService(config=unconfigured_settings())
        self.assertFalse(service.is_configured)

        result = service.extract_structured_text(self.image_path)
        self.assertTrue(result.success)
        self.assertEqual(result.confidence, 0.0)
        self.assertEqual(result.quality, "fallback")
        self.assertIn("biology-notes.png", result.text)

    def test_missing_credentials_file(self):
        config = unconfigured_settings(
            GOOGLE_CLOUD_PROJECT_ID="demo-project",
            GOOGLE_APPLICATION_CREDENTIALS=os.path.join(self.tmpdir, "missing.json"),
        )
        self.assertFalse(OCRService(config=config).is_configured)

    def test_structured_text_joins_paragraphs(self):
        client = FakeVisionClient(paragraphs=["Cells  divide", "Mitosis has phases"])
        result = OCRService(config=unconfigured_settings(), client=client).extract_structured_text(self.image_path)
        self.assertEqual(result.quality, "full")
        self.assertEqual(result.confidence, 0.9)
        self.assertEqual(result.text, "Cells divide\nMitosis has phases")

    def test_document_detection_error_falls_back_to_plain_detection(self):
        client = FakeVisionClient(plain_text="Volcanoes   erupt", fail_document=True)
        result = OCRService(config=unconfigured_settings(), client=client).extract_structured_text(self.image_path)
        self.assertEqual(client.calls, ["document", "text"])
        self.assertEqual(result.text, "Volcanoes erupt")
        self.assertEqual(result.confidence, 0.8)

    def test_no_text_found_uses_placeholder(self):
        client = FakeVisionClient()
        result = OCRService(config=unconfigured_settings(), client=client).extract_structured_text(self.image_path)
        self.assertEqual(result.quality, "fallback")
        self.assertIn("biology-notes.png", result.text)


if __name__ == "__main__":
    unittest.main()
