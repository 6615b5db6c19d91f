import unittest

import fitz  # PyMuPDF

from study_aid.pdf_generator import PDFGenerator

DOCUMENT = {
    "id": "7d9f1c3e-0000-4000-8000-000000000000",
    "extractedText": "Mitosis has four phases.",
    "userPrompt": "explain mitosis",
    "analysis": {
        "summary": "Cells divide through mitosis.",
        "explanation": "One cell becomes two.",
        "keyPoints": ["Prophase comes first"],
        "concepts": ["Cell division"],
    },
    "quizQuestions": [{
        "type": "mcq",
        "question": "Which phase comes first?",
        "options": ["Prophase", "Anaphase"],
        "correctAnswer": "Prophase",
        "explanation": "Prophase starts mitosis.",
    }],
    "youtubeVideos": [{"title": "Mitosis explained", "channelTitle": "Biology Academy", "url": "https://www.youtube.com/watch?v=abc"}],
}


def pdf_text(pdf_bytes):
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        return "\n".join(page.get_text() for page in doc), doc.page_count


class PDFGeneratorTest(unittest.TestCase):
    def setUp(self):
        self.generator = PDFGenerator()

    def test_complete_export(self):
        pdf_bytes = self.generator.generate(DOCUMENT, "complete")
        self.assertTrue(pdf_bytes.startswith(b"%PDF"))
        text, _ = pdf_text(pdf_bytes)
        self.assertIn("Study Material", text)
        self.assertIn("Cells divide through mitosis.", text)
        self.assertIn("Which phase comes first?", text)
        self.assertIn("Prophase (correct)", text)
        self.assertIn("Mitosis explained", text)

    def test_quiz_export_skips_summary(self):
        text, _ = pdf_text(self.generator.generate(DOCUMENT, "quiz"))
        self.assertIn("Quiz Questions", text)
        self.assertNotIn("Cells divide through mitosis.", text)

    def test_chat_export(self):
        messages = [
            {"role": "user", "content": "What is mitosis?", "timestamp": "2024-01-01T00:00:00"},
            {"role": "assistant", "content": "Cell division.", "timestamp": "2024-01-01T00:00:01"},
        ]
        text, _ = pdf_text(self.generator.generate(DOCUMENT, "chat", messages))
        self.assertIn("Chat History", text)
        self.assertIn("AI Tutor", text)
        self.assertIn("What is mitosis?", text)

    def test_non_latin_text_survives_export(self):
        document = dict(
            DOCUMENT,
            extractedText="6CO₂ + 6H₂O → C₆H₁₂O₆ ; Ψ λ 光合作用",
            analysis={"summary": "Light becomes sugar.", "keyPoints": ["Chlorophyll absorbs light"]},
        )
        text, _ = pdf_text(self.generator.generate(document, "summary"))
        self.assertIn("CO₂", text)
        self.assertIn("→", text)
        self.assertIn("Ψ λ", text)
        self.assertIn("光合作用", text)
        self.assertIn("• Chlorophyll absorbs light", text)

    def test_long_text_spills_onto_new_pages(self):
        document = dict(DOCUMENT, extractedText="photosynthesis " * 4000)
        _, page_count = pdf_text(self.generator.generate(document, "summary"))
        self.assertGreater(page_count, 1)


if __name__ == "__main__":
    unittest.main()
