# study_aid/export.py
import logging
import time
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from study_aid import crud
from study_aid.exceptions import NotFoundError, ValidationError
from study_aid.pdf_generator import PDFGenerator

logger = logging.getLogger(__name__)

EXPORT_TYPES = ("complete", "summary", "quiz", "notes", "chat")

FILENAME_PREFIXES = {
    "complete": "study-material",
    "summary": "summary",
    "quiz": "quiz",
    "notes": "notes",
    "chat": "chat-history",
}


class ExportPipeline:
    """Selects a view of a stored document and renders it to PDF bytes."""

    def __init__(self, db: Session, renderer: Optional[PDFGenerator] = None):
        self.db = db
        self.renderer = renderer or PDFGenerator()

    def export(self, document_id: str, export_type: str = "complete") -> Tuple[str, bytes]:
        """Returns ``(filename, pdf_bytes)`` for the requested mode."""
        export_type = (export_type or "complete").lower()
        if export_type not in EXPORT_TYPES:
            raise ValidationError(
                "Invalid export type",
                error=f"Expected one of: {', '.join(EXPORT_TYPES)}",
            )

        db_document = crud.get_document(self.db, document_id)
        document = crud.serialize_document(db_document)

        messages = None
        if export_type == "quiz" and not document["quizQuestions"]:
            raise NotFoundError("No quiz questions found for this document")
        if export_type == "chat":
            chat = crud.get_chat_history(self.db, db_document.id)
            if chat is None or not chat.messages:
                raise NotFoundError("No chat history found for this document")
            messages = [crud.serialize_message(m) for m in chat.messages]

        pdf_bytes = self.renderer.generate(document, export_type, messages)
        filename = f"{FILENAME_PREFIXES[export_type]}-{db_document.id}-{int(time.time() * 1000)}.pdf"
        logger.info(f"Exported {filename}")
        return filename, pdf_bytes

    def get_export_options(self, document_id: str) -> dict:
        """Reports which modes have content to export; renders nothing."""
        db_document = crud.get_document(self.db, document_id)
        analysis = db_document.analysis or {}
        has_summary = bool(analysis.get("summary"))
        has_quiz = bool(db_document.quiz_questions)
        chat = crud.get_chat_history(self.db, db_document.id)
        has_chat = bool(chat is not None and chat.messages)

        options = {
            "complete": {
                "available": True,
                "description": "Complete study material with all content",
                "includes": ["extracted text", "analysis", "quiz questions", "YouTube videos"],
            },
            "summary": {
                "available": has_summary,
                "description": "Summary and key points only",
                "includes": ["summary", "key points", "concepts"],
            },
            "quiz": {
                "available": has_quiz,
                "description": "Quiz questions and answers",
                "includes": ["quiz questions", "answers", "explanations"],
            },
            "notes": {
                "available": has_summary,
                "description": "Formatted study notes",
                "includes": ["extracted text", "summary", "key points", "concepts"],
            },
            "chat": {
                "available": has_chat,
                "description": "Conversation with the AI tutor",
                "includes": ["chat messages"],
            },
        }
        return {"documentId": db_document.id, "exportOptions": options}
