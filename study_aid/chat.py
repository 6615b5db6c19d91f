# study_aid/chat.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from study_aid import crud
from study_aid.config import settings
from study_aid.exceptions import ValidationError
from study_aid.llm_integration import StudyAssistant
from study_aid.models import Document, utcnow
from study_aid.responses import pagination

logger = logging.getLogger(__name__)


def build_document_context(db_document: Document) -> str:
    """Original text, summary, key points and concepts as one prompt block."""
    analysis = db_document.analysis or {}
    return "\n".join([
        f"Original Text: {db_document.extracted_text or ''}",
        "",
        f"Analysis Summary: {analysis.get('summary') or ''}",
        "",
        f"Key Points: {', '.join(analysis.get('keyPoints') or [])}",
        "",
        f"Concepts: {', '.join(analysis.get('concepts') or [])}",
    ]).strip()


class ChatSessionManager:
    """Keeps one rolling conversation per document and answers through the assistant."""

    def __init__(self, db: Session, assistant: StudyAssistant, history_window: Optional[int] = None):
        self.db = db
        self.assistant = assistant
        self.history_window = history_window if history_window is not None else settings.CHAT_HISTORY_WINDOW

    def _document(self, document_id: Optional[str]) -> Document:
        if not document_id:
            raise ValidationError("Document ID is required")
        return crud.get_document(self.db, document_id)

    def send(self, document_id: Optional[str], message: Optional[str]) -> dict:
        if not document_id:
            raise ValidationError("Document ID is required")
        if not message or not message.strip():
            raise ValidationError("Message cannot be empty")

        db_document = self._document(document_id)
        chat = crud.get_or_create_chat_history(self.db, db_document.id)

        previous_messages = [crud.serialize_message(m) for m in chat.messages][-self.history_window:]
        answer = self.assistant.answer_question(message, build_document_context(db_document), previous_messages)

        user_timestamp = utcnow()
        chat = crud.append_messages(self.db, chat, [
            {"role": "user", "content": message, "timestamp": user_timestamp},
            {"role": "assistant", "content": answer.answer, "timestamp": utcnow()},
        ])
        logger.info(f"Chat {chat.id} now has {len(chat.messages)} messages")

        return {
            "chatId": chat.id,
            "documentId": db_document.id,
            "userMessage": message,
            "aiResponse": answer.answer,
            "quality": answer.quality,
            "timestamp": user_timestamp.isoformat(),
            "messageCount": len(chat.messages),
        }

    def get_history(self, document_id: Optional[str]) -> dict:
        db_document = self._document(document_id)
        chat = crud.get_chat_history(self.db, db_document.id)
        if chat is None:
            return {"documentId": db_document.id, "messages": [], "totalMessages": 0}

        return {
            "chatId": chat.id,
            "documentId": db_document.id,
            "messages": [crud.serialize_message(m) for m in chat.messages],
            "totalMessages": len(chat.messages),
            "lastUpdated": crud.isoformat(chat.updated_at),
        }

    def clear(self, document_id: Optional[str]) -> None:
        db_document = self._document(document_id)
        chat = crud.get_chat_history(self.db, db_document.id)
        if chat is not None:
            crud.clear_messages(self.db, chat)

    def get_context(self, document_id: Optional[str]) -> dict:
        db_document = self._document(document_id)
        analysis = db_document.analysis or {}
        return {
            "documentId": db_document.id,
            "userPrompt": db_document.user_prompt,
            "extractedText": (db_document.extracted_text or "")[:500] + "...",
            "analysis": {
                "summary": analysis.get("summary"),
                "keyPoints": (analysis.get("keyPoints") or [])[:3],
                "concepts": (analysis.get("concepts") or [])[:5],
            },
            "createdAt": crud.isoformat(db_document.created_at),
        }

    def list_all(self, page: int = crud.DEFAULT_PAGE, limit: int = crud.DEFAULT_LIMIT) -> dict:
        page, limit = crud.clamp_page(page, limit)
        chats, total = crud.list_chat_histories(self.db, page, limit)

        summaries = []
        for chat in chats:
            db_document = self.db.get(Document, chat.document_id)
            analysis = (db_document.analysis or {}) if db_document else {}
            last_message = chat.messages[-1].content[:100] + "..." if chat.messages else "No messages"
            summaries.append({
                "chatId": chat.id,
                "documentId": chat.document_id,
                "documentSummary": analysis.get("summary") or "No summary",
                "userPrompt": db_document.user_prompt if db_document else "No prompt",
                "messageCount": len(chat.messages),
                "lastMessage": last_message,
                "lastUpdated": crud.isoformat(chat.updated_at),
                "createdAt": crud.isoformat(chat.created_at),
            })

        return {"chats": summaries, "pagination": pagination(page, limit, total, "totalChats")}
