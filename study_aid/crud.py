# study_aid/crud.py
import logging
import os
import uuid
from datetime import timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from study_aid.exceptions import InvalidIdentifierError, NotFoundError
from study_aid.models import ChatHistory, ChatMessage, Document, utcnow
from study_aid.schemas import Analysis, QuizQuestion, VideoInfo

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def normalize_id(document_id: str) -> str:
    """Canonical UUID string, or InvalidIdentifierError for anything else."""
    try:
        return str(uuid.UUID(str(document_id)))
    except (TypeError, ValueError):
        raise InvalidIdentifierError()


def clamp_page(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    page = page if page and page > 0 else DEFAULT_PAGE
    limit = limit if limit and limit > 0 else DEFAULT_LIMIT
    return page, min(limit, MAX_LIMIT)


def isoformat(value) -> Optional[str]:
    """UTC ISO-8601 with offset; SQLite hands datetimes back without tzinfo."""
    if not value:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


# ---------- Documents ----------

def create_document(
    db: Session,
    original_image_path: str,
    user_prompt: str,
    extracted_text: Optional[str],
    analysis: Analysis,
    quiz_questions: List[QuizQuestion],
    youtube_videos: List[VideoInfo],
    processing_quality: Optional[dict] = None,
) -> Document:
    """Creates a new document record in the database."""
    db_document = Document(
        original_image_path=original_image_path,
        user_prompt=user_prompt,
        extracted_text=extracted_text,
        analysis=analysis.to_json(),
        quiz_questions=[question.to_json() for question in quiz_questions],
        youtube_videos=[video.to_json() for video in youtube_videos],
        processing_quality=processing_quality or {},
    )
    db.add(db_document)
    db.commit()
    db.refresh(db_document)
    return db_document


def get_document(db: Session, document_id: str) -> Document:
    """Retrieves a document by id; raises NotFoundError when absent."""
    db_document = db.get(Document, normalize_id(document_id))
    if db_document is None:
        raise NotFoundError("Document not found")
    return db_document


def list_documents(db: Session, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Tuple[List[Document], int]:
    """Returns one page of documents, newest first, and the total count."""
    page, limit = clamp_page(page, limit)
    query = db.query(Document)
    total = query.count()
    documents = (
        query.order_by(Document.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return documents, total


def update_quiz_questions(db: Session, db_document: Document, questions: List[QuizQuestion], quality: Optional[str] = None) -> Document:
    db_document.quiz_questions = [question.to_json() for question in questions]
    if quality:
        db_document.processing_quality = {**(db_document.processing_quality or {}), "quiz": quality}
    db_document.updated_at = utcnow()
    db.commit()
    db.refresh(db_document)
    return db_document


def delete_document(db: Session, document_id: str) -> Document:
    """Deletes a document record and, best-effort, its uploaded image."""
    db_document = get_document(db, document_id)
    image_path = db_document.original_image_path
    db.delete(db_document)
    db.commit()

    try:
        if image_path and os.path.exists(image_path):
            os.remove(image_path)
    except OSError as e:
        logger.warning(f"Could not remove image {image_path}: {e}")
    return db_document


def serialize_document(db_document: Document) -> dict:
    return {
        "id": db_document.id,
        "originalImagePath": db_document.original_image_path,
        "extractedText": db_document.extracted_text,
        "userPrompt": db_document.user_prompt,
        "analysis": db_document.analysis or {},
        "quizQuestions": db_document.quiz_questions or [],
        "youtubeVideos": db_document.youtube_videos or [],
        "processingQuality": db_document.processing_quality or {},
        "createdAt": isoformat(db_document.created_at),
        "updatedAt": isoformat(db_document.updated_at),
    }


def summarize_document(db_document: Document) -> dict:
    text = db_document.extracted_text or ""
    return {
        "id": db_document.id,
        "userPrompt": db_document.user_prompt,
        "summary": (db_document.analysis or {}).get("summary") or "No summary available",
        "createdAt": isoformat(db_document.created_at),
        "textPreview": text[:100] + "...",
    }


# ---------- Chat histories ----------

def get_chat_history(db: Session, document_id: str) -> Optional[ChatHistory]:
    return db.query(ChatHistory).filter(ChatHistory.document_id == document_id).first()


def get_or_create_chat_history(db: Session, document_id: str) -> ChatHistory:
    chat = get_chat_history(db, document_id)
    if chat is None:
        chat = ChatHistory(document_id=document_id, messages=[])
        db.add(chat)
    return chat


def append_messages(db: Session, chat: ChatHistory, messages: List[dict]) -> ChatHistory:
    """Appends ``{role, content, timestamp}`` entries in order and saves."""
    position = len(chat.messages)
    for offset, message in enumerate(messages):
        chat.messages.append(ChatMessage(
            position=position + offset,
            role=message["role"],
            content=message["content"],
            timestamp=message.get("timestamp") or utcnow(),
        ))
    chat.updated_at = utcnow()
    db.commit()
    db.refresh(chat)
    return chat


def clear_messages(db: Session, chat: ChatHistory) -> ChatHistory:
    chat.messages.clear()
    chat.updated_at = utcnow()
    db.commit()
    db.refresh(chat)
    return chat


def list_chat_histories(db: Session, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Tuple[List[ChatHistory], int]:
    page, limit = clamp_page(page, limit)
    query = db.query(ChatHistory)
    total = query.count()
    chats = (
        query.order_by(ChatHistory.updated_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return chats, total


def serialize_message(message: ChatMessage) -> dict:
    return {
        "role": message.role,
        "content": message.content,
        "timestamp": isoformat(message.timestamp),
    }
