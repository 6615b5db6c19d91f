# study_aid/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship

from study_aid.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Document(Base):
    """One analysed upload: OCR text, AI analysis, quiz and video suggestions."""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=new_id)
    original_image_path = Column(String, nullable=False)
    extracted_text = Column(Text, nullable=True)
    user_prompt = Column(Text, nullable=False)
    analysis = Column(JSON, default=dict) # summary, explanation, keyPoints, concepts
    quiz_questions = Column(JSON, default=list)
    youtube_videos = Column(JSON, default=list)
    processing_quality = Column(JSON, default=dict) # per-stage "full" | "partial" | "fallback"
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ChatHistory(Base):
    """Conversation about a document; created on the first message."""
    __tablename__ = "chat_histories"

    id = Column(String(36), primary_key=True, default=new_id)
    # Plain reference: deleting the document leaves the conversation behind
    document_id = Column(String(36), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, index=True)

    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        order_by="ChatMessage.position",
        cascade="all, delete-orphan",
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(36), ForeignKey("chat_histories.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    role = Column(String(16), nullable=False) # "user" | "assistant"
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow)

    chat = relationship("ChatHistory", back_populates="messages")
