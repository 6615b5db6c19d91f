# study_aid/schemas.py
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Quality labels attached to every adapter result:
#   full     - the provider answered and the answer parsed cleanly
#   partial  - the provider answered but fields had to be scraped or defaulted
#   fallback - the provider was unavailable; content is a deterministic stub
Quality = Literal["full", "partial", "fallback"]


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# ---------- Stored content ----------

class Analysis(CamelModel):
    summary: Optional[str] = None
    explanation: Optional[str] = None
    key_points: List[str] = Field(default_factory=list)
    concepts: List[str] = Field(default_factory=list)


class ContentAnalysis(Analysis):
    """Analysis as returned by the AI adapter; keywords feed the video search."""
    search_keywords: List[str] = Field(default_factory=list)

    def stored(self) -> Analysis:
        return Analysis(
            summary=self.summary,
            explanation=self.explanation,
            key_points=self.key_points,
            concepts=self.concepts,
        )


class QuizQuestion(CamelModel):
    type: Literal["mcq", "short_answer", "flashcard"]
    question: str
    options: Optional[List[str]] = None
    correct_answer: str
    explanation: str = "No explanation provided"


class VideoInfo(CamelModel):
    title: str
    video_id: str
    channel_title: str = ""
    view_count: int = 0
    like_count: Optional[int] = None
    published_at: Optional[str] = None
    thumbnail_url: Optional[str] = None
    description: str = ""
    duration: Optional[str] = None
    url: str = ""
    embed_url: str = ""


# ---------- Adapter results ----------

class OCRResult(CamelModel):
    success: bool = True
    extracted_text: Optional[str] = None
    raw_text: Optional[str] = None
    structured_text: Optional[str] = None
    confidence: float = 0.0
    quality: Quality = "full"

    @property
    def text(self) -> str:
        return self.structured_text or self.extracted_text or ""


class AnalysisResult(CamelModel):
    success: bool = True
    analysis: ContentAnalysis
    quality: Quality = "full"


class QuizResult(CamelModel):
    success: bool = True
    questions: List[QuizQuestion] = Field(default_factory=list)
    quality: Quality = "full"


class AnswerResult(CamelModel):
    success: bool = True
    answer: str
    quality: Quality = "full"


class VideoSearchResult(CamelModel):
    success: bool = True
    videos: List[VideoInfo] = Field(default_factory=list)
    quality: Quality = "full"
    error: Optional[str] = None


# ---------- Request bodies ----------

class ChatSendRequest(BaseModel):
    documentId: Optional[str] = None
    message: Optional[str] = None
