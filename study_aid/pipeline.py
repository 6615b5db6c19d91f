# study_aid/pipeline.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from study_aid import crud
from study_aid.exceptions import AnalysisFailedError, ValidationError
from study_aid.llm_integration import StudyAssistant
from study_aid.ocr_service import OCRService
from study_aid.schemas import QuizResult
from study_aid.youtube_service import YouTubeService

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_KEYWORDS = ["education", "learning"]


class DocumentPipeline:
    """Turns an uploaded image and a prompt into a persisted Document.

    Steps run strictly in order: OCR, analysis, quiz, videos, persist. Each
    adapter call happens once; its own fallback stands in for a failed
    provider, so only a missing analysis aborts the run.
    """

    def __init__(self, db: Session, ocr: OCRService, assistant: StudyAssistant, videos: YouTubeService):
        self.db = db
        self.ocr = ocr
        self.assistant = assistant
        self.videos = videos

    @staticmethod
    def validate(image_path: Optional[str], user_prompt: Optional[str]):
        if not image_path:
            raise ValidationError("No image file provided")
        if not user_prompt or not user_prompt.strip():
            raise ValidationError("User prompt is required")

    def process(self, image_path: str, user_prompt: str) -> dict:
        self.validate(image_path, user_prompt)
        logger.info(f"Processing image: {image_path}")

        # Step 1: Extract text
        ocr_result = self.ocr.extract_structured_text(image_path)
        extracted_text = ocr_result.text
        logger.info(f"Extracted text length: {len(extracted_text)}")

        # Step 2: Analyze content
        try:
            analysis_result = self.assistant.analyze(extracted_text, user_prompt)
        except Exception as e:
            logger.error(f"Analysis step failed: {e}")
            raise AnalysisFailedError(error=str(e))
        if analysis_result is None or not analysis_result.success or analysis_result.analysis is None:
            raise AnalysisFailedError()
        analysis = analysis_result.analysis

        # Step 3: Generate quiz questions
        quiz_result = self._generate_quiz(extracted_text, user_prompt)

        # Step 4: Suggest videos
        keywords = analysis.search_keywords or DEFAULT_SEARCH_KEYWORDS
        video_result = self.videos.search_educational(keywords)

        # Step 5: Persist
        db_document = crud.create_document(
            self.db,
            original_image_path=image_path,
            user_prompt=user_prompt,
            extracted_text=extracted_text,
            analysis=analysis.stored(),
            quiz_questions=quiz_result.questions,
            youtube_videos=video_result.videos,
            processing_quality={
                "ocr": ocr_result.quality,
                "ocrConfidence": ocr_result.confidence,
                "analysis": analysis_result.quality,
                "quiz": quiz_result.quality,
                "videos": video_result.quality,
            },
        )
        logger.info(f"Document saved with ID: {db_document.id}")

        stored = crud.serialize_document(db_document)
        return {
            "documentId": stored["id"],
            "extractedText": stored["extractedText"],
            "analysis": stored["analysis"],
            "quizQuestions": stored["quizQuestions"],
            "youtubeVideos": stored["youtubeVideos"],
            "processingQuality": stored["processingQuality"],
            "createdAt": stored["createdAt"],
        }

    def _generate_quiz(self, text: str, user_prompt: str) -> QuizResult:
        try:
            return self.assistant.generate_quiz(text, user_prompt)
        except Exception as e:
            logger.error(f"Quiz generation failed, continuing without questions: {e}")
            return QuizResult(questions=[], quality="fallback")

    def regenerate_quiz(self, document_id: str) -> dict:
        """Re-runs quiz generation on the stored text and overwrites the questions."""
        db_document = crud.get_document(self.db, document_id)
        quiz_result = self._generate_quiz(db_document.extracted_text or "", db_document.user_prompt)
        db_document = crud.update_quiz_questions(self.db, db_document, quiz_result.questions, quiz_result.quality)
        return {"quizQuestions": db_document.quiz_questions or []}
