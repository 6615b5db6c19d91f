# study_aid/main.py
import logging
import os
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from fastapi import FastAPI, UploadFile, File, Form, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from study_aid import crud
from study_aid.chat import ChatSessionManager
from study_aid.config import settings, configure_logging
from study_aid.database import init_db, get_db
from study_aid.exceptions import StudyAidError, ValidationError
from study_aid.export import ExportPipeline
from study_aid.llm_integration import StudyAssistant
from study_aid.ocr_service import OCRService
from study_aid.pdf_generator import PDFGenerator
from study_aid.pipeline import DocumentPipeline
from study_aid.responses import success, error_response, validation_error, pagination
from study_aid.schemas import ChatSendRequest
from study_aid.youtube_service import YouTubeService

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Study Aid API",
    description="Upload study material images to get summaries, quizzes, video suggestions, chat and PDF exports.",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded images are served back to the client
app.mount("/uploads", StaticFiles(directory=settings.UPLOADS_DIR), name="uploads")


@app.on_event("startup")
async def startup_event():
    """
    On application startup, create the database and tables if they don't exist.
    """
    logger.info("Starting up application...")
    init_db()
    logger.info("Database tables checked/created.")


# ==================== SERVICE PROVIDERS ====================

@lru_cache
def get_ocr_service() -> OCRService:
    return OCRService(settings)


@lru_cache
def get_study_assistant() -> StudyAssistant:
    return StudyAssistant(config=settings)


@lru_cache
def get_youtube_service() -> YouTubeService:
    return YouTubeService(settings)


def get_pdf_generator() -> PDFGenerator:
    return PDFGenerator()


def get_document_pipeline(
    db: Session = Depends(get_db),
    ocr: OCRService = Depends(get_ocr_service),
    assistant: StudyAssistant = Depends(get_study_assistant),
    videos: YouTubeService = Depends(get_youtube_service),
) -> DocumentPipeline:
    return DocumentPipeline(db, ocr, assistant, videos)


def get_chat_manager(
    db: Session = Depends(get_db),
    assistant: StudyAssistant = Depends(get_study_assistant),
) -> ChatSessionManager:
    return ChatSessionManager(db, assistant, settings.CHAT_HISTORY_WINDOW)


def get_export_pipeline(
    db: Session = Depends(get_db),
    renderer: PDFGenerator = Depends(get_pdf_generator),
) -> ExportPipeline:
    return ExportPipeline(db, renderer)


# ==================== ERROR HANDLERS ====================

@app.exception_handler(StudyAidError)
async def study_aid_error_handler(request: Request, exc: StudyAidError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.error})")
    return error_response(exc.status_code, exc.message, exc.error)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=validation_error(jsonable_encoder(exc.errors())))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return error_response(exc.status_code, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    detail = str(exc) if settings.is_development else "Something went wrong"
    return error_response(500, "Internal server error", detail)


# ==================== HEALTH ====================

@app.get("/health")
async def health():
    return success("Server is running", {
        "status": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


# ==================== DOCUMENTS ====================

UPLOAD_CHUNK_SIZE = 1024 * 1024


def save_upload(image: UploadFile) -> str:
    """Streams the upload under UPLOADS_DIR with a unique name and returns its path.

    Stops as soon as MAX_UPLOAD_SIZE is exceeded, or before writing anything
    when the client already declared a larger size.
    """
    too_large = ValidationError(f"Image exceeds the maximum upload size of {settings.MAX_UPLOAD_SIZE} bytes")
    if image.size is not None and image.size > settings.MAX_UPLOAD_SIZE:
        raise too_large

    safe_name = os.path.basename(image.filename).replace(" ", "_")
    file_location = os.path.join(settings.UPLOADS_DIR, f"{uuid.uuid4().hex}-{safe_name}")
    written = 0
    with open(file_location, "wb") as buffer:
        while True:
            chunk = image.file.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > settings.MAX_UPLOAD_SIZE:
                break
            buffer.write(chunk)

    if written > settings.MAX_UPLOAD_SIZE:
        os.remove(file_location)
        raise too_large
    return file_location


@app.post("/documents/upload")
async def upload_document(
    image: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
):
    """
    Uploads an image, extracts its text, analyses it, builds a quiz and
    suggests videos, then stores everything as a new document.
    """
    if image is None or not image.filename:
        raise ValidationError("No image file provided")
    if not prompt or not prompt.strip():
        raise ValidationError("User prompt is required")
    if not (image.content_type or "").startswith("image/"):
        raise ValidationError("Only image files are allowed")

    file_location = await run_in_threadpool(save_upload, image)
    try:
        result = await run_in_threadpool(pipeline.process, file_location, prompt)
    except Exception:
        # Clean up the uploaded file if processing fails
        if os.path.exists(file_location):
            os.remove(file_location)
        raise

    return success("Document processed successfully", result)


@app.get("/documents")
async def list_documents(page: int = 1, limit: int = 10, db: Session = Depends(get_db)):
    page, limit = crud.clamp_page(page, limit)
    documents, total = await run_in_threadpool(crud.list_documents, db, page, limit)
    return success("Documents retrieved successfully", {
        "documents": [crud.summarize_document(doc) for doc in documents],
        "pagination": pagination(page, limit, total, "totalDocuments"),
    })


@app.get("/documents/{document_id}")
async def get_document(document_id: str, db: Session = Depends(get_db)):
    db_document = await run_in_threadpool(crud.get_document, db, document_id)
    data = crud.serialize_document(db_document)
    data["imageUrl"] = f"/uploads/{os.path.basename(db_document.original_image_path)}"
    return success("Document retrieved successfully", data)


@app.delete("/documents/{document_id}")
async def delete_document(document_id: str, db: Session = Depends(get_db)):
    """
    Deletes a document and its uploaded image. Chat history is kept.
    """
    await run_in_threadpool(crud.delete_document, db, document_id)
    return success("Document deleted successfully")


@app.post("/documents/{document_id}/regenerate-quiz")
async def regenerate_quiz(document_id: str, pipeline: DocumentPipeline = Depends(get_document_pipeline)):
    result = await run_in_threadpool(pipeline.regenerate_quiz, document_id)
    return success("Quiz questions regenerated successfully", result)


# ==================== CHAT ====================

@app.post("/chat/send")
async def send_chat_message(payload: ChatSendRequest, chat: ChatSessionManager = Depends(get_chat_manager)):
    result = await run_in_threadpool(chat.send, payload.documentId, payload.message)
    return success("Message sent successfully", result)


@app.get("/chat/history/{document_id}")
async def get_chat_history(document_id: str, chat: ChatSessionManager = Depends(get_chat_manager)):
    result = await run_in_threadpool(chat.get_history, document_id)
    message = "Chat history retrieved successfully" if result["messages"] or "chatId" in result else "No chat history found"
    return success(message, result)


@app.delete("/chat/history/{document_id}")
async def clear_chat_history(document_id: str, chat: ChatSessionManager = Depends(get_chat_manager)):
    await run_in_threadpool(chat.clear, document_id)
    return success("Chat history cleared successfully")


@app.get("/chat/context/{document_id}")
async def get_chat_context(document_id: str, chat: ChatSessionManager = Depends(get_chat_manager)):
    result = await run_in_threadpool(chat.get_context, document_id)
    return success("Document context retrieved successfully", result)


@app.get("/chat")
async def list_chats(page: int = 1, limit: int = 10, chat: ChatSessionManager = Depends(get_chat_manager)):
    result = await run_in_threadpool(chat.list_all, page, limit)
    return success("Chat list retrieved successfully", result)


# ==================== EXPORT ====================

def pdf_response(filename: str, pdf_bytes: bytes) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/export/{document_id}/options")
async def get_export_options(document_id: str, exporter: ExportPipeline = Depends(get_export_pipeline)):
    result = await run_in_threadpool(exporter.get_export_options, document_id)
    return success("Export options retrieved successfully", result)


@app.get("/export/{document_id}")
async def export_document(document_id: str, type: str = "complete", exporter: ExportPipeline = Depends(get_export_pipeline)):
    filename, pdf_bytes = await run_in_threadpool(exporter.export, document_id, type)
    return pdf_response(filename, pdf_bytes)


@app.get("/export/{document_id}/summary")
async def export_summary(document_id: str, exporter: ExportPipeline = Depends(get_export_pipeline)):
    filename, pdf_bytes = await run_in_threadpool(exporter.export, document_id, "summary")
    return pdf_response(filename, pdf_bytes)


@app.get("/export/{document_id}/quiz")
async def export_quiz(document_id: str, exporter: ExportPipeline = Depends(get_export_pipeline)):
    filename, pdf_bytes = await run_in_threadpool(exporter.export, document_id, "quiz")
    return pdf_response(filename, pdf_bytes)


@app.get("/export/{document_id}/notes")
async def export_notes(document_id: str, exporter: ExportPipeline = Depends(get_export_pipeline)):
    filename, pdf_bytes = await run_in_threadpool(exporter.export, document_id, "notes")
    return pdf_response(filename, pdf_bytes)


@app.get("/export/{document_id}/chat")
async def export_chat_history(document_id: str, exporter: ExportPipeline = Depends(get_export_pipeline)):
    filename, pdf_bytes = await run_in_threadpool(exporter.export, document_id, "chat")
    return pdf_response(filename, pdf_bytes)
