# study_aid/ocr_service.py
import logging
import os
import re

from google.cloud import vision

from study_aid.config import Settings, settings as default_settings
from study_aid.schemas import OCRResult

logger = logging.getLogger(__name__)

FALLBACK_TEXT_TEMPLATE = """[OCR Service Unavailable]

This appears to be an uploaded image file. The Google Vision API is not currently configured, so automatic text extraction is not available.

To use this service properly, please:
1. Set up a Google Cloud Project
2. Enable the Vision API
3. Create a service account and download the credentials JSON file
4. Set the GOOGLE_CLOUD_PROJECT_ID and GOOGLE_APPLICATION_CREDENTIALS environment variables

For now, you can manually type the content from your image in the prompt field to get AI analysis.

Image file: {filename}"""


def process_extracted_text(raw_text: str) -> str:
    """Collapses repeated line breaks and repeated spaces, then trims."""
    if not raw_text:
        return ""
    text = re.sub(r"[^\S\n]*\n\s*", "\n", raw_text)
    text = re.sub(r"[^\S\n]+", " ", text)
    return text.strip()


class OCRService:
    """Extracts text from images with Google Cloud Vision.

    Never raises: when Vision is unconfigured, unreachable or finds nothing,
    a placeholder naming the image is returned with ``confidence=0``.
    """

    def __init__(self, config: Settings = None, client=None):
        config = config or default_settings
        self.client = client
        if self.client is None:
            try:
                self.client = self._build_client(config)
                logger.info("Google Vision API initialized successfully")
            except Exception as e:
                logger.error(f"Google Vision API initialization error: {e}")
                self.client = None
        self.is_configured = self.client is not None

    @staticmethod
    def _build_client(config: Settings):
        if not config.GOOGLE_CLOUD_PROJECT_ID:
            raise ValueError("GOOGLE_CLOUD_PROJECT_ID environment variable is not set")
        if not config.GOOGLE_APPLICATION_CREDENTIALS:
            raise ValueError("GOOGLE_APPLICATION_CREDENTIALS environment variable is not set")
        if not os.path.exists(config.GOOGLE_APPLICATION_CREDENTIALS):
            raise FileNotFoundError(
                f"Google Cloud credentials file not found at: {config.GOOGLE_APPLICATION_CREDENTIALS}"
            )
        return vision.ImageAnnotatorClient.from_service_account_file(
            config.GOOGLE_APPLICATION_CREDENTIALS,
            client_options={"quota_project_id": config.GOOGLE_CLOUD_PROJECT_ID},
        )

    @staticmethod
    def _load_image(image_path: str) -> vision.Image:
        with open(image_path, "rb") as image_file:
            return vision.Image(content=image_file.read())

    def extract_text(self, image_path: str) -> OCRResult:
        """Plain text detection over the whole image."""
        if not self.is_configured:
            logger.warning("Google Vision API not configured, using fallback text extraction")
            return self.fallback_text_extraction(image_path)

        try:
            logger.info(f"Extracting text from image: {image_path}")
            response = self.client.text_detection(image=self._load_image(image_path))
            if response.error.message:
                raise RuntimeError(response.error.message)

            detections = response.text_annotations
            if not detections:
                raise ValueError("No text found in the image")

            # The first detection contains the full text
            raw_text = detections[0].description
            return OCRResult(
                success=True,
                extracted_text=process_extracted_text(raw_text),
                raw_text=raw_text,
                confidence=detections[0].confidence or 0.8,
                quality="full",
            )
        except Exception as e:
            logger.error(f"Google Vision API error: {e}")
            logger.warning("Falling back to placeholder text extraction")
            return self.fallback_text_extraction(image_path)

    def extract_structured_text(self, image_path: str) -> OCRResult:
        """Document text detection, one paragraph per block of text."""
        if not self.is_configured:
            logger.warning("Google Vision API not configured, using fallback")
            return self.fallback_text_extraction(image_path)

        try:
            response = self.client.document_text_detection(image=self._load_image(image_path))
            if response.error.message:
                raise RuntimeError(response.error.message)

            annotation = response.full_text_annotation
            if not annotation or not annotation.pages:
                logger.warning("No document structure detected, falling back to regular text detection")
                return self.extract_text(image_path)

            paragraphs = []
            for page in annotation.pages:
                for block in page.blocks:
                    for paragraph in block.paragraphs:
                        words = ["".join(symbol.text for symbol in word.symbols) for word in paragraph.words]
                        paragraphs.append(" ".join(words).strip())

            structured_text = process_extracted_text("\n\n".join(p for p in paragraphs if p))
            if not structured_text:
                return self.extract_text(image_path)

            return OCRResult(
                success=True,
                structured_text=structured_text,
                confidence=0.9 if annotation.text else 0.7,
                quality="full",
            )
        except Exception as e:
            logger.error(f"Document structure detection error: {e}")
            return self.extract_text(image_path)

    def fallback_text_extraction(self, image_path: str) -> OCRResult:
        logger.info(f"Using fallback text extraction for: {image_path}")
        fallback_text = FALLBACK_TEXT_TEMPLATE.format(filename=os.path.basename(image_path))
        return OCRResult(
            success=True,
            extracted_text=fallback_text,
            raw_text=fallback_text,
            confidence=0.0,
            quality="fallback",
        )
