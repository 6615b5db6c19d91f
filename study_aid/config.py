# study_aid/config.py
import logging
import os
from dotenv import load_dotenv

load_dotenv() # Load environment variables from .env file

class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Generative AI
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "gemini") # Default to Gemini
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gemini-2.0-flash")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", 0.7))

    # OCR (Google Cloud Vision)
    GOOGLE_CLOUD_PROJECT_ID: str = os.getenv("GOOGLE_CLOUD_PROJECT_ID")
    GOOGLE_APPLICATION_CREDENTIALS: str = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

    # Video search (YouTube Data API v3)
    YOUTUBE_API_KEY: str = os.getenv("YOUTUBE_API_KEY")
    YOUTUBE_TIMEOUT: float = float(os.getenv("YOUTUBE_TIMEOUT", 15))

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./data/study_aid.db") # SQLite for simplicity

    # Upload settings
    UPLOADS_DIR: str = os.getenv("UPLOADS_DIR", "uploads")
    MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", 10 * 1024 * 1024))

    # Browser origins allowed to call the API, comma separated
    CORS_ORIGINS: list = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

    # Chat context windows: messages read back from storage, and turns replayed into the prompt
    CHAT_HISTORY_WINDOW: int = int(os.getenv("CHAT_HISTORY_WINDOW", 10))
    CHAT_PROMPT_WINDOW: int = int(os.getenv("CHAT_PROMPT_WINDOW", 5))

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

settings = Settings()

def configure_logging(level: str = None):
    """Configures root logging once for the process."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

# Create necessary directories if they don't exist
os.makedirs(settings.UPLOADS_DIR, exist_ok=True)
if settings.DATABASE_URL.startswith("sqlite:///./"):
    os.makedirs(os.path.dirname(settings.DATABASE_URL.replace("sqlite:///", "")), exist_ok=True)
