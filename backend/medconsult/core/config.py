import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    """Runtime settings for the consultation backend."""

    PROJECT_NAME: str = "Healthcare Consultation AI"
    VERSION: str = "2.0.0"
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")

    # Groq (OpenAI-compatible) model configuration
    GROQ_API_KEY_REASONER: str = os.getenv("GROQ_API_KEY_REASONER", "")
    GROQ_API_KEY_CHAT: str = os.getenv("GROQ_API_KEY_CHAT", "")
    GROQ_BASE_URL: str = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
    REASONER_MODEL: str = os.getenv("REASONER_MODEL", "deepseek-r1-distill-llama-70b")
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "llama-3.3-70b-versatile")
    MODEL_TEMPERATURE: float = 0.3
    MODEL_MAX_TOKENS: int = 2000
    MODEL_TOP_P: float = 0.9
    MODEL_TIMEOUT_SECONDS: float = 60.0

    # Empty means the in-memory session store
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    MIN_SYMPTOM_LENGTH: int = 10

    class Config:
        case_sensitive = True


settings = Settings()
