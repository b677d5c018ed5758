"""
Runtime configuration loaded from the environment (.env supported)
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, validator

load_dotenv()


class LLMSettings(BaseModel):
    """LLM Configuration Settings"""
    model_name: str = Field(default="llava:7b", description="Ollama model name (must accept images for JPEG/PNG resumes)")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Generation temperature")
    timeout: int = Field(default=120, ge=1, le=600, description="Request timeout in seconds")

    @validator('base_url')
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class ProcessingSettings(BaseModel):
    """Batch processing configuration"""
    max_concurrent: int = Field(default=5, ge=1, le=20, description="Maximum concurrent extraction requests")
    batch_timeout: float = Field(default=600.0, gt=0, description="Whole-batch timeout in seconds")


class StorageSettings(BaseModel):
    """Where uploaded originals are written and how their URLs are built"""
    upload_dir: str = Field(default="./uploads")
    file_base_url: str = Field(default="", description="Prefix for issued file URLs; empty gives relative URLs")

    @validator('file_base_url')
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class DatabaseSettings(BaseModel):
    mongo_details: str = Field(default="mongodb://localhost:27017")
    db_name: str = Field(default="resume_parser_db")
    collection_name: str = Field(default="resumes")


class Settings(BaseModel):
    llm: LLMSettings = Field(default_factory=LLMSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    return value if value not in (None, "") else default


def load_settings() -> Settings:
    """Build the settings tree from environment variables"""
    return Settings(
        llm=LLMSettings(
            model_name=_env("LLM_MODEL", "llava:7b"),
            base_url=_env("OLLAMA_BASE_URL", "http://localhost:11434"),
            temperature=float(_env("LLM_TEMPERATURE", "0.2")),
            timeout=int(_env("LLM_TIMEOUT", "120")),
        ),
        processing=ProcessingSettings(
            max_concurrent=int(_env("PROCESSING_MAX_CONCURRENT", "5")),
            batch_timeout=float(_env("PROCESSING_BATCH_TIMEOUT", "600")),
        ),
        storage=StorageSettings(
            upload_dir=_env("UPLOAD_DIR", "./uploads"),
            file_base_url=_env("FILE_BASE_URL", ""),
        ),
        database=DatabaseSettings(
            mongo_details=_env("MONGO_DETAILS", "mongodb://localhost:27017"),
            db_name=_env("DB_NAME", "resume_parser_db"),
        ),
    )
