# settings.py
from typing import Optional

from pydantic import BaseModel, Field
from dotenv import load_dotenv
import os

# Load variables from .env at import time
load_dotenv()


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


class Settings(BaseModel):
    downloads_dir: str = Field(default=os.getenv("DOWNLOADS_DIR", "./downloads"))
    raw_prefix: str = Field(default=os.getenv("RAW_PREFIX", "/raw"))
    ffmpeg_bin: str = Field(default=os.getenv("FFMPEG_BIN", "ffmpeg"))
    unrar_bin: str = Field(default=os.getenv("UNRAR_BIN", "unrar"))
    # None means no timeout: large downloads run until the transport gives up
    download_timeout: Optional[float] = Field(default=_optional_float("DOWNLOAD_TIMEOUT"))
    cors_origins: str = Field(default=os.getenv("CORS_ORIGINS", "*"))
    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO").upper())
    debug: bool = Field(default=os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"})
    host: str = Field(default=os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default=int(os.getenv("PORT", "8080")))

settings = Settings()
