# schemas.py
from typing import ClassVar
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from job_store import JobType


class DownloadRequest(BaseModel):
    job_type: ClassVar[JobType] = JobType.DOWNLOAD

    url: str = Field(..., description="Remote http(s) URL to fetch")
    custom_name: str = Field("", description="Optional output file name")
    auto_zip: bool = Field(False, description="Wrap the download in a zip archive")

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("url must be an absolute http(s) URL")
        return value


class RemuxRequest(BaseModel):
    job_type: ClassVar[JobType] = JobType.REMUX

    filename: str = Field(..., min_length=1, description="Source path relative to the downloads root")
    container: str = Field(..., pattern=r"^[A-Za-z0-9]+$", description="Target container extension, e.g. mkv")
    custom_out: str = Field("", description="Optional output file name")


class ExtractRequest(BaseModel):
    job_type: ClassVar[JobType] = JobType.EXTRACT

    filename: str = Field(..., min_length=1, description="Archive path relative to the downloads root")


class SubmitJobResponse(BaseModel):
    job_id: str
