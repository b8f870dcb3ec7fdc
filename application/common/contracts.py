from enum import Enum
from pathlib import Path
from time import time
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(Enum):
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    NOT_FOUND = 'NOT_FOUND'
    STORE_ERROR = 'STORE_ERROR'
    PROCESS_STARTUP_ERROR = 'PROCESS_STARTUP_ERROR'
    PROCESS_EXIT_ERROR = 'PROCESS_EXIT_ERROR'
    CONVERSION_REJECTED = 'CONVERSION_REJECTED'


class ConversionState(Enum):
    IDLE = 'IDLE'
    RUNNING = 'RUNNING'
    SUCCEEDED = 'SUCCEEDED'
    FAILED = 'FAILED'
    STARTUP_ERROR = 'STARTUP_ERROR'

    @property
    def terminal(self) -> bool:
        return self in (ConversionState.SUCCEEDED, ConversionState.FAILED, ConversionState.STARTUP_ERROR)


class StorageFile(BaseModel):
    key: str = Field(min_length=1)
    size: int = Field(default=0, ge=0)


class ListPage(BaseModel):
    files: list[StorageFile] = Field(default_factory=list)
    folders: list[str] = Field(default_factory=list)
    next_token: Optional[str] = None


class ListingResult(BaseModel):
    files: list[StorageFile] = Field(default_factory=list)
    folders: list[str] = Field(default_factory=list)
    truncated: bool = False

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)


class UploadStatus(Enum):
    UPLOADED = 'uploaded'
    FAILED = 'failed'
    SKIPPED = 'skipped'


class UploadOutcome(BaseModel):
    key: str
    content_type: str
    status: UploadStatus
    size: int = 0


class ConverterOptions(BaseModel):
    executable_path: str = Field(min_length=1)
    work_dir: Path
    max_concurrent: int = Field(default=2, ge=1)
    max_pending: int = Field(default=4, ge=0)


class ConversionJob(BaseModel):
    job_id: str = Field(min_length=1)
    input_path: str
    output_path: str
    executable_path: str
    arguments: list[str] = Field(default_factory=list)
    created_at: float = Field(default_factory=time)

    @property
    def command(self) -> list[str]:
        return [self.executable_path, *self.arguments]


class ConversionResult(BaseModel):
    job_id: str
    state: ConversionState
    exit_code: Optional[int] = None
    output_path: Optional[str] = None
