from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileEntryDTO(CamelDTO):
    file: str
    size: int
    signed_url: str


class FolderListingDTO(CamelDTO):
    files: list[FileEntryDTO] = Field(default_factory=list)
    folders: list[str] = Field(default_factory=list)
    total_size: str
    total_size_bytes: int
    truncated: bool = False


class MessageDTO(CamelDTO):
    message: str


class FolderDeletedDTO(MessageDTO):
    deleted: int


class SignedUrlDTO(CamelDTO):
    url: str
    size: int


class UploadedFileDTO(CamelDTO):
    key: str
    content_type: str
    status: str
    size: int = 0


class UploadResultDTO(MessageDTO):
    uploaded: int
    files: list[UploadedFileDTO] = Field(default_factory=list)


class ConversionResultDTO(MessageDTO):
    job_id: str
    output_path: Optional[str] = None
    uploaded: int = 0
