from typing import Optional

from fastapi import FastAPI, File, Form, UploadFile

from application.conversion.use_case import ConvertUploadUseCase
from application.listing.use_case import BrowseFolderUseCase
from application.storage.use_case import FileUseCase, FolderUseCase, IncomingFile
from interfaces.http.dto import (
    ConversionResultDTO,
    FolderDeletedDTO,
    FolderListingDTO,
    MessageDTO,
    SignedUrlDTO,
    UploadResultDTO,
)


async def _read_uploads(uploads: list[UploadFile]) -> list[IncomingFile]:
    # whole payload in memory, forwarded to the store as one put per file
    return [IncomingFile(filename=u.filename or '', data=await u.read()) for u in uploads]


def mount_folders(app: FastAPI, browse: BrowseFolderUseCase, folders: FolderUseCase) -> None:
    @app.get("/folders/{path:path}", response_model=FolderListingDTO)
    async def list_folder(path: str, recursive: bool = False) -> FolderListingDTO:
        payload = await browse.execute(path, recursive=recursive)
        return FolderListingDTO(**payload)

    @app.post("/folders/{path:path}", response_model=MessageDTO)
    async def create_folder(path: str) -> MessageDTO:
        return MessageDTO(**await folders.create(path))

    @app.delete("/folders/{path:path}", response_model=FolderDeletedDTO)
    async def delete_folder(path: str) -> FolderDeletedDTO:
        return FolderDeletedDTO(**await folders.delete(path))


def mount_files(app: FastAPI, files_uc: FileUseCase) -> None:
    @app.get("/files/{path:path}", response_model=SignedUrlDTO)
    async def get_file(path: str) -> SignedUrlDTO:
        return SignedUrlDTO(**await files_uc.signed_url(path))

    @app.post("/files/{path:path}", response_model=UploadResultDTO)
    async def upload_files(
        path: str,
        files: Optional[list[UploadFile]] = File(None),
        file: Optional[UploadFile] = File(None),
    ) -> UploadResultDTO:
        uploads = list(files or [])
        if file is not None:
            uploads.append(file)
        payload = await files_uc.upload(path, await _read_uploads(uploads))
        return UploadResultDTO(**payload)

    @app.delete("/files/{path:path}", response_model=MessageDTO)
    async def delete_file(path: str) -> MessageDTO:
        return MessageDTO(**await files_uc.delete(path))


def mount_convert(app: FastAPI, convert: ConvertUploadUseCase) -> None:
    @app.post("/convert", response_model=ConversionResultDTO)
    async def convert_point_cloud(
        file: Optional[UploadFile] = File(None),
        page_name: Optional[str] = Form(None),
        output_prefix: Optional[str] = Form(None),
    ) -> ConversionResultDTO:
        incoming = None
        if file is not None:
            incoming = (await _read_uploads([file]))[0]
        payload = await convert.execute(incoming, page_name=page_name, output_prefix=output_prefix)
        return ConversionResultDTO(**payload)
