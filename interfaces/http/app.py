from pathlib import Path

from fastapi import FastAPI

from application.common.contracts import ConverterOptions
from application.common.interfaces import ObjectStore, ProcessLauncher
from application.conversion.runner import ConversionRunner
from application.conversion.use_case import ConvertUploadUseCase
from application.listing.engine import ListingEngine
from application.listing.use_case import BrowseFolderUseCase
from application.storage.use_case import FileUseCase, FolderUseCase
from env_vars import Settings
from interfaces.http.errors import install_error_handlers
from interfaces.http.routes import mount_convert, mount_files, mount_folders


def converter_options(settings: Settings) -> ConverterOptions:
    return ConverterOptions(
        executable_path=settings.converter_path,
        work_dir=Path(settings.converter_work_dir),
        max_concurrent=settings.converter_max_concurrent,
        max_pending=settings.converter_max_pending,
    )


def create_app(settings: Settings, store: ObjectStore, launcher: ProcessLauncher) -> FastAPI:
    app = FastAPI(title="Point cloud storage gateway")

    # 1. Listing
    engine = ListingEngine(
        store,
        max_depth=settings.listing_max_depth,
        max_prefixes=settings.listing_max_prefixes,
    )
    browse = BrowseFolderUseCase(store, engine, signed_url_ttl=settings.signed_url_ttl)

    # 2. Storage
    folders = FolderUseCase(store)
    files = FileUseCase(store, signed_url_ttl=settings.signed_url_ttl, max_files=settings.max_upload_files)

    # 3. Conversion
    options = converter_options(settings)
    runner = ConversionRunner(launcher, max_concurrent=options.max_concurrent, max_pending=options.max_pending)
    convert = ConvertUploadUseCase(runner, options, store)

    app.state.store = store
    app.state.conversion_runner = runner

    install_error_handlers(app)
    mount_folders(app, browse, folders)
    mount_files(app, files)
    mount_convert(app, convert)
    return app
