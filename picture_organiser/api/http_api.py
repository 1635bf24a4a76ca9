import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from picture_organiser.api.auth import current_principal
from picture_organiser.core.env import (
    configure_logging,
    database_url,
    env_int,
    load_dotenv_if_present,
)
from picture_organiser.core.errors import PictureOrganiserError, TooManyFiles
from picture_organiser.core.models import Principal, RawFile
from picture_organiser.ingest import IngestionPipeline, validate_upload
from picture_organiser.store import DocumentStore, remove_photo

logger = logging.getLogger(__name__)

load_dotenv_if_present()
configure_logging()

MAX_FILES_PER_UPLOAD = env_int("MAX_FILES_PER_UPLOAD", 10)

router = APIRouter()


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


@router.get("/", response_class=PlainTextResponse)
def welcome() -> str:
    return "Welcome to the Picture Organiser API!"


@router.get("/health")
async def health(store: DocumentStore = Depends(get_store)) -> dict:
    available = await asyncio.to_thread(store.ping)
    return {"status": "ok", "store": "ok" if available else "unavailable"}


@router.post("/api/albums/{album_id}/upload")
async def upload_photos(
    album_id: str,
    photos: Optional[list[UploadFile]] = File(None),
    description: Optional[str] = Form(None),
    principal: Principal = Depends(current_principal),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> dict:
    """Optimise the uploaded images and append them to the caller's album."""
    uploads = photos or []
    if len(uploads) > MAX_FILES_PER_UPLOAD:
        raise TooManyFiles(f"Too many files (max {MAX_FILES_PER_UPLOAD} per upload)")
    for upload in uploads:
        # Declared sizes are checked before any body is read into memory.
        if upload.size is not None:
            validate_upload(upload.content_type or "", upload.size, pipeline.policy)
    files = [
        RawFile(
            mime_type=upload.content_type or "",
            data=await upload.read(),
            filename=upload.filename,
        )
        for upload in uploads
    ]
    result = await pipeline.ingest(album_id, principal.user_id, description, files)
    return result.to_response()


@router.delete("/api/albums/{album_id}/photos/{photo_id}")
async def delete_photo(
    album_id: str,
    photo_id: str,
    principal: Principal = Depends(current_principal),
    store: DocumentStore = Depends(get_store),
) -> dict:
    await remove_photo(store, album_id, principal.user_id, photo_id)
    return {"message": "Photo deleted successfully"}


async def _handle_app_error(request: Request, exc: PictureOrganiserError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("%s %s failed (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


async def _handle_request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed unexpectedly", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def create_app(
    store: DocumentStore | None = None,
    pipeline: IngestionPipeline | None = None,
) -> FastAPI:
    store = store or DocumentStore(database_url())
    pipeline = pipeline or IngestionPipeline.from_env(store)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        store.close()

    app = FastAPI(title="Picture Organiser API", lifespan=lifespan)
    app.state.store = store
    app.state.pipeline = pipeline
    app.include_router(router)
    app.add_exception_handler(PictureOrganiserError, _handle_app_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(RequestValidationError, _handle_request_error)
    app.add_exception_handler(Exception, _handle_unexpected)
    return app


app = create_app()
