"""HTTP surface: FastAPI app wiring the store, the orchestrator and the controllers."""

from typing import Any, Optional

import structlog
from fastapi import Body, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from chat2portfolio.config import Settings, get_settings
from chat2portfolio.controllers import (
    ConversationController,
    ImageIngestionController,
    RegenerationController,
    UploadedImage,
)
from chat2portfolio.errors import DocumentNotFound, InternalError, PortfolioError, ValidationError
from chat2portfolio.orchestrator import Generator, GenerationOrchestrator
from chat2portfolio.schemas.documents import SITE_FILENAMES
from chat2portfolio.store import DocumentStore
from chat2portfolio.utils.llm_client import OpenAIGenerator
from chat2portfolio.utils.logging_setup import bind_request_context

logger = structlog.get_logger(__name__)

MEDIA_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
}

# First path segment -> operation name bound into the log context
OPERATIONS = {
    "chat": "chat",
    "history": "read-history",
    "profile": "read-profile",
    "reset": "reset",
    "promptBackground": "regenerate",
    "get-site-code": "read-site",
    "get-portfolio-code": "read-site",
    "portfolio": "preview",
    "upload-image": "upload-image",
    "uploads": "read-upload",
}


def create_app(
    settings: Optional[Settings] = None,
    generator: Optional[Generator] = None,
    store: Optional[DocumentStore] = None,
) -> FastAPI:
    """
    Build the service.

    Args:
        settings: Configuration (default: fresh Settings from the environment)
        generator: External generator (default: OpenAIGenerator)
        store: Document store (default: one rooted at settings.data_dir/site_dir)
    """
    settings = settings or get_settings()
    store = store or DocumentStore.from_settings(settings)
    store.init_defaults()

    orchestrator = GenerationOrchestrator(generator or OpenAIGenerator(settings), settings)
    conversation = ConversationController(store, orchestrator, settings)
    regeneration = RegenerationController(store, orchestrator, settings)
    ingestion = ImageIngestionController(store, orchestrator, settings)

    app = FastAPI(title="chat2portfolio")
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.mount("/uploads", StaticFiles(directory=store.uploads_dir, check_dir=False), name="uploads")

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        segment = request.url.path.strip("/").split("/", 1)[0]
        bind_request_context(OPERATIONS.get(segment, segment or "root"), method=request.method, path=request.url.path)
        return await call_next(request)

    @app.exception_handler(PortfolioError)
    async def portfolio_error_handler(request: Request, exc: PortfolioError):
        if exc.status_code >= 500:
            logger.error("Request failed", kind=exc.kind, error=exc.message)
        else:
            logger.info("Request rejected", kind=exc.kind, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationError(f"Malformed request: {exc.errors()[0]['msg'] if exc.errors() else 'invalid body'}")
        return await portfolio_error_handler(request, error)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", error=str(exc), exc_info=exc)
        error = InternalError(f"Unexpected error: {type(exc).__name__}")
        return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})

    @app.post("/chat")
    def chat(payload: Optional[dict[str, Any]] = Body(default=None)):
        message = (payload or {}).get("message")
        outcome = conversation.chat(message)
        return {
            "reply": outcome.reply,
            "chatHistory": outcome.chat_history,
            "userProfile": outcome.user_profile,
        }

    @app.get("/history")
    def history():
        return conversation.history()

    @app.get("/profile")
    def profile():
        return conversation.profile()

    @app.get("/reset")
    def reset():
        conversation.reset()
        return {"message": "Files reset successfully"}

    @app.post("/promptBackground")
    def prompt_background():
        outcome = regeneration.regenerate()
        return {"message": outcome.message, "previewUrl": outcome.preview_url}

    @app.get("/get-site-code")
    @app.get("/get-portfolio-code")
    def get_site_code():
        return regeneration.site_code().as_files()

    @app.get("/portfolio/{filename}")
    def portfolio_file(filename: str):
        if filename not in SITE_FILENAMES.values():
            raise DocumentNotFound(f"No such site file: {filename}")
        files = regeneration.site_code().as_files()
        suffix = filename[filename.rfind("."):]
        return Response(content=files[filename], media_type=MEDIA_TYPES[suffix])

    @app.post("/upload-image")
    def upload_image(
        images: Optional[list[UploadFile]] = File(default=None),
        text: str = Form(default=""),
    ):
        batch = []
        for upload in images or []:
            data = upload.file.read()
            if not upload.filename and not data:
                # Browsers send an empty part for an untouched file input
                continue
            batch.append(
                UploadedImage(
                    original_name=upload.filename or "image",
                    mime_type=upload.content_type or "",
                    data=data,
                )
            )

        outcome = ingestion.ingest(batch, text)
        return {"success": outcome.success, "images": outcome.images, "message": outcome.message}

    logger.info("App created", data_dir=str(store.data_dir), site_dir=str(store.site_dir))
    return app
