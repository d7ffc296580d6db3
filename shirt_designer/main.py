"""FastAPI application for the shirt designer.

Run with::

    uvicorn shirt_designer.main:app --port 5000

or ``python -m shirt_designer.main``. ``app`` is built on first access from
the environment, with logging configured; tests call :func:`create_app`
directly.
"""

from __future__ import annotations

import logging
import os
import re
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from shirt_designer import image_ops
from shirt_designer.compositor import Compositor
from shirt_designer.config import Settings, load_settings
from shirt_designer.errors import ExportIOError, NotFoundError, RenderError, ValidationError
from shirt_designer.image_loader import ImageLoader
from shirt_designer.logging_setup import setup_logging
from shirt_designer.models import (
    DesignCreate,
    DesignRecord,
    DesignUpdate,
    ExportRequest,
    ExportResponse,
    UploadResponse,
)
from shirt_designer.storage import FileSystemSink, delete_file, save_bytes
from shirt_designer.stores import DesignStore, FileOwnerStore, IdentityStore

logger = logging.getLogger(__name__)

UPLOADS_URL = "/uploads"
EXPORTS_URL = "/exports"
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _upload_name(original: Optional[str]) -> str:
    base = os.path.basename((original or "").replace("\\", "/"))
    base = _UNSAFE_NAME_CHARS.sub("_", base).strip("._") or "image"
    return f"{uuid.uuid4()}-{base}"


def current_user(request: Request) -> Dict[str, str]:
    """Resolve ``Authorization: Bearer <token>`` through the identity store."""
    header = request.headers.get("authorization") or ""
    parts = header.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token.")
    user = request.app.state.identity_store.get(token)
    if not user:
        raise HTTPException(status_code=403, detail="Invalid token.")
    return user


def create_app(
    settings: Optional[Settings] = None,
    *,
    design_store: Optional[DesignStore] = None,
    identity_store: Optional[IdentityStore] = None,
    loader: Optional[ImageLoader] = None,
) -> FastAPI:
    settings = settings or load_settings()

    # Static mounts need their directories to exist up front.
    os.makedirs(settings.uploads_dir, exist_ok=True)
    os.makedirs(settings.exports_dir, exist_ok=True)

    app = FastAPI(title="Shirt Designer")
    app.state.settings = settings
    app.state.design_store = design_store or DesignStore()
    app.state.identity_store = identity_store or IdentityStore(settings.api_tokens)
    app.state.file_owners = FileOwnerStore()
    app.state.compositor = Compositor(
        loader or ImageLoader(settings.asset_root, settings.remote_fetch_timeout),
        font_dir=settings.font_dir,
    )
    app.state.export_sink = FileSystemSink(settings.exports_dir, EXPORTS_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount(UPLOADS_URL, StaticFiles(directory=settings.uploads_dir), name="uploads")
    app.mount(EXPORTS_URL, StaticFiles(directory=settings.exports_dir), name="exports")
    logger.info("[startup] Serving uploads from %s and exports from %s",
                settings.uploads_dir, settings.exports_dir)

    # --- Middleware ---
    @app.middleware("http")
    async def add_cache_control_header(request: Request, call_next):
        response = await call_next(request)
        # Stored names carry a uuid, so their content never changes.
        path = request.url.path
        if response.status_code == 200 and (path.startswith(UPLOADS_URL + "/") or path.startswith(EXPORTS_URL + "/")):
            response.headers["Cache-Control"] = "public, max-age=604800, immutable"
        return response

    # --- Error mapping ---
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"message": "Invalid design", "error": str(exc)})

    @app.exception_handler(RenderError)
    async def render_error_handler(request: Request, exc: RenderError):
        logger.warning("Export failed: %s", exc)
        return JSONResponse(status_code=502, content={"message": "Export failed", "error": str(exc)})

    @app.exception_handler(ExportIOError)
    async def export_io_error_handler(request: Request, exc: ExportIOError):
        logger.error("Export could not be stored: %s", exc)
        return JSONResponse(status_code=500, content={"message": "Export failed", "error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"message": "Design not found"})

    def _owned_design(design_id: str, user: Dict[str, str]) -> DesignRecord:
        record = app.state.design_store.get(design_id)
        if record is None or record.user_id != user["id"]:
            raise NotFoundError(design_id)
        return record

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # --- Uploads ---
    @app.post("/api/upload", response_model=UploadResponse)
    async def upload_image(
        image: Optional[UploadFile] = File(None),
        user: Dict[str, str] = Depends(current_user),
    ):
        raw_data = await image.read() if image else None
        if not raw_data:
            raise HTTPException(status_code=400, detail="No file uploaded")
        if not image_ops.is_image(raw_data):
            raise HTTPException(status_code=400, detail="Uploaded file is not an image")
        name = _upload_name(image.filename)
        image_url = save_bytes(settings.uploads_dir, name, raw_data, UPLOADS_URL)
        app.state.file_owners.put(image_url, user["id"])
        logger.info("User %s uploaded %s (%d bytes)", user["id"], image_url, len(raw_data))
        return UploadResponse(imageUrl=image_url)

    # --- Designs ---
    @app.post("/api/designs", status_code=201)
    async def create_design(body: DesignCreate, user: Dict[str, str] = Depends(current_user)):
        now = _utcnow()
        record = DesignRecord(
            id=uuid.uuid4().hex,
            user_id=user["id"],
            title=body.title,
            design_data=body.designData,
            thumbnail=body.thumbnail,
            created_at=now,
            updated_at=now,
        )
        app.state.design_store.put(record)
        return {
            "message": "Design saved successfully",
            "design": {"id": record.id, "title": record.title, "createdAt": record.created_at.isoformat()},
        }

    @app.get("/api/designs")
    async def list_designs(user: Dict[str, str] = Depends(current_user)) -> List[Dict]:
        return [r.summary() for r in app.state.design_store.list_for_user(user["id"])]

    @app.get("/api/designs/{design_id}")
    async def get_design(design_id: str, user: Dict[str, str] = Depends(current_user)):
        return _owned_design(design_id, user).to_api()

    @app.put("/api/designs/{design_id}")
    async def update_design(design_id: str, body: DesignUpdate, user: Dict[str, str] = Depends(current_user)):
        record = _owned_design(design_id, user)
        changes = {"updated_at": _utcnow()}
        if body.title is not None:
            changes["title"] = body.title
        if body.designData is not None:
            changes["design_data"] = body.designData
        if body.thumbnail is not None:
            changes["thumbnail"] = body.thumbnail
        record = app.state.design_store.put(record.model_copy(update=changes))
        return {"message": "Design updated successfully", "design": record.to_api()}

    @app.delete("/api/designs/{design_id}")
    async def delete_design(design_id: str, user: Dict[str, str] = Depends(current_user)):
        record = _owned_design(design_id, user)
        app.state.design_store.delete(design_id)
        thumbnail = record.thumbnail
        # Only files this user stored through the API are removed.
        if thumbnail and app.state.file_owners.get(thumbnail) == user["id"]:
            removed = (delete_file(settings.uploads_dir, UPLOADS_URL, thumbnail)
                       or delete_file(settings.exports_dir, EXPORTS_URL, thumbnail))
            app.state.file_owners.delete(thumbnail)
            if not removed:
                logger.info("Thumbnail %s for design %s was already gone", thumbnail, design_id)
        elif thumbnail:
            logger.info("Leaving thumbnail %s of design %s in place: not stored by %s",
                        thumbnail, design_id, user["id"])
        return {"message": "Design deleted successfully"}

    # --- Export ---
    @app.post("/api/export/png", response_model=ExportResponse)
    async def export_png(body: ExportRequest, user: Dict[str, str] = Depends(current_user)):
        result = await app.state.compositor.export(
            body.designData, app.state.export_sink, body.shirtColor
        )
        app.state.file_owners.put(result.url, user["id"])
        return ExportResponse(downloadUrl=result.url)

    return app


_app: Optional[FastAPI] = None


def get_app() -> FastAPI:
    """The environment-configured application, built once with logging set up."""
    global _app
    if _app is None:
        settings = load_settings()
        setup_logging(settings.log_level)
        _app = create_app(settings)
    return _app


def __getattr__(name: str):
    # ``shirt_designer.main:app`` without side effects at import time.
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if __name__ == "__main__":
    import uvicorn

    application = get_app()
    uvicorn.run(application, host="0.0.0.0", port=application.state.settings.port)
