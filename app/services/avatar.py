"""Avatar lifecycle: staging uploads, storing them and releasing old assets."""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from app.config import get_settings
from app.errors import UploadFailed
from app.services.assets import AssetStoreError, ImageTransform, InvalidImage, LocalAssetStore, StoredAsset

logger = logging.getLogger("lms_accounts")

AVATAR_FOLDER = "lms"
AVATAR_TRANSFORM = ImageTransform(width=250, height=250)
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


class AvatarService:
    """Coordinates avatar uploads against the asset store."""

    def __init__(self, store: LocalAssetStore, tmp_dir: str | Path | None = None, max_bytes: int | None = None) -> None:
        settings = get_settings()
        self.store = store
        self.tmp_dir = Path(tmp_dir if tmp_dir is not None else settings.UPLOAD_TMP_DIR)
        self.max_bytes = max_bytes if max_bytes is not None else settings.MAX_AVATAR_SIZE_MB * 1024 * 1024

    def validate_upload_metadata(self, filename: str, content_type: str | None) -> str | None:
        """Validate upload file metadata (extension + MIME). Returns error message or None if valid."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            return f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        if content_type and not content_type.startswith("image/") and content_type != "application/octet-stream":
            return f"Invalid content type '{content_type}'. Must be an image."
        return None

    @asynccontextmanager
    async def staged(self, upload: UploadFile) -> AsyncIterator[Path]:
        """Stream the upload to a temporary file and remove it on every exit path."""
        error = self.validate_upload_metadata(upload.filename or "", upload.content_type)
        if error:
            raise UploadFailed(error, status_code=400)

        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        path = self.tmp_dir / f"{uuid.uuid4()}{Path(upload.filename or '').suffix.lower()}"
        size = 0
        chunk_size = 1024 * 64
        try:
            with open(path, "wb") as f:
                while True:
                    chunk = await upload.read(chunk_size)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise UploadFailed(
                            f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB",
                            status_code=400,
                        )
                    f.write(chunk)
            yield path
        finally:
            path.unlink(missing_ok=True)

    async def upload(self, upload: UploadFile) -> StoredAsset:
        """Store an uploaded avatar and return its asset handle. Raises UploadFailed."""
        async with self.staged(upload) as path:
            try:
                return await run_in_threadpool(self.store.upload, path, AVATAR_FOLDER, AVATAR_TRANSFORM)
            except InvalidImage as e:
                raise UploadFailed("Uploaded file is not a valid image", status_code=400) from e
            except AssetStoreError as e:
                logger.error("Avatar upload failed: %s", e)
                raise UploadFailed() from e

    def release(self, asset_id: str | None) -> None:
        """Destroy an avatar asset. The placeholder avatar has no asset and is skipped."""
        if not asset_id:
            return
        self.store.destroy(asset_id)

    def release_quietly(self, asset_id: str | None) -> None:
        """Release an asset that is no longer referenced, logging instead of raising."""
        try:
            self.release(asset_id)
        except AssetStoreError as e:
            logger.warning("Failed to delete orphaned avatar %s: %s", asset_id, e)


_avatar_service: AvatarService | None = None


def get_avatar_service() -> AvatarService:
    """Get singleton avatar service instance."""
    global _avatar_service
    if _avatar_service is None:
        settings = get_settings()
        _avatar_service = AvatarService(LocalAssetStore(settings.MEDIA_DIR, settings.MEDIA_URL))
    return _avatar_service
