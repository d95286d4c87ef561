"""Image asset store.

Holds uploaded images under an opaque ``asset_id`` (``<folder>/<hex>``) and
serves them from ``MEDIA_URL``. Images are normalized to JPEG at a fixed size
on the way in.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps

logger = logging.getLogger("lms_accounts")

# Portraits usually place the face in the upper-middle of the frame.
FACE_CENTERING = (0.5, 0.35)


class AssetStoreError(Exception):
    """The store could not write or remove an asset."""


class InvalidImage(AssetStoreError):
    """The uploaded file is not a decodable image."""


@dataclass(frozen=True)
class StoredAsset:
    """Handle and public address of a stored image."""

    asset_id: str
    url: str


@dataclass(frozen=True)
class ImageTransform:
    """Target size and crop anchor applied to every upload."""

    width: int
    height: int
    centering: tuple[float, float] = FACE_CENTERING


class LocalAssetStore:
    """Asset store backed by a directory that is mounted as static files."""

    def __init__(self, root_dir: str | Path, base_url: str) -> None:
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/")

    def _path_for(self, asset_id: str) -> Path:
        path = (self.root_dir / f"{asset_id}.jpg").resolve()
        if not path.is_relative_to(self.root_dir.resolve()):
            raise AssetStoreError(f"Asset id escapes the store: {asset_id!r}")
        return path

    def url_for(self, asset_id: str) -> str:
        return f"{self.base_url}/{asset_id}.jpg"

    def exists(self, asset_id: str) -> bool:
        return self._path_for(asset_id).exists()

    def upload(self, source: str | Path, folder: str, transform: ImageTransform) -> StoredAsset:
        """Crop/resize ``source`` to ``transform`` and store it as a new JPEG asset."""
        asset_id = f"{folder}/{uuid.uuid4().hex}"
        target = self._path_for(asset_id)

        with self._decode(source) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            fitted = ImageOps.fit(
                img,
                (transform.width, transform.height),
                method=Image.Resampling.LANCZOS,
                centering=transform.centering,
            )

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fitted.save(target, "JPEG", quality=90, optimize=True)
        except OSError as e:
            target.unlink(missing_ok=True)
            raise AssetStoreError(f"Failed to store asset: {e}") from e

        logger.info("Stored asset %s", asset_id)
        return StoredAsset(asset_id=asset_id, url=self.url_for(asset_id))

    @staticmethod
    def _decode(source: str | Path) -> Image.Image:
        """Open and fully decode ``source``; Pillow otherwise reads pixel data lazily."""
        try:
            img = Image.open(source)
        except (OSError, Image.DecompressionBombError) as e:
            raise InvalidImage(str(e)) from e
        try:
            img.load()
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            img.close()
            raise InvalidImage(str(e)) from e
        return img

    def destroy(self, asset_id: str) -> bool:
        """Remove an asset. Returns False if it was already gone."""
        path = self._path_for(asset_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise AssetStoreError(f"Failed to remove asset {asset_id}: {e}") from e
        logger.info("Destroyed asset %s", asset_id)
        return True
