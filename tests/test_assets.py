"""Tests for the image asset store."""

import io
from unittest.mock import patch

import pytest
from PIL import Image

from app.services.assets import AssetStoreError, ImageTransform, InvalidImage, LocalAssetStore


@pytest.fixture(name="store")
def store_fixture(tmp_path) -> LocalAssetStore:
    return LocalAssetStore(tmp_path / "media", "/media/")


def write_image(path, width: int, height: int, mode: str = "RGB") -> None:
    Image.new(mode, (width, height)).save(path, "PNG")


class TestLocalAssetStore:
    def test_upload_resizes_to_transform(self, store: LocalAssetStore, tmp_path):
        source = tmp_path / "portrait.png"
        write_image(source, 300, 900)

        asset = store.upload(source, "lms", ImageTransform(width=250, height=250))
        assert asset.asset_id.startswith("lms/")
        assert asset.url == f"/media/{asset.asset_id}.jpg"
        with Image.open(store.root_dir / f"{asset.asset_id}.jpg") as img:
            assert img.size == (250, 250)
            assert img.mode == "RGB"

    def test_upload_converts_transparent_images(self, store: LocalAssetStore, tmp_path):
        source = tmp_path / "logo.png"
        write_image(source, 64, 64, mode="RGBA")

        asset = store.upload(source, "lms", ImageTransform(width=32, height=32))
        assert store.exists(asset.asset_id)

    def test_upload_rejects_non_images(self, store: LocalAssetStore, tmp_path):
        source = tmp_path / "fake.png"
        source.write_bytes(b"plain text")

        with pytest.raises(InvalidImage):
            store.upload(source, "lms", ImageTransform(width=250, height=250))
        assert not any((store.root_dir / "lms").glob("*"))

    def test_upload_rejects_truncated_images(self, store: LocalAssetStore, tmp_path):
        """The header parses but the pixel data stops short."""
        whole = tmp_path / "whole.png"
        write_image(whole, 400, 400)
        data = whole.read_bytes()
        source = tmp_path / "truncated.png"
        source.write_bytes(data[: len(data) // 2])

        with pytest.raises(InvalidImage):
            store.upload(source, "lms", ImageTransform(width=250, height=250))
        assert not any(store.root_dir.rglob("*.jpg"))

    def test_save_failure_is_a_store_error(self, store: LocalAssetStore, tmp_path):
        source = tmp_path / "a.png"
        write_image(source, 10, 10)

        with patch.object(Image.Image, "save", side_effect=OSError("No space left on device")):
            with pytest.raises(AssetStoreError) as exc_info:
                store.upload(source, "lms", ImageTransform(width=10, height=10))
        assert not isinstance(exc_info.value, InvalidImage)

    def test_each_upload_gets_a_new_id(self, store: LocalAssetStore, tmp_path):
        source = tmp_path / "a.png"
        write_image(source, 10, 10)
        transform = ImageTransform(width=10, height=10)
        assert store.upload(source, "lms", transform).asset_id != store.upload(source, "lms", transform).asset_id

    def test_destroy(self, store: LocalAssetStore, tmp_path):
        source = tmp_path / "a.png"
        write_image(source, 10, 10)
        asset = store.upload(source, "lms", ImageTransform(width=10, height=10))

        assert store.destroy(asset.asset_id) is True
        assert not store.exists(asset.asset_id)
        assert store.destroy(asset.asset_id) is False

    def test_asset_ids_cannot_escape_root(self, store: LocalAssetStore):
        with pytest.raises(AssetStoreError):
            store.destroy("../../etc/passwd")


def test_jpeg_source_accepted(store: LocalAssetStore, tmp_path):
    buf = io.BytesIO()
    Image.new("RGB", (500, 200), (10, 20, 30)).save(buf, "JPEG")
    source = tmp_path / "wide.jpg"
    source.write_bytes(buf.getvalue())

    asset = store.upload(source, "lms", ImageTransform(width=250, height=250))
    with Image.open(store.root_dir / f"{asset.asset_id}.jpg") as img:
        assert img.size == (250, 250)
