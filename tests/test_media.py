# tests/test_media.py
import asyncio
import threading

import cloudinary.uploader
import pytest
from cloudinary.exceptions import BadRequest

from storefront.media import CloudinaryMediaHost, MediaError


def host(**kwargs):
    return CloudinaryMediaHost("demo", "key123", "secret456", **kwargs)


def test_upload_returns_image_ref(monkeypatch):
    seen = {}

    def fake_upload(file, **options):
        seen["file"] = file
        seen["options"] = options
        return {"secure_url": "https://res.cloudinary.com/demo/image/upload/v1/abc.png",
                "public_id": "abc"}

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    ref = asyncio.run(host(folder="products").upload(b"PNGDATA", "front.png", "image/png"))
    assert ref.url == "https://res.cloudinary.com/demo/image/upload/v1/abc.png"
    assert ref.public_id == "abc"
    assert seen["file"] == ("front.png", b"PNGDATA")
    assert seen["options"]["resource_type"] == "auto"
    assert seen["options"]["folder"] == "products"
    assert seen["options"]["cloud_name"] == "demo"
    assert seen["options"]["api_key"] == "key123"


def test_uploads_run_concurrently(monkeypatch):
    # both calls must be in flight at once for the barrier to open
    barrier = threading.Barrier(2, timeout=5)

    def fake_upload(file, **options):
        barrier.wait()
        return {"secure_url": f"https://cdn.test/{file[0]}", "public_id": file[0]}

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)

    async def upload_two():
        media = host()
        return await asyncio.gather(media.upload(b"a", "a.png", "image/png"),
                                    media.upload(b"b", "b.png", "image/png"))

    refs = asyncio.run(upload_two())
    assert [r.public_id for r in refs] == ["a.png", "b.png"]


def test_upload_error_message_is_surfaced(monkeypatch):
    def fake_upload(file, **options):
        raise BadRequest("Invalid image file")

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    with pytest.raises(MediaError, match="Invalid image file"):
        asyncio.run(host().upload(b"x", "bad.png", "image/png"))


def test_destroy_passes_public_id(monkeypatch):
    seen = {}

    def fake_destroy(public_id, **options):
        seen["public_id"] = public_id
        seen["cloud_name"] = options["cloud_name"]
        return {"result": "ok"}

    monkeypatch.setattr(cloudinary.uploader, "destroy", fake_destroy)
    asyncio.run(host().destroy("abc"))
    assert seen == {"public_id": "abc", "cloud_name": "demo"}


def test_destroy_failure_raises(monkeypatch):
    monkeypatch.setattr(cloudinary.uploader, "destroy", lambda public_id, **options: {"result": "error"})
    with pytest.raises(MediaError):
        asyncio.run(host().destroy("abc"))


def test_destroy_api_error_becomes_media_error(monkeypatch):
    def fake_destroy(public_id, **options):
        raise BadRequest("Invalid signature")

    monkeypatch.setattr(cloudinary.uploader, "destroy", fake_destroy)
    with pytest.raises(MediaError, match="Invalid signature"):
        asyncio.run(host().destroy("abc"))
