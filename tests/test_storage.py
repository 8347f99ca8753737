"""
Tests for the image store adapters.
Cloudinary calls go through httpx.MockTransport; nothing leaves the process.
"""

import hashlib

import httpx
import pytest
from cloudinary.utils import api_sign_request

from inspiration_gallery.errors import UpstreamError
from inspiration_gallery.storage import (
    CloudinaryImageStore,
    NullImageStore,
    build_image_store,
)
from tests.conftest import make_settings


def _store(handler) -> CloudinaryImageStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CloudinaryImageStore(
        cloud_name="demo",
        api_key="key123",
        api_secret="shh",
        folder="inspiration_gallery",
        client=client,
    )


class TestBuildImageStore:

    def test_unconfigured_uses_null_store(self, tmp_path):
        store = build_image_store(make_settings(tmp_path / "t.db"))
        assert isinstance(store, NullImageStore)
        assert store.is_configured is False

    def test_partial_credentials_use_null_store(self, tmp_path):
        settings = make_settings(tmp_path / "t.db", CLOUDINARY_CLOUD_NAME="demo", CLOUDINARY_API_KEY="k")
        assert isinstance(build_image_store(settings), NullImageStore)

    @pytest.mark.asyncio
    async def test_configured_uses_cloudinary(self, tmp_path):
        settings = make_settings(
            tmp_path / "t.db",
            CLOUDINARY_CLOUD_NAME="demo",
            CLOUDINARY_API_KEY="k",
            CLOUDINARY_API_SECRET="s",
        )
        store = build_image_store(settings)
        assert isinstance(store, CloudinaryImageStore)
        assert store.is_configured is True
        await store.close()


@pytest.mark.asyncio
class TestNullImageStore:

    async def test_upload_raises(self):
        with pytest.raises(UpstreamError):
            await NullImageStore().upload(b"img", "a.png")


@pytest.mark.asyncio
class TestCloudinaryImageStore:

    async def test_upload_returns_secure_url(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.content
            return httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/a.png"})

        store = _store(handler)
        url = await store.upload(b"PNGDATA", "a.png", content_type="image/png")

        assert url == "https://res.cloudinary.com/demo/a.png"
        assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/auto/upload"
        assert b"PNGDATA" in seen["body"]
        assert b"inspiration_gallery" in seen["body"]
        assert b"key123" in seen["body"]
        # The secret is only used for signing
        assert b"shh" not in seen["body"]
        await store.close()

    async def test_signature_matches_sdk(self):
        store = _store(lambda request: httpx.Response(200, json={}))
        params = {"timestamp": "1700000000", "folder": "f"}
        assert store.sign(params) == api_sign_request(params, "shh")
        # Sorted key=value pairs joined by "&", secret appended, SHA-1
        expected = hashlib.sha1(b"folder=f&timestamp=1700000000shh").hexdigest()
        assert store.sign(params) == expected
        await store.close()

    async def test_upload_sends_signature(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content
            return httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/b.png"})

        store = _store(handler)
        await store.upload(b"x", "b.png")

        assert b'name="signature"' in seen["body"]
        assert b'name="timestamp"' in seen["body"]
        await store.close()

    async def test_error_status_raises_upstream_error(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "Invalid Signature"}})

        store = _store(handler)
        with pytest.raises(UpstreamError) as exc_info:
            await store.upload(b"x", "a.png")
        assert exc_info.value.details["reason"] == "Invalid Signature"
        assert exc_info.value.details["status"] == 401
        await store.close()

    async def test_transport_error_raises_upstream_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = _store(handler)
        with pytest.raises(UpstreamError):
            await store.upload(b"x", "a.png")
        await store.close()

    async def test_missing_url_raises_upstream_error(self):
        store = _store(lambda request: httpx.Response(200, json={"public_id": "abc"}))
        with pytest.raises(UpstreamError):
            await store.upload(b"x", "a.png")
        await store.close()
