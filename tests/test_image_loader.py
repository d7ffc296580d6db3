"""Tests for local and remote image resolution."""

import asyncio
import os

import httpx
import pytest
from PIL import Image  # type: ignore

from shirt_designer.errors import LoadError
from shirt_designer.image_loader import ImageLoader, is_remote


@pytest.mark.parametrize("reference, expected", [
    ("http://cdn.example.com/a.png", True),
    ("HTTPS://cdn.example.com/a.png", True),
    ("/uploads/a.png", False),
    ("uploads/a.png", False),
    ("httpfoo.png", False),
    ("ftp://example.com/a.png", False),
])
def test_is_remote(reference, expected):
    assert is_remote(reference) is expected


def test_local_reference_resolves_under_root(asset_root):
    loader = ImageLoader(str(asset_root))
    for reference in ("/uploads/red.png", "uploads/red.png", "//uploads/red.png"):
        img = asyncio.run(loader.load(reference))
        assert img.mode == "RGBA"
        assert img.size == (40, 40)
        assert img.getpixel((0, 0)) == (255, 0, 0, 255)
    assert loader.resolve_local("/uploads/red.png") == os.path.realpath(asset_root / "uploads" / "red.png")


@pytest.mark.parametrize("reference", [
    "/uploads/missing.png",
    "/uploads/broken.png",
    "../secret.png",
    "/uploads/../../secret.png",
    "/",
    "/uploads/red\x00.png",
])
def test_local_failures_raise_load_error(asset_root, reference):
    loader = ImageLoader(str(asset_root))
    with pytest.raises(LoadError):
        asyncio.run(loader.load(reference))


def _mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_remote_reference_is_fetched(asset_root):
    png = (asset_root / "uploads" / "blue.png").read_bytes()
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=png, headers={"content-type": "image/png"})

    async def run():
        async with _mock_client(handler) as client:
            return await ImageLoader(str(asset_root), client=client).load("https://cdn.example.com/blue.png")

    img = asyncio.run(run())
    assert seen == ["https://cdn.example.com/blue.png"]
    assert img.getpixel((5, 5)) == (0, 0, 255, 255)


@pytest.mark.parametrize("response", [
    httpx.Response(404, content=b"missing"),
    httpx.Response(500, content=b"boom"),
    httpx.Response(200, content=b"<html>not an image</html>"),
])
def test_remote_failures_raise_load_error(asset_root, response):
    async def run():
        async with _mock_client(lambda request: response) as client:
            return await ImageLoader(str(asset_root), client=client).load("http://cdn.example.com/x.png")

    with pytest.raises(LoadError):
        asyncio.run(run())


def test_remote_network_error_raises_load_error(asset_root):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        async with _mock_client(handler) as client:
            return await ImageLoader(str(asset_root), client=client).load("http://unreachable.invalid/x.png")

    with pytest.raises(LoadError):
        asyncio.run(run())


def test_oversized_local_image_raises_load_error(asset_root, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(LoadError):
        asyncio.run(ImageLoader(str(asset_root)).load("/uploads/quadrants.png"))
