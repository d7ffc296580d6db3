"""Shared fixtures: an asset root populated with small test images."""

import io

import pytest
from PIL import Image  # type: ignore


def png_bytes(size=(40, 40), color=(255, 0, 0, 255), mode="RGBA"):
    img = Image.new(mode, size, color=color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def quadrant_png(size=200):
    """Square image with red/green/blue/yellow quadrants (TL, TR, BL, BR)."""
    img = Image.new("RGB", (size, size))
    half = size // 2
    img.paste((255, 0, 0), (0, 0, half, half))
    img.paste((0, 255, 0), (half, 0, size, half))
    img.paste((0, 0, 255), (0, half, half, size))
    img.paste((255, 255, 0), (half, half, size, size))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def asset_root(tmp_path):
    """Asset root with an ``uploads`` area holding a few known images."""
    root = tmp_path / "assets"
    uploads = root / "uploads"
    uploads.mkdir(parents=True)
    (uploads / "red.png").write_bytes(png_bytes(color=(255, 0, 0, 255)))
    (uploads / "blue.png").write_bytes(png_bytes(color=(0, 0, 255, 255)))
    (uploads / "quadrants.png").write_bytes(quadrant_png())
    (uploads / "broken.png").write_bytes(b"definitely not a png")
    (tmp_path / "secret.png").write_bytes(png_bytes())
    return root
