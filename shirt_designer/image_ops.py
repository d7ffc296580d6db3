"""Image manipulation utilities.

This module wraps the Pillow operations the compositor needs: building the
shirt canvas, drawing a styled text run, preparing an image layer
(scale, opacity, rotation) and encoding the result. Everything here works on
images owned by the caller; nothing is cached except font objects, which are
immutable.
"""

from __future__ import annotations

import functools
import logging
import os
import re
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont, UnidentifiedImageError  # type: ignore[import]

from shirt_designer.errors import ExportIOError

logger = logging.getLogger(__name__)

CANVAS_SIZE: Tuple[int, int] = (800, 800)
CANVAS_CENTER: Tuple[int, int] = (CANVAS_SIZE[0] // 2, CANVAS_SIZE[1] // 2)

# Outline of the printable area: a 2px line centred on (50,50)-(750,750).
BORDER_COLOR = (204, 204, 204)
BORDER_WIDTH = 2
BORDER_BOX = (49, 49, 750, 750)

SHADOW_COLOR = (0, 0, 0)
SHADOW_ALPHA = 0.5
SHADOW_BLUR = 4
SHADOW_OFFSET = (2, 2)
STROKE_COLOR = (0, 0, 0)
STROKE_WIDTH = 1

# Horizontal alignment -> Pillow anchor on the alphabetic baseline.
_ANCHORS = {"left": "ls", "center": "ms", "right": "rs"}
_SAFE_FAMILY = re.compile(r"^[\w][\w .-]*$")
_LINE_BREAKS = re.compile(r"[\r\n\t\f\v]")


def open_image(data: bytes) -> Image.Image:
    """Open raw image bytes with Pillow, fully decode and convert to RGBA."""
    img = Image.open(BytesIO(data))
    img.load()
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return img


def is_image(data: bytes) -> bool:
    """True when Pillow can identify and decode ``data``."""
    try:
        open_image(data)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return False
    return True


def new_canvas(background: Tuple[int, int, int]) -> Image.Image:
    """Fresh shirt canvas: background fill first, then the printable-area border."""
    canvas = Image.new("RGB", CANVAS_SIZE, background)
    ImageDraw.Draw(canvas).rectangle(BORDER_BOX, outline=BORDER_COLOR, width=BORDER_WIDTH)
    return canvas


@functools.lru_cache(maxsize=64)
def load_font(family: str, size: int, font_dir: Optional[str] = None) -> ImageFont.FreeTypeFont:
    """Load ``<family>.ttf`` at ``size`` px.

    Looks in ``font_dir`` first, then lets FreeType search the system font
    path, and finally falls back to Pillow's bundled font at the same size
    so that text always renders at the requested scale.
    """
    candidates = []
    if _SAFE_FAMILY.match(family) and ".." not in family:
        names = [f"{family}.ttf", f"{family.lower()}.ttf"]
        if font_dir:
            candidates.extend(os.path.join(font_dir, n) for n in names)
        candidates.extend(names)
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size=size)
        except OSError:
            continue
    logger.debug("Font %r not found; using bundled default at %dpx", family, size)
    return ImageFont.load_default(size=size)


def _glyph_mask(text: str, xy: Tuple[int, int], font: ImageFont.FreeTypeFont,
                anchor: str, stroke_width: int = 0) -> Image.Image:
    mask = Image.new("L", CANVAS_SIZE, 0)
    ImageDraw.Draw(mask).text(
        xy, text, fill=255, font=font, anchor=anchor,
        stroke_width=stroke_width, stroke_fill=255,
    )
    return mask


def draw_text_run(
    canvas: Image.Image,
    text: str,
    xy: Tuple[int, int],
    *,
    font: ImageFont.FreeTypeFont,
    align: str,
    color: Tuple[int, int, int],
    stroke: bool = False,
    shadow: bool = False,
) -> None:
    """Draw one line of text with its baseline anchored at ``xy``.

    ``align`` decides which point of the line sits on ``xy`` (start, middle
    or end). The shadow, when enabled, is painted under this run only; the
    stroke is painted before the fill so the fill covers its inner half.
    """
    text = _LINE_BREAKS.sub(" ", text)
    anchor = _ANCHORS.get(align, "ls")

    fill_mask = _glyph_mask(text, xy, font, anchor)
    stroke_mask = _glyph_mask(text, xy, font, anchor, STROKE_WIDTH) if stroke else None

    if shadow:
        source = stroke_mask if stroke_mask is not None else fill_mask
        blurred = source.filter(ImageFilter.GaussianBlur(SHADOW_BLUR / 2))
        blurred = blurred.point(lambda p: round(p * SHADOW_ALPHA))
        canvas.paste(SHADOW_COLOR, SHADOW_OFFSET, blurred)

    if stroke_mask is not None:
        canvas.paste(STROKE_COLOR, (0, 0), stroke_mask)
    canvas.paste(color, (0, 0), fill_mask)


def prepare_layer_image(
    img: Image.Image,
    size: Tuple[int, int],
    opacity: float = 1.0,
    rotation: int = 0,
) -> Image.Image:
    """Scale ``img`` to ``size``, apply opacity and rotate clockwise about its centre.

    Returns a new RGBA image; ``img`` is left untouched. With rotation the
    result is enlarged to hold the rotated box, its centre unchanged.
    """
    layer = img.convert("RGBA").resize(size, Image.LANCZOS)
    if opacity < 1.0:
        alpha = layer.getchannel("A").point(lambda a: round(a * opacity))
        layer.putalpha(alpha)
    if rotation % 360:
        # Pillow rotates counter-clockwise; screen rotation is clockwise.
        layer = layer.rotate(-rotation, resample=Image.BICUBIC, expand=True)
    return layer


def paste_centered(canvas: Image.Image, layer: Image.Image,
                   center: Tuple[int, int] = CANVAS_CENTER) -> None:
    """Alpha-composite ``layer`` onto ``canvas`` with its centre on ``center``."""
    x = center[0] - layer.width // 2
    y = center[1] - layer.height // 2
    canvas.paste(layer, (x, y), layer)


def encode_png(image: Image.Image) -> bytes:
    """Serialize ``image`` to PNG bytes."""
    buffer = BytesIO()
    try:
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise ExportIOError(f"PNG encoding failed: {e}") from e
    return buffer.getvalue()
