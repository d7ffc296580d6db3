"""Style normalization for design layers.

Editor styles arrive as loosely typed dictionaries (``{"fontSize": "32px",
"opacity": "0.4"}``). The functions here turn them into typed, fully
defaulted values in one place so the drawing code never has to ask
"what if this field is missing or garbage".

Numbers are read the way a browser's ``parseInt``/``parseFloat`` reads them:
a leading number is accepted and any trailing unit is ignored.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from PIL import ImageColor  # type: ignore[import]

DEFAULT_FONT_SIZE = 24
DEFAULT_FONT_FAMILY = "Arial"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_BACKGROUND = "#ffffff"
DEFAULT_IMAGE_WIDTH = 200
DEFAULT_IMAGE_HEIGHT = 200
DEFAULT_OPACITY = 1.0

# Upper bounds keep a hostile style from allocating huge buffers.
MAX_FONT_SIZE = 1000
MAX_IMAGE_DIMENSION = 4000

TEXT_ALIGNMENTS = ("left", "center", "right")

RGB = Tuple[int, int, int]

_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_ROTATE_RE = re.compile(r"rotate\((\d+)deg\)")


@dataclass(frozen=True)
class ResolvedTextStyle:
    font_size: int = DEFAULT_FONT_SIZE
    font_family: str = DEFAULT_FONT_FAMILY
    color: RGB = (0, 0, 0)
    text_align: str = "left"
    stroke: bool = False
    shadow: bool = False


@dataclass(frozen=True)
class ResolvedImageStyle:
    width: int = DEFAULT_IMAGE_WIDTH
    height: int = DEFAULT_IMAGE_HEIGHT
    opacity: float = DEFAULT_OPACITY
    rotation: int = 0


def parse_int(value: Any) -> Optional[int]:
    """Leading integer of ``value`` or None (``"24px"`` -> 24, ``"abc"`` -> None)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    m = _INT_RE.match(value)
    return int(m.group(1)) if m else None


def parse_float(value: Any) -> Optional[float]:
    """Leading float of ``value`` or None; NaN and infinities count as unparseable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        m = _FLOAT_RE.match(value)
        if not m:
            return None
        result = float(m.group(1))
    else:
        return None
    return result if math.isfinite(result) else None


def _positive_int(value: Any, default: int, ceiling: int) -> int:
    parsed = parse_int(value)
    if parsed is None or parsed <= 0:
        return default
    return min(parsed, ceiling)


def resolve_color(value: Any, default: str) -> RGB:
    """Any colour Pillow understands, else ``default``."""
    if isinstance(value, str) and value.strip():
        try:
            return ImageColor.getrgb(value.strip())[:3]
        except ValueError:
            pass
    return ImageColor.getrgb(default)[:3]


def resolve_font_family(value: Any) -> str:
    # CSS allows a fallback list: use the first family, unquoted.
    if not isinstance(value, str):
        return DEFAULT_FONT_FAMILY
    first = value.split(",")[0].strip().strip("'\"").strip()
    return first or DEFAULT_FONT_FAMILY


def _effect_enabled(value: Any) -> bool:
    if value is None:
        return False
    text = str(value).strip()
    return bool(text) and text != "none"


def parse_rotation(transform: Any) -> int:
    """Degrees from a ``rotate(<n>deg)`` token; anything else means no rotation."""
    if not isinstance(transform, str):
        return 0
    m = _ROTATE_RE.search(transform)
    return int(m.group(1)) if m else 0


def resolve_text_style(raw: Mapping[str, Any]) -> ResolvedTextStyle:
    align = raw.get("textAlign")
    return ResolvedTextStyle(
        font_size=_positive_int(raw.get("fontSize"), DEFAULT_FONT_SIZE, MAX_FONT_SIZE),
        font_family=resolve_font_family(raw.get("fontFamily")),
        color=resolve_color(raw.get("color"), DEFAULT_TEXT_COLOR),
        text_align=align if align in TEXT_ALIGNMENTS else "left",
        stroke=_effect_enabled(raw.get("textStroke")),
        shadow=_effect_enabled(raw.get("textShadow")),
    )


def resolve_image_style(raw: Mapping[str, Any]) -> ResolvedImageStyle:
    opacity = parse_float(raw.get("opacity"))
    if opacity is None or not 0.0 <= opacity <= 1.0:
        opacity = DEFAULT_OPACITY
    return ResolvedImageStyle(
        width=_positive_int(raw.get("width"), DEFAULT_IMAGE_WIDTH, MAX_IMAGE_DIMENSION),
        height=_positive_int(raw.get("height"), DEFAULT_IMAGE_HEIGHT, MAX_IMAGE_DIMENSION),
        opacity=opacity,
        rotation=parse_rotation(raw.get("transform")),
    )
