"""Server-side rendering of a design document into a PNG.

The compositor paints an 800x800 shirt canvas: background colour, the grey
printable-area border, then every layer in document order so that later
layers cover earlier ones. Each ``render`` call builds and owns its own
canvas; the compositor keeps no state between calls, so concurrent exports
never share pixels.

Layout is deliberately simple:

- every text layer sits on the baseline y=200, anchored at x=100 (left),
  400 (center) or 700 (right);
- every image layer is centred on the canvas.

A text layer without ``content`` or an image layer without ``src`` is
skipped. Any image that cannot be loaded fails the whole export with
:class:`LoadError`; there is no partial output.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from PIL import Image  # type: ignore[import]

from shirt_designer import image_ops
from shirt_designer.image_loader import ImageLoader
from shirt_designer.models import DesignDocument, ImageLayer, TextLayer
from shirt_designer.storage import RasterSink
from shirt_designer.styles import (
    DEFAULT_BACKGROUND,
    resolve_color,
    resolve_image_style,
    resolve_text_style,
)

logger = logging.getLogger(__name__)

TEXT_BASELINE_Y = 200
TEXT_MARGIN_X = 100


@dataclass
class ExportResult:
    filename: str
    url: str
    size: int


def text_anchor_x(align: str, canvas_width: int = image_ops.CANVAS_SIZE[0]) -> int:
    if align == "center":
        return canvas_width // 2
    if align == "right":
        return canvas_width - TEXT_MARGIN_X
    return TEXT_MARGIN_X


def new_export_filename() -> str:
    return f"export-{uuid.uuid4()}.png"


class Compositor:
    def __init__(self, loader: Optional[ImageLoader] = None, font_dir: Optional[str] = None):
        self.loader = loader or ImageLoader()
        self.font_dir = font_dir

    async def render(self, document: Any, background_color: Optional[str] = None) -> Image.Image:
        """Composite ``document`` onto a fresh canvas and return it.

        ``document`` may be a :class:`DesignDocument` or its JSON form.

        Raises:
            ValidationError: ``elements`` is not a list.
            LoadError: an image layer could not be loaded.
        """
        document = DesignDocument.parse(document)
        canvas = image_ops.new_canvas(resolve_color(background_color, DEFAULT_BACKGROUND))

        # Strictly in document order: later layers occlude earlier ones.
        for layer in document.elements:
            if isinstance(layer, TextLayer):
                self._draw_text(canvas, layer)
            elif isinstance(layer, ImageLayer):
                await self._draw_image(canvas, layer)

        return canvas

    def _draw_text(self, canvas: Image.Image, layer: TextLayer) -> None:
        if not layer.content:
            return
        style = resolve_text_style(layer.style)
        font = image_ops.load_font(style.font_family, style.font_size, self.font_dir)
        image_ops.draw_text_run(
            canvas,
            layer.content,
            (text_anchor_x(style.text_align, canvas.width), TEXT_BASELINE_Y),
            font=font,
            align=style.text_align,
            color=style.color,
            stroke=style.stroke,
            shadow=style.shadow,
        )

    async def _draw_image(self, canvas: Image.Image, layer: ImageLayer) -> None:
        if not layer.src:
            return
        style = resolve_image_style(layer.style)
        source = await self.loader.load(layer.src)
        prepared = image_ops.prepare_layer_image(
            source, (style.width, style.height), style.opacity, style.rotation
        )
        image_ops.paste_centered(canvas, prepared, (canvas.width // 2, canvas.height // 2))

    async def render_png(self, document: Any, background_color: Optional[str] = None) -> bytes:
        canvas = await self.render(document, background_color)
        return await asyncio.to_thread(image_ops.encode_png, canvas)

    async def export(
        self,
        document: Any,
        sink: RasterSink,
        background_color: Optional[str] = None,
    ) -> ExportResult:
        """Render, encode and hand the PNG to ``sink`` under a fresh unique name.

        Raises:
            ExportIOError: encoding or delivery failed.
        """
        data = await self.render_png(document, background_color)
        filename = new_export_filename()
        url = await asyncio.to_thread(sink.deliver, data, filename)
        logger.info("Exported design to %s (%d bytes)", url, len(data))
        return ExportResult(filename=filename, url=url, size=len(data))
