"""Shirt designer backend.

This package renders t-shirt design documents (stacks of text and image
layers) into PNG exports and serves the surrounding API: uploads, saved
designs and the export endpoint. See individual modules for details;
``shirt_designer.compositor`` holds the rendering pipeline.
"""

from shirt_designer.compositor import Compositor, ExportResult
from shirt_designer.image_loader import ImageLoader
from shirt_designer.models import DesignDocument, ImageLayer, TextLayer

__all__ = [
    "Compositor",
    "DesignDocument",
    "ExportResult",
    "ImageLayer",
    "ImageLoader",
    "TextLayer",
]
