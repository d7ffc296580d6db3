"""Error taxonomy for the shirt designer backend.

The compositor raises these and never deals with HTTP status codes; the
FastAPI layer in ``shirt_designer.main`` maps them to responses.
"""

from __future__ import annotations


class ShirtDesignerError(Exception):
    """Base application error"""


class ConfigError(ShirtDesignerError):
    """Missing or invalid configuration"""


class ValidationError(ShirtDesignerError):
    """Design document is malformed (e.g. ``elements`` is not a list)"""


class RenderError(ShirtDesignerError):
    """A layer could not be rendered; aborts the whole export"""


class LoadError(RenderError):
    """An image reference could not be fetched, read or decoded"""


class ExportIOError(ShirtDesignerError, OSError):
    """Encoding the canvas or delivering the bytes to the sink failed"""


class NotFoundError(ShirtDesignerError):
    """Requested record does not exist in a store"""
