"""Environment-driven configuration.

Environment variables:
    ASSET_ROOT: Root that local image references resolve against
        (default '.'). A layer ``src`` of ``/uploads/a.png`` is read from
        ``<ASSET_ROOT>/uploads/a.png``.
    UPLOADS_DIR: Where uploaded images are written (default
        '<ASSET_ROOT>/uploads').
    EXPORTS_DIR: Where exported PNGs are written (default
        '<ASSET_ROOT>/exports').
    FONT_DIR: Optional directory searched first for ``<family>.ttf``.
    REMOTE_FETCH_TIMEOUT: Seconds allowed for a remote image fetch (default 15).
    API_TOKENS: Comma separated ``token:user_id`` pairs seeding the identity store.
    CORS_ORIGINS: Comma separated origins, '*' by default.
    LOG_LEVEL: Root log level (default 'INFO').
    PORT: Port used when running the module directly (default 5000).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from shirt_designer.errors import ConfigError


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e


def _parse_tokens(raw: str) -> Dict[str, str]:
    tokens: Dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        token, sep, user_id = pair.partition(":")
        if not sep or not token or not user_id:
            raise ConfigError(f"API_TOKENS entries must look like token:user_id, got {pair!r}")
        tokens[token] = user_id
    return tokens


@dataclass(frozen=True)
class Settings:
    asset_root: str = "."
    uploads_dir: str = "./uploads"
    exports_dir: str = "./exports"
    font_dir: Optional[str] = None
    remote_fetch_timeout: float = 15.0
    api_tokens: Dict[str, str] = field(default_factory=dict)
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"
    port: int = 5000


def load_settings() -> Settings:
    asset_root = os.getenv("ASSET_ROOT", ".")
    origins = tuple(o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip())
    timeout = _get_float("REMOTE_FETCH_TIMEOUT", 15.0)
    if timeout <= 0:
        raise ConfigError("REMOTE_FETCH_TIMEOUT must be positive")

    return Settings(
        asset_root=asset_root,
        uploads_dir=os.getenv("UPLOADS_DIR") or os.path.join(asset_root, "uploads"),
        exports_dir=os.getenv("EXPORTS_DIR") or os.path.join(asset_root, "exports"),
        font_dir=os.getenv("FONT_DIR") or None,
        remote_fetch_timeout=timeout,
        api_tokens=_parse_tokens(os.getenv("API_TOKENS", "")),
        cors_origins=origins or ("*",),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=_get_int("PORT", 5000),
    )
