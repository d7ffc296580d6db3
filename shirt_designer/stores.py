"""In-memory design, identity and file-owner stores.

All are stand-ins for external services: the app only talks to them
through ``get`` / ``put`` / ``delete`` (plus ``list_for_user`` for designs),
so a database-backed implementation can replace them without touching the
routes.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from shirt_designer.errors import NotFoundError
from shirt_designer.models import DesignRecord


class DesignStore:
    def __init__(self) -> None:
        self._designs: Dict[str, DesignRecord] = {}

    def get(self, design_id: str) -> Optional[DesignRecord]:
        record = self._designs.get(design_id)
        return record.model_copy(deep=True) if record else None

    def put(self, record: DesignRecord) -> DesignRecord:
        self._designs[record.id] = record.model_copy(deep=True)
        return record

    def delete(self, design_id: str) -> DesignRecord:
        try:
            return self._designs.pop(design_id)
        except KeyError:
            raise NotFoundError(f"Design not found: {design_id}") from None

    def list_for_user(self, user_id: str) -> List[DesignRecord]:
        owned = [r.model_copy(deep=True) for r in self._designs.values() if r.user_id == user_id]
        owned.sort(key=lambda r: r.updated_at, reverse=True)
        return owned


class IdentityStore:
    """Maps bearer tokens to user records (``{"id": ...}``)."""

    def __init__(self, tokens: Optional[Dict[str, str]] = None) -> None:
        self._users: Dict[str, Dict[str, str]] = {}
        for token, user_id in (tokens or {}).items():
            self.put(token, {"id": user_id})

    def get(self, token: str) -> Optional[Dict[str, str]]:
        user = self._users.get(token)
        return dict(user) if user else None

    def put(self, token: str, user: Dict[str, str]) -> None:
        if not user.get("id"):
            raise ValueError("user record needs an 'id'")
        self._users[token] = dict(user)

    def delete(self, token: str) -> None:
        self._users.pop(token, None)


class FileOwnerStore:
    """Remembers which user stored each uploaded or exported file URL."""

    def __init__(self) -> None:
        self._owners: Dict[str, str] = {}

    def get(self, url: str) -> Optional[str]:
        return self._owners.get(url)

    def put(self, url: str, user_id: str) -> None:
        self._owners[url] = user_id

    def delete(self, url: str) -> None:
        self._owners.pop(url, None)
