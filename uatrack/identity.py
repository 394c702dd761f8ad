from __future__ import annotations

import logging
import re
import uuid
from typing import Optional

from .storage import MemoryStorage, Storage

logger = logging.getLogger(__name__)

VISITOR_ID_KEY = "visitorId"

_GUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def new_guid() -> str:
    return str(uuid.uuid4())


def is_guid(value: Optional[str]) -> bool:
    return bool(value) and bool(_GUID_RE.match(value.lower()))


class IdentityStore:
    """
    Visitor, client and page identifiers for one client.

    The visitor id is durable through `storage`; the page id lives as long as
    this object; the client id is whatever the collection endpoint last
    answered with.
    """

    def __init__(self, storage: Optional[Storage] = None, page_id: Optional[str] = None):
        self.storage: Storage = storage if storage is not None else MemoryStorage()
        self.page_id = page_id or new_guid()
        self._visitor_id: Optional[str] = None
        self._client_id: Optional[str] = None

    def get_visitor_id(self) -> str:
        if self._visitor_id is not None:
            return self._visitor_id

        stored = self.storage.get_item(VISITOR_ID_KEY)
        if is_guid(stored):
            self._visitor_id = stored.lower()
            return self._visitor_id

        if stored:
            logger.warning("stored visitor id %r is malformed, generating a new one", stored)
        self._visitor_id = new_guid()
        self.storage.set_item(VISITOR_ID_KEY, self._visitor_id)
        return self._visitor_id

    @property
    def visitor_id(self) -> str:
        return self.get_visitor_id()

    def get_client_id(self) -> Optional[str]:
        return self._client_id

    @property
    def client_id(self) -> Optional[str]:
        return self._client_id

    def remember_client_id(self, client_id: Optional[str]) -> None:
        if client_id:
            self._client_id = str(client_id)

    def fields(self) -> dict[str, str]:
        return {"pid": self.page_id, "cid": self.get_visitor_id()}

    def forget_client_id(self) -> None:
        self._client_id = None

    def clear(self) -> None:
        """Forget everything, including the stored visitor id."""
        self._visitor_id = None
        self._client_id = None
        self.storage.remove_item(VISITOR_ID_KEY)
