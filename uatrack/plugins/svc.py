"""Service plugin: tracks what a visitor does while opening a support ticket."""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .base import BasePlugin, non_empty

logger = logging.getLogger(__name__)


class Ticket(BaseModel):
    # Unknown keys are ignored so they can never reach the wire.
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Any = None
    subject: Any = None
    description: Any = None
    category: Any = None
    product_id: Any = Field(default=None, alias="productId")
    custom: Any = None


# Ticket attribute -> wire key.
TICKET_KEYS = {
    "id": "svc_ticket_id",
    "subject": "svc_ticket_subject",
    "description": "svc_ticket_description",
    "category": "svc_ticket_category",
    "product_id": "svc_ticket_product_id",
    "custom": "svc_ticket_custom",
}


class SVCPlugin(BasePlugin):
    id = "svc"
    api: ClassVar[Mapping[str, str]] = {
        **BasePlugin.api,
        "setAction": "set_action",
        "setTicket": "set_ticket",
    }

    def __init__(self, options=None):
        super().__init__(options)
        self.action: Optional[str] = None
        self.action_data: dict[str, Any] = {}
        self.ticket: Optional[Ticket] = None

    def set_action(self, action: str, data: Optional[Mapping[str, Any]] = None) -> None:
        self.action = action
        self.action_data = dict(data or {})

    def set_ticket(self, ticket: Mapping[str, Any] | Ticket) -> None:
        if isinstance(ticket, Ticket):
            self.ticket = ticket
            return
        dropped = sorted(set(ticket) - set(TICKET_KEYS) - {"productId"})
        if dropped:
            logger.debug("svc: dropping unknown ticket keys %s", dropped)
        self.ticket = Ticket.model_validate(dict(ticket))

    def materialize(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.action:
            out["svc_action"] = self.action
        if self.action_data:
            out["svc_action_data"] = dict(self.action_data)
        if self.ticket is not None:
            for attr, key in TICKET_KEYS.items():
                value = getattr(self.ticket, attr)
                if non_empty(value):
                    out[key] = value
        return out

    def clear(self) -> None:
        self.action = None
        self.action_data = {}
        self.ticket = None
