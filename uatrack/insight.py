"""
Insight client: search analytics for support-agent consoles.

Unlike the command dispatcher, each call builds a complete search, click or
custom event from what the host search interface reports through an
`InsightProvider`, and posts it to the matching collection resource.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Protocol

import httpx

from . import config
from .config import ClientOptions
from .events import CUSTOM_EVENT_TYPES, InsightEvents, SearchPageEvents
from .identity import IdentityStore
from .transport import HttpTransport, NoopTransport, Transport, select_transport

logger = logging.getLogger(__name__)

EventName = SearchPageEvents | InsightEvents


class InsightProvider(Protocol):
    """
    What the search interface knows about the current query.

    `get_origin_context` and `get_facet_state` may be left out; every other
    method is required.
    """

    def get_search_event_request_payload(self) -> dict[str, Any]: ...

    def get_search_uid(self) -> str: ...

    def get_base_metadata(self) -> dict[str, Any]: ...

    def get_pipeline(self) -> str: ...

    def get_origin_level1(self) -> str: ...

    def get_origin_level2(self) -> str: ...

    def get_origin_level3(self) -> str: ...

    def get_language(self) -> str: ...

    def get_is_anonymous(self) -> bool: ...


def _context_from_metadata(metadata: Mapping[str, Any]) -> dict[str, Any]:
    case_context = metadata.get("caseContext") or {}
    return {f"context_{key}": value for key, value in case_context.items() if value}


def case_metadata(metadata: Mapping[str, Any], include_context: bool = True) -> dict[str, Any]:
    """Flatten case metadata the way the collection endpoint expects it."""
    rest = {k: v for k, v in metadata.items() if k not in {"caseContext", "caseId", "caseNumber"}}
    context = _context_from_metadata(metadata)

    out: dict[str, Any] = {}
    if metadata.get("caseId") is not None:
        out["CaseId"] = metadata["caseId"]
    if metadata.get("caseNumber") is not None:
        out["CaseNumber"] = metadata["caseNumber"]
    out.update(rest)
    if context.get("context_Case_Subject"):
        out["CaseSubject"] = context["context_Case_Subject"]
    if include_context:
        out.update(context)
    return out


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


class InsightClient:
    def __init__(
        self,
        options: Optional[Mapping[str, Any] | ClientOptions],
        provider: InsightProvider,
        *,
        identity: Optional[IdentityStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        do_not_track: Callable[[], bool] = config.do_not_track,
    ):
        if isinstance(options, ClientOptions):
            self.options = options
        else:
            self.options = ClientOptions.from_mapping(options or {}, base=ClientOptions.from_env())
        self.provider = provider
        self.identity = identity or IdentityStore()
        self._http_client = http_client
        self.transport: Transport = select_transport(
            self.options.token,
            self.options.endpoint or config.get_endpoint(),
            self.identity,
            enabled=self.options.enable_analytics,
            do_not_track=do_not_track,
            client=http_client,
            timeout_s=self.options.timeout_s,
        )

    def disable(self) -> None:
        if isinstance(self.transport, HttpTransport):
            self.transport.clear()
        self.transport = NoopTransport()

    def enable(self) -> None:
        self.transport = HttpTransport(
            self.options.token,
            self.options.endpoint or config.get_endpoint(),
            self.identity,
            client=self._http_client,
            timeout_s=self.options.timeout_s,
        )

    # --- domain helpers ---
    async def log_interface_load(self, metadata: Optional[Mapping[str, Any]] = None):
        return await self.log_search_event(
            SearchPageEvents.interface_load, case_metadata(metadata) if metadata else None
        )

    async def log_interface_change(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(SearchPageEvents.interface_change, case_metadata(metadata))

    async def log_static_filter_deselect(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(SearchPageEvents.static_filter_deselect, case_metadata(metadata))

    async def log_fetch_more_results(self, metadata: Optional[Mapping[str, Any]] = None):
        meta = case_metadata(metadata) if metadata else {}
        return await self.log_custom_event(SearchPageEvents.pager_scrolling, {**meta, "type": "getMoreResults"})

    async def log_breadcrumb_facet(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(SearchPageEvents.breadcrumb_facet, case_metadata(metadata))

    async def log_breadcrumb_reset_all(self, metadata: Optional[Mapping[str, Any]] = None):
        return await self.log_search_event(
            SearchPageEvents.breadcrumb_reset_all, case_metadata(metadata) if metadata else None
        )

    async def log_facet_select(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(SearchPageEvents.facet_select, case_metadata(metadata))

    async def log_facet_deselect(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(SearchPageEvents.facet_deselect, case_metadata(metadata))

    async def log_facet_update_sort(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(SearchPageEvents.facet_update_sort, case_metadata(metadata))

    async def log_facet_clear_all(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(SearchPageEvents.facet_clear_all, case_metadata(metadata))

    async def log_facet_show_more(self, metadata: Mapping[str, Any]):
        return await self.log_custom_event(SearchPageEvents.facet_show_more, case_metadata(metadata, False))

    async def log_facet_show_less(self, metadata: Mapping[str, Any]):
        return await self.log_custom_event(SearchPageEvents.facet_show_less, case_metadata(metadata, False))

    async def log_query_error(self, metadata: Mapping[str, Any]):
        return await self.log_custom_event(SearchPageEvents.query_error, case_metadata(metadata, False))

    async def log_pager_number(self, metadata: Mapping[str, Any]):
        return await self.log_custom_event(SearchPageEvents.pager_number, case_metadata(metadata, False))

    async def log_pager_next(self, metadata: Mapping[str, Any]):
        return await self.log_custom_event(SearchPageEvents.pager_next, case_metadata(metadata, False))

    async def log_pager_previous(self, metadata: Mapping[str, Any]):
        return await self.log_custom_event(SearchPageEvents.pager_previous, case_metadata(metadata, False))

    async def log_did_you_mean_automatic(self, metadata: Optional[Mapping[str, Any]] = None):
        return await self.log_search_event(
            SearchPageEvents.did_you_mean_automatic, case_metadata(metadata) if metadata else None
        )

    async def log_did_you_mean_click(self, metadata: Optional[Mapping[str, Any]] = None):
        return await self.log_search_event(
            SearchPageEvents.did_you_mean_click, case_metadata(metadata) if metadata else None
        )

    async def log_results_sort(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(SearchPageEvents.results_sort, case_metadata(metadata))

    async def log_searchbox_submit(self, metadata: Optional[Mapping[str, Any]] = None):
        return await self.log_search_event(
            SearchPageEvents.searchbox_submit, case_metadata(metadata) if metadata else None
        )

    async def log_context_changed(self, metadata: Mapping[str, Any]):
        return await self.log_search_event(InsightEvents.context_changed, case_metadata(metadata))

    async def log_expand_to_full_ui(self, metadata: Mapping[str, Any]):
        return await self.log_custom_event(InsightEvents.expand_to_full_ui, case_metadata(metadata))

    async def log_document_open(
        self,
        info: Mapping[str, Any],
        identifier: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        return await self.log_click_event(
            SearchPageEvents.document_open,
            info,
            identifier,
            case_metadata(metadata, False) if metadata else None,
        )

    async def log_copy_to_clipboard(
        self,
        info: Mapping[str, Any],
        identifier: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        return await self.log_click_event(
            SearchPageEvents.copy_to_clipboard,
            info,
            identifier,
            case_metadata(metadata, False) if metadata else None,
        )

    async def log_document_quickview(
        self,
        info: Mapping[str, Any],
        identifier: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        meta = {"documentTitle": info.get("documentTitle"), "documentURL": info.get("documentUrl")}
        if metadata:
            meta = {**case_metadata(metadata, False), **meta}
        return await self.log_click_event(SearchPageEvents.document_quickview, info, identifier, meta)

    async def log_case_attach(
        self,
        info: Mapping[str, Any],
        identifier: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        meta = {
            "documentTitle": info.get("documentTitle"),
            "documentURL": info.get("documentUrl"),
            "resultUriHash": info.get("documentUriHash"),
        }
        if metadata:
            meta = {**case_metadata(metadata, False), **meta}
        return await self.log_click_event(SearchPageEvents.case_attach, info, identifier, meta)

    async def log_case_detach(self, result_uri_hash: str, metadata: Optional[Mapping[str, Any]] = None):
        meta = case_metadata(metadata, False) if metadata else {}
        return await self.log_custom_event(SearchPageEvents.case_detach, {**meta, "resultUriHash": result_uri_hash})

    # --- generic events ---
    async def log_custom_event(self, event: EventName, metadata: Optional[Mapping[str, Any]] = None):
        # eventType is left out for events without a custom type.
        payload = _drop_none(
            {
                **self._base_event(metadata),
                "lastSearchQueryUid": self.provider.get_search_uid(),
                "eventType": CUSTOM_EVENT_TYPES.get(event.value),
                "eventValue": event.value,
            }
        )
        return await self.transport.send_custom_event(payload)

    async def log_search_event(self, event: EventName, metadata: Optional[Mapping[str, Any]] = None):
        payload = {
            **self._base_event(metadata),
            **self.provider.get_search_event_request_payload(),
            "searchQueryUid": self.provider.get_search_uid(),
            "queryPipeline": self.provider.get_pipeline(),
            "actionCause": event.value,
        }
        return await self.transport.send_search_event(payload)

    async def log_click_event(
        self,
        event: SearchPageEvents,
        info: Mapping[str, Any],
        identifier: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        payload = {
            **info,
            **self._base_event({**identifier, **(metadata or {})}),
            "searchQueryUid": self.provider.get_search_uid(),
            "queryPipeline": self.provider.get_pipeline(),
            "actionCause": event.value,
        }
        return await self.transport.send_click_event(payload)

    def _base_event(self, metadata: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        get_facet_state = getattr(self.provider, "get_facet_state", None)
        return _drop_none(
            {
                **self._origins(),
                "customData": {**self.provider.get_base_metadata(), **(metadata or {})},
                "language": self.provider.get_language(),
                "facetState": get_facet_state() if get_facet_state else [],
                "anonymous": self.provider.get_is_anonymous(),
                "clientId": self.transport.get_current_visitor_id(),
            }
        )

    def _origins(self) -> dict[str, Any]:
        # originContext is omitted when the provider has no getter for it.
        get_origin_context = getattr(self.provider, "get_origin_context", None)
        return {
            "originContext": get_origin_context() if get_origin_context else None,
            "originLevel1": self.provider.get_origin_level1(),
            "originLevel2": self.provider.get_origin_level2(),
            "originLevel3": self.provider.get_origin_level3(),
        }
