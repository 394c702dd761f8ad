"""Event names sent by the insight client. Data, not behaviour."""

from __future__ import annotations

from enum import Enum


class SearchPageEvents(str, Enum):
    interface_load = "interfaceLoad"
    interface_change = "interfaceChange"
    static_filter_deselect = "staticFilterDeselect"
    pager_scrolling = "pagerScrolling"
    pager_number = "pagerNumber"
    pager_next = "pagerNext"
    pager_previous = "pagerPrevious"
    facet_select = "facetSelect"
    facet_deselect = "facetDeselect"
    facet_update_sort = "facetUpdateSort"
    facet_clear_all = "facetClearAll"
    facet_show_more = "facetShowMore"
    facet_show_less = "facetShowLess"
    breadcrumb_facet = "breadcrumbFacet"
    breadcrumb_reset_all = "breadcrumbResetAll"
    did_you_mean_automatic = "didyoumeanAutomatic"
    did_you_mean_click = "didyoumeanClick"
    results_sort = "resultsSort"
    searchbox_submit = "searchboxSubmit"
    query_error = "queryError"
    document_open = "documentOpen"
    document_quickview = "documentQuickview"
    copy_to_clipboard = "copyToClipboard"
    case_attach = "caseAttach"
    case_detach = "caseDetach"


class InsightEvents(str, Enum):
    context_changed = "contextChanged"
    expand_to_full_ui = "expandToFullUI"


# Custom events carry a coarse `eventType` next to the precise `eventValue`.
CUSTOM_EVENT_TYPES: dict[str, str] = {
    SearchPageEvents.pager_scrolling.value: "getMoreResults",
    SearchPageEvents.pager_number.value: "getMoreResults",
    SearchPageEvents.pager_next.value: "getMoreResults",
    SearchPageEvents.pager_previous.value: "getMoreResults",
    SearchPageEvents.facet_show_more.value: "facet",
    SearchPageEvents.facet_show_less.value: "facet",
    SearchPageEvents.query_error.value: "query",
    SearchPageEvents.case_detach.value: "case",
    InsightEvents.expand_to_full_ui.value: "interface",
}
