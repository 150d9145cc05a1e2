"""Envelope parsing for list and document responses.

The backend wraps results in one of two shapes. The newer one
(``payloads.VIEW_DATA`` / ``payloads.DOC_DATA``) wins when a response
carries both.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from admin_core.domain.entities import PageResult
from admin_core.domain.exceptions import EnvelopeError


class LegacyViewData(BaseModel):
    """``payload.viewData`` — the older list envelope."""

    entries: list[dict[str, Any]] = Field(default_factory=list)
    count: int | None = None
    page: int | None = Field(None, alias="pageNum")
    max_page: int | None = Field(None, alias="maxPage")
    page_size: int | None = Field(None, alias="pageSize")


class ViewData(BaseModel):
    """``payloads.VIEW_DATA`` — the current list envelope."""

    entries: list[dict[str, Any]] = Field(default_factory=list)
    count: int | None = None
    page: int | None = None
    max_page: int | None = Field(None, alias="maxPage")
    page_size: int | None = Field(None, alias="size")


def _section(data: Any, outer: str, inner: str) -> Any:
    container = data.get(outer) if isinstance(data, dict) else None
    if isinstance(container, dict):
        return container.get(inner)
    return None


def parse_page_envelope(data: Any, *, page: int, size: int) -> PageResult:
    """Normalize either list envelope into a PageResult.

    Missing counters fall back to the requested page/size and to the
    number of entries received.
    """
    view = _section(data, "payloads", "VIEW_DATA")
    model: type[BaseModel] = ViewData
    if view is None:
        view = _section(data, "payload", "viewData")
        model = LegacyViewData
    if view is None:
        raise EnvelopeError("List response carries neither payloads.VIEW_DATA nor payload.viewData")

    # The earliest endpoints returned viewData as a bare list.
    if isinstance(view, list):
        view = {"entries": view}

    try:
        parsed = model.model_validate(view)
    except ValidationError as exc:
        raise EnvelopeError(f"Malformed list envelope: {exc}") from exc

    entries = parsed.entries
    return PageResult(
        entries=entries,
        count=parsed.count if parsed.count is not None else len(entries),
        page=parsed.page if parsed.page is not None else page,
        max_page=parsed.max_page if parsed.max_page is not None else 1,
        page_size=parsed.page_size if parsed.page_size is not None else size,
    )


def unwrap_document(data: Any, *, strict: bool = True) -> Any:
    """Extract the document from either single-document envelope.

    With ``strict=False`` a body that is not enveloped is returned as is;
    mutation endpoints answer with the bare record.
    """
    if isinstance(data, dict):
        payloads = data.get("payloads")
        if isinstance(payloads, dict) and "DOC_DATA" in payloads:
            return payloads["DOC_DATA"]
        payload = data.get("payload")
        if isinstance(payload, dict) and "docData" in payload:
            return payload["docData"]
    if strict:
        raise EnvelopeError("Document response carries neither payloads.DOC_DATA nor payload.docData")
    return data
