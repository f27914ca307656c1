"""
Relay request and result models.

ConversionRequest accepts the storefront's camelCase JSON body
(eventName, eventId, zipCode, ...) as well as snake_case field names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CURRENCY = "USD"


def format_currency(value: float | str | None) -> float | None:
    """Round a monetary value to 2 decimals; None for missing or non-numeric input."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return round(number, 2)


class ConversionRequest(BaseModel):
    """One conversion reported by the storefront server.

    event_name and event_id are optional here so the relay can report
    their absence as INVALID_PAYLOAD after checking its own configuration.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    event_name: str | None = Field(default=None, alias="eventName")
    event_id: str | None = Field(default=None, alias="eventId")

    # PII: hashed before leaving the process
    email: str | None = None
    phone: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    city: str | None = None
    state: str | None = None
    zip_code: str | None = Field(default=None, alias="zipCode")
    country: str | None = None

    # Browser identifiers: forwarded as-is
    fbc: str | None = None
    fbp: str | None = None

    # Value fields
    value: float | str | None = None
    currency: str | None = None
    content_ids: list[str] | None = Field(default=None, alias="contentIds")
    content_type: str | None = Field(default=None, alias="contentType")
    content_name: str | None = Field(default=None, alias="contentName")
    content_category: str | None = Field(default=None, alias="contentCategory")
    contents: list[dict[str, Any]] | None = None
    num_items: int | None = Field(default=None, alias="numItems")
    order_id: str | None = Field(default=None, alias="orderId")

    event_source_url: str | None = Field(default=None, alias="eventSourceUrl")

    def build_custom_data(self) -> dict[str, Any]:
        """Value fields in the platform's custom_data shape, undefined keys dropped."""
        custom_data = {
            "value": format_currency(self.value),
            "currency": self.currency or DEFAULT_CURRENCY,
            "content_ids": self.content_ids,
            "content_type": self.content_type,
            "content_name": self.content_name,
            "content_category": self.content_category,
            "contents": self.contents,
            "num_items": self.num_items,
            "order_id": self.order_id,
        }
        return {k: v for k, v in custom_data.items() if v is not None}


@dataclass
class RelayResult:
    """Outcome of relaying one conversion.

    Failures are results, not exceptions: status_code is the HTTP status
    the storefront should answer with.
    """

    success: bool
    status_code: int = 200
    event_id: str | None = None
    trace_id: str | None = None
    error: str | None = None
    duplicate: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Response body for the storefront."""
        if not self.success:
            return {"success": False, "error": self.error}

        body: dict[str, Any] = {"success": True, "eventId": self.event_id}
        if self.trace_id:
            body["traceId"] = self.trace_id
        if self.duplicate:
            body["duplicate"] = True
        return body
