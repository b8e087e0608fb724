from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

"""HTTP client for the shipping-label order service.

Endpoints used by the import pipeline:
- GET  /orders/label-types   label type catalog (defaults only)
- GET  /addresses            saved from-addresses (defaults only)
- GET  /users/me             current account balance
- POST /orders               create one order / label

All failures are wrapped in OrderApiError carrying the message the service
reported (or a transport level description). HTTP status codes are not
interpreted beyond success / failure.
"""

__all__ = [
    "OrderApiError",
    "LabelType",
    "OrderRequest",
    "OrderResponse",
    "OrdersApiClient",
    "default_label_type_id",
    "default_from_address_id",
]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


class OrderApiError(Exception):
    """Raised when the order service rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class LabelType:
    id: Any
    name: str
    price: float | None
    max_weight: float | None
    max_dimensions: float | None

    @staticmethod
    def from_json(data: dict[str, Any]) -> LabelType:
        return LabelType(
            id=data.get("id"),
            name=str(data.get("name", "")),
            price=data.get("price"),
            max_weight=data.get("maxWeight"),
            max_dimensions=data.get("maxDimensions"),
        )


@dataclass(frozen=True)
class OrderRequest:
    """Body of POST /orders for one spreadsheet row."""
    label_type_id: Any
    from_address_id: Any
    to_address: dict[str, Any]  # name, company, street1, street2, city, state, zip, country
    package: dict[str, float]  # weight, length, width, height
    reference1: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "labelTypeId": self.label_type_id,
            "fromAddressId": self.from_address_id,
            "toAddress": dict(self.to_address),
            "package": dict(self.package),
            "reference1": self.reference1,
        }


@dataclass(frozen=True)
class OrderResponse:
    order: dict[str, Any]
    tracking_number: str | None = None
    new_balance: float | None = None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Request failed with status code {response.status_code}"


def default_label_type_id(label_types: Sequence[LabelType]) -> Any:
    """First label type in the catalog, or None."""
    return label_types[0].id if label_types else None


def default_from_address_id(addresses: Sequence[dict[str, Any]]) -> Any:
    """First saved address (``_id`` or ``id``), or None."""
    if not addresses:
        return None
    first = addresses[0]
    return first.get("_id", first.get("id"))


class OrdersApiClient:
    """Thin synchronous wrapper around httpx.Client.

    Can be used as a context manager; ``close()`` releases the connection pool.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.timeout_seconds = timeout_seconds
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise OrderApiError(f"Request timed out after {self.timeout_seconds:g}s") from e
        except httpx.RequestError as e:
            raise OrderApiError(str(e) or type(e).__name__) from e

        if response.is_error:
            message = _error_message(response)
            logger.debug("%s %s -> %s %s", method, path, response.status_code, message)
            raise OrderApiError(message, status_code=response.status_code)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise OrderApiError(f"invalid JSON response from {path}") from e

    def list_label_types(self) -> list[LabelType]:
        data = self._request("GET", "/orders/label-types")
        if not isinstance(data, list):
            return []
        return [LabelType.from_json(d) for d in data if isinstance(d, dict)]

    def list_from_addresses(self) -> list[dict[str, Any]]:
        data = self._request("GET", "/addresses")
        # 配列 or {"addresses": [...]} の両形式を受け付ける
        if isinstance(data, dict):
            data = data.get("addresses") or []
        return [d for d in data if isinstance(d, dict)]

    def get_balance(self) -> float | None:
        data = self._request("GET", "/users/me")
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            data = data["user"]
        balance = data.get("balance") if isinstance(data, dict) else None
        return float(balance) if isinstance(balance, (int, float)) else None

    def create_order(self, request: OrderRequest) -> OrderResponse:
        data = self._request("POST", "/orders", json=request.to_payload())
        if not isinstance(data, dict):
            raise OrderApiError("unexpected response from order service")
        order = data.get("order") or {}
        new_balance = data.get("newBalance")
        return OrderResponse(
            order=order,
            tracking_number=order.get("trackingNumber"),
            new_balance=float(new_balance) if isinstance(new_balance, (int, float)) else None,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> OrdersApiClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
