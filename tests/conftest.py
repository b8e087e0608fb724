# Shared pytest fixtures
from __future__ import annotations

import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pandas as pd
import pytest

from bulk_import.client.orders_api import OrdersApiClient
from bulk_import.models.order_item import MappedOrderItem


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        # 実行環境の API 設定を持ち込まない
        monkeypatch.delenv("BULK_IMPORT_API_URL", raising=False)
        monkeypatch.delenv("BULK_IMPORT_API_TOKEN", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """api:
  base_url: http://labels.test/api
  token: secret-token
  timeout_seconds: 30
batch:
  min_balance: 5
  request_delay_seconds: 0
defaults:
  from_address_id: null
  label_type_id: null
logs_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "bulk_import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def recipients_csv() -> str:
    return (
        "Recipient Name,Company,Street Address,City,State,Zip Code,Country,Weight (lbs),Order Number\n"
        "Alice Smith,ACME,1 Main St,Springfield,IL,62701,US,2,A-100\n"
        "Bob Jones,,22 Oak Ave,Portland,OR,97201,,abc,\n"
        "Carol White,,5 Pine Rd,,TX,73301,US,3,A-102\n"
    )


@pytest.fixture()
def make_excel() -> Callable[[Path, list[list[object]]], Path]:
    """Write rows (first row = header) to an .xlsx file."""

    def _make(path: Path, rows: list[list[object]]) -> Path:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name="Sheet1", header=False, index=False)
        return path

    return _make


@pytest.fixture()
def make_item() -> Callable[..., MappedOrderItem]:
    """Factory for valid MappedOrderItem instances (override any field)."""

    def _make(row_number: int = 2, **overrides: Any) -> MappedOrderItem:
        values: dict[str, Any] = {
            "row_number": row_number,
            "to_name": "Alice Smith",
            "to_company": "",
            "to_street": "1 Main St",
            "to_street2": "",
            "to_city": "Springfield",
            "to_state": "IL",
            "to_zip": "62701",
            "to_country": "US",
            "weight": 1.0,
            "length": 6.0,
            "width": 6.0,
            "height": 6.0,
            "order_id": f"BULK-{row_number - 1}",
            "errors": [],
        }
        values.update(overrides)
        return MappedOrderItem(**values)

    return _make


class FakeLabelService:
    """In-memory order service served through httpx.MockTransport.

    ``reject`` maps reference1 -> (status_code, message) for orders the
    service should refuse.
    """

    def __init__(self, balance: float = 100.0, cost: float = 5.0) -> None:
        self.balance = balance
        self.cost = cost
        self.reject: dict[str, tuple[int, str]] = {}
        self.label_types: list[dict[str, Any]] = [{"id": "lt-1", "name": "Priority", "price": 5.0}]
        self.addresses: list[dict[str, Any]] = [{"_id": "addr-1", "name": "Warehouse"}]
        self.catalog_status = 200
        self.orders: list[dict[str, Any]] = []
        self.requests: list[tuple[str, str]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        if request.method == "GET" and path.endswith("/orders/label-types"):
            if self.catalog_status != 200:
                return httpx.Response(self.catalog_status, json={"message": "catalog unavailable"})
            return httpx.Response(200, json=self.label_types)
        if request.method == "GET" and path.endswith("/addresses"):
            if self.catalog_status != 200:
                return httpx.Response(self.catalog_status, json={"message": "catalog unavailable"})
            return httpx.Response(200, json={"addresses": self.addresses})
        if request.method == "GET" and path.endswith("/users/me"):
            return httpx.Response(200, json={"balance": self.balance})
        if request.method == "POST" and path.endswith("/orders"):
            body = json.loads(request.content)
            self.orders.append(body)
            if body["reference1"] in self.reject:
                status, message = self.reject[body["reference1"]]
                return httpx.Response(status, json={"message": message})
            self.balance -= self.cost
            n = len(self.orders)
            return httpx.Response(
                201,
                json={"order": {"_id": f"o{n}", "trackingNumber": f"TRK{n}"}, "newBalance": self.balance},
            )
        return httpx.Response(404, json={"message": "not found"})


@pytest.fixture()
def label_service() -> FakeLabelService:
    return FakeLabelService()


@pytest.fixture()
def patched_client(label_service: FakeLabelService):
    """Route the CLI's API client to ``label_service``."""

    def _make(cfg):
        return OrdersApiClient(
            cfg.api.base_url,
            cfg.api.token,
            timeout_seconds=cfg.api.timeout_seconds,
            transport=httpx.MockTransport(label_service.handler),
        )

    with patch("bulk_import.cli.__main__._make_client", side_effect=_make) as mock_make:
        yield mock_make


@pytest.fixture()
def recipients_file(temp_workdir: Path, recipients_csv: str) -> Path:
    p = temp_workdir / "data" / "orders.csv"
    p.write_text(recipients_csv, encoding="utf-8")
    return p
