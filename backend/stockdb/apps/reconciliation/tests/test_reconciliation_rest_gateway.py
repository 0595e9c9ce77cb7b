from __future__ import annotations

import io
import json
import logging
import urllib.error

import pytest

from stockdb.apps.reconciliation import gateway as gateway_module
from stockdb.apps.reconciliation.gateway import GatewayError, NETWORK_FAILURE_MESSAGE, RestInventoryGateway


class _Response:
    def __init__(self, body: bytes):
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _install(monkeypatch, handler):
    seen = []

    def fake_urlopen(req, timeout=None):
        seen.append({"req": req, "timeout": timeout})
        return handler(req)

    monkeypatch.setattr(gateway_module.urllib.request, "urlopen", fake_urlopen)
    return seen


def _http_error(code, body: bytes):
    return urllib.error.HTTPError("http://inventory.test", code, "error", {}, io.BytesIO(body))


def test_success_posts_json_with_bearer_token(monkeypatch):
    seen = _install(monkeypatch, lambda req: _Response(b'{"id": 42}'))
    gateway = RestInventoryGateway("http://inventory.test/api/", token="abc", timeout=3)

    result = gateway.add_outgoing({"items": []})

    assert result == {"id": 42}
    req = seen[0]["req"]
    assert req.full_url == "http://inventory.test/api/inventory/outgoing"
    assert req.get_method() == "POST"
    assert json.loads(req.data.decode("utf-8")) == {"items": []}
    assert req.get_header("Authorization") == "Bearer abc"
    assert req.get_header("Content-type") == "application/json"
    assert seen[0]["timeout"] == 3


def test_paths_for_every_call(monkeypatch):
    seen = _install(monkeypatch, lambda req: _Response(b"{}"))
    gateway = RestInventoryGateway("http://inventory.test")

    gateway.get_rejected_item_report(1)
    gateway.get_short_item_report(2)
    gateway.update_rejected_item_report(3, {"scrapped": 1})
    gateway.update_short_item(4, {"item_id": 5, "short": 0})
    gateway.add_incoming({"items": []})
    gateway.get_sku(6)

    calls = [(entry["req"].get_method(), entry["req"].full_url) for entry in seen]
    assert calls == [
        ("GET", "http://inventory.test/inventory/rejected-item-reports/1"),
        ("GET", "http://inventory.test/inventory/short-item-reports/2"),
        ("PUT", "http://inventory.test/inventory/rejected-item-reports/3"),
        ("PUT", "http://inventory.test/inventory/incoming/4/update-short-item"),
        ("POST", "http://inventory.test/inventory/incoming"),
        ("GET", "http://inventory.test/skus/6"),
    ]
    assert seen[0]["req"].get_header("Authorization") is None


@pytest.mark.parametrize(
    "body, expected",
    [
        (b'{"error": "unit_price must be greater than 0"}', "unit_price must be greater than 0"),
        (b'{"detail": "Rejected item report not found."}', "Rejected item report not found."),
        (b"plain failure", "plain failure"),
    ],
)
def test_http_error_carries_backend_message(monkeypatch, body, expected):
    def handler(req):
        raise _http_error(400, body)

    _install(monkeypatch, handler)

    with pytest.raises(GatewayError) as excinfo:
        RestInventoryGateway("http://inventory.test").get_sku(1)

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == expected
    assert excinfo.value.is_rejection


def test_network_failure_has_no_status(monkeypatch, caplog):
    def handler(req):
        raise urllib.error.URLError("connection refused")

    _install(monkeypatch, handler)

    with caplog.at_level(logging.WARNING, logger="stockdb.apps.reconciliation.gateway"):
        with pytest.raises(GatewayError) as excinfo:
            RestInventoryGateway("http://inventory.test").get_sku(1)

    assert excinfo.value.status_code is None
    assert excinfo.value.message == NETWORK_FAILURE_MESSAGE
    assert not excinfo.value.is_rejection
    assert any(record.levelno == logging.WARNING for record in caplog.records)


def test_empty_and_unreadable_bodies(monkeypatch):
    _install(monkeypatch, lambda req: _Response(b""))
    assert RestInventoryGateway("http://inventory.test").get_sku(1) == {}

    _install(monkeypatch, lambda req: _Response(b"<html>"))
    with pytest.raises(GatewayError) as excinfo:
        RestInventoryGateway("http://inventory.test").get_sku(1)
    assert excinfo.value.status_code is None
