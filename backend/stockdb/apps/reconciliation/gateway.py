"""
Inventory gateway used by reconciliation actions.

The actions only ever talk to inventory through these calls, so the
same action code runs in-process against the database or against a remote
stockdb instance over HTTP.
"""

from __future__ import annotations

import abc
import json
import logging
import os
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockdb.apps.inventory import schemas as inventory_schemas
from stockdb.apps.inventory import services as inventory_services
from stockdb.context import SessionContext

logger = logging.getLogger(__name__)

INVENTORY_API_URL = os.getenv("INVENTORY_API_URL")
try:
    INVENTORY_API_TIMEOUT_SEC = float(os.getenv("INVENTORY_API_TIMEOUT_SEC", "15"))
except ValueError:
    INVENTORY_API_TIMEOUT_SEC = 15.0

NETWORK_FAILURE_MESSAGE = "Inventory service is unavailable. Please try again."


class GatewayError(Exception):
    """
    A failed inventory call.

    `status_code` is the HTTP status of a backend rejection, or None when the
    call never got an answer.
    """

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_rejection(self) -> bool:
        return self.status_code is not None


def _message_from_body(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if value:
                return value if isinstance(value, str) else json.dumps(value)
    return fallback


class InventoryGateway(abc.ABC):
    @abc.abstractmethod
    def get_rejected_item_report(self, report_id: int) -> Dict[str, Any]:
        """Load the current counters of a rejected item report."""

    @abc.abstractmethod
    def get_short_item_report(self, item_id: int) -> Dict[str, Any]:
        """Load the derived short-item row for one incoming item."""

    @abc.abstractmethod
    def update_rejected_item_report(self, report_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite counters on a rejected item report."""

    @abc.abstractmethod
    def update_short_item(self, incoming_inventory_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Adjust received/short on one incoming item (`changes["item_id"]`)."""

    @abc.abstractmethod
    def add_incoming(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a stock-crediting incoming record."""

    @abc.abstractmethod
    def add_outgoing(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a stock-debiting outgoing record."""

    @abc.abstractmethod
    def get_sku(self, sku_id: int) -> Dict[str, Any]:
        """Fetch a catalog entry (used for unit price defaults)."""


# ---------------------------------------------------------------------------
# IN-PROCESS
# ---------------------------------------------------------------------------


class LocalInventoryGateway(InventoryGateway):
    """
    Calls the inventory services directly.

    Every call commits on success and rolls back on failure, so each call is
    its own unit of work, the same as one REST request.
    """

    def __init__(self, db: Session, ctx: SessionContext):
        self.db = db
        self.ctx = ctx

    def _run(self, fn: Callable[[], Any], read_schema) -> Dict[str, Any]:
        try:
            result = fn()
            self.db.commit()
        except HTTPException as exc:
            self.db.rollback()
            raise GatewayError(exc.status_code, _message_from_body({"detail": exc.detail}, "Request rejected"))
        except ValidationError as exc:
            self.db.rollback()
            raise GatewayError(422, str(exc))
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Inventory write conflicted", extra={"error": str(exc.orig)})
            raise GatewayError(409, "The change conflicts with an existing record.")
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Inventory write failed")
            raise GatewayError(500, "Inventory update failed.")
        self.db.refresh(result)
        return read_schema.model_validate(result).model_dump(mode="json")

    def get_rejected_item_report(self, report_id: int) -> Dict[str, Any]:
        try:
            report = inventory_services.get_rejected_report(
                self.db, company_id=self.ctx.company_id, report_id=report_id
            )
        except HTTPException as exc:
            raise GatewayError(exc.status_code, str(exc.detail))
        return inventory_schemas.RejectedItemReportRead.model_validate(report).model_dump(mode="json")

    def get_short_item_report(self, item_id: int) -> Dict[str, Any]:
        try:
            item = inventory_services.get_short_item(self.db, company_id=self.ctx.company_id, item_id=item_id)
        except HTTPException as exc:
            raise GatewayError(exc.status_code, str(exc.detail))
        return inventory_services.short_report_row(item).model_dump(mode="json")

    def update_rejected_item_report(self, report_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._run(
            lambda: inventory_services.update_rejected_report(
                self.db,
                company_id=self.ctx.company_id,
                report_id=report_id,
                payload=inventory_schemas.RejectedItemReportUpdate(**changes),
                actor_user_id=self.ctx.user_id,
            ),
            inventory_schemas.RejectedItemReportRead,
        )

    def update_short_item(self, incoming_inventory_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._run(
            lambda: inventory_services.update_short_item(
                self.db,
                company_id=self.ctx.company_id,
                incoming_id=incoming_inventory_id,
                payload=inventory_schemas.ShortItemUpdate(**changes),
                actor_user_id=self.ctx.user_id,
            ),
            inventory_schemas.IncomingItemRead,
        )

    def add_incoming(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._run(
            lambda: inventory_services.create_incoming(
                self.db,
                company_id=self.ctx.company_id,
                payload=inventory_schemas.IncomingInventoryCreate(**payload),
                actor_user_id=self.ctx.user_id,
            ),
            inventory_schemas.IncomingInventoryRead,
        )

    def add_outgoing(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._run(
            lambda: inventory_services.create_outgoing(
                self.db,
                company_id=self.ctx.company_id,
                payload=inventory_schemas.OutgoingInventoryCreate(**payload),
                actor_user_id=self.ctx.user_id,
            ),
            inventory_schemas.OutgoingInventoryRead,
        )

    def get_sku(self, sku_id: int) -> Dict[str, Any]:
        try:
            sku = inventory_services.get_sku(self.db, company_id=self.ctx.company_id, sku_id=sku_id)
        except HTTPException as exc:
            raise GatewayError(exc.status_code, str(exc.detail))
        return inventory_schemas.SkuRead.model_validate(sku).model_dump(mode="json")


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class RestInventoryGateway(InventoryGateway):
    """JSON over HTTP against another stockdb API, authenticated with a bearer token."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = INVENTORY_API_TIMEOUT_SEC):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(url, data=data, method=method)
        req.add_header("Accept", "application/json")
        if data is not None:
            req.add_header("Content-Type", "application/json")
        if self.token:
            req.add_header("Authorization", f"Bearer {self.token}")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="replace") if exc.fp is not None else ""
            try:
                parsed = json.loads(raw) if raw else None
            except ValueError:
                parsed = None
            message = _message_from_body(parsed, raw or exc.reason or "Request rejected")
            raise GatewayError(exc.code, message)
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            logger.warning(
                "Inventory API call failed",
                extra={"method": method, "url": url, "error": str(exc)},
            )
            raise GatewayError(None, NETWORK_FAILURE_MESSAGE)
        if not body:
            return {}
        try:
            return json.loads(body)
        except ValueError:
            raise GatewayError(None, "Inventory service returned an unreadable response.")

    def get_rejected_item_report(self, report_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/inventory/rejected-item-reports/{report_id}")

    def get_short_item_report(self, item_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/inventory/short-item-reports/{item_id}")

    def update_rejected_item_report(self, report_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/inventory/rejected-item-reports/{report_id}", changes)

    def update_short_item(self, incoming_inventory_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/inventory/incoming/{incoming_inventory_id}/update-short-item", changes)

    def add_incoming(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/inventory/incoming", payload)

    def add_outgoing(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/inventory/outgoing", payload)

    def get_sku(self, sku_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/skus/{sku_id}")
