# app/services/order_api_client.py
import logging
from enum import Enum
from typing import Any, Dict, Optional

import requests

from app.config import settings

logger = logging.getLogger(__name__)

ORDER_CREATE_PATH = "/orders/create"
HEALTH_PATH = "/health"


class SyncErrorKind(str, Enum):
    duplicate = "duplicate"
    network = "network"
    validation = "validation"
    server = "server"


class OrderSyncError(Exception):
    def __init__(self, kind: SyncErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code


# fallback for exceptions that do not carry a kind
DUPLICATE_KEYWORDS = [
    "E11000 duplicate key error",
    "idempotencyKey",
    "idempotency_key",
    "orderNumber",
    "already exists",
]

NETWORK_KEYWORDS = ["network", "fetch", "timeout"]


def error_message(error) -> str:
    if error is None:
        return "Unknown error"
    return getattr(error, "message", None) or str(error) or "Unknown error"


def classify_error(error) -> SyncErrorKind:
    if isinstance(error, OrderSyncError):
        return error.kind

    message = error_message(error)
    if any(keyword in message for keyword in DUPLICATE_KEYWORDS):
        return SyncErrorKind.duplicate
    if any(keyword in message.lower() for keyword in NETWORK_KEYWORDS):
        return SyncErrorKind.network
    return SyncErrorKind.server


def is_duplicate_error(error) -> bool:
    return classify_error(error) == SyncErrorKind.duplicate


def is_network_error(error) -> bool:
    return classify_error(error) == SyncErrorKind.network


def _detail(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or getattr(response, "reason", None) or "API request failed"

    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if detail:
            return str(detail)
    return getattr(response, "reason", None) or "API request failed"


class OrderApiClient:
    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        http: Optional[requests.Session] = None,
        organization_id: int = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.http = http or requests.Session()
        self.organization_id = organization_id or settings.ORGANIZATION_ID

    def _request(self, method: str, path: str, **kwargs):
        headers = {"X-Organization-Id": str(self.organization_id)}
        try:
            return self.http.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.Timeout as e:
            raise OrderSyncError(SyncErrorKind.network, f"Request timeout: {e}") from e
        except requests.ConnectionError as e:
            raise OrderSyncError(SyncErrorKind.network, f"Network error: {e}") from e

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request("POST", ORDER_CREATE_PATH, json=payload)

        if response.status_code == 409:
            raise OrderSyncError(SyncErrorKind.duplicate, _detail(response), 409)

        if response.status_code in (400, 422):
            raise OrderSyncError(SyncErrorKind.validation, _detail(response), response.status_code)

        if response.status_code >= 400:
            logger.error(f"Order API failed ({response.status_code}): {response.text}")
            raise OrderSyncError(SyncErrorKind.server, _detail(response), response.status_code)

        body = response.json()
        return {
            "created": body.get("created", True),
            "order": body.get("order"),
        }

    def ping(self) -> bool:
        try:
            response = self._request("HEAD", HEALTH_PATH)
        except OrderSyncError:
            return False
        return response.status_code < 400
