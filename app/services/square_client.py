"""
Square API Client
Read-only access to locations, customers, invoices and payments.
"""
from typing import Optional, Dict, List, Any

import httpx
from ..logging import structlog

from ..config import settings


logger = structlog.get_logger(__name__)

SQUARE_API_URLS = {
    "production": "https://connect.squareup.com/v2",
    "sandbox": "https://connect.squareupsandbox.com/v2",
}


class SquareError(Exception):
    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class SquareClient:
    """Client for interacting with the Square REST API"""

    def __init__(
        self,
        access_token: str,
        environment: str = "sandbox",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not access_token:
            raise ValueError("Square access token is required")
        if environment not in SQUARE_API_URLS:
            raise ValueError(f"Unknown Square environment: {environment}")
        self.access_token = access_token
        self.environment = environment
        self.base_url = SQUARE_API_URLS[environment]
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Square-Version": settings.square_api_version,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Make HTTP request to Square API"""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            with httpx.Client(timeout=settings.square_timeout_seconds, transport=self._transport) as client:
                response = client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.warning("square_transport_error", endpoint=endpoint, error=str(e))
            raise SquareError(f"Could not reach Square: {e}") from e

        if response.status_code >= 400:
            raise SquareError(self._error_detail(response), status_code=response.status_code)
        return response.json()

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            errors = response.json().get("errors") or []
        except ValueError:
            errors = []
        if errors:
            return "; ".join(e.get("detail") or e.get("code", "error") for e in errors)
        return f"Square API returned {response.status_code}"

    def _paginate(self, endpoint: str, key: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Follow Square's cursor pagination and collect every item under `key`."""
        items: List[Dict[str, Any]] = []
        params = dict(params or {})
        while True:
            data = self._request("GET", endpoint, params=params)
            items.extend(data.get(key) or [])
            cursor = data.get("cursor")
            if not cursor:
                return items
            params["cursor"] = cursor

    def list_locations(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/locations").get("locations") or []

    def list_customers(self) -> List[Dict[str, Any]]:
        return self._paginate("/customers", "customers")

    def list_invoices(self, location_id: str) -> List[Dict[str, Any]]:
        return self._paginate("/invoices", "invoices", {"location_id": location_id})

    def list_payments(self) -> List[Dict[str, Any]]:
        return self._paginate("/payments", "payments")
