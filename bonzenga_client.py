"""Home Bonzenga API client.

This module defines a small client wrapper around the marketplace REST
API.  It is meant for scripts, integration checks and other Python
front ends that talk to the API over HTTP.  The client uses the
``requests`` library internally.

The client exposes high‑level methods for the customer journey:

* :meth:`login` / :meth:`register` – authenticate and keep the token.
* :meth:`list_vendors` / :meth:`get_vendor` – browse the salons.
* :meth:`list_services` – browse the catalogue.
* :meth:`quote` – price a cart before checkout.
* :meth:`create_booking` – book the cart.
* :meth:`process_payment` – pay for a booking.
* :meth:`my_bookings` – list the current user's bookings.

Every method returns a tuple ``(data, error)``.  On success ``error``
is ``None``; on failure ``data`` is ``None`` and ``error`` is a
dictionary with ``status_code`` and a readable ``message`` taken from
the API's ``detail`` field.  Methods never raise for HTTP errors.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Result = Tuple[Optional[Any], Optional[Dict[str, Any]]]


def _error_message(response: requests.Response) -> str:
    """Turn an error response into one line of text.

    FastAPI answers ``{"detail": "..."}`` for handled errors and
    ``{"detail": [{"loc": ..., "msg": ...}, ...]}`` for validation
    errors; both are flattened here.
    """
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or ""
    if not isinstance(body, dict):
        return str(body)
    detail = body.get("detail") or body.get("message")
    if isinstance(detail, list):
        parts = []
        for item in detail:
            if isinstance(item, dict):
                field = ".".join(str(part) for part in item.get("loc", [])[1:])
                parts.append(f"{field}: {item.get('msg')}" if field else str(item.get("msg")))
            else:
                parts.append(str(item))
        return "; ".join(parts)
    return str(detail) if detail else str(body)


class BonzengaClient:
    """Bearer token client for the Home Bonzenga API."""

    def __init__(
        self,
        *,
        base_url: str,
        api_prefix: str = "/api/v1",
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Server URL, e.g. ``http://localhost:8000``.
            api_prefix: Prefix of the versioned routes.
            token: Optional access token.  :meth:`login` and
                :meth:`register` set it automatically.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Seconds to wait for each request.
        """
        self.base_url = base_url.rstrip("/") + api_prefix
        self.token = token
        self.refresh_token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(
        self, method: str, path: str, *, params: Dict[str, Any] | None = None,
        json_body: Any | None = None
    ) -> Result:
        """Perform an HTTP request and return ``(data, error)``."""
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = _error_message(exc.response) if exc.response is not None else ""
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    def _store_auth(self, data: Optional[Dict[str, Any]]) -> None:
        if data:
            self.token = data.get("access_token")
            self.refresh_token = data.get("refresh_token")
            self.user = data.get("user")

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def login(self, email: str, password: str) -> Result:
        """Log in and keep the access token for later calls.

        The returned data includes ``dashboard_path`` for the user's role.
        """
        data, error = self._request("POST", "/auth/login", json_body={"email": email, "password": password})
        if error:
            return None, error
        self._store_auth(data)
        return data, None

    def register(self, payload: Dict[str, Any], kind: str = "customer") -> Result:
        """Register a ``customer``, ``vendor`` or ``beautician`` account."""
        data, error = self._request("POST", f"/auth/register-{kind}", json_body=payload)
        if error:
            return None, error
        self._store_auth(data)
        return data, None

    def refresh(self) -> Result:
        if not self.refresh_token:
            return None, {"status_code": None, "message": "No refresh token available"}
        data, error = self._request("POST", "/auth/refresh", json_body={"refresh_token": self.refresh_token})
        if error:
            return None, error
        self._store_auth(data)
        return data, None

    def logout(self) -> None:
        self.token = None
        self.refresh_token = None
        self.user = None

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------
    def list_vendors(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        city: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        data, error = self._request(
            "GET", "/vendors", params={"search": search, "category": category, "city": city}
        )
        if error:
            return [], error
        return data or [], None

    def get_vendor(self, vendor_id: int) -> Result:
        return self._request("GET", f"/vendors/{vendor_id}")

    def list_services(self, **filters: Any) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """List services; ``filters`` are passed as query parameters."""
        data, error = self._request("GET", "/services", params=filters)
        if error:
            return [], error
        return data.get("services", []), None

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------
    def quote(self, vendor_id: int, items: List[Dict[str, Any]]) -> Result:
        return self._request("POST", "/bookings/quote", json_body={"vendor_id": vendor_id, "items": items})

    def create_booking(self, payload: Dict[str, Any]) -> Result:
        return self._request("POST", "/bookings", json_body=payload)

    def process_payment(self, booking_id: int, method: str, **details: Any) -> Result:
        """Pay for a booking with ``card``, ``mobile_money`` or ``cash``."""
        body = {"booking_id": booking_id, "method": method, **details}
        return self._request("POST", "/payments/process", json_body=body)

    def my_bookings(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        data, error = self._request("GET", "/bookings", params={"status": status, "page": page, "limit": limit})
        if error:
            return [], error
        return data.get("bookings", []), None

    def cancel_booking(self, booking_id: int, reason: Optional[str] = None) -> Result:
        return self._request("PATCH", f"/bookings/{booking_id}/cancel", json_body={"reason": reason})

    # ------------------------------------------------------------------
    # Shop
    # ------------------------------------------------------------------
    def list_products(self, **filters: Any) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """List shop products; ``filters`` are passed as query parameters."""
        data, error = self._request("GET", "/products", params=filters)
        if error:
            return [], error
        return data.get("products", []), None

    def place_order(self, items: List[Dict[str, Any]], address_id: int, payment_method: str = "cash") -> Result:
        body = {"items": items, "address_id": address_id, "payment_method": payment_method}
        return self._request("POST", "/orders", json_body=body)

    def my_orders(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        data, error = self._request("GET", "/orders", params={"status": status, "page": page, "limit": limit})
        if error:
            return [], error
        return data.get("orders", []), None

    def delivery_timeline(self, order_id: int) -> Result:
        return self._request("GET", f"/orders/{order_id}/delivery-timeline")
