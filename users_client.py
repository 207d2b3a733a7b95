"""Thin requests client for the User Service REST API."""

import os
from typing import Optional

import requests

USER_SERVICE = os.getenv("USER_SERVICE_URL", "http://localhost:3000")


class UsersClient:
    def __init__(self, base_url: str = USER_SERVICE, timeout: float = 3):
        self.base_url = base_url.rstrip("/")
        self.timeout  = timeout

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        return requests.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)

    def online(self) -> bool:
        try:
            r = self._request("GET", "/health")
            return r.ok and r.json().get("status") == "healthy"
        except requests.RequestException:
            return False

    def list_users(self) -> list[dict]:
        r = self._request("GET", "/api/users")
        r.raise_for_status()
        return r.json()["users"]

    def get_user(self, user_id: str) -> Optional[dict]:
        """The user, or None when the service answers 404."""
        r = self._request("GET", f"/api/users/{user_id}")
        if r.status_code == 404:
            return None
        r.raise_for_status()
        return r.json()["user"]

    def create_user(self, name: str, email: str) -> dict:
        r = self._request("POST", "/api/users", json={"name": name, "email": email})
        r.raise_for_status()
        return r.json()["user"]

    def update_user(self, user_id: str, **changes) -> dict:
        r = self._request("PUT", f"/api/users/{user_id}", json=changes)
        r.raise_for_status()
        return r.json()["user"]

    def delete_user(self, user_id: str) -> None:
        r = self._request("DELETE", f"/api/users/{user_id}")
        r.raise_for_status()


def error_message(exc: requests.HTTPError) -> str:
    """Human-readable text for a failed call, using the service's error body when present."""
    response = exc.response
    if response is None:
        return str(exc)
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    fields = body.get("fields") or {}
    if fields:
        return "; ".join(f"{field}: {msg}" for field, msg in fields.items())
    return body.get("error", f"HTTP {response.status_code}")
