"""HTTP API client for the task chat server."""
from typing import Any, Dict, List

import requests

from .storage import get_token


class APIClient:
    def __init__(self, base_url: str, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        token = get_token()
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = requests.request(
            method, f"{self.base_url}{path}", headers=self._headers(), timeout=self.timeout, **kwargs
        )
        resp.raise_for_status()
        return resp.json()

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        payload = {"username": username, "email": email, "password": password}
        return self._request("POST", "/auth/register", json=payload)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/auth/login", json={"email": email, "password": password})

    def logout(self) -> Dict[str, Any]:
        return self._request("POST", "/auth/logout")

    def list_users(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/users")

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/users/me")

    def get_messages(self, user_id: int) -> List[Dict[str, Any]]:
        return self._request("GET", f"/users/{user_id}/messages")

    def send_message(self, user_id: int, content: str) -> Dict[str, Any]:
        return self._request("POST", f"/users/{user_id}/messages", json={"content": content})

    def mark_read(self, user_id: int, message_id: int) -> Dict[str, Any]:
        return self._request("PUT", f"/users/{user_id}/messages/{message_id}/read")

    def unread_count(self, user_id: int) -> int:
        return self._request("GET", f"/users/{user_id}/messages/unread/count")["count"]

    def update_message(self, user_id: int, message_id: int, content: str) -> Dict[str, Any]:
        return self._request("PUT", f"/users/{user_id}/messages/{message_id}", json={"content": content})

    def delete_message(self, user_id: int, message_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/users/{user_id}/messages/{message_id}")

    def online_users(self) -> List[str]:
        return self._request("GET", "/chat/online")["users"]
