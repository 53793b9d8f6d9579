"""
Admin API Client - HTTP wrapper around the /api/admin bulk actions.

Used by the master settings console. Every failure (network error, non-2xx
response, unreadable body) surfaces as AdminClientError with a message
suitable for showing to the operator.
"""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class AdminClientError(Exception):
    """Raised for any failed admin API call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AdminClient:

    def __init__(self, base_url: str, token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/api/admin{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise AdminClientError(f"Could not reach server: {e}") from e

        if response.status_code >= 400:
            raise AdminClientError(self._error_message(response), response.status_code)
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Prefer the server's message, then FastAPI's detail, then the status."""
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            for key in ("message", "detail"):
                value = payload.get(key)
                if isinstance(value, str) and value:
                    return value
        return f"Request failed with status {response.status_code}"

    def _json(self, response: requests.Response) -> dict:
        try:
            payload = response.json()
        except ValueError as e:
            raise AdminClientError("Invalid response from server", response.status_code) from e
        if not isinstance(payload, dict):
            raise AdminClientError("Invalid response from server", response.status_code)
        return payload

    def reset_student_choices(self) -> dict:
        """POST /reset-student-choices -> {"success", "message", "data"}"""
        return self._json(self._request("POST", "/reset-student-choices"))

    def full_reset_students(self) -> dict:
        """POST /full-reset-students -> {"success", "message", "data"}"""
        return self._json(self._request("POST", "/full-reset-students"))

    def download_student_temp_passwords(self) -> bytes:
        """GET /download-student-temp-passwords -> xlsx bytes"""
        return self._request("GET", "/download-student-temp-passwords").content
