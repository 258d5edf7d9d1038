"""
Streamlit-side client for the Clinic Scribe REST API.

Streamlit reruns the page script synchronously, so this wraps a blocking
``httpx.Client``. One instance per base URL is cached with
``st.cache_resource``.
"""

import logging

import httpx
import streamlit as st

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class APIError(Exception):
    """Failure talking to the backend, with a message fit for an error banner.

    ``category`` is one of "connection", "timeout", "not_found", "http",
    "network" or "unknown"; pages branch on it (a missing patient is not
    an outage).
    """

    def __init__(self, message: str, category: str = "unknown") -> None:
        self.message = message
        self.category = category
        super().__init__(message)


class APIClient:
    """Patient directory and health calls against the FastAPI backend.

    Args:
        base_url: Backend root, e.g. ``http://localhost:8000``.
    """

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self._base_url, timeout=30.0)

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send one request and translate every failure into ``APIError``."""
        try:
            resp = getattr(self._client, method)(path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.ConnectError:
            logger.warning("Backend unreachable at %s", self._base_url)
            raise APIError(
                "Backend server is not running. "
                "Start it with: `uvicorn src.api.app:app --reload --port 8000`",
                category="connection",
            ) from None
        except httpx.TimeoutException:
            raise APIError("The backend took too long to answer.", category="timeout") from None
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            try:
                detail = exc.response.json().get("detail", exc.response.text)
            except ValueError:
                detail = exc.response.text or str(exc)
            raise APIError(
                str(detail), category="not_found" if status == 404 else "http"
            ) from None
        except httpx.HTTPError as exc:
            raise APIError(f"Network error: {exc}", category="network") from None

    # -- system --

    def health_check(self) -> dict:
        return self._request("get", "/health").json()

    def check_connection(self) -> tuple[bool, str]:
        """Return ``(reachable, status text)`` for the sidebar indicator."""
        try:
            self.health_check()
        except APIError as exc:
            return False, exc.message
        return True, "Connected"

    # -- patients --

    def list_patients(self, query: str = "") -> list[dict]:
        params = {"q": query} if query else None
        return self._request("get", f"{API_PREFIX}/patients", params=params).json()

    def get_patient(self, patient_id: str) -> dict | None:
        """Fetch one patient; None when the ID is unknown."""
        try:
            return self._request("get", f"{API_PREFIX}/patients/{patient_id}").json()
        except APIError as exc:
            if exc.category == "not_found":
                return None
            raise

    def add_patient(self, patient_id: str, name: str, diagnosis: str = "") -> dict:
        body = {"id": patient_id, "name": name, "diagnosis": diagnosis}
        return self._request("post", f"{API_PREFIX}/patients", json=body).json()


@st.cache_resource
def get_api_client(base_url: str = "http://localhost:8000") -> APIClient:
    """Cached APIClient for ``base_url``, shared across reruns and sessions."""
    return APIClient(base_url=base_url)
