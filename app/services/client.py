"""Process-wide, logged-in Directus client.

Connection settings come from the environment (a ``.env`` file is honoured):

* ``API_URL`` – base URL of the Directus instance (default ``http://localhost:8055``)
* ``API_USERNAME`` – login e-mail (default ``admin``)
* ``API_PASSWORD`` – login password (default ``password``)
"""

import logging
import os
from typing import Any, Optional, Protocol, runtime_checkable

import httpx
from dotenv import load_dotenv

from app.services.directus import (
    Capability,
    DirectusClient,
    DirectusError,
    authentication,
    describe_error,
    graphql,
    rest,
)

load_dotenv()

logger = logging.getLogger(__name__)

API_URL = os.getenv("API_URL") or "http://localhost:8055"
API_USERNAME = os.getenv("API_USERNAME") or "admin"
API_PASSWORD = os.getenv("API_PASSWORD") or "password"


@runtime_checkable
class BackendClient(Protocol):
    """Everything a value must expose to be used as the backend client."""

    globals: dict
    url: str

    def with_(self, capability: Capability) -> Any: ...

    async def refresh(self) -> Any: ...

    async def login(self, email: str, password: str) -> Any: ...

    async def logout(self) -> Any: ...

    def stop_refreshing(self) -> None: ...

    def get_token(self) -> Optional[str]: ...

    def set_token(self, token: Optional[str]) -> None: ...

    async def request(self, method: str, path: str) -> Any: ...

    async def query(self, document: str) -> Any: ...


_client: Optional[DirectusClient] = None


async def get_backend_client(
    api_username: str = API_USERNAME,
    api_password: str = API_PASSWORD,
    api_url: str = API_URL,
) -> DirectusClient:
    """Return the shared Directus client, logging in on first use.

    Once a login has succeeded the same client is returned on every call and
    the arguments are ignored; use :func:`reset_backend_client` to connect with
    different settings. Concurrent first calls each log in on their own and the
    last one to finish is kept.

    Raises:
        RuntimeError: if logging in fails. Nothing is cached in that case, so
            the next call tries again.
    """
    global _client

    if _client is not None:
        return _client

    client = (
        DirectusClient(api_url)
        .with_(authentication("json"))
        .with_(rest())
        .with_(graphql())
    )
    try:
        await client.login(api_username, api_password)
    except (DirectusError, httpx.HTTPError, ValueError) as exc:
        logger.error("Login to backend %s failed: %s", api_url, exc)
        raise RuntimeError(f"Failed to log into backend: {describe_error(exc)}") from exc

    logger.info("Logged into backend", extra={"url": api_url, "username": api_username})
    _client = client
    return client


def reset_backend_client() -> None:
    """Forget the shared client so the next :func:`get_backend_client` logs in again."""
    global _client
    _client = None


def is_directus_client(value: Any) -> bool:
    """Return *True* when *value* is an object offering every :class:`BackendClient` member."""
    if isinstance(value, type):
        return False
    return isinstance(value, BackendClient)
