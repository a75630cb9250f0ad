"""Minimal async Directus client: token authentication, REST and GraphQL.

A client starts out bare and gains features through :meth:`DirectusClient.with_`::

    client = (
        DirectusClient("http://localhost:8055")
        .with_(authentication("json"))
        .with_(rest())
        .with_(graphql())
    )
    await client.login("admin@example.com", "password")
    data = await client.query("{ global { title } }")

Every call opens a short-lived :class:`httpx.AsyncClient`; no connection state
is kept between calls apart from the tokens.
"""

import json
import time
from typing import Any, Dict, List, Optional

import httpx

DEFAULT_TIMEOUT = 15  # seconds
REFRESH_LEEWAY = 10  # seconds before expiry at which the access token is refreshed
AUTH_MODES = {"json"}
GRAPHQL_SCOPES = {"items": "/graphql", "system": "/graphql/system"}


class DirectusError(Exception):
    """Raised when Directus answers with an error status or a GraphQL ``errors`` member."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[dict]] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        self.status_code = status_code

    @classmethod
    def from_body(cls, body: Any, status_code: Optional[int] = None) -> "DirectusError":
        errors = body.get("errors") if isinstance(body, dict) else None
        if not isinstance(errors, list):
            errors = []
        messages = [e["message"] for e in errors if isinstance(e, dict) and e.get("message")]
        message = "; ".join(messages) or f"Directus request failed with HTTP {status_code}"
        return cls(message, errors=errors, status_code=status_code)

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": self.errors, "status_code": self.status_code}


def describe_error(exc: Exception) -> str:
    """Return a JSON rendering of *exc* suitable for embedding in an error message."""
    if isinstance(exc, DirectusError):
        payload = exc.to_dict()
    else:
        payload = {"type": type(exc).__name__, "message": str(exc)}
    return json.dumps(payload, default=str)


class Capability:
    """A feature switched on for a :class:`DirectusClient` via :meth:`DirectusClient.with_`."""

    def __init__(self, name: str, **options: Any) -> None:
        self.name = name
        self.options = options

    def __repr__(self) -> str:
        return f"Capability({self.name!r}, {self.options!r})"


def authentication(mode: str = "json", auto_refresh: bool = True) -> Capability:
    """Token based login / refresh / logout. Only the ``json`` mode is supported."""
    if mode not in AUTH_MODES:
        raise ValueError(f"Authentication mode '{mode}' is not supported. Use 'json'.")
    return Capability("authentication", mode=mode, auto_refresh=auto_refresh)


def rest() -> Capability:
    return Capability("rest")


def graphql() -> Capability:
    return Capability("graphql")


class DirectusClient:
    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.globals: Dict[str, Any] = {"timeout": timeout, "transport": transport}
        self._capabilities: Dict[str, Capability] = {}
        self._auth_mode = "json"
        self._auto_refresh = False
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._expires_at: Optional[float] = None

    def __repr__(self) -> str:
        return f"DirectusClient({self.url!r}, capabilities={sorted(self._capabilities)})"

    def with_(self, capability: Capability) -> "DirectusClient":
        """Enable *capability* and return the client so calls can be chained."""
        self._capabilities[capability.name] = capability
        if capability.name == "authentication":
            self._auth_mode = capability.options["mode"]
            self._auto_refresh = capability.options["auto_refresh"]
        return self

    def _require(self, name: str) -> None:
        if name not in self._capabilities:
            raise RuntimeError(
                f"Directus client has no '{name}' capability; enable it with .with_({name}())."
            )

    # ── authentication ───────────────────────────────────────────────────────

    async def login(self, email: str, password: str, otp: Optional[str] = None) -> dict:
        """Log in with *email* / *password* and keep the returned tokens.

        Raises:
            DirectusError: if Directus rejects the credentials.
            httpx.HTTPError: on network errors.
        """
        self._require("authentication")
        payload = {"email": email, "password": password, "mode": self._auth_mode}
        if otp:
            payload["otp"] = otp
        body = await self._send("POST", "/auth/login", json=payload, authenticated=False)
        return self._store_tokens(body)

    async def refresh(self) -> dict:
        """Exchange the refresh token for a new access token."""
        self._require("authentication")
        if not self._refresh_token:
            raise DirectusError("No refresh token available; log in first.")
        payload = {"refresh_token": self._refresh_token, "mode": self._auth_mode}
        body = await self._send("POST", "/auth/refresh", json=payload, authenticated=False)
        return self._store_tokens(body)

    async def logout(self) -> None:
        self._require("authentication")
        if self._refresh_token:
            await self._send(
                "POST",
                "/auth/logout",
                json={"refresh_token": self._refresh_token, "mode": self._auth_mode},
                authenticated=False,
            )
        self._clear_tokens()

    def stop_refreshing(self) -> None:
        """Stop refreshing the access token automatically before it expires."""
        self._auto_refresh = False

    def get_token(self) -> Optional[str]:
        return self._access_token

    def set_token(self, token: Optional[str]) -> None:
        """Use a static access token (e.g. a Directus user token) instead of a login."""
        self._clear_tokens()
        self._access_token = token

    def _store_tokens(self, body: Any) -> dict:
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict) or not data.get("access_token"):
            raise DirectusError("Authentication response did not contain an access token.")
        self._access_token = data["access_token"]
        self._refresh_token = data.get("refresh_token")
        expires = data.get("expires")
        # Directus reports the lifetime in milliseconds
        self._expires_at = time.time() + expires / 1000 if expires else None
        return data

    def _clear_tokens(self) -> None:
        self._access_token = None
        self._refresh_token = None
        self._expires_at = None

    async def _ensure_fresh_token(self) -> None:
        if not (self._auto_refresh and self._refresh_token and self._expires_at):
            return
        if self._expires_at - time.time() < REFRESH_LEEWAY:
            await self.refresh()

    # ── REST / GraphQL ───────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        body: Any = None,
    ) -> Any:
        """Issue a REST call against *path* and return the ``data`` member of the reply."""
        self._require("rest")
        reply = await self._send(method.upper(), path, params=params, json=body)
        return reply.get("data") if isinstance(reply, dict) else reply

    async def query(
        self,
        document: str,
        variables: Optional[dict] = None,
        scope: str = "items",
    ) -> dict:
        """Run a GraphQL *document* and return its ``data`` member.

        Raises:
            DirectusError: on an error status or a non-empty ``errors`` member.
            httpx.HTTPError: on network errors.
        """
        self._require("graphql")
        if scope not in GRAPHQL_SCOPES:
            raise ValueError(f"Unknown GraphQL scope '{scope}'. Use 'items' or 'system'.")
        payload: Dict[str, Any] = {"query": document}
        if variables:
            payload["variables"] = variables
        reply = await self._send("POST", GRAPHQL_SCOPES[scope], json=payload)
        if not isinstance(reply, dict):
            raise DirectusError("GraphQL response was not a JSON object.")
        if reply.get("errors"):
            raise DirectusError.from_body(reply)
        return reply.get("data") or {}

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        authenticated: bool = True,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if authenticated:
            await self._ensure_fresh_token()
            if self._access_token:
                headers["Authorization"] = f"Bearer {self._access_token}"

        async with httpx.AsyncClient(
            base_url=self.url,
            timeout=self.globals["timeout"],
            transport=self.globals["transport"],
        ) as http:
            resp = await http.request(method, path, json=json, params=params, headers=headers)

        try:
            reply = resp.json() if resp.content else None
        except ValueError:
            reply = None
        if resp.is_error:
            raise DirectusError.from_body(reply, status_code=resp.status_code)
        return reply
