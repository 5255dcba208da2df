"""
Identity provider client — the external system of record for credentials.

The provider is addressed by an opaque ``uid``.  Provisioning reuses the
relational primary key (as a string) for that uid so both stores stay
correlatable without a mapping table.

Failures are raised as tagged exceptions so callers never have to match
on provider message text:

- ``IdentityConflictError``        uid or email already registered
- ``IdentityProviderUnavailable``  timeout / transport failure; the
                                   outcome of the call is unknown
- ``IdentityProviderError``        any other rejection
"""
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class IdentityProviderError(Exception):
    """Base exception for identity provider operations."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class IdentityConflictError(IdentityProviderError):
    """The uid or email is already in use by another credential."""


class IdentityProviderUnavailable(IdentityProviderError):
    """The provider could not be reached or did not answer in time."""


_CONFLICT_CODES = frozenset({"DUPLICATE_LOCAL_ID", "EMAIL_EXISTS", "UID_ALREADY_EXISTS"})


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CredentialHandle:
    uid: str
    email: str
    display_name: str | None = None


class IdentityProvider(Protocol):
    async def create(
        self, uid: str, email: str, password: str, display_name: str | None
    ) -> CredentialHandle: ...

    async def delete(self, uid: str) -> None: ...


# ---------------------------------------------------------------------------
# HTTP implementation
# ---------------------------------------------------------------------------

class HttpIdentityProvider:
    """
    Client for an Identity-Toolkit style admin REST API.

    Endpoints (relative to ``base_url``)::

        POST /accounts          {"localId", "email", "password", "displayName"}
        POST /accounts:delete   {"localId"}

    Errors come back as ``{"error": {"code": 400, "message": "EMAIL_EXISTS"}}``.
    The provider itself imposes the request timeout; a timeout is reported
    as ``IdentityProviderUnavailable`` because the account may or may not
    have been created.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.IDENTITY_PROVIDER_URL).rstrip("/")
        self._api_key = api_key or settings.IDENTITY_PROVIDER_API_KEY
        self._timeout = timeout if timeout is not None else settings.IDENTITY_PROVIDER_TIMEOUT
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
            transport=self._transport,
        )
        logger.info("Identity provider client ready: %s", self.base_url)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create(
        self, uid: str, email: str, password: str, display_name: str | None
    ) -> CredentialHandle:
        payload = {"localId": uid, "email": email, "password": password}
        if display_name:
            payload["displayName"] = display_name
        data = await self._post("/accounts", payload)
        return CredentialHandle(
            uid=data.get("localId", uid),
            email=data.get("email", email),
            display_name=data.get("displayName", display_name),
        )

    async def delete(self, uid: str) -> None:
        await self._post("/accounts:delete", {"localId": uid})

    async def _post(self, endpoint: str, payload: dict) -> dict:
        if self._client is None:
            await self.connect()
        try:
            resp = await self._client.post(endpoint, json=payload)
        except httpx.TimeoutException as exc:
            raise IdentityProviderUnavailable(f"Timed out calling {endpoint}", code="TIMEOUT") from exc
        except httpx.TransportError as exc:
            raise IdentityProviderUnavailable(f"Transport error calling {endpoint}: {exc}") from exc

        if resp.is_success:
            return resp.json() if resp.content else {}

        code = _error_code(resp)
        if code in _CONFLICT_CODES:
            raise IdentityConflictError(f"Identifier already in use ({code})", code=code)
        if resp.status_code >= 500:
            raise IdentityProviderUnavailable(
                f"[{resp.status_code}] {endpoint}: {code}", code=code
            )
        raise IdentityProviderError(f"[{resp.status_code}] {endpoint}: {code}", code=code)


def _error_code(resp: httpx.Response) -> str:
    """Extract the provider's error code, e.g. ``EMAIL_EXISTS``."""
    try:
        message = resp.json().get("error", {}).get("message", "")
    except (ValueError, AttributeError):
        return resp.reason_phrase or "UNKNOWN"
    # Messages may carry detail after the code: "WEAK_PASSWORD : Password should be..."
    return message.split(":", 1)[0].strip() or "UNKNOWN"
