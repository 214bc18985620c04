"""Dependency probes, one round trip against one dependency each.

Supports: database connection, Redis ping, cache write/read-back, HTTP(S).
Every probe returns a ProbeResult; faults never escape ``run()``.
"""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from contextlib import closing
from typing import Any, Protocol, runtime_checkable

import httpx

from healthcheck.errors import VerificationError

from .models import ProbeResult

logger = logging.getLogger(__name__)

CACHE_VALUE_ALPHABET = string.ascii_letters + string.digits


# ── Contracts ────────────────────────────────────────────────────────────────


@runtime_checkable
class Probe(Protocol):
    name: str

    def run(self) -> ProbeResult:
        ...


class PingClient(Protocol):
    def ping(self) -> Any:
        ...


class KeyValueStore(Protocol):
    def put(self, key: str, value: str, ttl: int) -> None:
        ...

    def get(self, key: str) -> str | None:
        ...


class RedisKeyValueStore:
    """Adapts a redis-py style client (``set``/``get``) to KeyValueStore."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def put(self, key: str, value: str, ttl: int) -> None:
        self._client.set(key, value, ex=ttl)

    def get(self, key: str) -> str | None:
        raw = self._client.get(key)
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw


# ── Base ─────────────────────────────────────────────────────────────────────


def describe_fault(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class BaseProbe:
    """Turns ``check()`` into a ProbeResult.

    Subclasses return normally on success, raise VerificationError on a
    round-trip mismatch, and let driver exceptions propagate; all of them
    end up as an ERROR result carrying the exception text.
    """

    name = "Probe"

    def check(self) -> str | None:
        raise NotImplementedError

    def describe(self, exc: Exception) -> str:
        return describe_fault(exc)

    def run(self) -> ProbeResult:
        try:
            message = self.check()
        except Exception as e:
            message = self.describe(e)
            logger.warning("Probe %s failed: %s", self.name, message)
            return ProbeResult.error(self.name, message)
        if message:
            return ProbeResult.up(self.name, message)
        return ProbeResult.up(self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# ── Probes ───────────────────────────────────────────────────────────────────


class DatabaseProbe(BaseProbe):
    """Opens a connection and runs a trivial query through a DB-API cursor."""

    def __init__(
        self,
        connect: Callable[[], Any],
        name: str = "Database",
        query: str = "SELECT 1",
    ) -> None:
        self._connect = connect
        self.name = name
        self.query = query

    def check(self) -> None:
        with closing(self._connect()) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(self.query)
                cursor.fetchone()
            finally:
                cursor.close()


class PingProbe(BaseProbe):
    """Pings a server and requires the exact expected reply."""

    def __init__(self, client: PingClient, name: str = "Redis", expected: Any = True) -> None:
        self._client = client
        self.name = name
        self.expected = expected

    def check(self) -> None:
        reply = self._client.ping()
        if reply != self.expected:
            raise VerificationError(f"Received an invalid response of: {reply}")


def random_cache_value(length: int = 10) -> str:
    return "".join(secrets.choice(CACHE_VALUE_ALPHABET) for _ in range(length))


class CacheProbe(BaseProbe):
    """Writes a fresh random value with a TTL and reads it back."""

    def __init__(
        self,
        store: KeyValueStore,
        name: str = "Cache",
        key: str = "health:check",
        ttl: int = 10,
        value_factory: Callable[[], str] = random_cache_value,
    ) -> None:
        self._store = store
        self.name = name
        self.key = key
        self.ttl = ttl
        self._value_factory = value_factory

    def check(self) -> None:
        expected = self._value_factory()
        self._store.put(self.key, expected, self.ttl)
        actual = self._store.get(self.key)
        if actual != expected:
            raise VerificationError("The cached value does not match the expected value")


class HttpProbe(BaseProbe):
    """HTTP(S) round trip. The response status must match exactly."""

    def __init__(
        self,
        url: str,
        name: str = "Http",
        method: str = "GET",
        expected_status: int = 200,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.name = name
        self.method = method
        self.expected_status = expected_status
        self.timeout = timeout
        self._client = client

    def _request(self, client: httpx.Client) -> httpx.Response:
        return client.request(self.method, self.url)

    def check(self) -> None:
        if self._client is not None:
            resp = self._request(self._client)
        else:
            with httpx.Client(timeout=self.timeout, follow_redirects=True, verify=True) as client:
                resp = self._request(client)

        if resp.status_code != self.expected_status:
            raise VerificationError(f"Expected {self.expected_status}, got {resp.status_code}")

    def describe(self, exc: Exception) -> str:
        if isinstance(exc, httpx.TimeoutException):
            return f"Connection timed out ({self.timeout}s)"
        if isinstance(exc, httpx.ConnectError):
            return f"Connection error: {exc}"
        return super().describe(exc)
