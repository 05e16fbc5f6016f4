"""
Fetch the provider's JWKS document and publish it into the ``KeyCache``.

Background for newcomers:
    The identity provider publishes its current public keys at
    ``{provider}/.well-known/jwks.json`` as ``{"keys": [...]}``. Keys rotate on
    the provider's schedule, so we re-download the document when the cached
    copy is older than the TTL or when a token names a ``kid`` we don't know.

    Under load, many requests can notice an expired cache at the same instant.
    ``refresh()`` is single-flight: one request performs the download and the
    others wait for and share its outcome, so the provider sees one GET instead
    of hundreds.

    One bad or unsupported entry (say, an ``oct`` key) is logged and skipped;
    it never takes down the rest of the key set. A failed download leaves the
    previous snapshot in place.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from .errors import FetchError, KeyParseError
from .key_cache import KeyCache, KeySnapshot
from .keys import VerificationKey, parse_key
from .singleflight import SingleFlight

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MIN_REFRESH_INTERVAL_SECONDS = 30.0

_UNCONDITIONAL = object()


class JwksFetcher:
    """
    Downloads and parses the JWKS document.

    ``fetch()`` performs one download and returns a new snapshot without
    touching the cache. ``refresh()`` is the single-flight entry point used on
    the request path: it downloads once for all concurrent callers and commits
    the result with ``KeyCache.replace``.
    """

    def __init__(
        self,
        jwks_uri: str,
        cache: KeyCache,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        min_refresh_interval_seconds: float = DEFAULT_MIN_REFRESH_INTERVAL_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        if not jwks_uri:
            raise ValueError("jwks_uri must be provided")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._uri = jwks_uri
        self._cache = cache
        self._timeout = timeout_seconds
        self._min_interval = max(0.0, float(min_refresh_interval_seconds))
        self._http = session or requests
        self._flight: SingleFlight[KeySnapshot | None] = SingleFlight()

    @property
    def jwks_uri(self) -> str:
        return self._uri

    def _download(self) -> Any:
        try:
            resp = self._http.get(
                self._uri,
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
        except requests.Timeout as e:
            raise FetchError(f"JWKS request timed out after {self._timeout}s") from e
        except requests.RequestException as e:
            raise FetchError(f"JWKS request failed: {type(e).__name__}") from e

        if resp.status_code != 200:
            raise FetchError(f"JWKS endpoint returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise FetchError("JWKS response is not valid JSON") from e

    def fetch(self) -> KeySnapshot:
        """Download the key set once and build a new ``KeySnapshot``."""
        body = self._download()

        entries = body.get("keys") if isinstance(body, dict) else None
        if not isinstance(entries, list):
            raise FetchError("Invalid JWKS response: no 'keys' array")

        parsed: dict[str, VerificationKey] = {}
        skipped = 0
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                logger.warning("Skipping JWKS entry #%d: not a JSON object", index)
                skipped += 1
                continue
            try:
                key = parse_key(entry)
            except KeyParseError as e:
                logger.warning("Skipping JWKS entry kid=%s kind=%s: %s", e.kid, e.kind.value, e.detail)
                skipped += 1
                continue
            if key.kid in parsed:
                logger.warning("Duplicate kid=%s in JWKS; keeping the later entry", key.kid)
            parsed[key.kid] = key

        if not parsed:
            logger.warning("JWKS document at uri=%s contained no usable keys", self._uri)

        snapshot = KeySnapshot(keys=parsed, fetched_at=self._cache.now())
        logger.info("JWKS fetched uri=%s keys=%d skipped=%d", self._uri, len(snapshot), skipped)
        return snapshot

    def _fetch_and_commit(self, observed: KeySnapshot | None | object) -> KeySnapshot | None:
        current = self._cache.snapshot
        if observed is not _UNCONDITIONAL and current is not observed:
            # Another flight already replaced what the caller judged stale or incomplete.
            logger.debug("JWKS already refreshed by a concurrent caller; reusing current snapshot")
            return current

        if current is not None and self._min_interval > 0:
            age = current.age(self._cache.now())
            # Never hold back a refresh once the snapshot is past its TTL.
            if age < min(self._min_interval, self._cache.ttl_seconds):
                logger.debug("JWKS refreshed %.1fs ago; reusing current snapshot", age)
                return current

        snapshot = self.fetch()
        self._cache.replace(snapshot)
        return snapshot

    def refresh(self, observed: KeySnapshot | None | object = _UNCONDITIONAL) -> KeySnapshot | None:
        """
        Refresh the cache, sharing one download among concurrent callers.

        ``observed`` is the snapshot the caller found stale or missing a
        ``kid`` (None for an empty cache). If the cache no longer holds that
        snapshot, someone else has refreshed since, and the current snapshot is
        returned without a download. Omit it to force a refresh.

        Raises ``FetchError`` (to every waiting caller) when the download
        fails; the cache then keeps its previous snapshot.
        """
        return self._flight.do(lambda: self._fetch_and_commit(observed))
