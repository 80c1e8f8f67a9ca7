"""Key/value storage façade used for browser-style local storage dumps.

Entries live under a ``choreApp_`` prefix inside any string-to-string mapping
and are wrapped in a JSON envelope carrying the write timestamp, an optional
TTL in milliseconds and a checksum of the value. Entries can optionally be
obfuscated (XOR + base64) and compressed (zlib + base64); encoded entries are
tagged with a marker so reads do not need to know how they were written.
"""

import base64
import hashlib
import json
import logging
import threading
import time
import zlib
from collections.abc import Callable, MutableMapping
from typing import Any

logger = logging.getLogger("dailybag.storage")

STORAGE_PREFIX = "choreApp_"
DEFAULT_KEY = "daily-bag-local"
MAX_STORAGE_BYTES = 5 * 1024 * 1024
COMPRESS_THRESHOLD = 100

SET_LIMIT = 20
GET_LIMIT = 50
RATE_WINDOW_MS = 60_000

_ENCRYPTED_MARKER = "enc:"
_COMPRESSED_MARKER = "z:"


class StorageCorruptError(ValueError):
    pass


def _NowMs() -> int:
    return int(time.time() * 1000)


def _Checksum(value: Any) -> str:
    canonical = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _IsNumber(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _Xor(data: bytes, key: bytes) -> bytes:
    return bytes(byte ^ key[index % len(key)] for index, byte in enumerate(data))


class _RateLimiter:
    def __init__(self, clock: Callable[[], int]) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._state = {}

    def Allow(self, key: str, limit: int, window_ms: int) -> bool:
        if limit <= 0 or window_ms <= 0:
            return True
        now = self._clock()
        with self._lock:
            entry = self._state.get(key)
            if not entry or now - entry["start"] > window_ms:
                self._state[key] = {"start": now, "count": 1}
                return True
            if entry["count"] >= limit:
                return False
            entry["count"] += 1
            return True


class StorageManager:
    def __init__(
        self,
        backend: MutableMapping[str, str] | None = None,
        *,
        prefix: str = STORAGE_PREFIX,
        secret: str = DEFAULT_KEY,
        clock: Callable[[], int] | None = None,
        set_limit: int = SET_LIMIT,
        get_limit: int = GET_LIMIT,
        rate_window_ms: int = RATE_WINDOW_MS,
        max_bytes: int = MAX_STORAGE_BYTES,
    ) -> None:
        self.Backend = backend if backend is not None else {}
        self.Prefix = prefix
        self._secret = secret.encode("utf-8")
        self._clock = clock or _NowMs
        self._limiter = _RateLimiter(self._clock)
        self._set_limit = set_limit
        self._get_limit = get_limit
        self._rate_window_ms = rate_window_ms
        self._max_bytes = max_bytes

    def _StorageKey(self, key: str) -> str:
        return f"{self.Prefix}{key}"

    def _Encode(self, envelope: dict, encrypt: bool, compress: bool) -> str:
        data = json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)
        if encrypt:
            data = _ENCRYPTED_MARKER + base64.b64encode(_Xor(data.encode("utf-8"), self._secret)).decode("ascii")
        if compress and len(data) > COMPRESS_THRESHOLD:
            data = _COMPRESSED_MARKER + base64.b64encode(zlib.compress(data.encode("utf-8"))).decode("ascii")
        return data

    def _Decode(self, raw: str) -> dict:
        try:
            data = raw
            if data.startswith(_COMPRESSED_MARKER):
                data = zlib.decompress(base64.b64decode(data[len(_COMPRESSED_MARKER):])).decode("utf-8")
            if data.startswith(_ENCRYPTED_MARKER):
                data = _Xor(base64.b64decode(data[len(_ENCRYPTED_MARKER):]), self._secret).decode("utf-8")
            envelope = json.loads(data)
        except (ValueError, zlib.error) as exc:
            raise StorageCorruptError("unreadable storage entry") from exc

        if not isinstance(envelope, dict) or "value" not in envelope or "timestamp" not in envelope:
            raise StorageCorruptError("malformed storage envelope")
        if not _IsNumber(envelope["timestamp"]) or not (envelope.get("ttl") is None or _IsNumber(envelope["ttl"])):
            raise StorageCorruptError("malformed storage timestamp")
        checksum = envelope.get("checksum")
        if checksum is not None and checksum != _Checksum(envelope["value"]):
            raise StorageCorruptError("checksum mismatch")
        return envelope

    def _IsExpired(self, envelope: dict) -> bool:
        ttl = envelope.get("ttl")
        if not ttl:
            return False
        return self._clock() - int(envelope["timestamp"]) > int(ttl)

    def SetItem(
        self,
        key: str,
        value: Any,
        ttl_ms: int | None = None,
        *,
        encrypt: bool = False,
        compress: bool = False,
    ) -> bool:
        if not self._limiter.Allow("set", self._set_limit, self._rate_window_ms):
            logger.warning("storage set rate limited key=%s", key)
            return False
        envelope = {
            "value": value,
            "timestamp": self._clock(),
            "ttl": ttl_ms,
            "checksum": None,
        }
        try:
            envelope["checksum"] = _Checksum(value)
            self.Backend[self._StorageKey(key)] = self._Encode(envelope, encrypt, compress)
        except (TypeError, ValueError):
            logger.exception("failed to set storage item key=%s", key)
            return False
        return True

    def GetItem(self, key: str) -> Any:
        if not self._limiter.Allow("get", self._get_limit, self._rate_window_ms):
            logger.warning("storage get rate limited key=%s", key)
            return None
        raw = self.Backend.get(self._StorageKey(key))
        if not raw:
            return None
        try:
            envelope = self._Decode(raw)
        except StorageCorruptError:
            logger.warning("removing corrupt storage item key=%s", key)
            self.RemoveItem(key)
            return None
        if self._IsExpired(envelope):
            self.RemoveItem(key)
            return None
        return envelope["value"]

    def RemoveItem(self, key: str) -> bool:
        self.Backend.pop(self._StorageKey(key), None)
        return True

    def Clear(self) -> bool:
        for storage_key in [name for name in self.Backend if name.startswith(self.Prefix)]:
            del self.Backend[storage_key]
        return True

    def GetKeys(self) -> list[str]:
        return [name[len(self.Prefix):] for name in self.Backend if name.startswith(self.Prefix)]

    def HasItem(self, key: str) -> bool:
        raw = self.Backend.get(self._StorageKey(key))
        if not raw:
            return False
        try:
            envelope = self._Decode(raw)
        except StorageCorruptError:
            return False
        if self._IsExpired(envelope):
            self.RemoveItem(key)
            return False
        return True

    def GetStorageInfo(self) -> dict:
        used = sum(
            len(name.encode("utf-8")) + len(value.encode("utf-8"))
            for name, value in self.Backend.items()
            if name.startswith(self.Prefix)
        )
        return {
            "Used": used,
            "Available": max(0, self._max_bytes - used),
            "Total": self._max_bytes,
        }

    def Cleanup(self) -> int:
        removed = 0
        for key in self.GetKeys():
            raw = self.Backend.get(self._StorageKey(key))
            try:
                envelope = self._Decode(raw or "")
            except StorageCorruptError:
                continue
            if self._IsExpired(envelope):
                self.RemoveItem(key)
                removed += 1
        if removed:
            logger.info("storage cleanup removed=%s", removed)
        return removed

    def Load(self, entries: dict[str, Any]) -> int:
        """Import a raw browser storage dump.

        Keys carrying the prefix are copied as-is; unprefixed legacy keys hold
        plain JSON written before the envelope format existed and are wrapped.
        Returns the number of entries imported.
        """
        imported = 0
        for name, raw in entries.items():
            if name.startswith(self.Prefix):
                self.Backend[name] = raw if isinstance(raw, str) else json.dumps(raw)
                imported += 1
                continue
            try:
                value = json.loads(raw) if isinstance(raw, str) else raw
            except ValueError:
                logger.warning("skipping unreadable legacy key=%s", name)
                continue
            envelope = {
                "value": value,
                "timestamp": self._clock(),
                "ttl": None,
                "checksum": _Checksum(value),
            }
            self.Backend[self._StorageKey(name)] = self._Encode(envelope, False, False)
            imported += 1
        return imported
