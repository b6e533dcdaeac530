"""Key/value document stores (in-memory, JSON file, Supabase table).

Values are JSON-compatible dicts. The only query besides point lookups is
``get_by_prefix``, which returns every value whose key starts with a prefix.
"""

import abc
import copy
import fcntl
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class KeyValueStore(abc.ABC):
    """Opaque string-keyed JSON store. No transactions, no secondary indexes."""

    @abc.abstractmethod
    def get(self, key: str) -> dict[str, Any] | None: ...

    @abc.abstractmethod
    def set(self, key: str, value: dict[str, Any]) -> None: ...

    @abc.abstractmethod
    def delete(self, key: str) -> None: ...

    @abc.abstractmethod
    def get_by_prefix(self, prefix: str) -> list[dict[str, Any]]:
        """Return values whose key starts with ``prefix``, ordered by key."""

    def close(self) -> None:
        """Release backend resources."""


class InMemoryKVStore(KeyValueStore):
    """Process-local store, used in development and tests."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def get_by_prefix(self, prefix: str) -> list[dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(self._data[k])
                for k in sorted(self._data)
                if k.startswith(prefix)
            ]


class JsonFileKVStore(KeyValueStore):
    """Single JSON file on disk (fcntl.flock + atomic replace)."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_path = self.path.with_name(self.path.name + ".lock")

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text(encoding="utf-8") or "{}")

    def _write(self, data: dict[str, dict[str, Any]]) -> None:
        with tempfile.NamedTemporaryFile(
            "w", dir=self.path.parent, delete=False, suffix=".json", encoding="utf-8"
        ) as tmp:
            json.dump(data, tmp, indent=2)
        os.replace(tmp.name, self.path)

    def _locked(self, exclusive: bool):
        lock_file = open(self._lock_path, "w")
        fcntl.flock(lock_file, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        return lock_file

    def get(self, key: str) -> dict[str, Any] | None:
        with self._locked(exclusive=False):
            return self._read().get(key)

    def set(self, key: str, value: dict[str, Any]) -> None:
        with self._locked(exclusive=True):
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._locked(exclusive=True):
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    def get_by_prefix(self, prefix: str) -> list[dict[str, Any]]:
        with self._locked(exclusive=False):
            data = self._read()
        return [data[k] for k in sorted(data) if k.startswith(prefix)]


class SupabaseKVStore(KeyValueStore):
    """Key/value table (``key text primary key, value jsonb``) behind PostgREST."""

    def __init__(
        self,
        url: str,
        service_role_key: str,
        table: str = "kv_store",
        client: httpx.Client | None = None,
    ) -> None:
        self.table = table
        self._client = client or httpx.Client(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
            },
            timeout=10.0,
        )

    def get(self, key: str) -> dict[str, Any] | None:
        response = self._client.get(
            f"/{self.table}", params={"select": "value", "key": f"eq.{key}"}
        )
        response.raise_for_status()
        rows = response.json()
        return rows[0]["value"] if rows else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        response = self._client.post(
            f"/{self.table}",
            json={"key": key, "value": value},
            headers={"Prefer": "resolution=merge-duplicates"},
        )
        response.raise_for_status()

    def delete(self, key: str) -> None:
        response = self._client.delete(f"/{self.table}", params={"key": f"eq.{key}"})
        response.raise_for_status()

    def get_by_prefix(self, prefix: str) -> list[dict[str, Any]]:
        response = self._client.get(
            f"/{self.table}",
            params={"select": "key,value", "key": f"like.{prefix}*", "order": "key.asc"},
        )
        response.raise_for_status()
        # LIKE treats "_" as a wildcard; keep exact prefix matches only.
        return [row["value"] for row in response.json() if row["key"].startswith(prefix)]

    def close(self) -> None:
        self._client.close()


def create_store(settings) -> KeyValueStore:
    """Build the store selected by ``settings.store_backend``."""
    backend = settings.store_backend
    if backend == "memory":
        store: KeyValueStore = InMemoryKVStore()
    elif backend == "file":
        store = JsonFileKVStore(settings.store_path)
    elif backend == "supabase":
        if not settings.supabase_configured:
            raise ValueError("store_backend=supabase requires supabase_url and supabase_service_role_key")
        store = SupabaseKVStore(
            settings.supabase_url,
            settings.supabase_service_role_key,
            table=settings.supabase_kv_table,
        )
    else:
        raise ValueError(f"Unknown store backend: {backend}")
    logger.info("kv_store_created", backend=backend)
    return store
