import json
import threading
from typing import Any, Iterable, Optional

import redis
import structlog
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from ..config import settings
from .metrics import storage_reads_total, storage_writes_total
from .models import Base, KeyValueORM

logger = structlog.get_logger()


class KeyValueStore:
    """JSON documents addressed by key.

    Reads always decode a fresh copy, so callers may mutate what they get back.
    `write_many` is the only mutation primitive: every backend applies it
    atomically. `lock` serializes read-modify-write cycles inside one process.
    """

    backend = "abstract"

    def __init__(self):
        self.lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        storage_reads_total.labels(backend=self.backend).inc()
        raw = self._read(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self.write_many({key: value})

    def delete(self, key: str) -> None:
        self.write_many({}, delete=[key])

    def write_many(self, values: dict[str, Any], delete: Iterable[str] = ()) -> None:
        encoded = {key: json.dumps(value, ensure_ascii=False) for key, value in values.items()}
        delete = [key for key in delete if key not in encoded]
        self._write(encoded, delete)
        storage_writes_total.labels(backend=self.backend).inc()

    def keys(self) -> list[str]:
        raise NotImplementedError

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, encoded: dict[str, str], delete: list[str]) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    backend = "memory"

    def __init__(self):
        super().__init__()
        self._data: dict[str, str] = {}

    def keys(self) -> list[str]:
        return sorted(self._data)

    def _read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, encoded: dict[str, str], delete: list[str]) -> None:
        with self.lock:
            self._data.update(encoded)
            for key in delete:
                self._data.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    backend = "sql"

    def __init__(self, session_factory: sessionmaker):
        super().__init__()
        self.session_factory = session_factory

    def keys(self) -> list[str]:
        with self.session_factory() as db:
            return list(db.scalars(select(KeyValueORM.key).order_by(KeyValueORM.key)))

    def _read(self, key: str) -> Optional[str]:
        with self.session_factory() as db:
            row = db.get(KeyValueORM, key)
            return row.value if row else None

    def _write(self, encoded: dict[str, str], delete: list[str]) -> None:
        # One transaction: either every document lands or none does.
        with self.session_factory.begin() as db:
            for key, value in encoded.items():
                db.merge(KeyValueORM(key=key, value=value))
            for key in delete:
                row = db.get(KeyValueORM, key)
                if row is not None:
                    db.delete(row)


class RedisKeyValueStore(KeyValueStore):
    backend = "redis"

    def __init__(self, client: redis.Redis, namespace: str = "storefront"):
        super().__init__()
        self.client = client
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def keys(self) -> list[str]:
        prefix = f"{self.namespace}:"
        return sorted(k[len(prefix):] for k in self.client.keys(f"{prefix}*"))

    def _read(self, key: str) -> Optional[str]:
        return self.client.get(self._key(key))

    def _write(self, encoded: dict[str, str], delete: list[str]) -> None:
        pipe = self.client.pipeline(transaction=True)
        for key, value in encoded.items():
            pipe.set(self._key(key), value)
        for key in delete:
            pipe.delete(self._key(key))
        pipe.execute()


_redis_client: Optional[redis.Redis] = None
_store: Optional[KeyValueStore] = None


def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True
        )
    return _redis_client


def build_kv_store(backend: str) -> KeyValueStore:
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "redis":
        return RedisKeyValueStore(get_redis(), namespace=settings.STORAGE_NAMESPACE)
    if backend == "sql":
        from .db import engine, SessionLocal
        Base.metadata.create_all(bind=engine)
        return SqlKeyValueStore(SessionLocal)
    raise ValueError(f"Unknown storage backend: {backend}")


def get_kv_store() -> KeyValueStore:
    global _store
    if _store is None:
        _store = build_kv_store(settings.STORAGE_BACKEND)
        logger.info("storage_ready", backend=_store.backend)
    return _store
