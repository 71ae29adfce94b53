import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy import create_engine, String, Text, DateTime
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, mapped_column

# Local SQLite DB under ./storage/ (created if missing)
ROOT = Path(__file__).resolve().parents[2]   # project root
STORAGE_DIR = ROOT / "storage"

def default_db_url() -> str:
    STORAGE_DIR.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{(STORAGE_DIR / 'legalletter.db').as_posix()}"


class Base(DeclarativeBase):
    pass

class KeyValue(Base):
    __tablename__ = "kv_store"
    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class Backend(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class MemoryBackend:
    """Plain dict; one per test gives full isolation."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SqlBackend:
    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
        Base.metadata.create_all(bind=engine)

    @classmethod
    def from_url(cls, url: str | None = None) -> "SqlBackend":
        url = url or default_db_url()
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        return cls(create_engine(url, connect_args=connect_args))

    def get(self, key: str) -> str | None:
        with self.SessionLocal() as db:
            row = db.get(KeyValue, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with self.SessionLocal() as db:
            row = db.get(KeyValue, key)
            if row:
                row.value = value
            else:
                db.add(KeyValue(key=key, value=value))
            db.commit()

    def remove(self, key: str) -> None:
        with self.SessionLocal() as db:
            row = db.get(KeyValue, key)
            if row:
                db.delete(row)
                db.commit()


class KeyValueStore:
    """
    Namespaced JSON store. Each logical table (users, letters, ...) is one key
    holding the whole serialized collection, written back in full on change.
    """

    def __init__(self, backend: Backend, prefix: str = "legalletter_v2_"):
        self.backend = backend
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.backend.get(self._key(key))
        if raw is None:
            return default
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.backend.set(self._key(key), json.dumps(value, ensure_ascii=False))

    def remove(self, key: str) -> None:
        self.backend.remove(self._key(key))
