"""Database helpers and the listing store."""

import json
import logging
import re
import sqlite3
import uuid
from contextlib import closing, contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, Iterator, List, Optional

from psycopg2 import pool

from placesync.core.config import get_settings
from placesync.models import AuditEntry, ListingRecord

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_PYFORMAT_PARAM = re.compile(r"%\((\w+)\)s")


def init_pool(minconn: int = 1, maxconn: int = 5, dsn: Optional[str] = None) -> pool.SimpleConnectionPool:
    """Initialise and return the shared PostgreSQL connection pool."""
    global _connection_pool
    if _connection_pool is None:
        dsn = dsn or get_settings().database_url
        if not dsn:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=dsn,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def sqlite_connector(path: str) -> Callable[[], ContextManager[sqlite3.Connection]]:
    """Open one SQLite connection and return a factory that keeps yielding it.

    The factory's ``close`` attribute closes the underlying connection.
    """
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    logger.info("Connected to SQLite at %s", path)

    @contextmanager
    def connect() -> Iterator[sqlite3.Connection]:
        yield conn

    connect.close = conn.close
    return connect


def open_store(database_url: Optional[str] = None, *, create_schema: bool = True, **kwargs: Any) -> "ListingStore":
    """Build a ListingStore for a ``sqlite:///`` or PostgreSQL database URL.

    Pass ``create_schema=False`` for read-only callers that must not run DDL.
    """
    url = database_url or get_settings().database_url
    if url.startswith("sqlite:///"):
        store = ListingStore(sqlite_connector(url[len("sqlite:///"):]), dialect="sqlite", **kwargs)
    else:
        init_pool(dsn=url)
        store = ListingStore(get_connection, dialect="postgres", **kwargs)
    if create_schema:
        store.ensure_schema()
    return store


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS listings (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT UNIQUE NOT NULL,
        description TEXT,
        address TEXT NOT NULL,
        city TEXT,
        state TEXT,
        zip_code TEXT,
        latitude REAL NOT NULL,
        longitude REAL NOT NULL,
        phone TEXT,
        website TEXT,
        categories TEXT,
        cuisine_types TEXT,
        hours TEXT,
        price_level TEXT DEFAULT 'MODERATE',
        photos TEXT,
        rating REAL,
        review_count INTEGER DEFAULT 0,
        source TEXT DEFAULT 'google_places',
        source_id TEXT UNIQUE NOT NULL,
        metadata TEXT,
        active INTEGER DEFAULT 1,
        created_at TEXT,
        updated_at TEXT,
        last_verified TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_logs (
        id TEXT PRIMARY KEY,
        seq INTEGER NOT NULL,
        entity TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        action TEXT NOT NULL,
        changes TEXT,
        metadata TEXT,
        created_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_listings_active ON listings(active)",
    "CREATE INDEX IF NOT EXISTS idx_listings_last_verified ON listings(last_verified)",
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_entity ON audit_logs(entity, entity_id)",
)

_UPSERT_LISTING = """
INSERT INTO listings (
    id,
    name,
    slug,
    description,
    address,
    city,
    state,
    zip_code,
    latitude,
    longitude,
    phone,
    website,
    categories,
    cuisine_types,
    hours,
    price_level,
    photos,
    rating,
    review_count,
    source,
    source_id,
    metadata,
    active,
    created_at,
    updated_at,
    last_verified
) VALUES (
    %(id)s,
    %(name)s,
    %(slug)s,
    %(description)s,
    %(address)s,
    %(city)s,
    %(state)s,
    %(zip_code)s,
    %(latitude)s,
    %(longitude)s,
    %(phone)s,
    %(website)s,
    %(categories)s,
    %(cuisine_types)s,
    %(hours)s,
    %(price_level)s,
    %(photos)s,
    %(rating)s,
    %(review_count)s,
    %(source)s,
    %(source_id)s,
    %(metadata)s,
    %(active)s,
    %(now)s,
    %(now)s,
    %(now)s
)
ON CONFLICT (source_id) DO UPDATE SET
    name = EXCLUDED.name,
    description = EXCLUDED.description,
    address = EXCLUDED.address,
    city = EXCLUDED.city,
    state = EXCLUDED.state,
    zip_code = EXCLUDED.zip_code,
    latitude = EXCLUDED.latitude,
    longitude = EXCLUDED.longitude,
    phone = EXCLUDED.phone,
    website = EXCLUDED.website,
    categories = EXCLUDED.categories,
    cuisine_types = EXCLUDED.cuisine_types,
    hours = EXCLUDED.hours,
    price_level = EXCLUDED.price_level,
    photos = EXCLUDED.photos,
    rating = EXCLUDED.rating,
    review_count = EXCLUDED.review_count,
    metadata = EXCLUDED.metadata,
    active = EXCLUDED.active,
    updated_at = EXCLUDED.updated_at,
    last_verified = EXCLUDED.last_verified
RETURNING id
"""

_INSERT_AUDIT = """
INSERT INTO audit_logs (id, seq, entity, entity_id, action, changes, metadata, created_at)
VALUES (
    %(id)s,
    (SELECT COALESCE(MAX(seq), 0) + 1 FROM audit_logs),
    %(entity)s,
    %(entity_id)s,
    %(action)s,
    %(changes)s,
    %(metadata)s,
    %(created_at)s
)
"""

_SELECT_BY_SOURCE_ID = "SELECT * FROM listings WHERE source_id = %(source_id)s LIMIT 1"

_SELECT_STALE = """
SELECT * FROM listings
WHERE last_verified < %(cutoff)s OR last_verified IS NULL
ORDER BY last_verified ASC NULLS FIRST
"""

_SELECT_STATS = """
SELECT
    COUNT(*) AS total,
    COALESCE(SUM(CASE WHEN active = 1 THEN 1 ELSE 0 END), 0) AS active,
    COALESCE(SUM(CASE WHEN active = 0 THEN 1 ELSE 0 END), 0) AS inactive,
    AVG(rating) AS avg_rating
FROM listings
"""

_JSON_COLUMNS = ("categories", "cuisine_types", "hours", "photos", "metadata")


def _dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _load_json(value: Any) -> Any:
    if value is None or not isinstance(value, str):
        return value
    return json.loads(value)


def _prepare_params(record: ListingRecord) -> Dict[str, Any]:
    return {
        "name": record.name,
        "slug": record.slug,
        "description": record.description,
        "address": record.address,
        "city": record.city,
        "state": record.state,
        "zip_code": record.zip_code,
        "latitude": record.latitude,
        "longitude": record.longitude,
        "phone": record.phone,
        "website": record.website,
        "categories": _dump_json(record.categories),
        "cuisine_types": _dump_json(record.cuisine_types),
        "hours": _dump_json(record.hours),
        "price_level": record.price_level,
        "photos": _dump_json(record.photos),
        "rating": record.rating,
        "review_count": record.review_count,
        "source": record.source,
        "source_id": record.source_id,
        "metadata": _dump_json(record.metadata),
        "active": 1 if record.active else 0,
    }


def _row_to_record(row: Dict[str, Any]) -> ListingRecord:
    data = dict(row)
    for column in _JSON_COLUMNS:
        data[column] = _load_json(data.get(column))
    data["categories"] = data["categories"] or []
    data["cuisine_types"] = data["cuisine_types"] or []
    data["photos"] = data["photos"] or []
    data["metadata"] = data["metadata"] or {}
    data["active"] = bool(data.get("active"))
    return ListingRecord(**data)


class ListingStore:
    """Listings keyed by Google place id plus an append-only audit log."""

    def __init__(
        self,
        connect: Callable[[], ContextManager[Any]],
        *,
        dialect: str = "postgres",
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        if dialect not in {"postgres", "sqlite"}:
            raise ValueError(f"Unsupported database dialect: {dialect}")
        self._connect = connect
        self.dialect = dialect
        self._clock = clock
        self._id_factory = id_factory

    def close(self) -> None:
        """Close a store-owned connection; pooled PostgreSQL connections stay with the pool."""
        close = getattr(self._connect, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "ListingStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _sql(self, statement: str) -> str:
        if self.dialect == "sqlite":
            return _PYFORMAT_PARAM.sub(r":\1", statement)
        return statement

    @contextmanager
    def _cursor(self):
        with self._connect() as conn:
            try:
                with closing(conn.cursor()) as cur:
                    yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _fetch_dicts(self, statement: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute(self._sql(statement), params)
            columns = [column[0] for column in cur.description]
            return [dict(zip(columns, row)) for row in cur.fetchall()]

    def ensure_schema(self) -> None:
        with self._cursor() as cur:
            for statement in _SCHEMA:
                cur.execute(statement)
        logger.info("Database schema initialised")

    def upsert(self, record: ListingRecord) -> str:
        """Insert or update ``record`` by source_id and return the stable internal id."""
        if not record.source_id:
            raise ValueError("source_id is required for upsert")

        params = _prepare_params(record)
        params["id"] = self._id_factory()
        params["now"] = format_timestamp(self._clock())

        with self._cursor() as cur:
            cur.execute(self._sql(_UPSERT_LISTING), params)
            listing_id = cur.fetchone()[0]
        logger.debug("Upserted listing %s (%s) as %s", record.source_id, record.name, listing_id)
        return listing_id

    def find_by_source_id(self, source_id: str) -> Optional[ListingRecord]:
        rows = self._fetch_dicts(_SELECT_BY_SOURCE_ID, {"source_id": source_id})
        return _row_to_record(rows[0]) if rows else None

    def get_stale(self, days: int = 7) -> List[ListingRecord]:
        """Listings not verified within ``days`` (or never), oldest first."""
        cutoff = format_timestamp(self._clock() - timedelta(days=days))
        return [_row_to_record(row) for row in self._fetch_dicts(_SELECT_STALE, {"cutoff": cutoff})]

    def log_audit(
        self,
        entity: str,
        entity_id: str,
        action: str,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        params = {
            "id": self._id_factory(),
            "entity": entity,
            "entity_id": entity_id,
            "action": action,
            "changes": _dump_json(changes) if changes else None,
            "metadata": _dump_json(metadata) if metadata else None,
            "created_at": format_timestamp(self._clock()),
        }
        with self._cursor() as cur:
            cur.execute(self._sql(_INSERT_AUDIT), params)
        logger.debug("Audit %s %s/%s", action, entity, entity_id)
        return params["id"]

    def audit_entries(self, entity: Optional[str] = None, entity_id: Optional[str] = None) -> List[AuditEntry]:
        clauses = []
        params: Dict[str, Any] = {}
        if entity is not None:
            clauses.append("entity = %(entity)s")
            params["entity"] = entity
        if entity_id is not None:
            clauses.append("entity_id = %(entity_id)s")
            params["entity_id"] = entity_id
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._fetch_dicts(f"SELECT * FROM audit_logs{where} ORDER BY seq ASC", params)
        return [
            AuditEntry(
                id=row["id"],
                entity=row["entity"],
                entity_id=row["entity_id"],
                action=row["action"],
                changes=_load_json(row["changes"]),
                metadata=_load_json(row["metadata"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def get_stats(self) -> Dict[str, Any]:
        row = self._fetch_dicts(_SELECT_STATS, {})[0]
        avg_rating = row.get("avg_rating")
        return {
            "total": int(row.get("total") or 0),
            "active": int(row.get("active") or 0),
            "inactive": int(row.get("inactive") or 0),
            "avg_rating": round(float(avg_rating), 2) if avg_rating is not None else 0.0,
        }
