# administrative_regions_repository.py

from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from administrative_regions import FlatRegion
from errors import StoreFailureError

logger = logging.getLogger(__name__)


# ----------------------------
# Model
# ----------------------------
@dataclass(frozen=True)
class Region:
    """A matched subdistrict in the shape returned to API clients.

    What:
        The seven public fields of a region row; ``postal_code`` is None when
        the source data has no postal code for the subdistrict.
    """
    id: str
    subdistrict: str
    district: str
    city: str
    province: str
    postal_code: Optional[str]
    full_text: str

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable mapping of this Region for logs, APIs, or tests.

        Returns:
            Dict[str, Any]: {'id','subdistrict','district','city','province','postal_code','full_text'}
        """
        return asdict(self)


# ----------------------------
# Repository
# ----------------------------
class AdministrativeRegionsRepository:
    """SQLite-backed store of denormalized regions.

    What:
        Holds one row per subdistrict (see ``FlatRegion``) and answers the
        predicates the search service needs: substring, exact match and
        column scans, each with ordering and a row limit.

    Lifecycle:
        The table is filled exactly once (``load_regions``), normally through
        ``build_region_store`` which writes a staging file and swaps it into
        place. Serving processes open the file read-only, so the rows are
        immutable for the lifetime of the process.

    Storage model (single table):
        regions(
            id           TEXT PRIMARY KEY,  -- 13-char subdistrict code, "11.01.01.2001"
            subdistrict  TEXT NOT NULL,
            district     TEXT NOT NULL,
            city         TEXT NOT NULL,
            province     TEXT NOT NULL,
            postal_code  TEXT,              -- NULL when unknown
            full_text    TEXT NOT NULL      -- lower("province city district subdistrict")
        )

    Indices:
        - postal_code, district, subdistrict, city, province, full_text
    """

    COLUMNS: Tuple[str, ...] = ("id", "subdistrict", "district", "city", "province", "postal_code", "full_text")
    _SELECT = "SELECT id, subdistrict, district, city, province, postal_code, full_text FROM regions"

    # SQLite caps bound parameters per statement (999 on older builds)
    _MAX_PARAMS = 500

    def __init__(self, sqlite_path: str | None = None, *, read_only: bool = True):
        """Open the store.

        Args:
            sqlite_path: SQLite file path, or None for a fresh in-memory store
                (always writable; used by tests and one-shot tools).
            read_only: Open an existing file without write access. A missing
                file is an error in this mode.

        Raises:
            StoreFailureError: The database file cannot be opened.
        """
        self.sqlite_path = sqlite_path
        self.read_only = read_only and sqlite_path is not None
        try:
            if sqlite_path is None:
                self.conn = sqlite3.connect(":memory:", check_same_thread=False)
            elif self.read_only:
                uri = Path(sqlite_path).resolve().as_uri() + "?mode=ro"
                self.conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
            else:
                self.conn = sqlite3.connect(sqlite_path, check_same_thread=False)
        except sqlite3.Error as e:
            logger.error("Failed to open region store %s: %s", sqlite_path, e)
            raise StoreFailureError("region store is unavailable") from e
        self.conn.row_factory = sqlite3.Row
        if not self.read_only:
            self._ensure_schema()

    def close(self) -> None:
        self.conn.close()

    # ----------------------------
    # Schema & load
    # ----------------------------
    def _ensure_schema(self) -> None:
        """Create the regions table and its indices if missing."""
        cur = self.conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS regions (
            id           TEXT PRIMARY KEY,
            subdistrict  TEXT NOT NULL,
            district     TEXT NOT NULL,
            city         TEXT NOT NULL,
            province     TEXT NOT NULL,
            postal_code  TEXT,
            full_text    TEXT NOT NULL
        )
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS idx_regions_postal_code ON regions(postal_code)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_regions_subdistrict ON regions(subdistrict)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_regions_district ON regions(district)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_regions_city ON regions(city)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_regions_province ON regions(province)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_regions_full_text ON regions(full_text)")
        self.conn.commit()

    def load_regions(self, rows: Iterable[FlatRegion]) -> int:
        """Insert the denormalized rows in a single transaction.

        Args:
            rows: Output of the denormalizer.

        Returns:
            Number of rows written.

        Raises:
            RuntimeError: The store is read-only or already populated.
        """
        if self.read_only:
            raise RuntimeError("region store is opened read-only")
        if self.count():
            raise RuntimeError("region store is already populated")

        to_insert = [r.as_row() for r in rows]
        with self.conn:
            self.conn.executemany("""
                INSERT INTO regions(id, subdistrict, district, city, province, postal_code, full_text)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, to_insert)
        return len(to_insert)

    # ----------------------------
    # Query helpers
    # ----------------------------
    def _column(self, name: str) -> str:
        if name not in self.COLUMNS:
            raise ValueError(f"unknown regions column: {name!r}")
        return name

    def _fetch(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            logger.error("Database query failed: %s (sql=%s)", e, " ".join(sql.split()))
            raise StoreFailureError("Database query failed") from e

    @staticmethod
    def _row_to_region(r: sqlite3.Row | Sequence[Any]) -> Region:
        """Convert a sqlite row/tuple into a Region entity.

        Args:
            r: sqlite row or tuple in ``COLUMNS`` order.

        Returns:
            Region model.
        """
        if isinstance(r, sqlite3.Row):
            return Region(r["id"], r["subdistrict"], r["district"], r["city"],
                          r["province"], r["postal_code"], r["full_text"])
        return Region(*r)

    @staticmethod
    def _limit(limit: Optional[int]) -> int:
        return -1 if limit is None else limit

    # ----------------------------
    # Read APIs: return Region objects
    # ----------------------------
    def find_containing(self, column: str, needle: str, *, order_by: str = "full_text",
                        limit: Optional[int] = None) -> List[Region]:
        """Rows whose ``column`` contains ``needle``, ignoring ASCII case.

        Args:
            column: Column to match on.
            needle: Substring to look for.
            order_by: Ascending sort column (ties broken by id).
            limit: Maximum rows; None for all.

        Returns:
            Matching regions.
        """
        col, order = self._column(column), self._column(order_by)
        rows = self._fetch(f"""
            {self._SELECT}
            WHERE instr(lower({col}), lower(?)) > 0
            ORDER BY {order}, id
            LIMIT ?
        """, (needle, self._limit(limit)))
        return [self._row_to_region(r) for r in rows]

    def find_equal(self, column: str, value: str, *, order_by: str = "full_text",
                   limit: Optional[int] = None) -> List[Region]:
        """Rows whose ``column`` equals ``value`` exactly.

        Args:
            column: Column to match on.
            value: Exact value.
            order_by: Ascending sort column (ties broken by id).
            limit: Maximum rows; None for all.

        Returns:
            Matching regions.
        """
        col, order = self._column(column), self._column(order_by)
        rows = self._fetch(f"""
            {self._SELECT}
            WHERE {col} = ?
            ORDER BY {order}, id
            LIMIT ?
        """, (value, self._limit(limit)))
        return [self._row_to_region(r) for r in rows]

    def find_in(self, column: str, values: Iterable[str], *, limit: Optional[int] = None) -> List[Region]:
        """Rows whose ``column`` is one of ``values``, ordered by id.

        Args:
            column: Column to match on.
            values: Accepted values.
            limit: Maximum rows; None for all.

        Returns:
            Matching regions sorted by id.
        """
        col = self._column(column)
        values = list(values)
        found: List[Region] = []
        for start in range(0, len(values), self._MAX_PARAMS):
            chunk = values[start:start + self._MAX_PARAMS]
            marks = ", ".join("?" * len(chunk))
            rows = self._fetch(f"""
                {self._SELECT}
                WHERE {col} IN ({marks})
                ORDER BY id
                LIMIT ?
            """, (*chunk, self._limit(limit)))
            found.extend(self._row_to_region(r) for r in rows)
        found.sort(key=lambda region: region.id)
        return found if limit is None else found[:limit]

    def distinct_values(self, column: str) -> List[str]:
        """Scan one column and return its distinct non-null values.

        Args:
            column: Column to scan.

        Returns:
            Distinct values, sorted.
        """
        col = self._column(column)
        rows = self._fetch(f"SELECT DISTINCT {col} FROM regions WHERE {col} IS NOT NULL ORDER BY {col}")
        return [r[0] for r in rows]

    def count(self) -> int:
        rows = self._fetch("SELECT COUNT(1) FROM regions")
        return rows[0][0]

    def ping(self) -> None:
        """Raise StoreFailureError unless the regions table can be read."""
        self._fetch("SELECT 1 FROM regions LIMIT 1")


def build_region_store(sqlite_path: str, rows: Iterable[FlatRegion]) -> int:
    """Write ``rows`` into a new store file and atomically swap it into ``sqlite_path``.

    The staging file lives next to the target; the target is only replaced
    once every row has been committed, so a failed build leaves the previous
    store untouched.

    Args:
        sqlite_path: Final database location.
        rows: Denormalized regions.

    Returns:
        Number of rows written.
    """
    target = Path(sqlite_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    staging = target.with_name(target.name + ".tmp")
    if staging.exists():
        staging.unlink()

    repo = AdministrativeRegionsRepository(str(staging), read_only=False)
    try:
        count = repo.load_regions(rows)
    except BaseException:
        repo.close()
        staging.unlink()
        raise
    repo.close()
    os.replace(staging, target)
    logger.info("Region store written to %s (%d rows)", target, count)
    return count
