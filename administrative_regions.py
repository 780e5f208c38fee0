"""
filepath: administrative_regions.py

Raw administrative-region sources and the denormalizer:
- Loads (code,name) records with hierarchical codes: 11 / 11.01 / 11.01.01 / 11.01.01.2001
  from either a 2-column CSV or the upstream MySQL dump (wilayah.sql)
- Loads (code,postal_code) records the same way (wilayah_kodepos.sql)
- Tolerant to headers or BOM in CSV files; DDL in dumps is ignored
- Joins every subdistrict with its district, city/regency and province into one flat row
Public API:
    read_region_records(path) -> List[RawRegionRecord]
    read_postal_records(path) -> List[RawPostalRecord]
    AdministrativeRegions(regions, postals).denormalize() -> List[FlatRegion]
    denormalize(regions, postals) -> List[FlatRegion]
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from errors import IngestionError

logger = logging.getLogger(__name__)

# Code length per hierarchy level; a shorter code is the prefix of all its descendants.
PROVINCE_CODE_LEN = 2
CITY_CODE_LEN = 5
DISTRICT_CODE_LEN = 8
SUBDISTRICT_CODE_LEN = 13

_LEVEL_BY_LENGTH = {
    PROVINCE_CODE_LEN: "province",
    CITY_CODE_LEN: "city",
    DISTRICT_CODE_LEN: "district",
    SUBDISTRICT_CODE_LEN: "subdistrict",
}

_REGION_HEADERS = (("id", "kode", "kode_wilayah", "code"), ("name", "nama", "wilayah"))
_POSTAL_HEADERS = (("id", "kode", "kode_wilayah", "code"), ("kodepos", "kode_pos", "postal_code"))

_INSERT_RE = re.compile(
    r"INSERT\s+(?:IGNORE\s+)?INTO\s+[`\"]?\w+[`\"]?\s*(?:\([^)]*\))?\s*VALUES",
    re.IGNORECASE,
)


# ----------------------------
# Models
# ----------------------------
@dataclass(frozen=True)
class RawRegionRecord:
    code: str
    name: str


@dataclass(frozen=True)
class RawPostalRecord:
    code: str
    postal_code: str


@dataclass(frozen=True)
class FlatRegion:
    """One searchable row: a subdistrict with all its ancestors and postal code.

    ``id`` is always the 13-character subdistrict code and ``full_text`` the
    lowercase ``province city district subdistrict`` string.
    """
    id: str
    subdistrict: str
    district: str
    city: str
    province: str
    postal_code: Optional[str]
    full_text: str

    def as_row(self) -> Tuple[str, str, str, str, str, Optional[str], str]:
        return (self.id, self.subdistrict, self.district, self.city,
                self.province, self.postal_code, self.full_text)


def build_full_text(province: str, city: str, district: str, subdistrict: str) -> str:
    return " ".join((province, city, district, subdistrict)).lower()


# ----------------------------
# Source readers
# ----------------------------
def _is_header(row: Tuple[str, str], headers: Tuple[Tuple[str, ...], Tuple[str, ...]]) -> bool:
    return row[0].lower() in headers[0] and row[1].lower() in headers[1]


def _csv_pairs(path: Path, headers) -> Iterator[Tuple[str, str]]:
    with open(path, newline='', encoding='utf-8-sig') as f:
        reader = csv.reader(f)
        for row in reader:
            if not row or len(row) < 2:
                continue
            pair = ((row[0] or "").strip(), (row[1] or "").strip())
            if not pair[0] or not pair[1]:
                continue
            # Skip header if present
            if _is_header(pair, headers):
                continue
            yield pair


def _sql_value(buf: List[str], quoted: bool) -> Optional[str]:
    text = "".join(buf).strip()
    if not quoted and text.upper() == "NULL":
        return None
    return text


def iter_insert_tuples(sql: str) -> Iterator[Tuple[Optional[str], ...]]:
    """Yield every value tuple of every ``INSERT INTO ... VALUES`` statement.

    Handles single-quoted strings with ``''`` or backslash escapes and bare
    ``NULL``; everything outside INSERT statements (CREATE TABLE, indexes,
    SET/LOCK lines) is skipped.

    Raises:
        IngestionError: a statement ends inside a string or a tuple.
    """
    for match in _INSERT_RE.finditer(sql):
        i, n = match.end(), len(sql)
        fields: List[Optional[str]] = []
        buf: List[str] = []
        in_tuple = in_string = was_quoted = False
        while i < n:
            ch = sql[i]
            if in_string:
                if ch == "\\" and i + 1 < n:
                    buf.append(sql[i + 1])
                    i += 2
                    continue
                if ch == "'":
                    if i + 1 < n and sql[i + 1] == "'":
                        buf.append("'")
                        i += 2
                        continue
                    in_string = False
                else:
                    buf.append(ch)
            elif ch == "'" and in_tuple:
                in_string = was_quoted = True
            elif ch == "(" and not in_tuple:
                in_tuple, fields, buf, was_quoted = True, [], [], False
            elif ch in ",)" and in_tuple:
                fields.append(_sql_value(buf, was_quoted))
                buf, was_quoted = [], False
                if ch == ")":
                    in_tuple = False
                    yield tuple(fields)
            elif ch == ";" and not in_tuple:
                break
            elif in_tuple:
                buf.append(ch)
            i += 1
        if in_tuple or in_string:
            raise IngestionError("unterminated INSERT statement at offset %d" % match.start())


def _sql_pairs(path: Path) -> Iterator[Tuple[str, str]]:
    with open(path, encoding='utf-8-sig') as f:
        sql = f.read()
    for values in iter_insert_tuples(sql):
        if len(values) < 2 or not values[0] or not values[1]:
            continue
        yield values[0], values[1]


def _read_pairs(path: str, headers) -> List[Tuple[str, str]]:
    source = Path(path)
    try:
        if source.suffix.lower() == ".sql":
            return list(_sql_pairs(source))
        return list(_csv_pairs(source, headers))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise IngestionError(f"cannot read {path}: {e}") from e


def read_region_records(path: str) -> List[RawRegionRecord]:
    """Read all (code, name) records, every hierarchy level mixed together."""
    records = [RawRegionRecord(code, name) for code, name in _read_pairs(path, _REGION_HEADERS)]
    logger.info("Read %d region records from %s", len(records), path)
    return records


def read_postal_records(path: str) -> List[RawPostalRecord]:
    """Read all (subdistrict code, postal code) records."""
    records = [RawPostalRecord(code, postal) for code, postal in _read_pairs(path, _POSTAL_HEADERS)]
    logger.info("Read %d postal records from %s", len(records), path)
    return records


# ----------------------------
# Denormalizer
# ----------------------------
class AdministrativeRegions:
    """
    Raw hierarchy (Province -> City/Kab -> District -> Subdistrict) plus postal codes,
    indexed by code for the one-time denormalization into flat search rows.
    """

    def __init__(self, regions: Iterable[RawRegionRecord], postals: Iterable[RawPostalRecord] = ()):
        # {code: name}, one map per level
        self.provinces: Dict[str, str] = {}
        self.cities: Dict[str, str] = {}
        self.districts: Dict[str, str] = {}
        self.subdistricts: Dict[str, str] = {}
        self.postal_codes: Dict[str, str] = {}

        self._levels: Dict[str, Dict[str, str]] = {
            "province": self.provinces,
            "city": self.cities,
            "district": self.districts,
            "subdistrict": self.subdistricts,
        }
        self._load_regions(regions)
        self._load_postals(postals)

    def _load_regions(self, regions: Iterable[RawRegionRecord]) -> None:
        ignored = 0
        for rec in regions:
            level = _LEVEL_BY_LENGTH.get(len(rec.code))
            if level is None:
                ignored += 1
                continue
            bucket = self._levels[level]
            if rec.code in bucket and bucket[rec.code] != rec.name:
                logger.warning("Duplicate region code %s: %r replaces %r", rec.code, rec.name, bucket[rec.code])
            bucket[rec.code] = rec.name
        if ignored:
            logger.debug("Ignored %d region records with unknown code length", ignored)

    def _load_postals(self, postals: Iterable[RawPostalRecord]) -> None:
        for rec in postals:
            known = self.postal_codes.get(rec.code)
            if known is not None:
                if known != rec.postal_code:
                    logger.warning("Subdistrict %s has several postal codes; keeping %s, ignoring %s",
                                   rec.code, known, rec.postal_code)
                continue
            self.postal_codes[rec.code] = rec.postal_code

    def _ancestor(self, code: str, width: int) -> str:
        level = _LEVEL_BY_LENGTH[width]
        parent = code[:width]
        name = self._levels[level].get(parent)
        if name is None:
            raise IngestionError(f"subdistrict {code} has no {level} record {parent!r}")
        return name

    def denormalize(self) -> List[FlatRegion]:
        """Resolve every subdistrict's ancestors and join its postal code.

        Returns:
            One FlatRegion per subdistrict, ordered by code. Subdistricts
            without a postal code keep ``postal_code=None``.

        Raises:
            IngestionError: a district, city or province record is missing;
                no partial result is returned.
        """
        rows: List[FlatRegion] = []
        for code in sorted(self.subdistricts):
            subdistrict = self.subdistricts[code]
            district = self._ancestor(code, DISTRICT_CODE_LEN)
            city = self._ancestor(code, CITY_CODE_LEN)
            province = self._ancestor(code, PROVINCE_CODE_LEN)
            rows.append(FlatRegion(
                id=code,
                subdistrict=subdistrict,
                district=district,
                city=city,
                province=province,
                postal_code=self.postal_codes.get(code),
                full_text=build_full_text(province, city, district, subdistrict),
            ))
        without_postal = sum(1 for r in rows if r.postal_code is None)
        logger.info("Denormalized %d subdistricts (%d without postal code)", len(rows), without_postal)
        return rows


def denormalize(regions: Iterable[RawRegionRecord], postals: Iterable[RawPostalRecord] = ()) -> List[FlatRegion]:
    return AdministrativeRegions(regions, postals).denormalize()
