# tests/conftest.py
from __future__ import annotations

from collections.abc import Generator
from typing import List

import pytest
from fastapi.testclient import TestClient

from administrative_regions import FlatRegion, RawPostalRecord, RawRegionRecord, denormalize
from administrative_regions_repository import AdministrativeRegionsRepository
from api import create_app
from config import Settings
from region_search import RegionSearchService

# ---------------------------------------------------------------------------
# A small slice of the real hierarchy: province -> city/regency -> district -> subdistrict
# ---------------------------------------------------------------------------

REGION_ROWS = [
    ("31", "DKI Jakarta"),
    ("31.71", "Kota Administrasi Jakarta Pusat"),
    ("31.71.01", "Gambir"),
    ("31.71.01.1001", "Gambir"),
    ("31.71.01.1002", "Kebon Kelapa"),
    ("31.71.06", "Menteng"),
    ("31.71.06.1001", "Menteng"),
    ("31.71.06.1002", "Pegangsaan"),
    ("31.71.06.1003", "Cikini"),
    ("31.73", "Kota Administrasi Jakarta Barat"),
    ("31.73.01", "Cengkareng"),
    ("31.73.01.1001", "Kedaung Kali Angke"),
    ("32", "Jawa Barat"),
    ("32.04", "Kabupaten Bandung"),
    ("32.04.05", "Cileunyi"),
    ("32.04.05.2001", "Cileunyi Kulon"),
    ("32.17", "Kabupaten Bandung Barat"),
    ("32.17.01", "Lembang"),
    ("32.17.01.2001", "Lembang"),
    ("32.73", "Kota Bandung"),
    ("32.73.01", "Sukasari"),
    ("32.73.01.1001", "Gegerkalong"),
    ("32.73.18", "Bandung Wetan"),
    ("32.73.18.1001", "Citarum"),
    ("32.73.19", "Bandung Kidul"),
    ("32.73.19.1001", "Batununggal"),
    ("32.73.19.1002", "Mengger"),
    ("34", "Daerah Istimewa Yogyakarta"),
    ("34.71", "Kota Yogyakarta"),
    ("34.71.01", "Mantrijeron"),
    ("34.71.01.1001", "Gedongkiwo"),
    ("35", "Jawa Timur"),
    ("35.78", "Kota Surabaya"),
    ("35.78.01", "Karang Pilang"),
    ("35.78.01.1001", "Karang Pilang"),
]

# Mengger (32.73.19.1002) deliberately has no postal code.
POSTAL_ROWS = [
    ("31.71.01.1001", "10110"),
    ("31.71.01.1002", "10120"),
    ("31.71.06.1001", "10310"),
    ("31.71.06.1002", "10320"),
    ("31.71.06.1003", "10330"),
    ("31.73.01.1001", "11710"),
    ("32.04.05.2001", "40622"),
    ("32.17.01.2001", "40391"),
    ("32.73.01.1001", "40153"),
    ("32.73.18.1001", "40115"),
    ("32.73.19.1001", "40266"),
    ("34.71.01.1001", "55142"),
    ("35.78.01.1001", "60221"),
]


@pytest.fixture
def raw_regions() -> List[RawRegionRecord]:
    return [RawRegionRecord(code, name) for code, name in REGION_ROWS]


@pytest.fixture
def raw_postals() -> List[RawPostalRecord]:
    return [RawPostalRecord(code, postal) for code, postal in POSTAL_ROWS]


@pytest.fixture
def flat_regions(raw_regions, raw_postals) -> List[FlatRegion]:
    return denormalize(raw_regions, raw_postals)


@pytest.fixture
def repository(flat_regions) -> Generator[AdministrativeRegionsRepository, None, None]:
    """In-memory region store loaded with the fixture hierarchy."""
    repo = AdministrativeRegionsRepository(None)
    repo.load_regions(flat_regions)
    yield repo
    repo.close()


@pytest.fixture
def service(repository) -> RegionSearchService:
    return RegionSearchService(repository)


@pytest.fixture
def client(service) -> TestClient:
    app = create_app(service, settings=Settings(DB_PATH=":unused:"))
    return TestClient(app)
