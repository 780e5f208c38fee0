# tests/test_administrative_regions_repository.py
from __future__ import annotations

import sqlite3

import pytest

from administrative_regions_repository import AdministrativeRegionsRepository, Region, build_region_store
from errors import IngestionError, StoreFailureError


def test_build_region_store_swaps_in_file(tmp_path, flat_regions):
    db = tmp_path / "data" / "regions.db"

    count = build_region_store(str(db), flat_regions)

    assert count == len(flat_regions)
    assert db.exists()
    assert not (tmp_path / "data" / "regions.db.tmp").exists()

    repo = AdministrativeRegionsRepository(str(db), read_only=True)
    try:
        assert repo.count() == len(flat_regions)
        [gambir] = repo.find_equal("postal_code", "10110")
        assert gambir == Region(
            id="31.71.01.1001",
            subdistrict="Gambir",
            district="Gambir",
            city="Kota Administrasi Jakarta Pusat",
            province="DKI Jakarta",
            postal_code="10110",
            full_text="dki jakarta kota administrasi jakarta pusat gambir gambir",
        )
    finally:
        repo.close()


def test_failed_build_keeps_previous_store(tmp_path, flat_regions):
    db = tmp_path / "regions.db"
    build_region_store(str(db), flat_regions[:3])

    def broken_rows():
        yield flat_regions[0]
        raise IngestionError("source vanished")

    with pytest.raises(IngestionError):
        build_region_store(str(db), broken_rows())

    assert not (tmp_path / "regions.db.tmp").exists()
    repo = AdministrativeRegionsRepository(str(db))
    try:
        assert repo.count() == 3
    finally:
        repo.close()


def test_rebuild_replaces_previous_store(tmp_path, flat_regions):
    db = tmp_path / "regions.db"
    build_region_store(str(db), flat_regions[:3])
    build_region_store(str(db), flat_regions)

    repo = AdministrativeRegionsRepository(str(db))
    try:
        assert repo.count() == len(flat_regions)
    finally:
        repo.close()


def test_read_only_store_rejects_writes(tmp_path, flat_regions):
    db = tmp_path / "regions.db"
    build_region_store(str(db), flat_regions)

    repo = AdministrativeRegionsRepository(str(db), read_only=True)
    try:
        with pytest.raises(RuntimeError, match="read-only"):
            repo.load_regions(flat_regions)
    finally:
        repo.close()


def test_store_is_loaded_once(repository, flat_regions):
    with pytest.raises(RuntimeError, match="already populated"):
        repository.load_regions(flat_regions)


def test_missing_store_file(tmp_path):
    with pytest.raises(StoreFailureError):
        AdministrativeRegionsRepository(str(tmp_path / "missing.db"), read_only=True)


def test_store_without_regions_table(tmp_path):
    db = tmp_path / "other.db"
    conn = sqlite3.connect(str(db))
    conn.execute("CREATE TABLE other (x TEXT)")
    conn.commit()
    conn.close()

    repo = AdministrativeRegionsRepository(str(db), read_only=True)
    try:
        with pytest.raises(StoreFailureError, match="Database query failed"):
            repo.ping()
    finally:
        repo.close()


def test_ping(repository):
    repository.ping()


def test_unknown_column_rejected(repository):
    with pytest.raises(ValueError):
        repository.find_containing("name; DROP TABLE regions", "x")
    with pytest.raises(ValueError):
        repository.find_equal("city", "x", order_by="nope")


def test_find_containing_ignores_case(repository):
    rows = repository.find_containing("full_text", "JAKARTA BARAT")
    assert [r.id for r in rows] == ["31.73.01.1001"]


def test_find_containing_orders_and_limits(repository):
    rows = repository.find_containing("full_text", "jakarta pusat", limit=2)
    assert [r.subdistrict for r in rows] == ["Gambir", "Kebon Kelapa"]


def test_find_equal_is_exact(repository):
    assert repository.find_equal("district", "Bandung") == []
    rows = repository.find_equal("district", "Menteng")
    assert [r.subdistrict for r in rows] == ["Cikini", "Menteng", "Pegangsaan"]


def test_find_in_orders_by_id_across_chunks(repository, monkeypatch):
    monkeypatch.setattr(AdministrativeRegionsRepository, "_MAX_PARAMS", 1)
    rows = repository.find_in("city", ["Kota Bandung", "Kabupaten Bandung", "Kabupaten Bandung Barat"])
    assert [r.id for r in rows] == [
        "32.04.05.2001",
        "32.17.01.2001",
        "32.73.01.1001",
        "32.73.18.1001",
        "32.73.19.1001",
        "32.73.19.1002",
    ]

    limited = repository.find_in("city", ["Kota Bandung", "Kabupaten Bandung"], limit=2)
    assert [r.id for r in limited] == ["32.04.05.2001", "32.73.01.1001"]


def test_distinct_values(repository):
    assert repository.distinct_values("province") == [
        "DKI Jakarta",
        "Daerah Istimewa Yogyakarta",
        "Jawa Barat",
        "Jawa Timur",
    ]
    assert None not in repository.distinct_values("postal_code")


def test_region_to_dict(repository):
    [mengger] = repository.find_equal("subdistrict", "Mengger")
    assert mengger.to_dict() == {
        "id": "32.73.19.1002",
        "subdistrict": "Mengger",
        "district": "Bandung Kidul",
        "city": "Kota Bandung",
        "province": "Jawa Barat",
        "postal_code": None,
        "full_text": "jawa barat kota bandung bandung kidul mengger",
    }
