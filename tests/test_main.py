# tests/test_main.py
from __future__ import annotations

from administrative_regions_repository import AdministrativeRegionsRepository
from config import Settings
from main import build_parser, main


def _write_sources(tmp_path, region_rows, postal_rows):
    regions = tmp_path / "wilayah.csv"
    regions.write_text("kode,nama\n" + "".join(f"{c},{n}\n" for c, n in region_rows), encoding="utf-8")
    postals = tmp_path / "kodepos.csv"
    postals.write_text("".join(f"{c},{p}\n" for c, p in postal_rows), encoding="utf-8")
    return regions, postals


REGIONS = [
    ("32", "Jawa Barat"),
    ("32.73", "Kota Bandung"),
    ("32.73.19", "Bandung Kidul"),
    ("32.73.19.1001", "Batununggal"),
    ("32.73.19.1002", "Mengger"),
]


def test_ingest_builds_store(tmp_path):
    regions, postals = _write_sources(tmp_path, REGIONS, [("32.73.19.1001", "40266")])
    db = tmp_path / "out" / "regions.db"

    rc = main(["ingest", "--regions", str(regions), "--postal", str(postals), "--db", str(db)])

    assert rc == 0
    repo = AdministrativeRegionsRepository(str(db))
    try:
        assert repo.count() == 2
        [batununggal] = repo.find_equal("postal_code", "40266")
        assert batununggal.full_text == "jawa barat kota bandung bandung kidul batununggal"
    finally:
        repo.close()


def test_ingest_without_postal_table(tmp_path):
    regions, _ = _write_sources(tmp_path, REGIONS, [])
    db = tmp_path / "regions.db"

    assert main(["ingest", "--regions", str(regions), "--postal", "", "--db", str(db)]) == 0

    repo = AdministrativeRegionsRepository(str(db))
    try:
        assert repo.distinct_values("postal_code") == []
    finally:
        repo.close()


def test_ingest_missing_ancestor_leaves_no_store(tmp_path):
    regions, postals = _write_sources(tmp_path, REGIONS[1:], [])
    db = tmp_path / "regions.db"

    rc = main(["ingest", "--regions", str(regions), "--postal", str(postals), "--db", str(db)])

    assert rc == 1
    assert not db.exists()
    assert not (tmp_path / "regions.db.tmp").exists()


def test_ingest_empty_source_fails(tmp_path):
    regions, postals = _write_sources(tmp_path, REGIONS[:1], [])
    db = tmp_path / "regions.db"

    assert main(["ingest", "--regions", str(regions), "--postal", str(postals), "--db", str(db)]) == 1
    assert not db.exists()


def test_serve_missing_store_fails(tmp_path):
    assert main(["serve", "--db", str(tmp_path / "missing.db")]) == 1


def test_parser_defaults_come_from_settings():
    settings = Settings(DB_PATH="custom.db", PORT=9000)
    args = build_parser(settings).parse_args(["serve"])
    assert args.db == "custom.db"
    assert args.port == 9000
