"""Tests for DataPaths, IngestSettings and the store registry."""

import json
from pathlib import Path

import pytest

from pos_ingest import ConfigError, DataPaths, IngestSettings, Platform, ValidationError
from pos_ingest.etl.utils import format_duration, slugify, store_file_stem
from pos_ingest.stores import StoreRegistry, load_stores_from_json

STORES = {
    "cafe-1": {"name": "High St Café", "platform": "takemypayments", "outlet_id": "OUT-01", "mid": "4432001"},
    "salon-1": {"name": "Hair by Noa", "platform": "booker", "booker_id": "9081"},
}


def test_data_paths_layout() -> None:
    paths = DataPaths.from_root("data", "utils/stores.json")
    assert paths.data_root == Path("data")
    assert paths.stores_json == Path("utils/stores.json")
    assert paths.raw_uploads == Path("data/a_raw/uploads")
    assert paths.clean_transactions == Path("data/b_clean/transactions")
    assert paths.upload_meta == Path("data/b_clean/transactions/_meta")
    assert paths.mart_analytics == Path("data/c_processed/analytics")


def test_ensure_dirs(paths) -> None:
    paths.ensure_dirs()
    for path in (paths.raw_uploads, paths.clean_transactions, paths.upload_meta, paths.mart_analytics):
        assert path.is_dir()


class TestIngestSettings:
    def test_defaults(self) -> None:
        settings = IngestSettings()
        assert settings.max_file_bytes == 25 * 1024 * 1024
        assert settings.max_rows == 200_000
        assert settings.date_fallback == "now"
        assert settings.accept_zero_amount is True

    def test_invalid_values(self) -> None:
        with pytest.raises(ConfigError, match="date_fallback"):
            IngestSettings(date_fallback="yesterday")
        with pytest.raises(ConfigError):
            IngestSettings(max_rows=0)

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("POS_INGEST_MAX_FILE_BYTES", "1024")
        monkeypatch.setenv("POS_INGEST_MAX_ROWS", "50")
        monkeypatch.setenv("POS_INGEST_DATE_FALLBACK", " Reject ")
        monkeypatch.setenv("POS_INGEST_ACCEPT_ZERO_AMOUNT", "no")

        settings = IngestSettings.from_env()
        assert settings == IngestSettings(
            max_file_bytes=1024, max_rows=50, date_fallback="reject", accept_zero_amount=False
        )

    def test_from_env_unset_keeps_defaults(self, monkeypatch) -> None:
        for name in (
            "POS_INGEST_MAX_FILE_BYTES",
            "POS_INGEST_MAX_ROWS",
            "POS_INGEST_DATE_FALLBACK",
            "POS_INGEST_ACCEPT_ZERO_AMOUNT",
        ):
            monkeypatch.delenv(name, raising=False)
        assert IngestSettings.from_env() == IngestSettings()

    @pytest.mark.parametrize(
        "name,value",
        [("POS_INGEST_MAX_ROWS", "lots"), ("POS_INGEST_ACCEPT_ZERO_AMOUNT", "maybe")],
    )
    def test_from_env_invalid(self, monkeypatch, name: str, value: str) -> None:
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigError, match=name):
            IngestSettings.from_env()


class TestStoreRegistry:
    @pytest.fixture
    def registry(self, paths) -> StoreRegistry:
        paths.stores_json.write_text(json.dumps(STORES), encoding="utf-8")
        return StoreRegistry(paths)

    def test_list_stores(self, registry) -> None:
        assert registry.list_stores() == ["cafe-1", "salon-1"]
        assert "cafe-1" in registry
        assert "nobody" not in registry

    def test_get(self, registry) -> None:
        cafe = registry.get("cafe-1")
        assert cafe.store_name == "High St Café"
        assert cafe.platform is Platform.TAKEMYPAYMENTS
        assert cafe.outlet_id == "OUT-01"
        assert registry.get("salon-1").booker_id == 9081

    def test_unknown_store(self, registry) -> None:
        with pytest.raises(ConfigError, match="not found"):
            registry.get("nobody")

    def test_context_for_overrides(self, registry) -> None:
        ctx = registry.context_for("cafe-1", store_name="Café (new name)")
        assert ctx.store_name == "Café (new name)"
        assert ctx.mid == "4432001"
        assert registry.context_for("cafe-1", platform="booker").platform is Platform.BOOKER
        with pytest.raises(ValidationError):
            registry.context_for("cafe-1", platform="square")

    def test_missing_file(self, paths) -> None:
        with pytest.raises(ConfigError, match="not found"):
            StoreRegistry(paths)

    @pytest.mark.parametrize(
        "content,fragment",
        [
            ("{not json", "Invalid JSON"),
            ("[]", "object keyed by store id"),
            (json.dumps({"s": {"platform": "booker"}}), "has no name"),
            (json.dumps({"s": {"name": "S", "platform": "square"}}), "Unsupported platform"),
            (json.dumps({"s": {"name": "S", "platform": "booker", "booker_id": "x"}}), "booker_id"),
        ],
    )
    def test_invalid_file(self, paths, content: str, fragment: str) -> None:
        paths.stores_json.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError, match=fragment):
            load_stores_from_json(paths.stores_json)


class TestFileNaming:
    def test_slugify(self) -> None:
        assert slugify("Noa's Café") == "noas-cafe"
        assert slugify("store_1") == "store_1"
        assert slugify("!!!") == "unknown"

    def test_store_file_stem_distinguishes_similar_ids(self) -> None:
        assert store_file_stem("Store 1") != store_file_stem("store-1")
        assert store_file_stem("cafe-1") == store_file_stem("cafe-1")

    def test_format_duration(self) -> None:
        assert format_duration(45.2) == "45.2s"
        assert format_duration(90.5) == "1m 30.5s"
