"""
Tests for settings loading and validation
"""
import pytest
from pydantic import ValidationError

from epg_catalog.config import CustomSettings, SourceConfig


@pytest.fixture
def make_settings(tmp_path):
    def factory(**overrides):
        overrides.setdefault("catalog_output_path", str(tmp_path / "merged_all.json"))
        overrides.setdefault("filtered_output_path", str(tmp_path / "filtered.xml"))
        return CustomSettings(_env_file=None, **overrides)

    return factory


class TestCustomSettings:
    def test_defaults(self, make_settings):
        settings = make_settings()

        assert [source.name for source in settings.enabled_sources] == ["samsung-tvplus-it", "tv-blue-ch"]
        assert settings.enabled_sources[0].apply_allow_list is True
        assert settings.max_programs_per_channel == 50
        assert settings.catalog_dedupe_programs is True

    def test_allow_list_from_environment(self, make_settings, monkeypatch):
        monkeypatch.setenv("CHANNEL_ALLOW_LIST", "IT1, IT2,,IT3")
        assert make_settings().channel_allow_list == ["IT1", "IT2", "IT3"]

    def test_sources_from_environment(self, make_settings, monkeypatch):
        monkeypatch.setenv(
            "CATALOG_SOURCES",
            '[{"name": "local", "kind": "xmltv", "url": "https://epg.test/local.xml"}]',
        )
        [source] = make_settings().enabled_sources
        assert source.name == "local"
        assert source.apply_allow_list is False

    def test_invalid_cron(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(catalog_fetch_cron="every morning")

    def test_non_positive_limits(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(max_programs_per_channel=0)

    def test_window_start_hour_range(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(catalog_window_start_hour=24)

    def test_missing_allow_list_file(self, make_settings, tmp_path):
        with pytest.raises(ValidationError):
            make_settings(channel_allow_list_path=str(tmp_path / "missing.txt"))

    def test_duplicate_source_names(self, make_settings):
        source = {"name": "dup", "kind": "xmltv", "url": "https://epg.test/a.xml"}
        with pytest.raises(ValidationError):
            make_settings(catalog_sources=[source, source])

    def test_empty_base_url_is_unset(self, make_settings):
        assert make_settings(base_catalog_url="").base_catalog_url is None


class TestSourceConfig:
    def test_non_http_url(self):
        with pytest.raises(ValidationError):
            SourceConfig(name="ftp", kind="xmltv", url="ftp://epg.test/a.xml")

    def test_json_catalog_needs_channel_list(self):
        with pytest.raises(ValidationError):
            SourceConfig(name="blue", kind="json_catalog", url="https://api.test")

    def test_inline_channels_instead_of_channel_list(self):
        source = SourceConfig(
            name="blue",
            kind="json_catalog",
            url="https://api.test",
            channels=[{"site_id": "356", "name": "RSI 1", "xmltv_id": "", "lang": "it"}],
        )
        assert source.channels[0].site_id == "356"
        assert source.channels[0].xmltv_id is None

    def test_aliases_normalized(self):
        source = SourceConfig(
            name="blue",
            kind="json_catalog",
            url="https://api.test",
            channel_list_url="https://lists.test/channels.xml",
            aliases={"La7 Cinema": "La 7d"},
        )
        assert source.aliases == {"la7cinema": "la7d"}

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            SourceConfig(name="x", kind="csv", url="https://epg.test/a.csv")
