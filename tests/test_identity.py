"""
Tests for channel identity resolution
"""
import pytest

from epg_catalog.models import Channel
from epg_catalog.utils.identity import (
    find_matching_channel,
    identity_key,
    normalize_name,
    resolve_alias,
)


class TestNormalizeName:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Rai Sport", "raisport"),
            ("rai-sport", "raisport"),
            ("RAI  SPORT\t2", "raisport2"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, name, expected):
        assert normalize_name(name) == expected


class TestResolveAlias:
    ALIASES = {"la7cinema": "la7d", "warnertv": "warnertvitaly"}

    def test_name_matching_target(self):
        assert resolve_alias("La 7d", self.ALIASES) == "la7cinema"

    def test_name_matching_alias(self):
        assert resolve_alias("Warner-TV", self.ALIASES) == "warnertv"

    def test_no_alias(self):
        assert resolve_alias("RSI 1", self.ALIASES) is None
        assert resolve_alias("", self.ALIASES) is None


class TestIdentityKey:
    def test_identifier_key(self):
        assert identity_key(Channel(display_name="Alpha", identifier="X1")) == "id:X1"

    def test_name_key(self):
        assert identity_key(Channel(display_name="Rai Sport")) == "name:raisport"


class TestFindMatchingChannel:
    def test_identifier_match(self):
        catalog = [Channel(display_name="Alpha", identifier="X1")]
        incoming = Channel(display_name="Something else", identifier="X1")
        assert find_matching_channel(catalog, incoming) == 0

    def test_identifier_beats_earlier_name_match(self):
        catalog = [
            Channel(display_name="Alpha"),
            Channel(display_name="Beta", identifier="X1"),
        ]
        incoming = Channel(display_name="Alpha", identifier="X1")
        assert find_matching_channel(catalog, incoming) == 1

    def test_name_fallback(self):
        catalog = [Channel(display_name="Rai Sport", identifier="IT2")]
        incoming = Channel(display_name="rai-sport", identifier="2015")
        assert find_matching_channel(catalog, incoming) == 0

    def test_first_name_match_wins(self):
        catalog = [Channel(display_name="Rai Sport"), Channel(display_name="RAI-SPORT")]
        assert find_matching_channel(catalog, Channel(display_name="rai sport")) == 0

    def test_canonical_name_used(self):
        catalog = [Channel(display_name="Alpha", canonical_name="Alpha HD")]
        assert find_matching_channel(catalog, Channel(display_name="alpha hd")) == 0
        assert find_matching_channel(catalog, Channel(display_name="Alpha")) is None

    def test_no_match(self):
        catalog = [Channel(display_name="Alpha", identifier="X1")]
        assert find_matching_channel(catalog, Channel(display_name="Beta", identifier="X2")) is None

    def test_empty_catalog(self):
        assert find_matching_channel([], Channel(display_name="Alpha")) is None
