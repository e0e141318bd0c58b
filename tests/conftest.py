"""Shared fixtures for the catalog test suite."""
from datetime import datetime, timezone

import pytest

from epg_catalog.services.catalog_store import catalog_store
from epg_catalog.services.fetch_coordinator import reset_fetch_coordinator


SAMPLE_XMLTV = b"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE tv SYSTEM "xmltv.dtd">
<tv generator-info-name="unit-test" source-info-name="fixture">
  <channel id="IT1">
    <display-name lang="en">Rai One</display-name>
    <display-name lang="it">Rai 1</display-name>
    <icon src="http://logos.test/rai1.png"/>
  </channel>
  <channel id="IT2">
    <display-name>Rai Sport</display-name>
  </channel>
  <channel>
    <display-name>Nameless</display-name>
  </channel>
  <programme channel="IT1" start="20240101100000 +0000" stop="20240101110000 +0000">
    <title lang="en">News</title>
    <title lang="it">Telegiornale</title>
    <desc lang="it">Notizie del giorno</desc>
  </programme>
  <programme channel="IT1" start="20240101120000 +0100">
    <title>Film</title>
    <icon src="http://posters.test/film.png"/>
  </programme>
  <programme start="20240101120000 +0000" stop="20240101130000 +0000">
    <title>Orphan</title>
  </programme>
  <programme channel="IT2" start="not-a-time" stop="20240101130000 +0000">
    <title>Broken start</title>
  </programme>
  <programme channel="IT9" start="20240101120000 +0000" stop="20240101130000 +0000">
    <title>Unknown channel</title>
  </programme>
</tv>
"""

SAMPLE_CHANNEL_LIST = b"""<?xml version="1.0" encoding="UTF-8"?>
<channels>
  <channel site="tv.blue.ch" lang="it" xmltv_id="RSI1.it" site_id="356">RSI 1</channel>
  <channel site="tv.blue.ch" lang="it" xmltv_id="" site_id="2015">rai-sport</channel>
  <channel site="tv.blue.ch" lang="it" xmltv_id="Broken.it" site_id="999">Broken</channel>
  <channel site="tv.blue.ch" lang="it">Missing site id</channel>
</channels>
"""


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def catalog_response(items, nested_content=True):
    """Build a JSON catalog API response wrapping ``items``"""
    if nested_content:
        return {"Nodes": {"Items": [{"Content": {"Nodes": {"Items": items}}}]}}
    return {"Nodes": {"Items": [{"Nodes": {"Items": items}}]}}


def catalog_item(title, start, end=None, summary=None):
    availability = {"AvailabilityStart": start}
    if end:
        availability["AvailabilityEnd"] = end
    description = {"Title": title}
    if summary:
        description["Summary"] = summary
    return {"Availabilities": [availability], "Content": {"Description": description}}


@pytest.fixture
def sample_xmltv() -> bytes:
    return SAMPLE_XMLTV


@pytest.fixture
def sample_channel_list() -> bytes:
    return SAMPLE_CHANNEL_LIST


@pytest.fixture(autouse=True)
def reset_global_state():
    reset_fetch_coordinator()
    catalog_store.reset()
    yield
    reset_fetch_coordinator()
    catalog_store.reset()
