from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from epg_catalog.models import Channel


class ProgramSchema(BaseModel):
    """Program as published in the unified catalog"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    title: str = Field(..., description="Program title, empty if the source omitted it")
    description: str | None = Field(None, description="Program description")
    start: datetime = Field(..., description="ISO8601 UTC start time")
    end: datetime = Field(..., description="ISO8601 UTC end time")
    poster_url: str | None = Field(None, alias="posterUrl", description="Poster, or the channel logo")


class ChannelSchema(BaseModel):
    """Channel as published in the unified catalog"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    identifier: str | None = Field(None, description="Source-specific channel identifier")
    display_name: str = Field(..., alias="displayName", description="Human-readable channel name")
    canonical_name: str = Field(..., alias="canonicalName", description="Name used for fallback matching")
    logo_url: str | None = Field(None, alias="logoUrl", description="URL to channel logo")
    programs: list[ProgramSchema] = Field(default_factory=list, description="Programs ordered by start")


CatalogAdapter = TypeAdapter(list[ChannelSchema])


def to_catalog_schema(snapshot: Sequence[Channel]) -> list[ChannelSchema]:
    return [ChannelSchema.model_validate(channel) for channel in snapshot]


def serialize_catalog(snapshot: Sequence[Channel]) -> str:
    """Render a catalog snapshot as the published JSON array"""
    return CatalogAdapter.dump_json(
        to_catalog_schema(snapshot),
        by_alias=True,
        indent=2,
    ).decode("utf-8")

