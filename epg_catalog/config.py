from pathlib import Path
from typing import Annotated, Literal
import logging

from croniter import croniter
from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from epg_catalog.utils.identity import normalize_name


logger = logging.getLogger(__name__)

SAMSUNG_IT_XMLTV_URL = (
    "https://raw.githubusercontent.com/matthuisman/i.mjh.nz/refs/heads/master/SamsungTVPlus/it.xml"
)
BLUE_CHANNEL_LIST_URL = (
    "https://raw.githubusercontent.com/iptv-org/epg/refs/heads/master/sites/tv.blue.ch/tv.blue.ch.channels.xml"
)
BLUE_API_BASE = "https://services.sg101.prd.sctv.ch"

# Matching aliases for Blue channels whose names differ from the XMLTV feeds
BLUE_CHANNEL_ALIASES = {
    "la7cinema": "la7d",
    "warnertv": "warnertvitaly",
}


def _validate_http_url(url: str) -> str:
    if not url.lower().startswith(("http://", "https://")):
        raise ValueError(f"Source URL must be HTTP/HTTPS: {url}")
    return url


class ChannelListItem(BaseModel):
    """Inline channel list entry of a JSON catalog source."""

    site_id: str
    name: str
    xmltv_id: str | None = None
    lang: str | None = None

    @field_validator("site_id", "name")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("xmltv_id", "lang")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class SourceConfig(BaseModel):
    """One configured EPG source, merged in list order."""

    name: str
    kind: Literal["xmltv", "json_catalog"]
    url: str
    channel_list_url: str | None = None
    channels: list[ChannelListItem] | None = None  # Used instead of channel_list_url when set
    aliases: dict[str, str] = {}  # Matching alias -> normalized channel name
    apply_allow_list: bool = False
    enabled: bool = True

    @field_validator("url", "channel_list_url")
    @classmethod
    def validate_urls(cls, value: str | None) -> str | None:
        """Validate source URLs are HTTP/HTTPS."""
        if value is None:
            return value
        return _validate_http_url(value)

    @field_validator("aliases")
    @classmethod
    def normalize_aliases(cls, value: dict[str, str]) -> dict[str, str]:
        """Compare aliases the way channel names are compared."""
        return {normalize_name(alias): normalize_name(target) for alias, target in value.items()}

    @model_validator(mode="after")
    def validate_channel_list(self):
        """JSON catalog sources need a channel list to enumerate channels."""
        if self.kind == "json_catalog" and not (self.channel_list_url or self.channels):
            raise ValueError(
                f"Source '{self.name}' of kind json_catalog needs channel_list_url or channels"
            )
        return self


def _default_sources() -> list[SourceConfig]:
    return [
        SourceConfig(name="samsung-tvplus-it", kind="xmltv", url=SAMSUNG_IT_XMLTV_URL, apply_allow_list=True),
        SourceConfig(
            name="tv-blue-ch",
            kind="json_catalog",
            url=BLUE_API_BASE,
            channel_list_url=BLUE_CHANNEL_LIST_URL,
            aliases=BLUE_CHANNEL_ALIASES,
        ),
    ]


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    base_catalog_url: str | None = None
    catalog_sources: list[SourceConfig] = _default_sources()
    channel_allow_list: Annotated[list[str], NoDecode] = []
    channel_allow_list_path: str | None = None
    preferred_language: str = "it"

    fetch_concurrency: int = 10  # Concurrent fetches per batch
    fetch_timeout_sec: float = 60.0
    fetch_max_retries: int = 3
    fetch_backoff_factor: float = 2.0
    fetch_user_agent: str = "epg-catalog/0.1.0"

    max_programs_per_channel: int = 50
    catalog_window_start_hour: int = 6  # Catalog API window starts today at this UTC hour
    default_program_duration_min: int = 60
    catalog_dedupe_programs: bool = True

    catalog_output_path: str = "./data/merged_all.json"
    filtered_output_path: str = "./data/filtered.xml"
    filter_source_url: str | None = SAMSUNG_IT_XMLTV_URL

    catalog_fetch_cron: str = "0 5 * * *"  # Daily at 5 AM
    catalog_fetch_misfire_grace_sec: int = 3600  # Allow 1 hour to run missed jobs
    catalog_filter_cron: str | None = None  # Filter-only runs are manual unless set
    catalog_build_on_startup: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("channel_allow_list", mode="before")
    @classmethod
    def parse_channel_allow_list(cls, value):
        """Parse comma-separated channel identifiers or list."""
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    @field_validator("base_catalog_url", "filter_source_url")
    @classmethod
    def validate_urls(cls, value: str | None) -> str | None:
        """Validate URLs are HTTP/HTTPS."""
        if not value:
            return None
        return _validate_http_url(value)

    @field_validator("catalog_output_path", "filtered_output_path")
    @classmethod
    def validate_output_path(cls, value: str) -> str:
        """Validate output path is accessible."""
        path = Path(value)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return value
        except (OSError, PermissionError) as exc:
            raise ValueError(f"Cannot access output path '{value}': {exc}") from exc

    @field_validator("channel_allow_list_path")
    @classmethod
    def validate_allow_list_path(cls, value: str | None) -> str | None:
        """Validate the allow-list file exists."""
        if value and not Path(value).is_file():
            raise ValueError(f"Channel allow-list file not found: '{value}'")
        return value or None

    @field_validator(
        "fetch_concurrency",
        "fetch_max_retries",
        "max_programs_per_channel",
        "default_program_duration_min",
    )
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("fetch_timeout_sec")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Validate fetch timeout (seconds)."""
        if value <= 0:
            raise ValueError("fetch_timeout_sec must be > 0")
        return value

    @field_validator("fetch_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff factor is at least 1."""
        if value < 1:
            raise ValueError("fetch_backoff_factor must be >= 1")
        return value

    @field_validator("catalog_window_start_hour")
    @classmethod
    def validate_window_start_hour(cls, value: int) -> int:
        """Validate the catalog window start hour."""
        if not 0 <= value <= 23:
            raise ValueError("catalog_window_start_hour must be between 0 and 23")
        return value

    @field_validator("catalog_fetch_misfire_grace_sec")
    @classmethod
    def validate_misfire_grace(cls, value: int) -> int:
        """Validate scheduler misfire grace period (seconds)."""
        if value < 0:
            raise ValueError("catalog_fetch_misfire_grace_sec must be >= 0")
        return value

    @field_validator("preferred_language")
    @classmethod
    def validate_preferred_language(cls, value: str) -> str:
        """Normalize the preferred language tag."""
        value = value.strip()
        if not value:
            raise ValueError("preferred_language must not be empty")
        return value

    @field_validator("catalog_fetch_cron", "catalog_filter_cron")
    @classmethod
    def validate_cron_expression(cls, value: str | None) -> str | None:
        """Validate cron expressions; the filter schedule may be unset."""
        if value is None:
            return value
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @model_validator(mode="after")
    def validate_source_configuration(self):
        """Validate cross-field configuration."""
        if not self.base_catalog_url and not self.enabled_sources:
            logger.warning(
                "No base catalog and no enabled sources configured - builds will fail"
            )

        names = [source.name for source in self.catalog_sources]
        if len(names) != len(set(names)):
            raise ValueError("catalog_sources names must be unique")

        return self

    @property
    def enabled_sources(self) -> list[SourceConfig]:
        return [source for source in self.catalog_sources if source.enabled]

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Base Catalog: %s", "configured" if self.base_catalog_url else "none")
        logger.info(
            "  Sources: %s",
            ", ".join(f"{source.name} ({source.kind})" for source in self.enabled_sources) or "none",
        )
        logger.info(
            "  Allow-list: %s inline ids, file %s",
            len(self.channel_allow_list),
            self.channel_allow_list_path or "not set",
        )
        logger.info("  Preferred Language: %s", self.preferred_language)
        logger.info("  Fetch Concurrency: %s", self.fetch_concurrency)
        logger.info(
            "  Fetch Timeout: %ss (retries=%s, backoff=%.1f)",
            self.fetch_timeout_sec,
            self.fetch_max_retries,
            self.fetch_backoff_factor,
        )
        logger.info("  Max Programs Per Channel: %s", self.max_programs_per_channel)
        logger.info("  Default Program Duration: %s min", self.default_program_duration_min)
        logger.info("  Program Dedup: %s", "on" if self.catalog_dedupe_programs else "off")
        logger.info("  Catalog Output: %s", self.catalog_output_path)
        logger.info("  Filtered Output: %s", self.filtered_output_path)
        logger.info("  Fetch Schedule: %s", self.catalog_fetch_cron)
        logger.info("  Filter Schedule: %s", self.catalog_filter_cron or "manual only")
        logger.info("  Fetch Misfire Grace: %ss", self.catalog_fetch_misfire_grace_sec)
        logger.info("  Build On Startup: %s", self.catalog_build_on_startup)


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
