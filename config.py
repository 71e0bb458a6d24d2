import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


@dataclass(frozen=True)
class BotConfig:
    token: str
    log_level: str = "INFO"


@dataclass(frozen=True)
class DatabaseConfig:
    dsn: str


@dataclass(frozen=True)
class VenueConfig:
    admin_chat_id: int
    channel_id: int | str


@dataclass(frozen=True)
class EventRules:
    timezone: str = "UTC"
    date_format: str = "%d.%m.%Y %H:%M"
    date_only_format: str = "%d.%m.%Y"
    max_categories: int = 3
    max_event_edits: int = 0
    require_approval: bool = True
    push_min_age_days: int = 7
    max_templates: int = 10

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class RateLimitConfig:
    requests: int = 5
    window_seconds: float = 5.0


@dataclass(frozen=True)
class ArchiveConfig:
    interval_minutes: int = 15
    retention_hours: int = 2


@dataclass(frozen=True)
class SupportConfig:
    email: str | None = None
    telegram_user: str | None = None
    rules: str | None = None


@dataclass(frozen=True)
class Config:
    bot: BotConfig
    database: DatabaseConfig
    venues: VenueConfig
    events: EventRules
    rate_limit: RateLimitConfig
    archive: ArchiveConfig
    support: SupportConfig


def load_config() -> Config:
    load_dotenv()
    token = _require_env("BOT_TOKEN")
    dsn = _require_env("DATABASE_URL")
    venues = VenueConfig(
        admin_chat_id=_parse_chat_id(_require_env("ADMIN_CHAT_ID"), "ADMIN_CHAT_ID"),
        channel_id=_parse_channel_id(_require_env("CHANNEL_CHAT_ID")),
    )
    timezone_name = os.getenv("TIMEZONE") or "UTC"
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as error:
        raise RuntimeError(f"TIMEZONE '{timezone_name}' is not a known timezone") from error
    events = EventRules(
        timezone=timezone_name,
        date_format=os.getenv("DATE_FORMAT") or "%d.%m.%Y %H:%M",
        date_only_format=os.getenv("DATE_ONLY_FORMAT") or "%d.%m.%Y",
        max_categories=_int_env("MAX_CATEGORIES", 3, positive=True),
        max_event_edits=_int_env("MAX_EVENT_EDITS", 0),
        require_approval=_parse_bool(os.getenv("EVENTS_REQUIRE_APPROVAL"), default=True),
        push_min_age_days=_int_env("PUSH_MIN_AGE_DAYS", 7),
        max_templates=_int_env("MAX_TEMPLATES", 10, positive=True),
    )
    rate_limit = RateLimitConfig(
        requests=_int_env("RATE_LIMIT_REQUESTS", 5, positive=True),
        window_seconds=float(_int_env("RATE_LIMIT_WINDOW_SECONDS", 5, positive=True)),
    )
    archive = ArchiveConfig(
        interval_minutes=_int_env("ARCHIVE_INTERVAL_MINUTES", 15, positive=True),
        retention_hours=_int_env("ARCHIVE_RETENTION_HOURS", 2),
    )
    support = SupportConfig(
        email=os.getenv("SUPPORT_EMAIL") or None,
        telegram_user=os.getenv("SUPPORT_TELEGRAM_USER") or None,
        rules=os.getenv("RULES") or None,
    )
    return Config(
        bot=BotConfig(
            token=token,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        ),
        database=DatabaseConfig(dsn=dsn),
        venues=venues,
        events=events,
        rate_limit=rate_limit,
        archive=archive,
        support=support,
    )


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"{key} is not set")
    return value


def _int_env(key: str, default: int, positive: bool = False) -> int:
    raw = os.getenv(key)
    if not raw:
        return default
    if positive:
        return _parse_positive_int(raw, key)
    return _parse_non_negative_int(raw, key)


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_chat_id(raw: str, key: str) -> int:
    try:
        return int(raw)
    except ValueError as error:
        raise RuntimeError(f"{key} must be an integer chat id") from error


def _parse_channel_id(raw: str) -> int | str:
    # Public channels may be addressed by @username.
    if raw.lstrip("-").isdigit():
        return int(raw)
    return raw


def _parse_positive_int(raw: str, key: str) -> int:
    try:
        value = int(raw)
    except ValueError as error:
        raise RuntimeError(f"{key} must be an integer") from error
    if value <= 0:
        raise RuntimeError(f"{key} must be greater than zero")
    return value


def _parse_non_negative_int(raw: str, key: str) -> int:
    try:
        value = int(raw)
    except ValueError as error:
        raise RuntimeError(f"{key} must be an integer") from error
    if value < 0:
        raise RuntimeError(f"{key} must be zero or positive")
    return value
