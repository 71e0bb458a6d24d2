from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

_FORMAT_HINTS = {
    "%d": "DD",
    "%m": "MM",
    "%Y": "YYYY",
    "%y": "YY",
    "%H": "HH",
    "%M": "mm",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_local(text: str, fmt: str, tz: ZoneInfo) -> datetime:
    """Parse wall-clock text in ``tz`` and return an aware UTC datetime.

    Raises ``ValueError`` when the text does not match ``fmt``.
    """
    naive = datetime.strptime(text.strip(), fmt)
    return naive.replace(tzinfo=tz).astimezone(timezone.utc)


def parse_local_date(text: str, fmt: str) -> date:
    return datetime.strptime(text.strip(), fmt).date()


def format_local(moment: datetime, fmt: str, tz: ZoneInfo) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).strftime(fmt)


def local_today(tz: ZoneInfo, *, now: datetime | None = None) -> date:
    current = now or utcnow()
    return current.astimezone(tz).date()


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def format_hint(fmt: str) -> str:
    hint = fmt
    for directive, placeholder in _FORMAT_HINTS.items():
        hint = hint.replace(directive, placeholder)
    return hint
