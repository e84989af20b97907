from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_iso(s: str) -> datetime:
    """Parses an ISO 8601 string, handling 'Z' for UTC."""
    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


def to_utc(dt: datetime) -> datetime:
    """Converts a naive datetime to a timezone-aware UTC datetime."""
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def parse_day(s: str) -> date:
    """Parses 'YYYY-MM-DD' or a full ISO timestamp into its UTC calendar day."""
    s = s.strip()
    if len(s) == 10:
        return date.fromisoformat(s)
    return to_utc(parse_iso(s)).astimezone(timezone.utc).date()


def parse_clock(label: str) -> time:
    """Parses an 'HH:MM' slot label."""
    return datetime.strptime(label.strip(), "%H:%M").time()


def clock_label(t: time) -> str:
    return t.strftime("%H:%M")


def db_utc_naive(dt: datetime) -> datetime:
    """Converts a timezone-aware datetime to a naive UTC datetime for DB storage."""
    return to_utc(dt).astimezone(timezone.utc).replace(tzinfo=None)


def api_iso_z(dt: datetime | None) -> str | None:
    """Formats a datetime into an ISO 8601 string ending in 'Z' for API responses."""
    if dt is None:
        return None
    return to_utc(dt).astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
