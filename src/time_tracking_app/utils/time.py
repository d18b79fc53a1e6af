from __future__ import annotations

from datetime import date, datetime


class InvalidDateInput(ValueError):
    pass


def parse_timestamp(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return value

    if isinstance(value, str):
        candidate = value.strip().replace(" ", "T", 1)
        try:
            return datetime.fromisoformat(candidate)
        except ValueError:
            for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M"):
                try:
                    return datetime.strptime(value.strip(), fmt)
                except ValueError:
                    continue

    raise InvalidDateInput(f"Unsupported datetime value: {value!r}")


def parse_day(value: date | str | None, *, default: date | None = None) -> date:
    if value is None or value == "":
        if default is None:
            raise InvalidDateInput("A date is required.")
        return default
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidDateInput(f"Dates must use the YYYY-MM-DD format, got {value!r}.") from exc


def format_clock(value: datetime) -> str:
    return value.strftime("%H:%M:%S")


def format_relative_time(value: datetime | str, *, now: datetime | None = None) -> str:
    reference = now or datetime.now()
    moment = parse_timestamp(value)

    total_seconds = int((reference - moment).total_seconds())

    if total_seconds < 60:
        return "just now"

    minutes = total_seconds // 60
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"

    hours = minutes // 60
    if hours == 1:
        return "1 hour ago"
    if hours < 24:
        return f"{hours} hours ago"

    days = hours // 24
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"

    weeks = days // 7
    if weeks == 1:
        return "1 week ago"
    if weeks < 5:
        return f"{weeks} weeks ago"

    months = days // 30
    if months <= 1:
        return "1 month ago"
    if months < 12:
        return f"{months} months ago"

    years = days // 365
    if years <= 1:
        return "1 year ago"
    return f"{years} years ago"
