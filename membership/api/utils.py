from datetime import datetime, timezone

ISO_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
DATE_FORMAT = "%Y-%m-%d"


def to_iso_datetime(timestamp: float) -> str:
    return _to_utc(timestamp).strftime(ISO_DATETIME_FORMAT)


def to_date(timestamp: float) -> str:
    return _to_utc(timestamp).strftime(DATE_FORMAT)


def parse_date_string(date_str: str):
    try:
        return datetime.strptime(date_str, DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f'unknown date format for [{date_str}]')


def _to_utc(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
