import datetime


def get_datetime_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def get_epoch_seconds() -> float:
    """Fractional seconds since the unix epoch."""
    return get_datetime_now().timestamp()
