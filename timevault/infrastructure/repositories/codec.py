from datetime import datetime, timezone
from decimal import Decimal


def dump_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # Fixed-width UTC timestamps so string ordering matches time ordering
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def load_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def dump_decimal(value: Decimal) -> float:
    return float(value)


def load_decimal(value: float | int | str | None) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")
