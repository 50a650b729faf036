from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

# the marketplace is French: CET in winter, CEST in summer
PARIS = ZoneInfo("Europe/Paris")

_FRENCH_MONTHS = (
    "janv.", "févr.", "mars", "avr.", "mai", "juin",
    "juil.", "août", "sept.", "oct.", "nov.", "déc.",
)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_french_date(value: datetime) -> str:
    """18 oct. 2026 à 22:26"""
    local = as_utc(value).astimezone(PARIS)
    return f"{local.day} {_FRENCH_MONTHS[local.month - 1]} {local.year} à {local:%H:%M}"
