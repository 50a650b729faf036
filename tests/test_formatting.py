from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from mutual_help.formatting import as_utc, format_french_date
from mutual_help.logging_config import JSONFormatter


def test_french_date_label_follows_paris_summer_time():
    assert format_french_date(datetime(2026, 10, 18, 20, 26, tzinfo=timezone.utc)) == "18 oct. 2026 à 22:26"
    assert format_french_date(datetime(2026, 7, 1, 12, 0, tzinfo=timezone.utc)) == "1 juil. 2026 à 14:00"


def test_french_date_label_in_winter():
    assert format_french_date(datetime(2026, 12, 24, 18, 5, tzinfo=timezone.utc)) == "24 déc. 2026 à 19:05"
    # the switch back to CET happens on the last Sunday of October
    assert format_french_date(datetime(2026, 10, 25, 12, 0, tzinfo=timezone.utc)) == "25 oct. 2026 à 13:00"


def test_naive_datetimes_are_utc():
    naive = datetime(2026, 2, 1, 23, 30)
    assert as_utc(naive).tzinfo is timezone.utc
    assert format_french_date(naive) == "2 févr. 2026 à 00:30"


def test_json_formatter_carries_ids():
    record = logging.LogRecord("mutual_help", logging.INFO, __file__, 1, "Ad created", None, None)
    record.ad_id = "42"
    data = json.loads(JSONFormatter().format(record))
    assert data["message"] == "Ad created"
    assert data["level"] == "INFO"
    assert data["ad_id"] == "42"
    assert "user_id" not in data
