from datetime import UTC, datetime

import pytest

from prop_legs.time_utils import et_today, validate_target_date


def test_et_today_uses_reference_timezone() -> None:
    # 03:00 UTC is still the previous evening in New York.
    assert et_today(datetime(2026, 1, 27, 3, 0, tzinfo=UTC)) == "2026-01-26"
    assert et_today(datetime(2026, 1, 27, 18, 0, tzinfo=UTC)) == "2026-01-27"


def test_et_today_treats_naive_datetimes_as_utc() -> None:
    assert et_today(datetime(2026, 7, 4, 2, 0)) == "2026-07-03"


def test_validate_target_date_accepts_canonical_form() -> None:
    assert validate_target_date(" 2026-01-26 ") == "2026-01-26"


@pytest.mark.parametrize("value", ["2026-13-01", "20260126", "yesterday", ""])
def test_validate_target_date_rejects_other_forms(value: str) -> None:
    with pytest.raises(ValueError, match="YYYY-MM-DD"):
        validate_target_date(value)
