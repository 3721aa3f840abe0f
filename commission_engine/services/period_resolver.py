"""Calendar windows of bonus rules.

A rule declares its window as ``(period_type, period_value)``:

* ``year``    -> ``"2025"``
* ``month``   -> ``"2025-08"``
* ``quarter`` -> ``"2025"``; the descriptor only names the year and the
  quarter is taken from the sale's signing date, so a quarterly rule is
  always evaluated against the quarter the sale falls in. ``"2025-Q4"`` is
  tolerated, its quarter part is ignored.

Resolved period keys use the same shapes, with quarters as ``"2025-Q3"``.
"""
import logging
import re
from datetime import date
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

from commission_engine.core.exceptions import MalformedRuleError
from commission_engine.models.commission_rule import PeriodType


logger = logging.getLogger(__name__)

YEAR_PATTERN = re.compile(r"^(\d{4})$")
MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
QUARTER_DESCRIPTOR_PATTERN = re.compile(r"^(\d{4})(?:-Q[1-4])?$", re.IGNORECASE)
QUARTER_KEY_PATTERN = re.compile(r"^(\d{4})-Q([1-4])$", re.IGNORECASE)

PERIOD_LENGTH = {
    PeriodType.YEAR: relativedelta(years=1),
    PeriodType.MONTH: relativedelta(months=1),
    PeriodType.QUARTER: relativedelta(months=3),
}


def quarter_of(day: date) -> int:
    return (day.month - 1) // 3 + 1


def _period_type(value) -> PeriodType:
    try:
        return PeriodType(value.strip().lower() if isinstance(value, str) else value)
    except ValueError:
        raise MalformedRuleError(f"Unknown period type: {value!r}")


def _month(year: str, month: str, raw: str) -> Tuple[int, int]:
    number = int(month)
    if not 1 <= number <= 12:
        raise MalformedRuleError(f"Month out of range in period {raw!r}")
    return int(year), number


class PeriodResolver:
    @staticmethod
    def parse(period_type, period_value) -> Tuple[PeriodType, int, Optional[int]]:
        """Parse a rule descriptor into ``(type, year, month)``.

        ``month`` is only set for monthly rules. Raises ``MalformedRuleError``.
        """
        kind = _period_type(period_type)
        raw = (period_value or "").strip()

        if kind == PeriodType.YEAR:
            match = YEAR_PATTERN.match(raw)
            if not match:
                raise MalformedRuleError(f"Expected YYYY for a yearly rule, got {raw!r}")
            return kind, int(match.group(1)), None

        if kind == PeriodType.MONTH:
            match = MONTH_PATTERN.match(raw)
            if not match:
                raise MalformedRuleError(f"Expected YYYY-MM for a monthly rule, got {raw!r}")
            year, month = _month(match.group(1), match.group(2), raw)
            return kind, year, month

        match = QUARTER_DESCRIPTOR_PATTERN.match(raw)
        if not match:
            raise MalformedRuleError(f"Expected YYYY for a quarterly rule, got {raw!r}")
        return kind, int(match.group(1)), None

    @staticmethod
    def resolve(period_type, period_value, signing_date: date) -> Tuple[bool, Optional[str]]:
        """Return ``(in_period, period_key)`` for a sale signed on ``signing_date``.

        A malformed descriptor never raises: it resolves to ``(False, None)``
        so that one bad rule cannot block the others.
        """
        try:
            kind, year, month = PeriodResolver.parse(period_type, period_value)
        except MalformedRuleError as e:
            logger.warning("Skipping rule period %r/%r: %s", period_type, period_value, e.message)
            return False, None

        if kind == PeriodType.YEAR:
            return signing_date.year == year, f"{year:04d}"

        if kind == PeriodType.MONTH:
            in_period = (signing_date.year, signing_date.month) == (year, month)
            return in_period, f"{year:04d}-{month:02d}"

        return signing_date.year == year, f"{year:04d}-Q{quarter_of(signing_date)}"

    @staticmethod
    def period_bounds(period_key: str, period_type) -> Tuple[date, date]:
        """Half-open ``[start, end)`` window of a resolved period key"""
        kind = _period_type(period_type)
        raw = (period_key or "").strip()

        if kind == PeriodType.YEAR:
            match = YEAR_PATTERN.match(raw)
            if not match:
                raise MalformedRuleError(f"Invalid year key {raw!r}")
            start = date(int(match.group(1)), 1, 1)
        elif kind == PeriodType.MONTH:
            match = MONTH_PATTERN.match(raw)
            if not match:
                raise MalformedRuleError(f"Invalid month key {raw!r}")
            year, month = _month(match.group(1), match.group(2), raw)
            start = date(year, month, 1)
        else:
            match = QUARTER_KEY_PATTERN.match(raw)
            if not match:
                raise MalformedRuleError(f"Invalid quarter key {raw!r}")
            quarter = int(match.group(2))
            start = date(int(match.group(1)), 3 * quarter - 2, 1)

        return start, start + PERIOD_LENGTH[kind]
