from datetime import date
from typing import Optional

from commission_engine.core.developments import canonical_development
from commission_engine.services.period_resolver import PeriodResolver


class UnitCounter:
    """Counts sales of a development inside a resolved period.

    Sales signed after ``as_of`` (today by default) are never counted, even
    when they fall inside the window. Every call is a fresh read; callers
    that need many counts batch them per period.
    """

    def __init__(self, sales):
        self.sales = sales

    def count(self, development: str, period_key: str, period_type, as_of: Optional[date] = None) -> int:
        key = canonical_development(development)
        if not key:
            return 0
        # Rejects malformed keys before they reach storage
        PeriodResolver.period_bounds(period_key, period_type)
        return self.sales.count_in_period(key, period_key, period_type, as_of or date.today())
