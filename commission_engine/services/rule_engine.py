import logging
import operator
from datetime import date
from typing import Dict, List, Optional, Tuple

from commission_engine.core.developments import canonical_development
from commission_engine.models.commission_rule import PeriodType, RuleOperator
from commission_engine.schemas.rule import CommissionRuleData, RuleEvaluation
from commission_engine.services.period_resolver import PeriodResolver
from commission_engine.services.unit_counter import UnitCounter


logger = logging.getLogger(__name__)

COMPARATORS = {
    RuleOperator.EQ: operator.eq,
    RuleOperator.GTE: operator.ge,
    RuleOperator.LTE: operator.le,
}


def rule_sort_key(rule: CommissionRuleData):
    # priority desc, threshold desc, id
    return -rule.priority, -rule.unit_threshold, rule.id


def rule_holds(rule: CommissionRuleData, units: int) -> bool:
    return COMPARATORS[RuleOperator(rule.operator)](units, rule.unit_threshold)


class RuleEngine:
    def __init__(self, rules, counter: UnitCounter):
        self.rules = rules
        self.counter = counter

    def evaluate(self, development: str, signing_date: date, as_of: Optional[date] = None) -> RuleEvaluation:
        """Evaluate every active rule of a development for a sale signed on ``signing_date``.

        All rules whose condition holds are applicable; priority only orders
        the result.
        """
        key = canonical_development(development)
        active = sorted(self.rules.list_active(key), key=rule_sort_key) if key else []

        period_counts: Dict[Tuple[str, PeriodType], int] = {}
        unit_counts: Dict[str, int] = {}
        applicable: List[CommissionRuleData] = []

        for rule in active:
            in_period, period_key = PeriodResolver.resolve(rule.period_type, rule.period_value, signing_date)
            if not in_period:
                unit_counts[rule.id] = 0
                continue

            count_key = (period_key, rule.period_type)
            if count_key not in period_counts:
                period_counts[count_key] = self.counter.count(key, period_key, rule.period_type, as_of)
            units = period_counts[count_key]
            unit_counts[rule.id] = units

            if rule_holds(rule, units):
                applicable.append(rule)

        logger.debug(
            "%s on %s: %d of %d active rules apply", key, signing_date, len(applicable), len(active)
        )
        return RuleEvaluation(applicable_rules=applicable, unit_counts=unit_counts, evaluated_rules=active)
