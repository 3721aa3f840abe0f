from datetime import date
from decimal import Decimal

import pytest

from commission_engine.core.exceptions import NotFoundError, ValidationError
from commission_engine.models import CommissionRule, PeriodType, RuleOperator
from commission_engine.schemas.rule import CommissionRuleCreate, CommissionRuleUpdate
from commission_engine.services.rule_service import RuleService


def _rule_in(**overrides):
    values = {
        "desarrollo": "Bosques de Cancun",
        "rule_name": "Trimestre 3+",
        "period_type": "trimestre",
        "period_value": "2025",
        "operator": ">=",
        "unit_threshold": 3,
        "commission_percent": Decimal("1.5"),
        "vat_percent": Decimal("16"),
    }
    values.update(overrides)
    return CommissionRuleCreate(**values)


class TestRuleService:
    def test_create_accepts_legacy_period_names(self, db):
        rule = RuleService.create_rule(db, _rule_in(), created_by="admin")

        assert rule.period_type == PeriodType.QUARTER
        assert rule.operator == RuleOperator.GTE
        assert rule.desarrollo == "bosques de cancun"
        assert rule.created_by == "admin"

    def test_create_rejects_malformed_period(self, db):
        with pytest.raises(ValidationError) as exc_info:
            RuleService.create_rule(db, _rule_in(period_type="month", period_value="2025"))

        assert "YYYY-MM" in exc_info.value.errors[0]
        assert db.query(CommissionRule).count() == 0

    def test_update_checks_the_resulting_period(self, db):
        rule = RuleService.create_rule(db, _rule_in(period_type="month", period_value="2025-08"))

        with pytest.raises(ValidationError):
            RuleService.update_rule(db, rule.id, CommissionRuleUpdate(period_type=PeriodType.YEAR))

        updated = RuleService.update_rule(
            db, rule.id, CommissionRuleUpdate(period_type=PeriodType.YEAR, period_value="2026", priority=3)
        )
        assert updated.period_value == "2026"
        assert updated.priority == 3
        assert updated.unit_threshold == 3

    def test_deactivated_rules_are_hidden_by_default(self, db):
        kept = RuleService.create_rule(db, _rule_in(unit_threshold=5))
        dropped = RuleService.create_rule(db, _rule_in(unit_threshold=1))

        RuleService.deactivate_rule(db, dropped.id)

        assert [rule.id for rule in RuleService.list_rules(db, "bosques de cancun")] == [kept.id]
        assert {rule.id for rule in RuleService.list_rules(db, "Bosques de Cancun", include_inactive=True)} == {
            kept.id, dropped.id
        }

    def test_unknown_rule(self, db):
        with pytest.raises(NotFoundError):
            RuleService.get_rule(db, "missing")

    def test_preview_applicable_rules(self, db, stored_sale, stored_rule):
        evaluation = RuleService.preview_applicable_rules(
            db, "Bosques de Cancun", date(2025, 9, 1), as_of=date(2025, 12, 31)
        )

        assert [rule.id for rule in evaluation.applicable_rules] == [stored_rule.id]
        assert evaluation.unit_counts[stored_rule.id] == 1
