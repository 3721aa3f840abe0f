from datetime import date
from decimal import Decimal

import pytest

from commission_engine.core.exceptions import NotFoundError
from commission_engine.models.commission_distribution import CommissionPhase, CommissionRoleType
from commission_engine.models.commission_rule import RuleOperator
from commission_engine.schemas.commission import GlobalRoleConfigData
from commission_engine.schemas.partner import PartnerData
from commission_engine.services.commission_calculator import CommissionCalculator


AS_OF = date(2025, 12, 31)


@pytest.fixture
def build_calculator(fakes, make_config):
    def _build(configs=None, rules=(), signed=(), global_roles=None):
        if configs is None:
            configs = [make_config()]
        return CommissionCalculator(
            configs=fakes.configs(configs, global_roles),
            rules=fakes.rules(rules),
            sales=fakes.sales(signed),
            vat_rate=Decimal("16"),
        )
    return _build


def _of_role(result, role):
    return [row for row in result.distributions if row.role_type == role]


class TestCalculate:
    def test_phase_totals_and_role_rows(self, build_calculator, make_sale):
        result = build_calculator().calculate(make_sale(), as_of=AS_OF)

        assert result.commission_total == Decimal("1000000.00")
        assert result.sale_phase_amount == Decimal("700000.00")
        assert result.post_sale_phase_amount == Decimal("300000.00")
        assert result.sale_phase_distributed == Decimal("770000.00")
        assert result.post_sale_phase_distributed == Decimal("0")
        assert result.phase_sale_percent == Decimal("70")

    def test_config_is_looked_up_by_canonical_development(self, build_calculator, make_sale):
        result = build_calculator().calculate(make_sale(desarrollo="  Bosques  de Cancun"), as_of=AS_OF)

        assert result.commission_total == Decimal("1000000.00")

    def test_missing_config_raises(self, build_calculator, make_sale):
        with pytest.raises(NotFoundError):
            build_calculator(configs=[]).calculate(make_sale(desarrollo="sin configurar"))

    def test_fulfilled_and_unmet_rule_rows(self, build_calculator, make_rule, make_sale):
        met = make_rule(rule_name="Trimestre 1+", unit_threshold=1, commission_percent=Decimal("1"))
        unmet = make_rule(rule_name="Trimestre 5+", unit_threshold=5, commission_percent=Decimal("2"))
        calculator = build_calculator(rules=[met, unmet], signed=[("bosques de cancun", date(2025, 8, 15))])

        result = calculator.calculate(make_sale(), as_of=AS_OF)
        bonus_rows = {row.rule_id: row for row in _of_role(result, CommissionRoleType.RULE_BONUS)}

        fulfilled = bonus_rows[met.id]
        assert fulfilled.rule_fulfilled is True
        assert fulfilled.phase == CommissionPhase.UTILITY
        assert fulfilled.person_name == "Trimestre 1+"
        assert fulfilled.amount_calculated == Decimal("10000.00")
        assert fulfilled.vat_amount == Decimal("1600.00")
        assert fulfilled.units_counted == 1
        assert fulfilled.units_required == 1
        assert fulfilled.rule_operator == RuleOperator.GTE.value

        skipped = bonus_rows[unmet.id]
        assert skipped.rule_fulfilled is False
        assert skipped.amount_calculated == Decimal("0")
        assert skipped.percent_assigned == Decimal("0")
        assert skipped.units_counted == 1
        assert skipped.units_required == 5

    def test_rule_bonus_ignores_the_commission_percent(self, build_calculator, make_rule, make_sale):
        rule = make_rule(commission_percent=Decimal("1"))
        calculator = build_calculator(rules=[rule], signed=[("bosques de cancun", date(2025, 8, 15))])

        result = calculator.calculate(make_sale(), commission_percent=Decimal("5"), as_of=AS_OF)
        bonus = _of_role(result, CommissionRoleType.RULE_BONUS)[0]

        assert result.commission_total == Decimal("50000.00")
        assert bonus.amount_calculated == Decimal("10000.00")
        assert bonus.percent_assigned == Decimal("1")

    def test_rule_bonus_is_not_part_of_phase_totals(self, build_calculator, make_rule, make_sale):
        calculator = build_calculator(
            rules=[make_rule()], signed=[("bosques de cancun", date(2025, 8, 15))]
        )

        result = calculator.calculate(make_sale(), as_of=AS_OF)

        assert result.sale_phase_distributed == Decimal("770000.00")

    def test_remaining_utility_row(self, build_calculator, make_config, make_sale):
        config = make_config(
            sale_manager_percent=Decimal("50"),
            deal_owner_percent=Decimal("30"),
            external_advisor_percent=Decimal("0"),
        )

        result = build_calculator(configs=[config]).calculate(make_sale(), as_of=AS_OF)
        remaining = _of_role(result, CommissionRoleType.REMAINING_UTILITY)

        assert result.remaining_utility == Decimal("440000.00")
        assert len(remaining) == 1
        assert remaining[0].amount_calculated == Decimal("440000.00")
        assert remaining[0].percent_assigned == Decimal("44.000")
        assert remaining[0].phase == CommissionPhase.UTILITY

    def test_remaining_utility_counts_both_phases(self, build_calculator, make_sale):
        result = build_calculator().calculate(make_sale(), as_of=AS_OF)

        # 1,000,000 across both phases minus 770,000 paid to the sale phase roles
        assert result.remaining_utility == Decimal("230000.00")
        assert len(_of_role(result, CommissionRoleType.REMAINING_UTILITY)) == 1

    def test_no_remaining_utility_row_when_overdistributed(self, build_calculator, make_sale):
        full = build_calculator(
            global_roles=GlobalRoleConfigData(legal_manager_percent=Decimal("100"))
        ).calculate(make_sale(valor_total=Decimal("100")), commission_percent=Decimal("10"), as_of=AS_OF)

        assert full.remaining_utility < Decimal("0.01")
        assert _of_role(full, CommissionRoleType.REMAINING_UTILITY) == []

    def test_partner_split_uses_full_sale_value(self, build_calculator, make_sale):
        partners = [
            PartnerData(socio_name="Socio A", participacion=Decimal("60")),
            PartnerData(socio_name="Socio B", participacion=Decimal("40")),
        ]

        result = build_calculator().calculate(
            make_sale(), partners=partners, commission_percent=Decimal("5"), as_of=AS_OF
        )

        assert result.commission_total == Decimal("50000.00")
        socio_a, socio_b = result.partner_commissions
        assert socio_a.total_commission_amount == Decimal("600000.00")
        assert socio_a.sale_phase_amount == Decimal("420000.00")
        assert socio_a.vat_amount == Decimal("96000.00")
        assert socio_b.total_commission_amount == Decimal("400000.00")

    def test_identical_inputs_identical_result(self, build_calculator, make_rule, make_sale):
        calculator = build_calculator(
            rules=[make_rule(), make_rule(unit_threshold=3)],
            signed=[("bosques de cancun", date(2025, 8, 15))],
            global_roles=GlobalRoleConfigData(marketing_percent=Decimal("2.5")),
        )

        first = calculator.calculate(make_sale(), as_of=AS_OF)
        second = calculator.calculate(make_sale(), as_of=AS_OF)

        assert first.model_dump() == second.model_dump()
