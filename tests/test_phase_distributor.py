from decimal import Decimal

import pytest

from commission_engine.core.exceptions import ComputationError
from commission_engine.models.commission_distribution import CommissionPhase, CommissionRoleType
from commission_engine.schemas.commission import GlobalRoleConfigData
from commission_engine.services.phase_distributor import (
    PhaseDistributor,
    price_per_area,
    redistribute_external_advisor_percent,
)


def _rows_by_role(result):
    return {row.role_type: row for row in result.distributions}


class TestRedistribution:
    @pytest.mark.parametrize(
        "sale_manager, deal_owner, advisor",
        [
            ("60", "40", "10"),
            ("33.333", "33.333", "12.5"),
            ("0", "0", "7.777"),
            ("1", "2", "0.001"),
            ("45.5", "12.25", "3.333"),
        ],
    )
    def test_three_role_total_is_conserved(self, sale_manager, deal_owner, advisor):
        original = Decimal(sale_manager) + Decimal(deal_owner) + Decimal(advisor)

        new_sale_manager, new_deal_owner = redistribute_external_advisor_percent(
            Decimal(sale_manager), Decimal(deal_owner), Decimal(advisor)
        )

        assert new_sale_manager + new_deal_owner == original

    def test_split_follows_current_weights(self):
        assert redistribute_external_advisor_percent(Decimal("60"), Decimal("40"), Decimal("10")) == (
            Decimal("66.000"), Decimal("44.000")
        )

    def test_even_split_when_both_roles_are_zero(self):
        sale_manager, deal_owner = redistribute_external_advisor_percent(Decimal("0"), Decimal("0"), Decimal("10"))

        assert sale_manager == Decimal("5.000")
        assert deal_owner == Decimal("5.000")

    def test_no_advisor_percent_changes_nothing(self):
        assert redistribute_external_advisor_percent(Decimal("60"), Decimal("40"), Decimal("0")) == (
            Decimal("60"), Decimal("40")
        )


class TestPhaseDistributor:
    def test_end_to_end_scenario_without_external_advisor(self, make_config, make_sale):
        result = PhaseDistributor.distribute(make_config(), make_sale())

        assert result.commission_total == Decimal("1000000.00")
        assert result.sale_phase_amount == Decimal("700000.00")
        assert result.post_sale_phase_amount == Decimal("300000.00")
        # 60 + 40 + 10: the conserved total is 110, not 100
        assert result.sale_manager_percent + result.deal_owner_percent == Decimal("110")
        assert result.external_advisor_percent == Decimal("0")

        rows = _rows_by_role(result)
        assert set(rows) == {CommissionRoleType.SALE_MANAGER, CommissionRoleType.DEAL_OWNER}
        assert rows[CommissionRoleType.SALE_MANAGER].percent_assigned == Decimal("66.000")
        assert rows[CommissionRoleType.SALE_MANAGER].amount_calculated == Decimal("462000.00")
        assert rows[CommissionRoleType.DEAL_OWNER].amount_calculated == Decimal("308000.00")
        assert rows[CommissionRoleType.DEAL_OWNER].person_name == "Luis Perez"
        assert rows[CommissionRoleType.DEAL_OWNER].person_id == "owner-1"

    def test_external_advisor_keeps_its_percent(self, make_config, make_sale):
        sale = make_sale(asesor_externo="Marta Diaz", asesor_externo_id="adv-9")

        rows = _rows_by_role(PhaseDistributor.distribute(make_config(), sale))

        assert rows[CommissionRoleType.SALE_MANAGER].amount_calculated == Decimal("420000.00")
        assert rows[CommissionRoleType.DEAL_OWNER].amount_calculated == Decimal("280000.00")
        advisor = rows[CommissionRoleType.EXTERNAL_ADVISOR]
        assert advisor.amount_calculated == Decimal("70000.00")
        assert advisor.person_name == "Marta Diaz"
        assert advisor.person_id == "adv-9"

    def test_blank_advisor_name_counts_as_absent(self, make_config, make_sale):
        rows = _rows_by_role(PhaseDistributor.distribute(make_config(), make_sale(asesor_externo="   ")))

        assert CommissionRoleType.EXTERNAL_ADVISOR not in rows
        assert rows[CommissionRoleType.SALE_MANAGER].percent_assigned == Decimal("66.000")

    def test_owner_recorded_as_external_advisor(self, make_config, make_sale):
        sale = make_sale(propietario_deal="Asesor Externo", propietario_deal_id="owner-x")

        rows = _rows_by_role(PhaseDistributor.distribute(make_config(), sale))

        assert CommissionRoleType.DEAL_OWNER not in rows
        advisor = rows[CommissionRoleType.EXTERNAL_ADVISOR]
        assert advisor.percent_assigned == Decimal("10")
        assert advisor.person_id == "owner-x"
        assert rows[CommissionRoleType.SALE_MANAGER].percent_assigned == Decimal("60")

    def test_pool_limits_direct_roles(self, make_config, make_sale):
        config = make_config(pool_enabled=True, sale_pool_total_percent=Decimal("50"))

        result = PhaseDistributor.distribute(config, make_sale())

        assert result.pool_amount == Decimal("350000.00")
        assert _rows_by_role(result)[CommissionRoleType.SALE_MANAGER].amount_calculated == Decimal("231000.00")

    def test_indirect_roles_use_whole_phase_amounts(self, make_config, make_sale):
        config = make_config(
            pool_enabled=True,
            sale_pool_total_percent=Decimal("50"),
            customer_service_enabled=True,
            customer_service_percent=Decimal("5"),
            deliveries_enabled=False,
            deliveries_percent=Decimal("5"),
        )
        global_roles = GlobalRoleConfigData(
            operations_coordinator_percent=Decimal("5"),
            marketing_percent=Decimal("2.5"),
            legal_manager_percent=Decimal("10"),
        )

        result = PhaseDistributor.distribute(config, make_sale(), global_roles)
        rows = _rows_by_role(result)

        assert rows[CommissionRoleType.OPERATIONS_COORDINATOR].amount_calculated == Decimal("35000.00")
        assert rows[CommissionRoleType.MARKETING].amount_calculated == Decimal("17500.00")
        assert rows[CommissionRoleType.LEGAL_MANAGER].amount_calculated == Decimal("30000.00")
        assert rows[CommissionRoleType.LEGAL_MANAGER].phase == CommissionPhase.POST_SALE
        assert rows[CommissionRoleType.CUSTOMER_SERVICE].amount_calculated == Decimal("15000.00")
        assert CommissionRoleType.POST_SALE_COORDINATOR not in rows
        assert CommissionRoleType.DELIVERIES not in rows

    def test_phase_sum_is_not_forced_to_total(self, make_config, make_sale):
        config = make_config(phase_sale_percent=Decimal("70"), phase_post_sale_percent=Decimal("40"))

        result = PhaseDistributor.distribute(config, make_sale())

        assert result.sale_phase_amount == Decimal("700000.00")
        assert result.post_sale_phase_amount == Decimal("400000.00")
        assert result.sale_phase_amount + result.post_sale_phase_amount != result.commission_total

    def test_commission_percent_scales_the_total(self, make_config, make_sale):
        result = PhaseDistributor.distribute(make_config(), make_sale(), commission_percent=Decimal("3"))

        assert result.commission_total == Decimal("30000.00")
        assert result.sale_phase_amount == Decimal("21000.00")

    def test_amounts_round_half_up(self, make_config, make_sale):
        result = PhaseDistributor.distribute(
            make_config(), make_sale(valor_total=Decimal("1001")), commission_percent=Decimal("0.5")
        )

        assert result.commission_total == Decimal("5.01")

    def test_same_inputs_give_identical_rows(self, make_config, make_sale):
        global_roles = GlobalRoleConfigData(marketing_percent=Decimal("3.333"))

        first = PhaseDistributor.distribute(make_config(), make_sale(), global_roles)
        second = PhaseDistributor.distribute(make_config(), make_sale(), global_roles)

        assert first == second


class TestPricePerArea:
    def test_price_per_square_meter(self):
        assert price_per_area(Decimal("1000000"), Decimal("250")) == Decimal("4000.00")

    @pytest.mark.parametrize("area", [Decimal("0"), Decimal("-10")])
    def test_non_positive_area_fails(self, area):
        with pytest.raises(ComputationError):
            price_per_area(Decimal("1000000"), area)
