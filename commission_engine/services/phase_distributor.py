import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from commission_engine.core.config import settings
from commission_engine.core.exceptions import ComputationError
from commission_engine.core.money import to_decimal, round_money, round_percent, percent_of, HUNDRED
from commission_engine.models.commission_distribution import CommissionPhase, CommissionRoleType
from commission_engine.schemas.commission import (
    CommissionConfigData,
    CommissionSaleData,
    GlobalRoleConfigData,
    DistributionRow,
    PhaseDistributionResult,
)


logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Deal owners recorded under this name are external advisors themselves
EXTERNAL_ADVISOR_OWNER = "asesor externo"

ROLE_DISPLAY_NAMES = {
    CommissionRoleType.SALE_MANAGER: "Gerente de Ventas",
    CommissionRoleType.DEAL_OWNER: "Asesor Interno",
    CommissionRoleType.EXTERNAL_ADVISOR: "Asesor Externo",
    CommissionRoleType.OPERATIONS_COORDINATOR: "Coordinador de Operaciones de Venta",
    CommissionRoleType.MARKETING: "Gerente de Marketing",
    CommissionRoleType.LEGAL_MANAGER: "Gerente Legal",
    CommissionRoleType.POST_SALE_COORDINATOR: "Coordinador Postventas",
    CommissionRoleType.CUSTOMER_SERVICE: "Atención a Clientes",
    CommissionRoleType.DELIVERIES: "Entregas",
    CommissionRoleType.BONDS: "Fianzas",
    CommissionRoleType.RULE_BONUS: "Utilidad por Regla",
    CommissionRoleType.REMAINING_UTILITY: "Utilidad Restante",
}


def role_display_name(role: CommissionRoleType) -> str:
    return ROLE_DISPLAY_NAMES.get(role, role.value)


def role_person_name(role: CommissionRoleType) -> str:
    """Payee of a role that is not tied to the sale (global and optional roles)"""
    configured = settings.ROLE_PERSON_NAMES.get(role.value)
    return configured or role_display_name(role)


def price_per_area(valor_total, metros_cuadrados) -> Decimal:
    area = to_decimal(metros_cuadrados)
    if area <= ZERO:
        raise ComputationError(
            "Area must be greater than 0 to compute price per square meter",
            details={"metros_cuadrados": str(area)}
        )
    return round_money(to_decimal(valor_total) / area)


def redistribute_external_advisor_percent(
    sale_manager_percent,
    deal_owner_percent,
    external_advisor_percent
) -> Tuple[Decimal, Decimal]:
    """Hand an unused external advisor percent to sale manager and deal owner.

    The split follows the current sale manager / deal owner weights (even
    split when both are zero). The deal owner takes whatever remains after
    rounding the sale manager share, so the returned pair always sums to
    the original three-role total.
    """
    sale_manager = to_decimal(sale_manager_percent)
    deal_owner = to_decimal(deal_owner_percent)
    advisor = to_decimal(external_advisor_percent)
    total = sale_manager + deal_owner + advisor

    if advisor == ZERO:
        return sale_manager, deal_owner

    weight = sale_manager + deal_owner
    if weight == ZERO:
        new_sale_manager = round_percent(advisor / 2)
    else:
        new_sale_manager = round_percent(sale_manager + advisor * sale_manager / weight)

    return new_sale_manager, total - new_sale_manager


def _row(role, phase, percent, base_amount, person_name=None, person_id=None) -> DistributionRow:
    return DistributionRow(
        role_type=role,
        person_name=person_name or role_person_name(role),
        person_id=person_id,
        phase=phase,
        percent_assigned=to_decimal(percent),
        amount_calculated=percent_of(base_amount, percent),
    )


class PhaseDistributor:
    @staticmethod
    def distribute(
        config: CommissionConfigData,
        sale: CommissionSaleData,
        global_roles: Optional[GlobalRoleConfigData] = None,
        commission_percent=None
    ) -> PhaseDistributionResult:
        """Split a sale's commission into sale-phase and post-sale-phase role rows.

        Phase percents are a guide only: their sum is never forced to 100, so
        the two phase amounts may add up to more or less than the total.
        """
        global_roles = global_roles or GlobalRoleConfigData()
        if commission_percent is None:
            commission_percent = settings.DEFAULT_COMMISSION_PERCENT

        commission_total = percent_of(sale.valor_total, commission_percent)
        sale_phase_amount = percent_of(commission_total, config.phase_sale_percent)
        post_sale_phase_amount = percent_of(commission_total, config.phase_post_sale_percent)

        phase_sum = to_decimal(config.phase_sale_percent) + to_decimal(config.phase_post_sale_percent)
        if phase_sum != HUNDRED:
            logger.warning(
                "Sale %s: phase percents of %s sum to %s, distributing as configured",
                sale.id, config.desarrollo, phase_sum
            )

        sale_manager_percent = to_decimal(config.sale_manager_percent)
        deal_owner_percent = to_decimal(config.deal_owner_percent)
        advisor_percent = to_decimal(config.external_advisor_percent)

        owner_is_advisor = sale.propietario_deal.strip().lower() == EXTERNAL_ADVISOR_OWNER
        if owner_is_advisor and advisor_percent > ZERO:
            deal_owner_percent = ZERO
        elif not sale.has_external_advisor and advisor_percent > ZERO:
            sale_manager_percent, deal_owner_percent = redistribute_external_advisor_percent(
                sale_manager_percent, deal_owner_percent, advisor_percent
            )
            advisor_percent = ZERO

        pool_percent = HUNDRED
        if config.pool_enabled and config.sale_pool_total_percent is not None:
            pool_percent = to_decimal(config.sale_pool_total_percent)
        pool_amount = percent_of(sale_phase_amount, pool_percent)

        rows: List[DistributionRow] = []
        sale_phase = CommissionPhase.SALE

        if sale_manager_percent > ZERO:
            rows.append(_row(
                CommissionRoleType.SALE_MANAGER, sale_phase, sale_manager_percent, pool_amount
            ))

        if deal_owner_percent > ZERO:
            rows.append(_row(
                CommissionRoleType.DEAL_OWNER, sale_phase, deal_owner_percent, pool_amount,
                person_name=sale.propietario_deal,
                person_id=sale.propietario_deal_id,
            ))

        if advisor_percent > ZERO and owner_is_advisor:
            rows.append(_row(
                CommissionRoleType.EXTERNAL_ADVISOR, sale_phase, advisor_percent, pool_amount,
                person_name=sale.propietario_deal,
                person_id=sale.propietario_deal_id,
            ))
        elif advisor_percent > ZERO and sale.has_external_advisor:
            rows.append(_row(
                CommissionRoleType.EXTERNAL_ADVISOR, sale_phase, advisor_percent, pool_amount,
                person_name=sale.asesor_externo.strip(),
                person_id=sale.asesor_externo_id,
            ))

        # Indirect roles take their share of the whole sale phase, not the pool
        for role, percent in (
            (CommissionRoleType.OPERATIONS_COORDINATOR, global_roles.operations_coordinator_percent),
            (CommissionRoleType.MARKETING, global_roles.marketing_percent),
        ):
            if to_decimal(percent) > ZERO:
                rows.append(_row(role, sale_phase, percent, sale_phase_amount))

        post_sale_phase = CommissionPhase.POST_SALE
        for role, percent, enabled in (
            (CommissionRoleType.LEGAL_MANAGER, global_roles.legal_manager_percent, True),
            (CommissionRoleType.POST_SALE_COORDINATOR, global_roles.post_sale_coordinator_percent, True),
            (CommissionRoleType.CUSTOMER_SERVICE, config.customer_service_percent, config.customer_service_enabled),
            (CommissionRoleType.DELIVERIES, config.deliveries_percent, config.deliveries_enabled),
            (CommissionRoleType.BONDS, config.bonds_percent, config.bonds_enabled),
        ):
            if enabled and to_decimal(percent) > ZERO:
                rows.append(_row(role, post_sale_phase, percent, post_sale_phase_amount))

        return PhaseDistributionResult(
            commission_total=commission_total,
            sale_phase_amount=sale_phase_amount,
            post_sale_phase_amount=post_sale_phase_amount,
            pool_amount=pool_amount,
            sale_manager_percent=sale_manager_percent,
            deal_owner_percent=deal_owner_percent,
            external_advisor_percent=advisor_percent,
            distributions=rows,
        )
