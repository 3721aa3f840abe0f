import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from commission_engine.core.config import settings
from commission_engine.core.exceptions import AppException, NotFoundError
from commission_engine.core.money import to_decimal, round_percent, percent_of, HUNDRED
from commission_engine.models.commission_distribution import CommissionPhase, CommissionRoleType
from commission_engine.models.commission_rule import RuleOperator
from commission_engine.schemas.commission import (
    BatchResult,
    CommissionCalculationResult,
    CommissionConfigData,
    CommissionSaleData,
    DistributionRow,
)
from commission_engine.schemas.partner import PartnerData, PartnerCommissionRow
from commission_engine.schemas.rule import RuleEvaluation
from commission_engine.services.partner_splitter import PartnerSplitter
from commission_engine.services.phase_distributor import PhaseDistributor, role_display_name
from commission_engine.services.repositories import (
    SqlConfigRepository,
    SqlRuleRepository,
    SqlSaleRepository,
    SqlDistributionWriter,
    SqlPartnerCommissionWriter,
)
from commission_engine.services.rule_engine import RuleEngine
from commission_engine.services.unit_counter import UnitCounter


logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ZERO_AMOUNT = Decimal("0.00")


def rule_bonus_rows(evaluation: RuleEvaluation, valor_total) -> List[DistributionRow]:
    """Utility rows for the bonus rules of a sale.

    Fulfilled rules carry a bonus on the full sale value; active rules that
    did not hold are listed with zero amounts for reference.
    """
    rows = []
    for rule in evaluation.applicable_rules:
        amount = percent_of(valor_total, rule.commission_percent)
        rows.append(DistributionRow(
            role_type=CommissionRoleType.RULE_BONUS,
            person_name=rule.rule_name,
            phase=CommissionPhase.UTILITY,
            percent_assigned=rule.commission_percent,
            amount_calculated=amount,
            rule_id=rule.id,
            rule_fulfilled=True,
            units_counted=evaluation.unit_counts.get(rule.id, 0),
            units_required=rule.unit_threshold,
            rule_operator=RuleOperator(rule.operator).value,
            vat_amount=percent_of(amount, rule.vat_percent),
        ))

    for rule in evaluation.unmet_rules:
        rows.append(DistributionRow(
            role_type=CommissionRoleType.RULE_BONUS,
            person_name=rule.rule_name,
            phase=CommissionPhase.UTILITY,
            percent_assigned=ZERO,
            amount_calculated=ZERO_AMOUNT,
            rule_id=rule.id,
            rule_fulfilled=False,
            units_counted=evaluation.unit_counts.get(rule.id, 0),
            units_required=rule.unit_threshold,
            rule_operator=RuleOperator(rule.operator).value,
            vat_amount=ZERO_AMOUNT,
        ))
    return rows


class CommissionCalculator:
    """Composes the phase distribution, bonus rules and partner split of a sale.

    ``calculate`` only reads from its collaborators. ``recalculate`` and the
    batch helpers also write the result back and need a session.
    """

    def __init__(
        self,
        configs,
        rules,
        sales,
        distributions=None,
        partners=None,
        db: Optional[Session] = None,
        vat_rate=None
    ):
        self.configs = configs
        self.sales = sales
        self.distributions = distributions
        self.partners = partners
        self.db = db
        self.vat_rate = vat_rate
        self.rule_engine = RuleEngine(rules, UnitCounter(sales))

    @classmethod
    def from_session(cls, db: Session, vat_rate=None) -> "CommissionCalculator":
        return cls(
            configs=SqlConfigRepository(db),
            rules=SqlRuleRepository(db),
            sales=SqlSaleRepository(db),
            distributions=SqlDistributionWriter(db),
            partners=SqlPartnerCommissionWriter(db),
            db=db,
            vat_rate=vat_rate,
        )

    def calculate(
        self,
        sale: CommissionSaleData,
        partners: Iterable[PartnerData] = (),
        config: Optional[CommissionConfigData] = None,
        commission_percent=None,
        as_of: Optional[date] = None
    ) -> CommissionCalculationResult:
        if config is None:
            config = self.configs.get(sale.desarrollo)

        phase = PhaseDistributor.distribute(config, sale, self.configs.get_globals(), commission_percent)
        evaluation = self.rule_engine.evaluate(sale.desarrollo, sale.fecha_firma, as_of)

        sale_phase_distributed = sum(
            (row.amount_calculated for row in phase.distributions if row.phase == CommissionPhase.SALE), ZERO
        )
        post_sale_phase_distributed = sum(
            (row.amount_calculated for row in phase.distributions if row.phase == CommissionPhase.POST_SALE), ZERO
        )

        utility_rows = rule_bonus_rows(evaluation, sale.valor_total)

        remaining_utility = (
            phase.sale_phase_amount + phase.post_sale_phase_amount
            - sale_phase_distributed - post_sale_phase_distributed
        )
        if remaining_utility > settings.REMAINING_UTILITY_TOLERANCE:
            valor_total = to_decimal(sale.valor_total)
            utility_rows.append(DistributionRow(
                role_type=CommissionRoleType.REMAINING_UTILITY,
                person_name=role_display_name(CommissionRoleType.REMAINING_UTILITY),
                phase=CommissionPhase.UTILITY,
                percent_assigned=round_percent(remaining_utility / valor_total * HUNDRED) if valor_total > ZERO else ZERO,
                amount_calculated=remaining_utility,
            ))

        # Partners always see the phase split of the full sale value
        partner_rows: List[PartnerCommissionRow] = []
        partners = list(partners)
        if partners:
            partner_rows = PartnerSplitter.split(
                percent_of(sale.valor_total, config.phase_sale_percent),
                percent_of(sale.valor_total, config.phase_post_sale_percent),
                partners,
                self.vat_rate,
            )

        return CommissionCalculationResult(
            sale_id=sale.id,
            commission_total=phase.commission_total,
            sale_phase_amount=phase.sale_phase_amount,
            post_sale_phase_amount=phase.post_sale_phase_amount,
            sale_phase_distributed=sale_phase_distributed,
            post_sale_phase_distributed=post_sale_phase_distributed,
            remaining_utility=remaining_utility,
            phase_sale_percent=config.phase_sale_percent,
            phase_post_sale_percent=config.phase_post_sale_percent,
            distributions=phase.distributions + utility_rows,
            rule_evaluation=evaluation,
            partner_commissions=partner_rows,
        )

    def recalculate(
        self,
        sale_id: str,
        commission_percent=None,
        as_of: Optional[date] = None,
        calculated_by: Optional[str] = None
    ) -> CommissionCalculationResult:
        """Calculate a sale and replace its stored distributions.

        The sale row stays locked until commit, so two recalculations of
        the same sale never interleave their delete and insert.
        """
        try:
            sale_row = self.sales.get_for_update(sale_id)
            sale = self.sales.to_data(sale_row)
            result = self.calculate(
                sale,
                partners=self.sales.list_partners(sale_id),
                commission_percent=commission_percent,
                as_of=as_of,
            )
            self.distributions.replace_all(sale_id, result.distributions)
            self.sales.mark_calculated(sale_row, result)
            self.partners.upsert(sale_id, result.partner_commissions, calculated_by)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Sale %s recalculated: total=%s rows=%d partners=%d",
            sale_id, result.commission_total, len(result.distributions), len(result.partner_commissions)
        )
        return result

    def recalculate_many(
        self,
        sale_ids: Iterable[str],
        commission_percent=None,
        as_of: Optional[date] = None,
        calculated_by: Optional[str] = None
    ) -> BatchResult:
        """Recalculate each sale on its own; failures are collected, never raised"""
        batch = BatchResult()
        seen = set()

        for sale_id in sale_ids:
            if sale_id in seen:
                batch.skipped += 1
                continue
            seen.add(sale_id)

            try:
                self.recalculate(sale_id, commission_percent, as_of, calculated_by)
                batch.processed += 1
            except AppException as e:
                logger.warning("Recalculation of sale %s failed: %s", sale_id, e.message)
                batch.record_failure(sale_id, e.message)
            except Exception as e:
                logger.exception("Unexpected error recalculating sale %s", sale_id)
                batch.record_failure(sale_id, str(e))

        logger.info(
            "Batch recalculation: processed=%d skipped=%d failed=%d",
            batch.processed, batch.skipped, batch.failed
        )
        return batch

    def refresh_partner_commissions(self, sale_id: str, calculated_by: Optional[str] = None) -> List[PartnerCommissionRow]:
        """Re-split a calculated sale among its partners without touching role rows"""
        try:
            sale_row = self.sales.get_for_update(sale_id)
            if not sale_row.commission_calculated:
                raise NotFoundError(
                    f"Sale {sale_id} has no calculated commission",
                    details={"sale_id": sale_id}
                )
            rows = PartnerSplitter.split_for_sale(
                self.sales.to_data(sale_row),
                self.sales.list_partners(sale_id),
                self.vat_rate,
            )
            self.partners.upsert(sale_id, rows, calculated_by)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return rows
