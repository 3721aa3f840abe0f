import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from commission_engine.core.config import settings
from commission_engine.core.exceptions import ValidationError
from commission_engine.core.money import to_decimal, round_money, percent_of, HUNDRED
from commission_engine.models.partner import CollectionStatus, PartnerPhase
from commission_engine.schemas.commission import CommissionSaleData
from commission_engine.schemas.partner import PartnerData, PartnerCommissionRow, partner_name


logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def frozen_phase_amounts(sale: CommissionSaleData) -> Tuple[Decimal, Decimal]:
    """Partner-facing phase totals of a sale.

    Derived from ``valor_total`` and the phase percents frozen at calculation
    time, never from role payouts. Sales calculated before percents were
    frozen fall back to their stored phase amounts.
    """
    if sale.calculated_phase_sale_percent is None or sale.calculated_phase_post_sale_percent is None:
        return round_money(sale.commission_sale_phase), round_money(sale.commission_post_sale_phase)
    return (
        percent_of(sale.valor_total, sale.calculated_phase_sale_percent),
        percent_of(sale.valor_total, sale.calculated_phase_post_sale_percent),
    )


class PartnerSplitter:
    @staticmethod
    def split(
        sale_phase_amount,
        post_sale_phase_amount,
        partners: Iterable[PartnerData],
        vat_rate=None
    ) -> List[PartnerCommissionRow]:
        """Share of each partner in the two phase totals, plus display-only VAT"""
        vat_rate = to_decimal(settings.VAT_RATE if vat_rate is None else vat_rate)
        sale_phase_amount = to_decimal(sale_phase_amount)
        post_sale_phase_amount = to_decimal(post_sale_phase_amount)
        phases_total = sale_phase_amount + post_sale_phase_amount

        partners = list(partners)
        names = [partner_name(p.socio_name) for p in partners]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValidationError(
                "Partner names must be unique per sale",
                errors=[f"Partner '{name}' is listed more than once" for name in duplicates],
            )

        participation_sum = sum((to_decimal(p.participacion) for p in partners), ZERO)
        if partners and participation_sum != HUNDRED:
            logger.warning("Partner participations sum to %s, not 100; splitting as recorded", participation_sum)

        rows: List[PartnerCommissionRow] = []
        for name, partner in zip(names, partners):
            participacion = to_decimal(partner.participacion)
            if participacion <= ZERO:
                share = sale_share = post_sale_share = ZERO
            else:
                share = percent_of(phases_total, participacion)
                sale_share = percent_of(sale_phase_amount, participacion)
                post_sale_share = percent_of(post_sale_phase_amount, participacion)

            share = round_money(share)
            vat_amount = percent_of(share, vat_rate)
            rows.append(PartnerCommissionRow(
                socio_name=name,
                participacion=participacion,
                total_commission_amount=share,
                sale_phase_amount=round_money(sale_share),
                post_sale_phase_amount=round_money(post_sale_share),
                vat_rate=vat_rate,
                vat_amount=vat_amount,
                total_with_vat=share + vat_amount,
            ))
        return rows

    @staticmethod
    def split_for_sale(
        sale: CommissionSaleData,
        partners: Iterable[PartnerData],
        vat_rate=None
    ) -> List[PartnerCommissionRow]:
        sale_phase_amount, post_sale_phase_amount = frozen_phase_amounts(sale)
        return PartnerSplitter.split(sale_phase_amount, post_sale_phase_amount, partners, vat_rate)


def transition_collection_status(
    record,
    phase: PartnerPhase,
    status: CollectionStatus,
    now: Optional[datetime] = None
):
    """Move one phase of a partner commission to ``status``.

    ``collected`` stamps the phase's collected-at; any other status clears it.
    Phases are independent of each other.
    """
    phase = PartnerPhase(phase)
    status = CollectionStatus(status)
    prefix = phase.value

    setattr(record, f"{prefix}_collection_status", status)
    if status == CollectionStatus.COLLECTED:
        setattr(record, f"{prefix}_collected_at", now or datetime.utcnow())
    else:
        setattr(record, f"{prefix}_collected_at", None)
    return record
