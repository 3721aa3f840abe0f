import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from commission_engine.core.developments import canonical_development
from commission_engine.core.exceptions import NotFoundError, ValidationError
from commission_engine.core.money import to_decimal, round_money
from commission_engine.models.commission_adjustment import CommissionAdjustment, AdjustmentType
from commission_engine.models.commission_distribution import CommissionDistribution, PaymentStatus
from commission_engine.models.commission_sale import CommissionSale, InternalPostSalePhaseStatus
from commission_engine.models.partner import PartnerCommission, PartnerPhase, CollectionStatus
from commission_engine.schemas.commission import AdjustmentCreate
from commission_engine.services.partner_splitter import transition_collection_status
from commission_engine.services.repositories import SqlSaleRepository


logger = logging.getLogger(__name__)


class SaleService:
    @staticmethod
    def get_sale(db: Session, sale_id: str) -> CommissionSale:
        return SqlSaleRepository(db).get(sale_id)

    @staticmethod
    def list_sales(
        db: Session,
        desarrollo: Optional[str] = None,
        calculated: Optional[bool] = None,
        skip: int = 0,
        limit: int = 20
    ) -> List[CommissionSale]:
        query = db.query(CommissionSale)
        if desarrollo:
            query = query.filter(CommissionSale.desarrollo == canonical_development(desarrollo))
        if calculated is not None:
            query = query.filter(CommissionSale.commission_calculated == calculated)
        return query.order_by(CommissionSale.fecha_firma.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def list_distributions(db: Session, sale_id: str) -> List[CommissionDistribution]:
        SqlSaleRepository(db).get(sale_id)
        return db.query(CommissionDistribution).filter(
            CommissionDistribution.sale_id == sale_id
        ).order_by(CommissionDistribution.position).all()

    @staticmethod
    def get_distribution(db: Session, distribution_id: str) -> CommissionDistribution:
        distribution = db.query(CommissionDistribution).filter(CommissionDistribution.id == distribution_id).first()
        if not distribution:
            raise NotFoundError(f"Distribution {distribution_id} not found")
        return distribution

    @staticmethod
    def set_payment_status(db: Session, distribution_id: str, status: PaymentStatus) -> CommissionDistribution:
        distribution = SaleService.get_distribution(db, distribution_id)
        distribution.payment_status = status
        distribution.paid_at = datetime.utcnow() if status == PaymentStatus.PAID else None
        db.commit()
        db.refresh(distribution)
        return distribution

    @staticmethod
    def adjust_distribution(db: Session, distribution_id: str, adjustment: AdjustmentCreate) -> CommissionAdjustment:
        """Override a distribution's percent or role and keep a history record.

        The override only lives until the sale is recalculated.
        """
        distribution = SaleService.get_distribution(db, distribution_id)

        if (adjustment.new_percent is None) == (adjustment.new_role_type is None):
            raise ValidationError(
                "Invalid adjustment",
                errors=["An adjustment changes either the percent or the role, one at a time"]
            )

        record = CommissionAdjustment(
            distribution_id=distribution.id,
            sale_id=distribution.sale_id,
            reason=adjustment.reason,
            notes=adjustment.notes,
            adjusted_by=adjustment.adjusted_by,
        )

        if adjustment.new_percent is not None:
            old_percent = to_decimal(distribution.percent_assigned)
            new_percent = to_decimal(adjustment.new_percent)
            if new_percent < 0:
                raise ValidationError("Invalid adjustment", errors=["Percent cannot be negative"])
            if old_percent <= 0:
                raise ValidationError(
                    "Invalid adjustment",
                    errors=["Distribution has no percent to scale its amount from"]
                )
            old_amount = to_decimal(distribution.amount_calculated)
            new_amount = round_money(old_amount * new_percent / old_percent)

            record.adjustment_type = AdjustmentType.PERCENT_CHANGE
            record.old_value = old_percent
            record.new_value = new_percent
            record.amount_impact = new_amount - old_amount
            distribution.percent_assigned = new_percent
            distribution.amount_calculated = new_amount
        else:
            record.adjustment_type = AdjustmentType.ROLE_CHANGE
            record.old_role_type = distribution.role_type.value
            record.new_role_type = adjustment.new_role_type.value
            record.amount_impact = Decimal("0")
            distribution.role_type = adjustment.new_role_type

        db.add(record)
        db.commit()
        db.refresh(record)
        logger.info("Distribution %s adjusted (%s)", distribution_id, record.adjustment_type.value)
        return record

    @staticmethod
    def list_adjustments(db: Session, sale_id: str) -> List[CommissionAdjustment]:
        return db.query(CommissionAdjustment).filter(
            CommissionAdjustment.sale_id == sale_id
        ).order_by(CommissionAdjustment.adjusted_at.desc()).all()

    @staticmethod
    def trigger_post_sale(db: Session, sale_id: str, triggered_by: str) -> bool:
        """Make the post-sale phase of a calculated sale visible as upcoming.

        Returns False when it was already triggered.
        """
        sale = SqlSaleRepository(db).get_for_update(sale_id)
        if not sale.commission_calculated:
            db.rollback()
            raise NotFoundError(f"Sale {sale_id} has no calculated commission")

        if sale.internal_post_sale_phase_status != InternalPostSalePhaseStatus.HIDDEN:
            db.rollback()
            return False

        sale.internal_post_sale_phase_status = InternalPostSalePhaseStatus.UPCOMING
        sale.post_sale_triggered_at = datetime.utcnow()
        sale.post_sale_triggered_by = triggered_by
        db.commit()
        logger.info("Post-sale phase of sale %s triggered by %s", sale_id, triggered_by)
        return True

    @staticmethod
    def list_partner_commissions(db: Session, sale_id: str) -> List[PartnerCommission]:
        SqlSaleRepository(db).get(sale_id)
        return db.query(PartnerCommission).filter(
            PartnerCommission.sale_id == sale_id
        ).order_by(PartnerCommission.socio_name).all()

    @staticmethod
    def get_partner_commission(db: Session, partner_commission_id: str) -> PartnerCommission:
        record = db.query(PartnerCommission).filter(PartnerCommission.id == partner_commission_id).first()
        if not record:
            raise NotFoundError(f"Partner commission {partner_commission_id} not found")
        return record

    @staticmethod
    def update_partner_status(
        db: Session,
        partner_commission_id: str,
        phase: PartnerPhase,
        status: CollectionStatus
    ) -> PartnerCommission:
        record = SaleService.get_partner_commission(db, partner_commission_id)
        transition_collection_status(record, phase, status)
        db.commit()
        db.refresh(record)
        return record

    @staticmethod
    def set_partner_cash_flag(
        db: Session,
        partner_commission_id: str,
        phase: PartnerPhase,
        is_cash_payment: bool
    ) -> PartnerCommission:
        record = SaleService.get_partner_commission(db, partner_commission_id)
        setattr(record, f"{PartnerPhase(phase).value}_is_cash_payment", is_cash_payment)
        db.commit()
        db.refresh(record)
        return record
