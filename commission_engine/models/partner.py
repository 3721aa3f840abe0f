from sqlalchemy import Column, String, Boolean, DateTime, Numeric, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from commission_engine.core.database import Base


class CollectionStatus(str, enum.Enum):
    PENDING_INVOICE = "pending_invoice"
    INVOICED = "invoiced"
    COLLECTED = "collected"


class PartnerPhase(str, enum.Enum):
    SALE_PHASE = "sale_phase"
    POST_SALE_PHASE = "post_sale_phase"


class ProductPartner(Base):
    """Financial stakeholder of the sold product, as synced from the CRM"""
    __tablename__ = "commission_product_partners"
    __table_args__ = (UniqueConstraint("sale_id", "socio_name", name="uq_product_partner_sale_socio"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_id = Column(String, ForeignKey("commission_sales.id", ondelete="CASCADE"), nullable=False, index=True)
    zoho_product_id = Column(String(100), nullable=True)

    socio_name = Column(String(255), nullable=False)
    participacion = Column(Numeric(6, 3), nullable=False)  # 0-100

    synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    sale = relationship("CommissionSale", back_populates="partners")


class PartnerCommission(Base):
    __tablename__ = "partner_commissions"
    __table_args__ = (UniqueConstraint("sale_id", "socio_name", name="uq_partner_commission_sale_socio"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_id = Column(String, ForeignKey("commission_sales.id", ondelete="CASCADE"), nullable=False, index=True)

    socio_name = Column(String(255), nullable=False)
    participacion = Column(Numeric(6, 3), nullable=False)

    total_commission_amount = Column(Numeric(15, 2), nullable=False, default=0)
    sale_phase_amount = Column(Numeric(15, 2), nullable=False, default=0)
    post_sale_phase_amount = Column(Numeric(15, 2), nullable=False, default=0)

    # VAT on top, display/invoicing only
    vat_rate = Column(Numeric(6, 3), nullable=False, default=0)
    vat_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total_with_vat = Column(Numeric(15, 2), nullable=False, default=0)

    # Collection state per phase (independent)
    sale_phase_collection_status = Column(
        SQLEnum(CollectionStatus), nullable=False, default=CollectionStatus.PENDING_INVOICE
    )
    post_sale_phase_collection_status = Column(
        SQLEnum(CollectionStatus), nullable=False, default=CollectionStatus.PENDING_INVOICE
    )
    sale_phase_collected_at = Column(DateTime, nullable=True)
    post_sale_phase_collected_at = Column(DateTime, nullable=True)
    sale_phase_is_cash_payment = Column(Boolean, default=False, nullable=False)
    post_sale_phase_is_cash_payment = Column(Boolean, default=False, nullable=False)

    calculated_at = Column(DateTime, nullable=True)
    calculated_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    sale = relationship("CommissionSale", back_populates="partner_commissions")
