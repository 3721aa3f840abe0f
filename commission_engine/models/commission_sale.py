from sqlalchemy import Column, String, Boolean, Date, DateTime, Integer, Numeric, Enum as SQLEnum
from sqlalchemy.orm import relationship, validates
from datetime import datetime
import uuid
import enum

from commission_engine.core.database import Base
from commission_engine.core.developments import canonical_development


class InternalSalePhaseStatus(str, enum.Enum):
    VISIBLE = "visible"
    PENDING = "pending"
    PAID = "paid"


class InternalPostSalePhaseStatus(str, enum.Enum):
    HIDDEN = "hidden"
    UPCOMING = "upcoming"
    PAYABLE = "payable"
    PAID = "paid"


class CommissionSale(Base):
    __tablename__ = "commission_sales"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    zoho_deal_id = Column(String(100), unique=True, nullable=False, index=True)
    deal_name = Column(String(255), nullable=True)

    cliente_nombre = Column(String(255), nullable=False)
    desarrollo = Column(String(255), nullable=False, index=True)
    propietario_deal = Column(String(255), nullable=False)
    propietario_deal_id = Column(String(100), nullable=True)
    producto = Column(String(255), nullable=True)

    # Term in months; deed date = fecha_firma + plazo_deal months
    plazo_deal = Column(Integer, nullable=True)

    metros_cuadrados = Column(Numeric(12, 2), nullable=True)
    precio_por_m2 = Column(Numeric(15, 2), nullable=True)
    valor_total = Column(Numeric(15, 2), nullable=False)
    fecha_firma = Column(Date, nullable=False, index=True)

    asesor_externo = Column(String(255), nullable=True)
    asesor_externo_id = Column(String(100), nullable=True)

    # Calculation state
    commission_calculated = Column(Boolean, default=False, nullable=False)
    commission_total = Column(Numeric(15, 2), nullable=False, default=0)
    commission_sale_phase = Column(Numeric(15, 2), nullable=False, default=0)
    commission_post_sale_phase = Column(Numeric(15, 2), nullable=False, default=0)
    calculated_at = Column(DateTime, nullable=True)

    # Phase percents frozen at calculation time
    calculated_phase_sale_percent = Column(Numeric(6, 3), nullable=True)
    calculated_phase_post_sale_percent = Column(Numeric(6, 3), nullable=True)

    internal_sale_phase_status = Column(
        SQLEnum(InternalSalePhaseStatus), nullable=False, default=InternalSalePhaseStatus.VISIBLE
    )
    internal_post_sale_phase_status = Column(
        SQLEnum(InternalPostSalePhaseStatus), nullable=False, default=InternalPostSalePhaseStatus.HIDDEN
    )
    post_sale_triggered_at = Column(DateTime, nullable=True)
    post_sale_triggered_by = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    synced_at = Column(DateTime, nullable=True)

    # Relationships
    distributions = relationship(
        "CommissionDistribution",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="CommissionDistribution.position",
    )
    partners = relationship("ProductPartner", back_populates="sale", cascade="all, delete-orphan")
    partner_commissions = relationship("PartnerCommission", back_populates="sale", cascade="all, delete-orphan")

    @validates("desarrollo")
    def _canonical_desarrollo(self, key, value):
        return canonical_development(value)
