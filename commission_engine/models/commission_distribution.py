from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from commission_engine.core.database import Base


class CommissionPhase(str, enum.Enum):
    SALE = "sale"
    POST_SALE = "post_sale"
    UTILITY = "utility"


class CommissionRoleType(str, enum.Enum):
    SALE_MANAGER = "sale_manager"
    DEAL_OWNER = "deal_owner"
    EXTERNAL_ADVISOR = "external_advisor"
    OPERATIONS_COORDINATOR = "operations_coordinator"
    MARKETING = "marketing"
    LEGAL_MANAGER = "legal_manager"
    POST_SALE_COORDINATOR = "post_sale_coordinator"
    CUSTOMER_SERVICE = "customer_service"
    DELIVERIES = "deliveries"
    BONDS = "bonds"
    RULE_BONUS = "rule_bonus"
    REMAINING_UTILITY = "remaining_utility"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class CommissionDistribution(Base):
    __tablename__ = "commission_distributions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_id = Column(String, ForeignKey("commission_sales.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    role_type = Column(SQLEnum(CommissionRoleType), nullable=False)
    person_name = Column(String(255), nullable=False)
    person_id = Column(String(100), nullable=True)
    phase = Column(SQLEnum(CommissionPhase), nullable=False)

    percent_assigned = Column(Numeric(7, 3), nullable=False)
    amount_calculated = Column(Numeric(15, 2), nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    paid_at = Column(DateTime, nullable=True)

    # Rule bonus detail (utility phase only)
    rule_id = Column(String, nullable=True)
    rule_fulfilled = Column(Boolean, nullable=True)
    units_counted = Column(Integer, nullable=True)
    units_required = Column(Integer, nullable=True)
    rule_operator = Column(String(2), nullable=True)
    vat_amount = Column(Numeric(15, 2), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    sale = relationship("CommissionSale", back_populates="distributions")
