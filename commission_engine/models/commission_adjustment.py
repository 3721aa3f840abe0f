from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, Text, Enum as SQLEnum
from datetime import datetime
import uuid
import enum

from commission_engine.core.database import Base


class AdjustmentType(str, enum.Enum):
    PERCENT_CHANGE = "percent_change"
    AMOUNT_CHANGE = "amount_change"
    ROLE_CHANGE = "role_change"


class CommissionAdjustment(Base):
    """History of manual overrides; never read back by the calculator"""
    __tablename__ = "commission_adjustments"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Plain column: distributions are replaced on recalculation, history stays
    distribution_id = Column(String, nullable=False, index=True)
    sale_id = Column(String, ForeignKey("commission_sales.id", ondelete="CASCADE"), nullable=False, index=True)

    adjustment_type = Column(SQLEnum(AdjustmentType), nullable=False)
    old_value = Column(Numeric(15, 3), nullable=True)
    new_value = Column(Numeric(15, 3), nullable=True)
    old_role_type = Column(String(50), nullable=True)
    new_role_type = Column(String(50), nullable=True)
    amount_impact = Column(Numeric(15, 2), nullable=False, default=0)

    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    adjusted_by = Column(String, nullable=True)
    adjusted_at = Column(DateTime, default=datetime.utcnow)
