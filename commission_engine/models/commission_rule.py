from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, Enum as SQLEnum
from sqlalchemy.orm import validates
from datetime import datetime
import uuid
import enum

from commission_engine.core.database import Base
from commission_engine.core.developments import canonical_development


class PeriodType(str, enum.Enum):
    QUARTER = "quarter"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def _missing_(cls, value):
        # Legacy CRM/admin spellings
        legacy = {"trimestre": cls.QUARTER, "mensual": cls.MONTH, "anual": cls.YEAR}
        if isinstance(value, str):
            return legacy.get(value.strip().lower())
        return None


class RuleOperator(str, enum.Enum):
    EQ = "="
    GTE = ">="
    LTE = "<="


class CommissionRule(Base):
    __tablename__ = "commission_rules"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    desarrollo = Column(String(255), nullable=False, index=True)
    rule_name = Column(String(255), nullable=False)

    # quarter: "2025" (applies to whichever quarter the sale falls in)
    # month:   "2025-01"
    # year:    "2025"
    period_type = Column(SQLEnum(PeriodType), nullable=False)
    period_value = Column(String(20), nullable=False)

    operator = Column(SQLEnum(RuleOperator), nullable=False)
    unit_threshold = Column(Integer, nullable=False)

    commission_percent = Column(Numeric(6, 3), nullable=False)
    vat_percent = Column(Numeric(6, 3), nullable=False, default=0)

    is_active = Column(Boolean, default=True, nullable=False)
    priority = Column(Integer, default=0, nullable=False)  # ordering only

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)

    @validates("desarrollo")
    def _canonical_desarrollo(self, key, value):
        return canonical_development(value)
