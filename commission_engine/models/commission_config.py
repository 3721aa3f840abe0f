from sqlalchemy import Column, String, Boolean, DateTime, Numeric, Text, Enum as SQLEnum
from sqlalchemy.orm import validates
from datetime import datetime
import uuid
import enum

from commission_engine.core.database import Base
from commission_engine.core.developments import canonical_development


class CommissionConfig(Base):
    __tablename__ = "commission_configs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    desarrollo = Column(String(255), unique=True, nullable=False, index=True)

    # Phase split (guide only, not enforced to sum 100)
    phase_sale_percent = Column(Numeric(6, 3), nullable=False)
    phase_post_sale_percent = Column(Numeric(6, 3), nullable=False)

    # Sale phase - direct roles
    sale_manager_percent = Column(Numeric(6, 3), nullable=False)
    deal_owner_percent = Column(Numeric(6, 3), nullable=False)
    external_advisor_percent = Column(Numeric(6, 3), nullable=True)

    # Sale phase - pool
    pool_enabled = Column(Boolean, default=False, nullable=False)
    sale_pool_total_percent = Column(Numeric(6, 3), nullable=True)

    # Post-sale phase - optional roles
    customer_service_enabled = Column(Boolean, default=False, nullable=False)
    customer_service_percent = Column(Numeric(6, 3), nullable=True)
    deliveries_enabled = Column(Boolean, default=False, nullable=False)
    deliveries_percent = Column(Numeric(6, 3), nullable=True)
    bonds_enabled = Column(Boolean, default=False, nullable=False)
    bonds_percent = Column(Numeric(6, 3), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)

    @validates("desarrollo")
    def _canonical_desarrollo(self, key, value):
        return canonical_development(value)


class GlobalConfigKey(str, enum.Enum):
    OPERATIONS_COORDINATOR = "operations_coordinator_percent"
    MARKETING = "marketing_percent"
    LEGAL_MANAGER = "legal_manager_percent"
    POST_SALE_COORDINATOR = "post_sale_coordinator_percent"


class CommissionGlobalConfig(Base):
    """Indirect roles shared by every development"""
    __tablename__ = "commission_global_configs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    config_key = Column(SQLEnum(GlobalConfigKey), unique=True, nullable=False)
    config_value = Column(Numeric(6, 3), nullable=False, default=0)
    description = Column(Text, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    updated_by = Column(String, nullable=True)
