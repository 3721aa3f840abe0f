from commission_engine.models.commission_config import CommissionConfig, CommissionGlobalConfig, GlobalConfigKey
from commission_engine.models.commission_sale import (
    CommissionSale,
    InternalSalePhaseStatus,
    InternalPostSalePhaseStatus,
)
from commission_engine.models.commission_distribution import (
    CommissionDistribution,
    CommissionPhase,
    CommissionRoleType,
    PaymentStatus,
)
from commission_engine.models.commission_rule import CommissionRule, PeriodType, RuleOperator
from commission_engine.models.partner import ProductPartner, PartnerCommission, CollectionStatus, PartnerPhase
from commission_engine.models.commission_adjustment import CommissionAdjustment, AdjustmentType

__all__ = [
    "CommissionConfig",
    "CommissionGlobalConfig",
    "GlobalConfigKey",
    "CommissionSale",
    "InternalSalePhaseStatus",
    "InternalPostSalePhaseStatus",
    "CommissionDistribution",
    "CommissionPhase",
    "CommissionRoleType",
    "PaymentStatus",
    "CommissionRule",
    "PeriodType",
    "RuleOperator",
    "ProductPartner",
    "PartnerCommission",
    "CollectionStatus",
    "PartnerPhase",
    "CommissionAdjustment",
    "AdjustmentType",
]
