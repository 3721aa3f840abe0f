from pydantic import BaseModel, Field, computed_field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from commission_engine.models.commission_config import GlobalConfigKey
from commission_engine.models.commission_distribution import CommissionPhase, CommissionRoleType, PaymentStatus
from commission_engine.models.commission_sale import InternalSalePhaseStatus, InternalPostSalePhaseStatus
from commission_engine.models.commission_adjustment import AdjustmentType
from commission_engine.schemas.partner import ProductPartnerInput, PartnerCommissionRow
from commission_engine.schemas.rule import RuleEvaluation


# Configuration

class CommissionConfigBase(BaseModel):
    phase_sale_percent: Decimal
    phase_post_sale_percent: Decimal
    sale_manager_percent: Decimal
    deal_owner_percent: Decimal
    external_advisor_percent: Optional[Decimal] = None
    pool_enabled: bool = False
    sale_pool_total_percent: Optional[Decimal] = None
    customer_service_enabled: bool = False
    customer_service_percent: Optional[Decimal] = None
    deliveries_enabled: bool = False
    deliveries_percent: Optional[Decimal] = None
    bonds_enabled: bool = False
    bonds_percent: Optional[Decimal] = None


class CommissionConfigInput(CommissionConfigBase):
    desarrollo: str
    # Global post-sale roles, updated alongside the development config when sent
    legal_manager_percent: Optional[Decimal] = None
    post_sale_coordinator_percent: Optional[Decimal] = None
    updated_by: Optional[str] = None


class CommissionConfigData(CommissionConfigBase):
    desarrollo: str

    class Config:
        from_attributes = True


class CommissionConfigResponse(CommissionConfigData):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GlobalRoleConfigData(BaseModel):
    operations_coordinator_percent: Decimal = Decimal("0")
    marketing_percent: Decimal = Decimal("0")
    legal_manager_percent: Decimal = Decimal("0")
    post_sale_coordinator_percent: Decimal = Decimal("0")


class GlobalConfigUpdate(BaseModel):
    config_key: GlobalConfigKey
    config_value: Decimal = Field(ge=0, le=100)
    description: Optional[str] = None
    updated_by: Optional[str] = None


# Sales

class CommissionSaleBase(BaseModel):
    zoho_deal_id: str
    deal_name: Optional[str] = None
    cliente_nombre: str
    desarrollo: str
    propietario_deal: str
    propietario_deal_id: Optional[str] = None
    producto: Optional[str] = None
    plazo_deal: Optional[int] = None
    metros_cuadrados: Optional[Decimal] = None
    precio_por_m2: Optional[Decimal] = None
    valor_total: Decimal
    fecha_firma: date
    asesor_externo: Optional[str] = None
    asesor_externo_id: Optional[str] = None


class CommissionSaleCreate(CommissionSaleBase):
    partners: List[ProductPartnerInput] = []


class CommissionSaleData(CommissionSaleBase):
    id: str
    commission_calculated: bool = False
    commission_sale_phase: Decimal = Decimal("0")
    commission_post_sale_phase: Decimal = Decimal("0")
    calculated_phase_sale_percent: Optional[Decimal] = None
    calculated_phase_post_sale_percent: Optional[Decimal] = None

    class Config:
        from_attributes = True

    @property
    def has_external_advisor(self) -> bool:
        return bool(self.asesor_externo and self.asesor_externo.strip())

    @computed_field
    @property
    def deed_date(self) -> Optional[date]:
        if self.plazo_deal is None:
            return None
        return self.fecha_firma + relativedelta(months=self.plazo_deal)


class CommissionSaleResponse(CommissionSaleData):
    commission_total: Decimal
    calculated_at: Optional[datetime] = None
    internal_sale_phase_status: InternalSalePhaseStatus
    internal_post_sale_phase_status: InternalPostSalePhaseStatus
    post_sale_triggered_at: Optional[datetime] = None
    post_sale_triggered_by: Optional[str] = None


# Distributions

class DistributionRow(BaseModel):
    role_type: CommissionRoleType
    person_name: str
    person_id: Optional[str] = None
    phase: CommissionPhase
    percent_assigned: Decimal
    amount_calculated: Decimal

    # Rule bonus detail
    rule_id: Optional[str] = None
    rule_fulfilled: Optional[bool] = None
    units_counted: Optional[int] = None
    units_required: Optional[int] = None
    rule_operator: Optional[str] = None
    vat_amount: Optional[Decimal] = None


class DistributionResponse(DistributionRow):
    id: str
    sale_id: str
    payment_status: PaymentStatus
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DistributionPaymentUpdate(BaseModel):
    payment_status: PaymentStatus


class PhaseDistributionResult(BaseModel):
    commission_total: Decimal
    sale_phase_amount: Decimal
    post_sale_phase_amount: Decimal
    pool_amount: Decimal
    # Effective percents after redistribution
    sale_manager_percent: Decimal
    deal_owner_percent: Decimal
    external_advisor_percent: Decimal
    distributions: List[DistributionRow] = []


class CommissionCalculationResult(BaseModel):
    sale_id: str
    commission_total: Decimal
    sale_phase_amount: Decimal
    post_sale_phase_amount: Decimal
    sale_phase_distributed: Decimal
    post_sale_phase_distributed: Decimal
    remaining_utility: Decimal
    phase_sale_percent: Decimal
    phase_post_sale_percent: Decimal
    distributions: List[DistributionRow] = []
    rule_evaluation: RuleEvaluation = RuleEvaluation()
    partner_commissions: List[PartnerCommissionRow] = []


class CalculateRequest(BaseModel):
    commission_percent: Optional[Decimal] = Field(default=None, gt=0)


class BatchRecalculateRequest(CalculateRequest):
    sale_ids: List[str]


class PostSaleTriggerRequest(BaseModel):
    triggered_by: str


# Adjustments

class AdjustmentCreate(BaseModel):
    new_percent: Optional[Decimal] = None
    new_role_type: Optional[CommissionRoleType] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    adjusted_by: Optional[str] = None


class AdjustmentResponse(BaseModel):
    id: str
    distribution_id: str
    sale_id: str
    adjustment_type: AdjustmentType
    old_value: Optional[Decimal] = None
    new_value: Optional[Decimal] = None
    old_role_type: Optional[str] = None
    new_role_type: Optional[str] = None
    amount_impact: Decimal
    reason: Optional[str] = None
    adjusted_by: Optional[str] = None
    adjusted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Batches

class BatchError(BaseModel):
    key: str
    message: str


class BatchResult(BaseModel):
    """Partial-failure aggregate of a batch run; the batch always completes"""
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[BatchError] = []

    def record_failure(self, key: str, message: str):
        self.failed += 1
        self.errors.append(BatchError(key=key, message=message))
