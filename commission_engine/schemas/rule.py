from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal

from commission_engine.models.commission_rule import PeriodType, RuleOperator


class CommissionRuleBase(BaseModel):
    desarrollo: str
    rule_name: str
    period_type: PeriodType
    period_value: str
    operator: RuleOperator
    unit_threshold: int = Field(ge=0)
    commission_percent: Decimal
    vat_percent: Decimal = Decimal("0")
    is_active: bool = True
    priority: int = 0

    @field_validator("period_type", mode="before")
    @classmethod
    def _legacy_period_type(cls, value):
        # trimestre / mensual / anual
        if isinstance(value, str):
            return PeriodType(value.strip().lower())
        return value


class CommissionRuleCreate(CommissionRuleBase):
    pass


class CommissionRuleUpdate(BaseModel):
    rule_name: Optional[str] = None
    period_type: Optional[PeriodType] = None
    period_value: Optional[str] = None
    operator: Optional[RuleOperator] = None
    unit_threshold: Optional[int] = Field(default=None, ge=0)
    commission_percent: Optional[Decimal] = None
    vat_percent: Optional[Decimal] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = None

    @field_validator("period_type", mode="before")
    @classmethod
    def _legacy_period_type(cls, value):
        if isinstance(value, str):
            return PeriodType(value.strip().lower())
        return value


class CommissionRuleData(CommissionRuleBase):
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommissionRuleResponse(CommissionRuleData):
    updated_at: Optional[datetime] = None


class RuleEvaluation(BaseModel):
    """Outcome of evaluating every active rule of a development for one sale"""
    applicable_rules: List[CommissionRuleData] = []
    # rule id -> units counted in the rule's resolved period (0 when out of period)
    unit_counts: Dict[str, int] = {}
    evaluated_rules: List[CommissionRuleData] = []

    @property
    def unmet_rules(self) -> List[CommissionRuleData]:
        applicable_ids = {rule.id for rule in self.applicable_rules}
        return [rule for rule in self.evaluated_rules if rule.id not in applicable_ids]
