from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from commission_engine.models.partner import CollectionStatus, PartnerPhase


UNNAMED_PARTNER = "Socio sin nombre"


def partner_name(value: Optional[str]) -> str:
    """Key a partner is stored under: trimmed, blanks collapse to one placeholder"""
    return ("" if value is None else str(value)).strip() or UNNAMED_PARTNER


class ProductPartnerInput(BaseModel):
    socio_name: str
    participacion: Decimal
    zoho_product_id: Optional[str] = None

    @field_validator("socio_name", mode="before")
    @classmethod
    def _normalize_name(cls, value):
        return partner_name(value)


class PartnerData(BaseModel):
    socio_name: str
    participacion: Decimal

    class Config:
        from_attributes = True


class PartnerCommissionRow(BaseModel):
    socio_name: str
    participacion: Decimal
    total_commission_amount: Decimal
    sale_phase_amount: Decimal
    post_sale_phase_amount: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total_with_vat: Decimal


class PartnerCommissionResponse(PartnerCommissionRow):
    id: str
    sale_id: str
    sale_phase_collection_status: CollectionStatus
    post_sale_phase_collection_status: CollectionStatus
    sale_phase_collected_at: Optional[datetime] = None
    post_sale_phase_collected_at: Optional[datetime] = None
    sale_phase_is_cash_payment: bool
    post_sale_phase_is_cash_payment: bool
    calculated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PartnerStatusUpdate(BaseModel):
    phase: PartnerPhase
    status: CollectionStatus


class PartnerCashFlagUpdate(BaseModel):
    phase: PartnerPhase
    is_cash_payment: bool
