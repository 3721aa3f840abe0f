from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from commission_engine.core.database import get_db
from commission_engine.schemas.partner import (
    PartnerCashFlagUpdate,
    PartnerCommissionResponse,
    PartnerStatusUpdate,
)
from commission_engine.services.commission_calculator import CommissionCalculator
from commission_engine.services.sale_service import SaleService

router = APIRouter()


@router.get("/sales/{sale_id}", response_model=List[PartnerCommissionResponse])
async def list_partner_commissions(sale_id: str, db: Session = Depends(get_db)):
    return SaleService.list_partner_commissions(db, sale_id)


@router.post("/sales/{sale_id}/refresh", response_model=List[PartnerCommissionResponse])
async def refresh_partner_commissions(sale_id: str, db: Session = Depends(get_db)):
    """Re-split a calculated sale among its partners using its frozen phase percents"""
    CommissionCalculator.from_session(db).refresh_partner_commissions(sale_id)
    return SaleService.list_partner_commissions(db, sale_id)


@router.put("/{partner_commission_id}/status", response_model=PartnerCommissionResponse)
async def update_partner_status(
    partner_commission_id: str,
    update: PartnerStatusUpdate,
    db: Session = Depends(get_db)
):
    return SaleService.update_partner_status(db, partner_commission_id, update.phase, update.status)


@router.put("/{partner_commission_id}/cash-payment", response_model=PartnerCommissionResponse)
async def set_partner_cash_flag(
    partner_commission_id: str,
    update: PartnerCashFlagUpdate,
    db: Session = Depends(get_db)
):
    return SaleService.set_partner_cash_flag(db, partner_commission_id, update.phase, update.is_cash_payment)
