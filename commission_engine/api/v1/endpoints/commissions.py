from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional

from commission_engine.core.config import settings
from commission_engine.core.database import get_db
from commission_engine.schemas.commission import (
    AdjustmentCreate,
    AdjustmentResponse,
    BatchRecalculateRequest,
    BatchResult,
    CalculateRequest,
    CommissionCalculationResult,
    CommissionSaleCreate,
    CommissionSaleResponse,
    DistributionPaymentUpdate,
    DistributionResponse,
    PostSaleTriggerRequest,
)
from commission_engine.services.commission_calculator import CommissionCalculator
from commission_engine.services.sale_mapper import upsert_sale, sync_sales
from commission_engine.services.sale_service import SaleService

router = APIRouter()


@router.get("/", response_model=List[CommissionSaleResponse])
async def list_sales(
    desarrollo: Optional[str] = None,
    calculated: Optional[bool] = None,
    skip: int = 0,
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """List commissionable sales"""
    return SaleService.list_sales(db, desarrollo=desarrollo, calculated=calculated, skip=skip, limit=limit)


@router.post("/", response_model=CommissionSaleResponse)
async def upsert_commission_sale(
    sale_in: CommissionSaleCreate,
    db: Session = Depends(get_db)
):
    """Create or update a sale by CRM deal id"""
    sale, _ = upsert_sale(db, sale_in)
    db.commit()
    db.refresh(sale)
    return sale


@router.post("/sync", response_model=BatchResult)
async def sync_deals(
    records: List[Dict[str, Any]],
    db: Session = Depends(get_db)
):
    """Map and upsert raw CRM deal records"""
    return sync_sales(db, records)


@router.post("/recalculate", response_model=BatchResult)
async def recalculate_sales(
    request: BatchRecalculateRequest,
    db: Session = Depends(get_db)
):
    """Recalculate several sales; failures are reported per sale"""
    return CommissionCalculator.from_session(db).recalculate_many(
        request.sale_ids, commission_percent=request.commission_percent
    )


@router.get("/{sale_id}", response_model=CommissionSaleResponse)
async def get_sale(sale_id: str, db: Session = Depends(get_db)):
    return SaleService.get_sale(db, sale_id)


@router.post("/{sale_id}/calculate", response_model=CommissionCalculationResult)
async def calculate_sale(
    sale_id: str,
    request: Optional[CalculateRequest] = None,
    db: Session = Depends(get_db)
):
    """Calculate (or recalculate) a sale and store its distributions"""
    commission_percent = request.commission_percent if request else None
    return CommissionCalculator.from_session(db).recalculate(sale_id, commission_percent=commission_percent)


@router.get("/{sale_id}/distributions", response_model=List[DistributionResponse])
async def list_distributions(sale_id: str, db: Session = Depends(get_db)):
    return SaleService.list_distributions(db, sale_id)


@router.put("/distributions/{distribution_id}/payment-status", response_model=DistributionResponse)
async def update_payment_status(
    distribution_id: str,
    update: DistributionPaymentUpdate,
    db: Session = Depends(get_db)
):
    return SaleService.set_payment_status(db, distribution_id, update.payment_status)


@router.post("/distributions/{distribution_id}/adjustments", response_model=AdjustmentResponse)
async def adjust_distribution(
    distribution_id: str,
    adjustment: AdjustmentCreate,
    db: Session = Depends(get_db)
):
    """Manually override a distribution; recorded in the adjustment history"""
    return SaleService.adjust_distribution(db, distribution_id, adjustment)


@router.get("/{sale_id}/adjustments", response_model=List[AdjustmentResponse])
async def list_adjustments(sale_id: str, db: Session = Depends(get_db)):
    return SaleService.list_adjustments(db, sale_id)


@router.post("/{sale_id}/post-sale/trigger")
async def trigger_post_sale(
    sale_id: str,
    request: PostSaleTriggerRequest,
    db: Session = Depends(get_db)
):
    triggered = SaleService.trigger_post_sale(db, sale_id, request.triggered_by)
    return {"sale_id": sale_id, "triggered": triggered}
