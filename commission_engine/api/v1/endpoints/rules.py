from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from commission_engine.core.database import get_db
from commission_engine.schemas.rule import (
    CommissionRuleCreate,
    CommissionRuleUpdate,
    CommissionRuleResponse,
    RuleEvaluation,
)
from commission_engine.services.rule_service import RuleService

router = APIRouter()


@router.get("/", response_model=List[CommissionRuleResponse])
async def list_rules(
    desarrollo: str,
    include_inactive: bool = False,
    db: Session = Depends(get_db)
):
    return RuleService.list_rules(db, desarrollo, include_inactive=include_inactive)


@router.post("/", response_model=CommissionRuleResponse)
async def create_rule(rule_in: CommissionRuleCreate, db: Session = Depends(get_db)):
    return RuleService.create_rule(db, rule_in)


@router.get("/applicable", response_model=RuleEvaluation)
async def preview_applicable_rules(
    desarrollo: str,
    fecha_firma: date,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """Rules that would apply to a sale of the development signed on fecha_firma"""
    return RuleService.preview_applicable_rules(db, desarrollo, fecha_firma, as_of)


@router.put("/{rule_id}", response_model=CommissionRuleResponse)
async def update_rule(rule_id: str, rule_update: CommissionRuleUpdate, db: Session = Depends(get_db)):
    return RuleService.update_rule(db, rule_id, rule_update)


@router.delete("/{rule_id}", response_model=CommissionRuleResponse)
async def deactivate_rule(rule_id: str, db: Session = Depends(get_db)):
    """Rules are deactivated, never deleted"""
    return RuleService.deactivate_rule(db, rule_id)
