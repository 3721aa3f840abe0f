from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from commission_engine.core.database import get_db
from commission_engine.schemas.commission import (
    CommissionConfigInput,
    CommissionConfigResponse,
    GlobalConfigUpdate,
)
from commission_engine.services.config_service import ConfigService

router = APIRouter()


@router.get("/", response_model=List[CommissionConfigResponse])
async def list_configs(db: Session = Depends(get_db)):
    return ConfigService.list_configs(db)


@router.put("/", response_model=CommissionConfigResponse)
async def save_config(config_in: CommissionConfigInput, db: Session = Depends(get_db)):
    """Validate and save a development's configuration (422 lists every violation)"""
    return ConfigService.save_config(db, config_in)


@router.get("/globals")
async def list_global_configs(db: Session = Depends(get_db)):
    return [
        {
            "config_key": entry.config_key.value,
            "config_value": entry.config_value,
            "description": entry.description,
            "updated_at": entry.updated_at,
        }
        for entry in ConfigService.list_global_configs(db)
    ]


@router.put("/globals")
async def update_global_config(update: GlobalConfigUpdate, db: Session = Depends(get_db)):
    entry = ConfigService.update_global_config(db, update)
    return {"config_key": entry.config_key.value, "config_value": entry.config_value}


@router.get("/{desarrollo}", response_model=CommissionConfigResponse)
async def get_config(desarrollo: str, db: Session = Depends(get_db)):
    return ConfigService.get_config(db, desarrollo)
