import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from celery import Task
from sqlalchemy.orm import Session

from commission_engine.tasks.celery_app import celery_app
from commission_engine.core.database import SessionLocal
from commission_engine.services.commission_calculator import CommissionCalculator
from commission_engine.services.sale_mapper import sync_sales


logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """Base task with database session"""
    _db = None

    @property
    def db(self) -> Session:
        if self._db is None:
            self._db = SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        if self._db is not None:
            self._db.close()
            self._db = None


@celery_app.task(base=DatabaseTask, bind=True)
def recalculate_sales_task(self, sale_ids: List[str], commission_percent: Optional[str] = None):
    """Recalculate a batch of sales; per-sale failures land in the result"""
    percent = Decimal(commission_percent) if commission_percent is not None else None
    batch = CommissionCalculator.from_session(self.db).recalculate_many(
        sale_ids, commission_percent=percent, calculated_by="recalculate_sales_task"
    )
    return batch.model_dump()


@celery_app.task(base=DatabaseTask, bind=True)
def sync_sales_task(self, records: List[Dict[str, Any]]):
    """Upsert CRM deal records as commissionable sales"""
    batch = sync_sales(self.db, records)
    if batch.failed:
        logger.warning("%d of %d deals failed to sync", batch.failed, len(records))
    return batch.model_dump()
