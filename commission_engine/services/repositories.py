"""SQLAlchemy collaborators of the commission engine.

The engine only sees typed schema objects; these classes load them from the
session and write the calculated rows back. Every method that takes a
development key canonicalizes it first, and queries match all historical
spellings of that key.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from commission_engine.core.developments import canonical_development, development_aliases
from commission_engine.core.exceptions import NotFoundError
from commission_engine.models.commission_config import CommissionConfig, CommissionGlobalConfig
from commission_engine.models.commission_distribution import CommissionDistribution
from commission_engine.models.commission_rule import CommissionRule
from commission_engine.models.commission_sale import CommissionSale
from commission_engine.models.partner import ProductPartner, PartnerCommission
from commission_engine.schemas.commission import (
    CommissionConfigData,
    GlobalRoleConfigData,
    CommissionSaleData,
    DistributionRow,
)
from commission_engine.schemas.partner import PartnerData, PartnerCommissionRow
from commission_engine.schemas.rule import CommissionRuleData
from commission_engine.services.period_resolver import PeriodResolver


def _development_filter(column, development: str):
    key = canonical_development(development)
    return func.lower(func.trim(column)).in_(development_aliases(key))


class SqlConfigRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_row(self, development: str) -> Optional[CommissionConfig]:
        if not canonical_development(development):
            return None
        return self.db.query(CommissionConfig).filter(
            _development_filter(CommissionConfig.desarrollo, development)
        ).first()

    def get(self, development: str) -> CommissionConfigData:
        row = self.get_row(development)
        if not row:
            raise NotFoundError(
                f"No commission configuration for development {development!r}",
                details={"desarrollo": canonical_development(development)}
            )
        return CommissionConfigData.model_validate(row)

    def get_globals(self) -> GlobalRoleConfigData:
        values = {
            row.config_key.value: row.config_value
            for row in self.db.query(CommissionGlobalConfig).all()
        }
        return GlobalRoleConfigData(**values)


class SqlRuleRepository:
    def __init__(self, db: Session):
        self.db = db

    def query_for(self, development: str):
        return self.db.query(CommissionRule).filter(
            _development_filter(CommissionRule.desarrollo, development)
        ).order_by(CommissionRule.unit_threshold.desc(), CommissionRule.created_at.desc())

    def list_active(self, development: str) -> List[CommissionRuleData]:
        rules = self.query_for(development).filter(CommissionRule.is_active == True).all()
        return [CommissionRuleData.model_validate(rule) for rule in rules]


class SqlSaleRepository:
    def __init__(self, db: Session):
        self.db = db

    def count_in_period(self, development: str, period_key: str, period_type, as_of: date) -> int:
        start, end = PeriodResolver.period_bounds(period_key, period_type)
        return self.db.query(func.count(CommissionSale.id)).filter(
            _development_filter(CommissionSale.desarrollo, development),
            CommissionSale.fecha_firma >= start,
            CommissionSale.fecha_firma < end,
            CommissionSale.fecha_firma <= as_of,
        ).scalar() or 0

    def get(self, sale_id: str) -> CommissionSale:
        sale = self.db.query(CommissionSale).filter(CommissionSale.id == sale_id).first()
        if not sale:
            raise NotFoundError(f"Sale {sale_id} not found")
        return sale

    def get_for_update(self, sale_id: str) -> CommissionSale:
        """Load and row-lock a sale for the rest of the transaction"""
        sale = self.db.query(CommissionSale).filter(
            CommissionSale.id == sale_id
        ).with_for_update().first()
        if not sale:
            raise NotFoundError(f"Sale {sale_id} not found")
        return sale

    def get_by_deal_id(self, zoho_deal_id: str) -> Optional[CommissionSale]:
        return self.db.query(CommissionSale).filter(CommissionSale.zoho_deal_id == zoho_deal_id).first()

    def list_partners(self, sale_id: str) -> List[PartnerData]:
        partners = self.db.query(ProductPartner).filter(
            ProductPartner.sale_id == sale_id
        ).order_by(ProductPartner.socio_name).all()
        return [PartnerData.model_validate(partner) for partner in partners]

    def mark_calculated(self, sale: CommissionSale, result):
        """Store the calculated totals and freeze the phase percents used"""
        sale.commission_calculated = True
        sale.commission_total = result.commission_total
        sale.commission_sale_phase = result.sale_phase_amount
        sale.commission_post_sale_phase = result.post_sale_phase_amount
        sale.calculated_phase_sale_percent = result.phase_sale_percent
        sale.calculated_phase_post_sale_percent = result.phase_post_sale_percent
        sale.calculated_at = datetime.utcnow()
        return sale

    @staticmethod
    def to_data(sale: CommissionSale) -> CommissionSaleData:
        return CommissionSaleData.model_validate(sale)


class SqlDistributionWriter:
    def __init__(self, db: Session):
        self.db = db

    def replace_all(self, sale_id: str, rows: Iterable[DistributionRow]):
        self.db.query(CommissionDistribution).filter(
            CommissionDistribution.sale_id == sale_id
        ).delete()

        for position, row in enumerate(rows):
            self.db.add(CommissionDistribution(sale_id=sale_id, position=position, **row.model_dump()))
        self.db.flush()


class SqlPartnerCommissionWriter:
    def __init__(self, db: Session):
        self.db = db

    def upsert(self, sale_id: str, rows: Iterable[PartnerCommissionRow], calculated_by: Optional[str] = None):
        """Write computed partner rows keyed by (sale, socio_name).

        Amounts are overwritten; collection statuses, collected-at stamps and
        cash flags of existing partners are kept. Partners no longer attached
        to the sale are removed.
        """
        existing = {
            record.socio_name: record
            for record in self.db.query(PartnerCommission).filter(PartnerCommission.sale_id == sale_id).all()
        }
        now = datetime.utcnow()
        seen = set()

        for row in rows:
            seen.add(row.socio_name)
            record = existing.get(row.socio_name)
            if record is None:
                record = PartnerCommission(sale_id=sale_id, socio_name=row.socio_name)
                self.db.add(record)
            for field, value in row.model_dump(exclude={"socio_name"}).items():
                setattr(record, field, value)
            record.calculated_at = now
            record.calculated_by = calculated_by

        for socio_name, record in existing.items():
            if socio_name not in seen:
                self.db.delete(record)
        self.db.flush()
