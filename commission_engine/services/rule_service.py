import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from commission_engine.core.exceptions import MalformedRuleError, NotFoundError, ValidationError
from commission_engine.models.commission_rule import CommissionRule
from commission_engine.schemas.rule import CommissionRuleCreate, CommissionRuleUpdate, RuleEvaluation
from commission_engine.services.period_resolver import PeriodResolver
from commission_engine.services.repositories import SqlRuleRepository, SqlSaleRepository
from commission_engine.services.rule_engine import RuleEngine
from commission_engine.services.unit_counter import UnitCounter


logger = logging.getLogger(__name__)


def _check_period(period_type, period_value):
    # Rules already stored with a bad descriptor are skipped at evaluation,
    # new ones are rejected here
    try:
        PeriodResolver.parse(period_type, period_value)
    except MalformedRuleError as e:
        raise ValidationError("Invalid rule period", errors=[e.message])


class RuleService:
    @staticmethod
    def create_rule(db: Session, rule_in: CommissionRuleCreate, created_by: Optional[str] = None) -> CommissionRule:
        _check_period(rule_in.period_type, rule_in.period_value)

        rule = CommissionRule(**rule_in.model_dump(), created_by=created_by, updated_by=created_by)
        db.add(rule)
        db.commit()
        db.refresh(rule)
        logger.info("Rule %s created for %s", rule.id, rule.desarrollo)
        return rule

    @staticmethod
    def get_rule(db: Session, rule_id: str) -> CommissionRule:
        rule = db.query(CommissionRule).filter(CommissionRule.id == rule_id).first()
        if not rule:
            raise NotFoundError(f"Rule {rule_id} not found")
        return rule

    @staticmethod
    def update_rule(
        db: Session,
        rule_id: str,
        rule_update: CommissionRuleUpdate,
        updated_by: Optional[str] = None
    ) -> CommissionRule:
        rule = RuleService.get_rule(db, rule_id)
        changes = rule_update.model_dump(exclude_unset=True, exclude_none=True)

        _check_period(changes.get("period_type", rule.period_type), changes.get("period_value", rule.period_value))

        for field, value in changes.items():
            setattr(rule, field, value)
        rule.updated_by = updated_by
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def deactivate_rule(db: Session, rule_id: str, updated_by: Optional[str] = None) -> CommissionRule:
        rule = RuleService.get_rule(db, rule_id)
        rule.is_active = False
        rule.updated_by = updated_by
        db.commit()
        db.refresh(rule)
        logger.info("Rule %s deactivated", rule_id)
        return rule

    @staticmethod
    def list_rules(db: Session, development: str, include_inactive: bool = False) -> List[CommissionRule]:
        query = SqlRuleRepository(db).query_for(development)
        if not include_inactive:
            query = query.filter(CommissionRule.is_active == True)
        return query.all()

    @staticmethod
    def preview_applicable_rules(
        db: Session,
        development: str,
        signing_date: date,
        as_of: Optional[date] = None
    ) -> RuleEvaluation:
        engine = RuleEngine(SqlRuleRepository(db), UnitCounter(SqlSaleRepository(db)))
        return engine.evaluate(development, signing_date, as_of)
