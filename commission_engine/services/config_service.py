import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from commission_engine.core.developments import canonical_development
from commission_engine.core.exceptions import NotFoundError, ValidationError
from commission_engine.models.commission_config import CommissionConfig, CommissionGlobalConfig, GlobalConfigKey
from commission_engine.schemas.commission import CommissionConfigBase, CommissionConfigInput, GlobalConfigUpdate
from commission_engine.services.config_validator import ConfigValidator
from commission_engine.services.repositories import SqlConfigRepository


logger = logging.getLogger(__name__)


def _set_global(db: Session, config_key: GlobalConfigKey, value, updated_by: Optional[str] = None, description=None):
    entry = db.query(CommissionGlobalConfig).filter(CommissionGlobalConfig.config_key == config_key).first()
    if not entry:
        entry = CommissionGlobalConfig(config_key=config_key)
        db.add(entry)
    entry.config_value = value
    entry.updated_by = updated_by
    if description is not None:
        entry.description = description
    return entry


class ConfigService:
    @staticmethod
    def save_config(db: Session, config_in: CommissionConfigInput) -> CommissionConfig:
        """Validate and upsert the configuration of a development.

        Nothing is written when any check fails; the error carries the full
        list of violations.
        """
        valid, errors = ConfigValidator.validate(config_in)
        desarrollo = canonical_development(config_in.desarrollo)
        if not desarrollo:
            errors.insert(0, "Development is required")
            valid = False
        if not valid:
            raise ValidationError("Invalid commission configuration", errors=errors)

        config = SqlConfigRepository(db).get_row(desarrollo)
        if not config:
            config = CommissionConfig(desarrollo=desarrollo, created_by=config_in.updated_by)
            db.add(config)

        for field in CommissionConfigBase.model_fields:
            setattr(config, field, getattr(config_in, field))
        config.updated_by = config_in.updated_by

        if config_in.legal_manager_percent is not None:
            _set_global(db, GlobalConfigKey.LEGAL_MANAGER, config_in.legal_manager_percent, config_in.updated_by)
        if config_in.post_sale_coordinator_percent is not None:
            _set_global(
                db, GlobalConfigKey.POST_SALE_COORDINATOR, config_in.post_sale_coordinator_percent, config_in.updated_by
            )

        db.commit()
        db.refresh(config)
        logger.info("Commission configuration saved for %s", desarrollo)
        return config

    @staticmethod
    def get_config(db: Session, development: str) -> CommissionConfig:
        config = SqlConfigRepository(db).get_row(development)
        if not config:
            raise NotFoundError(f"No commission configuration for development {development!r}")
        return config

    @staticmethod
    def list_configs(db: Session) -> List[CommissionConfig]:
        return db.query(CommissionConfig).order_by(CommissionConfig.desarrollo).all()

    @staticmethod
    def update_global_config(db: Session, update: GlobalConfigUpdate) -> CommissionGlobalConfig:
        entry = _set_global(db, update.config_key, update.config_value, update.updated_by, update.description)
        db.commit()
        db.refresh(entry)
        logger.info("Global config %s set to %s", update.config_key.value, update.config_value)
        return entry

    @staticmethod
    def list_global_configs(db: Session) -> List[CommissionGlobalConfig]:
        return db.query(CommissionGlobalConfig).all()
