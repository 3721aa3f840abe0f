from decimal import Decimal

import pytest

from commission_engine.core.exceptions import NotFoundError, ValidationError
from commission_engine.models import CommissionConfig, GlobalConfigKey
from commission_engine.schemas.commission import CommissionConfigInput, GlobalConfigUpdate
from commission_engine.services.config_service import ConfigService
from commission_engine.services.repositories import SqlConfigRepository


def _config_in(**overrides):
    values = {
        "desarrollo": "P. Quintana Roo",
        "phase_sale_percent": Decimal("70"),
        "phase_post_sale_percent": Decimal("30"),
        "sale_manager_percent": Decimal("60"),
        "deal_owner_percent": Decimal("40"),
        "external_advisor_percent": Decimal("10"),
        "updated_by": "admin",
    }
    values.update(overrides)
    return CommissionConfigInput(**values)


class TestSaveConfig:
    def test_creates_under_canonical_key(self, db):
        config = ConfigService.save_config(db, _config_in(desarrollo="  QROO "))

        assert config.desarrollo == "p. quintana roo"
        assert config.created_by == "admin"
        assert ConfigService.get_config(db, "p quintana roo").id == config.id

    def test_updates_existing_config(self, db):
        first = ConfigService.save_config(db, _config_in())
        second = ConfigService.save_config(db, _config_in(desarrollo="qroo", sale_manager_percent=Decimal("55")))

        assert second.id == first.id
        assert second.sale_manager_percent == Decimal("55")
        assert db.query(CommissionConfig).count() == 1

    def test_invalid_config_is_not_written(self, db):
        with pytest.raises(ValidationError) as exc_info:
            ConfigService.save_config(db, _config_in(desarrollo=" ", deal_owner_percent=Decimal("0")))

        assert exc_info.value.errors == [
            "Development is required",
            "Deal owner percent must be greater than 0",
        ]
        assert db.query(CommissionConfig).count() == 0

    def test_global_post_sale_roles_saved_alongside(self, db):
        ConfigService.save_config(db, _config_in(
            legal_manager_percent=Decimal("8"),
            post_sale_coordinator_percent=Decimal("4"),
        ))

        global_roles = SqlConfigRepository(db).get_globals()
        assert global_roles.legal_manager_percent == Decimal("8")
        assert global_roles.post_sale_coordinator_percent == Decimal("4")
        assert global_roles.marketing_percent == Decimal("0")

    def test_unknown_development(self, db):
        with pytest.raises(NotFoundError):
            ConfigService.get_config(db, "sin configurar")


class TestGlobalConfig:
    def test_upsert_global_value(self, db):
        ConfigService.update_global_config(db, GlobalConfigUpdate(
            config_key=GlobalConfigKey.MARKETING, config_value=Decimal("2.5"), updated_by="admin"
        ))
        entry = ConfigService.update_global_config(db, GlobalConfigUpdate(
            config_key=GlobalConfigKey.MARKETING, config_value=Decimal("3"), description="Marketing"
        ))

        assert entry.config_value == Decimal("3")
        assert entry.description == "Marketing"
        assert len(ConfigService.list_global_configs(db)) == 1

    def test_global_value_out_of_range(self):
        with pytest.raises(ValueError):
            GlobalConfigUpdate(config_key=GlobalConfigKey.MARKETING, config_value=Decimal("101"))
