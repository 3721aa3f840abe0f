"""Shared fixtures for all tests."""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import commission_engine.models  # noqa: F401
from commission_engine.core.database import Base, get_db
from commission_engine.core.developments import canonical_development
from commission_engine.core.exceptions import NotFoundError
from commission_engine.main import app
from commission_engine.models import (
    CommissionConfig,
    CommissionGlobalConfig,
    CommissionRule,
    CommissionSale,
    GlobalConfigKey,
    PeriodType,
    ProductPartner,
    RuleOperator,
)
from commission_engine.schemas.commission import CommissionConfigData, CommissionSaleData, GlobalRoleConfigData
from commission_engine.schemas.rule import CommissionRuleData
from commission_engine.services.period_resolver import PeriodResolver


# In-memory collaborators for engine tests

class FakeConfigRepository:
    def __init__(self, configs=(), global_roles=None):
        self.configs = {canonical_development(config.desarrollo): config for config in configs}
        self.global_roles = global_roles or GlobalRoleConfigData()

    def get(self, development):
        key = canonical_development(development)
        if key not in self.configs:
            raise NotFoundError(f"No commission configuration for development {development!r}")
        return self.configs[key]

    def get_globals(self):
        return self.global_roles


class FakeRuleRepository:
    def __init__(self, rules=()):
        self.rules = list(rules)

    def list_active(self, development):
        key = canonical_development(development)
        return [rule for rule in self.rules if rule.is_active and canonical_development(rule.desarrollo) == key]


class FakeSaleRepository:
    """Sales as (desarrollo, fecha_firma) pairs; records every count request"""

    def __init__(self, signed=()):
        self.signed = list(signed)
        self.count_calls = []

    def count_in_period(self, development, period_key, period_type, as_of):
        self.count_calls.append((development, period_key, period_type, as_of))
        start, end = PeriodResolver.period_bounds(period_key, period_type)
        return sum(
            1 for desarrollo, fecha_firma in self.signed
            if canonical_development(desarrollo) == development and start <= fecha_firma < end and fecha_firma <= as_of
        )


@pytest.fixture
def fakes():
    return SimpleNamespace(
        configs=FakeConfigRepository,
        rules=FakeRuleRepository,
        sales=FakeSaleRepository,
    )


@pytest.fixture
def make_config():
    def _make(**overrides):
        values = {
            "desarrollo": "bosques de cancun",
            "phase_sale_percent": Decimal("70"),
            "phase_post_sale_percent": Decimal("30"),
            "sale_manager_percent": Decimal("60"),
            "deal_owner_percent": Decimal("40"),
            "external_advisor_percent": Decimal("10"),
        }
        values.update(overrides)
        return CommissionConfigData(**values)
    return _make


@pytest.fixture
def make_sale():
    def _make(**overrides):
        values = {
            "id": "sale-1",
            "zoho_deal_id": "deal-1",
            "cliente_nombre": "Ana Torres",
            "desarrollo": "bosques de cancun",
            "propietario_deal": "Luis Perez",
            "propietario_deal_id": "owner-1",
            "valor_total": Decimal("1000000"),
            "fecha_firma": date(2025, 8, 15),
        }
        values.update(overrides)
        return CommissionSaleData(**values)
    return _make


@pytest.fixture
def make_rule():
    counter = {"next": 0}

    def _make(**overrides):
        counter["next"] += 1
        values = {
            "id": f"rule-{counter['next']}",
            "desarrollo": "bosques de cancun",
            "rule_name": f"Rule {counter['next']}",
            "period_type": PeriodType.QUARTER,
            "period_value": "2025",
            "operator": RuleOperator.GTE,
            "unit_threshold": 1,
            "commission_percent": Decimal("1"),
            "vat_percent": Decimal("16"),
        }
        values.update(overrides)
        return CommissionRuleData(**values)
    return _make


# SQLite-backed fixtures

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stored_config(db):
    config = CommissionConfig(
        desarrollo="Bosques de Cancun",
        phase_sale_percent=Decimal("70"),
        phase_post_sale_percent=Decimal("30"),
        sale_manager_percent=Decimal("60"),
        deal_owner_percent=Decimal("40"),
        external_advisor_percent=Decimal("10"),
    )
    db.add(config)
    db.add_all([
        CommissionGlobalConfig(config_key=GlobalConfigKey.OPERATIONS_COORDINATOR, config_value=Decimal("5")),
        CommissionGlobalConfig(config_key=GlobalConfigKey.MARKETING, config_value=Decimal("5")),
        CommissionGlobalConfig(config_key=GlobalConfigKey.LEGAL_MANAGER, config_value=Decimal("10")),
        CommissionGlobalConfig(config_key=GlobalConfigKey.POST_SALE_COORDINATOR, config_value=Decimal("10")),
    ])
    db.commit()
    return config


@pytest.fixture
def stored_sale(db, stored_config):
    sale = CommissionSale(
        zoho_deal_id="deal-100",
        cliente_nombre="Ana Torres",
        desarrollo="bosques de cancun",
        propietario_deal="Luis Perez",
        propietario_deal_id="owner-1",
        valor_total=Decimal("1000000"),
        fecha_firma=date(2025, 8, 15),
        plazo_deal=12,
    )
    db.add(sale)
    db.flush()
    db.add_all([
        ProductPartner(sale_id=sale.id, socio_name="Socio A", participacion=Decimal("60")),
        ProductPartner(sale_id=sale.id, socio_name="Socio B", participacion=Decimal("40")),
    ])
    db.commit()
    return sale


@pytest.fixture
def stored_rule(db, stored_config):
    rule = CommissionRule(
        desarrollo="bosques de cancun",
        rule_name="Q bonus",
        period_type=PeriodType.QUARTER,
        period_value="2025",
        operator=RuleOperator.GTE,
        unit_threshold=1,
        commission_percent=Decimal("1"),
        vat_percent=Decimal("16"),
    )
    db.add(rule)
    db.commit()
    return rule
