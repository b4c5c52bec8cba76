"""
Shared fixtures: a three-item BOM, a two-supplier directory and a state
machine wired to in-memory collaborators.
"""
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from procureflow.db import models  # noqa
from procureflow.db.session import Base, build_engine
from procureflow.schemas import Item, ItemSet, Supplier
from procureflow.services.collaborators import DemoItemExtractor, LogNotifier, StaticSupplierDirectory
from procureflow.services.state_store import InMemoryWorkflowStateStore, SqlWorkflowStateStore
from procureflow.services.workflow import StageStateMachine


@pytest.fixture
def scenario_items():
    """Upholstered chair without fire cert, MDF vanity in a wet zone, UL-listed TV."""
    return [
        Item(
            id="item_001",
            category="Furniture",
            subcategory="Lobby",
            name="Upholstered Lounge Chair",
            quantity=10,
            unit_price=Decimal("300.00"),
            specifications={"dimensions": '32"W x 34"D x 33"H', "material": "Hardwood frame, polyester"},
            compliance={"fire_rating_required": True},
        ),
        Item(
            id="item_002",
            category="Bathroom",
            subcategory="Bathroom",
            name="Bathroom Vanity",
            quantity=5,
            unit_price=Decimal("400.00"),
            specifications={"dimensions": '36"W x 21"D x 34"H', "material": "MDF with laminate"},
            compliance={"moisture_zone": "wet"},
        ),
        Item(
            id="item_003",
            category="Electronics",
            subcategory="Bedroom",
            name='55" Smart TV',
            quantity=8,
            unit_price=Decimal("500.00"),
            specifications={"material": "Plastic"},
            compliance={"certifications": ["UL Listed"]},
        ),
    ]


@pytest.fixture
def scenario_item_set(scenario_items):
    return ItemSet(project_name="Scenario Renovation", items=scenario_items, source="test")


@pytest.fixture
def scenario_suppliers():
    """Furniture+bathroom supplier in California, electronics supplier in Illinois."""
    return [
        Supplier(
            id="SUP_A",
            name="Pacific Furnishings",
            location="Los Angeles, CA",
            categories=["Furniture", "Bathroom"],
            specialties=["Furniture", "Bathroom"],
            max_order_value=Decimal("100000"),
            email="bids@pacific.test",
        ),
        Supplier(
            id="SUP_B",
            name="Midwest Electronics",
            location="Chicago, IL",
            categories=["Electronics"],
            specialties=["Electronics"],
            max_order_value=Decimal("100000"),
            email="bids@midwest.test",
        ),
    ]


@pytest.fixture
def store():
    return InMemoryWorkflowStateStore()


@pytest.fixture
def sql_file_store(tmp_path):
    """SQL store on a SQLite file, so each thread gets its own connection."""
    engine = build_engine(f"sqlite:///{tmp_path / 'workflow.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SqlWorkflowStateStore(session_factory=factory)
    engine.dispose()


@pytest.fixture
def machine(store):
    """State machine over the demo catalog and demo supplier directory."""
    return StageStateMachine(
        store,
        extractor=DemoItemExtractor(),
        directory=StaticSupplierDirectory(),
        notifier=LogNotifier(),
    )


@pytest.fixture
def scenario_machine(store, scenario_suppliers):
    return StageStateMachine(
        store,
        extractor=DemoItemExtractor(),
        directory=StaticSupplierDirectory(scenario_suppliers),
        notifier=LogNotifier(),
    )
