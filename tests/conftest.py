import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from medstock.api.deps import get_db  # noqa: E402
from medstock.db.base import Base  # noqa: E402
from medstock.main import app  # noqa: E402
from medstock.models import InventoryLot, Product, Warehouse  # noqa: E402
from medstock.services.inventory_issue_service import create_inventory_issue  # noqa: E402
from medstock.utils.jwt import create_access_token  # noqa: E402
from medstock.utils.timezone import today_local  # noqa: E402


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def Session(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(Session):
    s = Session()
    yield s
    s.close()


@pytest.fixture
def client(Session):
    def _override_get_db():
        s = Session()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_header(user_id=1, role="user", perms=()):
    token = create_access_token(user_id=user_id, role=role, perms=perms)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return auth_header(user_id=1, role="admin")


# -------------------------
# seed helpers
# -------------------------
def add_warehouse(db, code="WH-MAIN", name="Main pharmacy"):
    wh = Warehouse(code=code, name=name)
    db.add(wh)
    db.commit()
    return wh


def add_product(db, sku="PARA500", name="Paracetamol 500mg", unit="tablet"):
    p = Product(sku=sku, name=name, unit=unit)
    db.add(p)
    db.commit()
    return p


def add_lot(db, product, warehouse, lot_number, qty, *, expires_in=None, expiry=None,
            unit_cost="1000", created_at=None):
    if expiry is None and expires_in is not None:
        expiry = today_local() + timedelta(days=expires_in)
    lot = InventoryLot(
        product_id=product.id,
        warehouse_id=warehouse.id,
        lot_number=lot_number,
        expiry_date=expiry,
        quantity=qty,
        unit_cost=Decimal(unit_cost),
        created_at=created_at or datetime.utcnow(),
    )
    db.add(lot)
    db.commit()
    return lot


def run_issue(Session, body, user_id=1):
    """Create one issue in its own unit of work, return its id."""
    with Session() as s:
        with s.begin():
            issue = create_inventory_issue(s, body, user_id)
        return issue.id


def issue_body(warehouse, items, **overrides):
    body = {
        "warehouseId": str(warehouse.id),
        "department": "Internal Medicine",
        "issueDate": today_local().isoformat(),
        "items": items,
    }
    body.update(overrides)
    return body
