import io
import sys
from datetime import date
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from openpyxl import Workbook
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).parents[1] / "src"))

from ledger.db.session import get_db
from ledger.main import app
from ledger.models.base import BaseModel

# One in-memory database per test; StaticPool keeps every session on the
# same connection so the tables stay visible.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def setup_database():
    """Create a fresh schema for tests that need the database.

    Not autouse, so pure unit tests (parsers, categorization) never touch
    SQLAlchemy engines.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(setup_database):
    """Provide a database session on the per-test engine."""
    session_factory = async_sessionmaker(
        setup_database, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def system_categories(db_session: AsyncSession):
    """Seed Uncategorized, Excluded and Income; return them by name."""
    from ledger.services.category import CategoryService

    service = CategoryService(db_session)
    await service.ensure_system_categories()
    return {c.name: c for c in await service.list_categories()}


@pytest.fixture
async def client(db_session: AsyncSession):
    """Provide test client with database override."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_transaction():
    """Build an unsaved Transaction row."""
    from ledger.models.transaction import Transaction

    def _make(
        description: str,
        txn_date: date = date(2024, 1, 15),
        amount_out_cents: int = 1000,
        amount_in_cents: int = 0,
        category_id=None,
        match_field: str | None = None,
    ) -> Transaction:
        return Transaction(
            txn_date=txn_date,
            description=description,
            match_field=match_field or description,
            amount_out_cents=amount_out_cents,
            amount_in_cents=amount_in_cents,
            net_amount_cents=amount_in_cents - amount_out_cents,
            source_format="CIBC",
            category_id=category_id,
        )

    return _make


@pytest.fixture
def xlsx_bytes():
    """Write rows to an in-memory workbook and return the file bytes."""

    def _build(rows: list[list]) -> bytes:
        workbook = Workbook()
        sheet = workbook.active
        for row in rows:
            sheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _build


@pytest.fixture
def amex_rows():
    """An AMEX-style sheet: 12 preamble rows, then transactions."""
    preamble = [["American Express"], ["Statement"]] + [[f"Preamble {i}"] for i in range(10)]
    data = [
        ["16 Dec. 2025", "17 Dec. 2025", "STARBUCKS #123", "$5.25", None, None, None, None, None, "STARBUCKS COFFEE TORONTO"],
        ["18 Dec. 2025", "18 Dec. 2025", "LOBLAWS 1001", "$82.10", None, None, None, None, None, None],
        ["20 Dec. 2025", "20 Dec. 2025", "-500.00", None, None, None, None, None, "PAYMENT RECEIVED - THANK YOU", None],
        ["22 Dec. 2025", "23 Dec. 2025", "AMAZON REFUND", "-$19.99", None, None, None, None, None, None],
    ]
    return preamble + data
