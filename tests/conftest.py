"""
Shared fixtures: a throwaway SQLite database per test plus user, wallet and
listing factories.
"""

import os
import tempfile
import uuid
from decimal import Decimal

# Point the app at a scratch database before any app module reads config
_db_dir = tempfile.mkdtemp(prefix="settlement-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'settlement.db')}"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import database.models  # noqa: E402,F401
from database import engine as db_engine  # noqa: E402
from services import listings, wallets  # noqa: E402


@pytest_asyncio.fixture
async def db():
    """Fresh schema for every test"""
    async with db_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def create_user(db):
    """Factory: user settling into `currency`, optionally funded per currency"""

    async def _create(currency: str = "EUR", balances=None):
        user = await wallets.create_user(currency)
        for code, amount in (balances or {}).items():
            await wallets.deposit(
                user.user_id, Decimal(amount), code, reference=f"SEED-{uuid.uuid4().hex}"
            )
        return user

    return _create


@pytest.fixture
def create_listing(db):
    """Factory: USD -> EUR listing at 0.9 with a 2% fee unless overridden"""

    async def _create(seller, **overrides):
        params = {
            "amount": Decimal("1000"),
            "fee": Decimal("2"),
            "exchange_rate": Decimal("0.9"),
            "min_amount": Decimal("10"),
            "max_amount": None,
            "from_currency": "USD",
            "to_currency": "EUR",
        }
        params.update(overrides)
        return await listings.create_listing(seller.user_id, **params)

    return _create


@pytest_asyncio.fixture
async def seller(create_user):
    return await create_user("USD")


@pytest_asyncio.fixture
async def buyer(create_user):
    """Settles into EUR, pays from a USD wallet"""
    return await create_user("EUR", {"USD": "1000"})


@pytest_asyncio.fixture
async def listing(seller, create_listing):
    return await create_listing(seller)


@pytest.fixture
def bank_details():
    return {
        "account_holder_name": "Ana Silva",
        "account_number": "123456789",
        "bank_name": "Test Bank",
        "iban": "de89 3704 0044 0532 0130 00",
        "swift_code": "COBADEFFXXX",
    }
