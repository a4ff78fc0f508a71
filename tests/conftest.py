"""Pytest configuration and fixtures."""
import os
import time
import uuid
from datetime import timedelta
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Ensure the application uses a dedicated SQLite database during tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["ENVIRONMENT"] = "test"
# Background sweeps and seeding are exercised directly by the tests
os.environ["RUN_BACKGROUND_TASKS"] = "false"
os.environ["SEED_FALLBACK_CONTESTS"] = "false"

from mindbattle.config import get_settings
from mindbattle.models.base import AdminRole, ContestStatus
from mindbattle.models.contest import Contest
from mindbattle.models.user import User
from mindbattle.schemas.wallet import WalletAction, WalletActionType
from mindbattle.utils import generate_id, utc_now
from mindbattle.utils.passwords import hash_password


BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test.db"
TEST_PASSWORD = "TestPassword123!"
settings = get_settings()


def _remove_test_db():
    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            # On Windows the file may still be open; retry once
            time.sleep(0.1)
            try:
                TEST_DB_PATH.unlink()
            except PermissionError:
                pass


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply database migrations against the test database."""
    _remove_test_db()

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(BASE_DIR / "mindbattle" / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    command.upgrade(alembic_cfg, "head")

    yield

    _remove_test_db()


@pytest.fixture
async def test_engine():
    """Engine on the migrated test database, one per test event loop."""
    engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create test database session."""
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
async def test_app(test_engine):
    """Create test app with database override."""
    from mindbattle.main import app
    from mindbattle.database import get_db

    async def override_get_db():
        async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
        async with async_session() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def user_factory(db_session):
    """Factory for registered players; the sign-up bonus is applied through the ledger."""
    from mindbattle.services.user_service import UserService
    from mindbattle.services.wallet_service import WalletService

    async def _create_user(
        name: str | None = None,
        email: str | None = None,
        password: str = TEST_PASSWORD,
        balance: int | None = None,
    ) -> User:
        unique_id = uuid.uuid4().hex[:8]
        user = await UserService(db_session).register(
            name or f"Player {unique_id}",
            email or f"player_{unique_id}@example.com",
            password,
        )
        if balance is not None and balance != user.wallet_balance:
            await WalletService(db_session).apply(
                user.email,
                WalletAction(
                    type=WalletActionType.ADMIN_ADJUSTMENT,
                    user_id=user.email,
                    amount=balance - user.wallet_balance,
                    description="Test balance",
                    updated_by="fixtures@example.com",
                ),
            )
        return user

    return _create_user


@pytest.fixture
async def admin_factory(db_session):
    """Factory for administrator accounts with an empty wallet."""

    async def _create_admin(role: AdminRole = AdminRole.SUPER_ADMIN, password: str = TEST_PASSWORD) -> User:
        unique_id = uuid.uuid4().hex[:8]
        admin = User(
            email=f"admin_{unique_id}@example.com",
            name=f"Admin {unique_id}",
            password_hash=hash_password(password),
            wallet_balance=0,
            role=role.value,
            banned=False,
            total_points=0,
        )
        db_session.add(admin)
        await db_session.commit()
        return admin

    return _create_admin


@pytest.fixture
async def contest_factory(db_session):
    """Factory for contests open for registration, starting in two hours by default."""

    async def _create_contest(**overrides) -> Contest:
        now = utc_now()
        values = dict(
            contest_id=generate_id("c"),
            title=f"Test Contest {uuid.uuid4().hex[:6]}",
            description="A contest for tests",
            category="General Knowledge",
            entry_fee=0,
            prize_pool=1000,
            status=ContestStatus.UPCOMING.value,
            registration_start_date=now - timedelta(hours=1),
            registration_end_date=now + timedelta(hours=1),
            contest_start_date=now + timedelta(hours=2),
            max_participants=100,
            rules="",
            questions=[],
            participants=[],
            results=[],
            format="KBC",
            timer_type="per_question",
            time_per_question=30,
            number_of_questions=15,
            difficulty="Medium",
        )
        values.update(overrides)
        contest = Contest(**values)
        db_session.add(contest)
        await db_session.commit()
        return contest

    return _create_contest


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user."""
    from mindbattle.services.auth_service import AuthService

    def _headers(user: User) -> dict[str, str]:
        token, _ = AuthService(None).create_access_token(user)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def test_password() -> str:
    """Password used by every factory-created account."""
    return TEST_PASSWORD
