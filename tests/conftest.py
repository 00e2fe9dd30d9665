"""Shared fixtures: per-test SQLite database, app with lifespan, HTTP client."""

import pytest
from httpx import ASGITransport, AsyncClient

from onboarding.core.config import Settings
from onboarding.db.base import create_database
from onboarding.main import create_app
from onboarding.services.notifications import Notification

ADMIN_HEADERS = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}


def merchant_headers(merchant_id: str) -> dict[str, str]:
    return {"X-Actor-Id": merchant_id, "X-Actor-Role": "merchant"}


def customer_headers(user_id: str) -> dict[str, str]:
    return {"X-Actor-Id": user_id, "X-Actor-Role": "customer"}


def profile_payload(**overrides) -> dict:
    """A camelCase body with all seven required profile fields."""
    payload = {
        "businessName": "Blue Door Bakery",
        "email": "owner@bluedoor.example.com",
        "phone": "+1 555 0100",
        "businessType": "bakery",
        "description": "Sourdough and pastries baked daily",
        "address": "12 Harbour Street",
        "location": "Portside",
    }
    payload.update(overrides)
    return payload


class RecordingNotifier:
    """Captures dispatched notifications instead of delivering them."""

    def __init__(self):
        self.sent: list[Notification] = []

    async def dispatch(self, notification: Notification) -> None:
        self.sent.append(notification)

    def last(self, template_key: str) -> Notification:
        return [n for n in self.sent if n.template_key == template_key][-1]


class FailingNotifier:
    async def dispatch(self, notification: Notification) -> None:
        raise ConnectionError("mail relay unreachable")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'onboarding_test.db'}",
        upload_dir=str(tmp_path / "uploads"),
        audit_requests=False,
        app_env="test",
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
async def database(settings):
    db = create_database(settings.database_url)
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session_factory() as s:
        yield s


@pytest.fixture
async def app(settings, notifier):
    application = create_app(settings, notifier=notifier)
    # ASGITransport does not run lifespan events
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
