"""Shared fixtures.

Each test gets its own file-backed SQLite database so concurrent sessions
use separate connections, as they would against a real server.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from eventcore.auth.security import IdentityStore
from eventcore.database import Database
from eventcore.models.user import UserRole
from eventcore.services import build_services


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'eventcore_test.db'}", echo=False)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def identity():
    # minimum bcrypt cost keeps the suite fast
    return IdentityStore(rounds=4)


@pytest.fixture
def services(database, identity):
    return build_services(database, identity=identity)


@pytest.fixture
def catalog(services):
    return services.catalog


@pytest.fixture
def issuer(services):
    return services.issuer


async def _make_user(services, email, name, role=UserRole.USER):
    user, _ = await services.seeder.upsert_user(
        email, {"name": name, "password": "password123", "role": role}
    )
    return user


@pytest_asyncio.fixture
async def organizer(services):
    return await _make_user(services, "organizer@example.org", "Olga Organizer", UserRole.ORGANIZER)


@pytest_asyncio.fixture
async def attendee(services):
    return await _make_user(services, "attendee@example.org", "Ana Attendee")


@pytest.fixture
def make_user(services):
    counter = {"n": 0}

    async def factory(name="Guest User"):
        counter["n"] += 1
        return await _make_user(services, f"guest{counter['n']}@example.org", name)

    return factory


@pytest_asyncio.fixture
async def category(services):
    category, _ = await services.seeder.upsert_category(
        "workshop",
        {"name": "Taller", "description": "Talleres prácticos", "color": "#8B5CF6", "icon": "wrench"},
    )
    return category


@pytest.fixture
def event_attrs(organizer, category):
    counter = {"n": 0}

    def factory(**overrides):
        counter["n"] += 1
        attrs = {
            "title": "Workshop de TypeScript Avanzado",
            "slug": f"typescript-workshop-{counter['n']}",
            "start_date": datetime(2026, 12, 20, 14, 0, tzinfo=timezone.utc),
            "end_date": datetime(2026, 12, 20, 18, 0, tzinfo=timezone.utc),
            "city": "Buenos Aires",
            "country": "Argentina",
            "capacity": 30,
            "price": Decimal("25.00"),
            "tags": ["typescript", "javascript"],
            "organizer_id": organizer.id,
            "category_id": category.id,
        }
        attrs.update(overrides)
        return attrs

    return factory


@pytest_asyncio.fixture
async def published_event(catalog, event_attrs):
    return await catalog.create(event_attrs(publish=True))
