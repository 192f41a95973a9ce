"""Idempotent reference-data seeding.

Categories and users are keyed by their natural keys (slug, email) and
inserted with ``ON CONFLICT DO NOTHING``: a row that already exists is the
expected steady state and is never modified. Running ``run()`` again leaves
the store exactly as the first run did.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, Tuple
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventcore.auth.security import IdentityStore
from eventcore.config import settings
from eventcore.errors import DuplicateSlug, DuplicateTicket
from eventcore.models.category import Category
from eventcore.models.user import User, UserRole
from eventcore.schemas.category import CategorySeedSchema
from eventcore.schemas.user import UserSeedSchema
from eventcore.services.catalog import EventCatalog
from eventcore.services.issuer import TicketIssuer

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

DEFAULT_CATEGORIES: List[dict] = [
    {
        "name": "Conferencia",
        "slug": "conference",
        "description": "Conferencias y charlas profesionales",
        "color": "#3B82F6",
        "icon": "presentation",
    },
    {
        "name": "Taller",
        "slug": "workshop",
        "description": "Talleres prácticos y workshops",
        "color": "#8B5CF6",
        "icon": "wrench",
    },
    {
        "name": "Meetup",
        "slug": "meetup",
        "description": "Encuentros comunitarios",
        "color": "#10B981",
        "icon": "users",
    },
    {
        "name": "Concierto",
        "slug": "concert",
        "description": "Eventos musicales y conciertos",
        "color": "#F59E0B",
        "icon": "music",
    },
    {
        "name": "Deportes",
        "slug": "sports",
        "description": "Eventos deportivos",
        "color": "#EF4444",
        "icon": "trophy",
    },
]

DEMO_USERS: List[dict] = [
    {"email": "organizer@example.com", "name": "Juan Organizador", "role": UserRole.ORGANIZER},
    {"email": "user@example.com", "name": "María Usuario", "role": UserRole.USER},
    {"email": "admin@example.com", "name": "Admin Sistema", "role": UserRole.ADMIN},
]

DEMO_EVENTS: List[dict] = [
    {
        "title": "Next.js Conf 2025",
        "slug": "nextjs-conf-2025",
        "description": "La conferencia anual de Next.js con las últimas novedades del framework.",
        "image": "https://images.unsplash.com/photo-1540575467063-178a50c2df87?w=800",
        "start_date": datetime(2025, 12, 15, 9, 0, tzinfo=timezone.utc),
        "end_date": datetime(2025, 12, 15, 18, 0, tzinfo=timezone.utc),
        "location": "Centro de Convenciones",
        "address": "Av. Libertador 1234",
        "city": "Buenos Aires",
        "country": "Argentina",
        "capacity": 500,
        "price": Decimal("50.00"),
        "featured": True,
        "tags": ["nextjs", "react", "javascript", "web development"],
        "category_slug": "conference",
    },
    {
        "title": "Workshop de TypeScript Avanzado",
        "slug": "typescript-workshop-2025",
        "description": "Taller práctico de TypeScript avanzado.",
        "image": "https://images.unsplash.com/photo-1517694712202-14dd9538aa97?w=800",
        "start_date": datetime(2025, 12, 20, 14, 0, tzinfo=timezone.utc),
        "end_date": datetime(2025, 12, 20, 18, 0, tzinfo=timezone.utc),
        "location": "Tech Hub",
        "address": "Av. Córdoba 5678",
        "city": "Buenos Aires",
        "country": "Argentina",
        "capacity": 30,
        "price": Decimal("25.00"),
        "tags": ["typescript", "javascript", "programming"],
        "category_slug": "workshop",
    },
    {
        "title": "Buenos Aires JavaScript Meetup",
        "slug": "ba-js-meetup-december",
        "description": "Meetup mensual de la comunidad JavaScript de Buenos Aires.",
        "start_date": datetime(2025, 12, 10, 19, 0, tzinfo=timezone.utc),
        "location": "Cafetería Tech Space",
        "address": "Santa Fe 910",
        "city": "Buenos Aires",
        "country": "Argentina",
        "capacity": 50,
        "tags": ["javascript", "meetup", "community", "networking"],
        "category_slug": "meetup",
    },
]

DEMO_ORGANIZER_EMAIL = "organizer@example.com"
DEMO_ATTENDEE_EMAIL = "user@example.com"


@dataclass
class SeedSummary:
    categories_created: int = 0
    categories_existing: int = 0
    users_created: int = 0
    users_existing: int = 0
    events_created: int = 0
    events_existing: int = 0
    tickets_created: int = 0
    tickets_existing: int = 0


class ReferenceDataSeeder:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        identity: IdentityStore,
        catalog: EventCatalog,
        issuer: TicketIssuer,
        demo_password: Optional[str] = None,
        concurrency: Optional[int] = None,
        seed_demo_events: bool = True,
    ) -> None:
        self._session_factory = session_factory
        self._identity = identity
        self._catalog = catalog
        self._issuer = issuer
        self.demo_password = demo_password if demo_password is not None else settings.SEED_DEMO_PASSWORD
        self.concurrency = max(1, concurrency if concurrency is not None else settings.SEED_CONCURRENCY)
        self.seed_demo_events = seed_demo_events

    async def _insert_ignoring_conflict(
        self, session: AsyncSession, model, key: str, values: Mapping[str, Any]
    ) -> bool:
        dialect_name = session.get_bind().dialect.name
        try:
            insert = _DIALECT_INSERTS[dialect_name]
        except KeyError:
            raise NotImplementedError(f"Natural-key upsert is not supported on dialect '{dialect_name}'")
        statement = insert(model).values(**values).on_conflict_do_nothing(index_elements=[key])
        result = await session.execute(statement)
        return result.rowcount == 1

    async def upsert_category(self, slug: str, attrs: Mapping[str, Any]) -> Tuple[Category, bool]:
        """Create the category unless one with ``slug`` exists. Returns (row, created)."""
        data = CategorySeedSchema(**{**attrs, "slug": slug})
        async with self._session_factory() as session:
            async with session.begin():
                created = await self._insert_ignoring_conflict(session, Category, "slug", data.model_dump())
                result = await session.execute(select(Category).where(Category.slug == slug))
                category = result.scalars().one()
        return category, created

    async def upsert_user(self, email: str, attrs: Mapping[str, Any]) -> Tuple[User, bool]:
        """Create the user unless one with ``email`` exists. Returns (row, created).

        ``attrs`` carries either a plaintext ``password`` (hashed here) or an
        already computed ``hashed_password``.
        """
        attrs = dict(attrs)
        password = attrs.pop("password", None)
        hashed_password = attrs.pop("hashed_password", None)
        data = UserSeedSchema(**{**attrs, "email": email})
        if hashed_password is None:
            if not password:
                raise ValueError(f"No password given for user {email}")
            hashed_password = await asyncio.to_thread(self._identity.hash, password)

        values = {
            "email": data.email,
            "name": data.name,
            "role": data.role,
            "hashed_password": hashed_password,
        }
        async with self._session_factory() as session:
            async with session.begin():
                created = await self._insert_ignoring_conflict(session, User, "email", values)
                result = await session.execute(select(User).where(User.email == data.email))
                user = result.scalars().one()
        return user, created

    async def _gather_bounded(self, factories: Sequence[Callable[[], Awaitable[Any]]]) -> List[Any]:
        """Run the factories concurrently, at most ``concurrency`` at a time.

        Results come back in the order the factories were given. The first
        failure cancels the rest and is re-raised.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(factory):
            async with semaphore:
                return await factory()

        tasks = [asyncio.ensure_future(guarded(factory)) for factory in factories]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def run(self) -> SeedSummary:
        summary = SeedSummary()
        logger.info("Seeding database...")

        category_rows = await self._gather_bounded(
            [lambda c=c: self.upsert_category(c["slug"], c) for c in DEFAULT_CATEGORIES]
        )
        categories = {}
        for category, created in category_rows:
            categories[category.slug] = category
            if created:
                summary.categories_created += 1
            else:
                summary.categories_existing += 1
        logger.info(
            f"Categories: {summary.categories_created} created, {summary.categories_existing} already present"
        )

        # One hash for all demo accounts; a failure here aborts the run.
        hashed_password = await asyncio.to_thread(self._identity.hash, self.demo_password)
        user_rows = await self._gather_bounded(
            [
                lambda u=u: self.upsert_user(u["email"], {**u, "hashed_password": hashed_password})
                for u in DEMO_USERS
            ]
        )
        users = {}
        for user, created in user_rows:
            users[user.email] = user
            if created:
                summary.users_created += 1
            else:
                summary.users_existing += 1
        logger.info(f"Demo users: {summary.users_created} created, {summary.users_existing} already present")

        if self.seed_demo_events:
            await self._seed_demo_events(summary, categories, users)

        logger.info(f"Seeding completed successfully: {summary}")
        return summary

    async def _seed_demo_events(self, summary: SeedSummary, categories: dict, users: dict) -> None:
        organizer = users[DEMO_ORGANIZER_EMAIL]

        async def create_event(demo: dict):
            attrs = {k: v for k, v in demo.items() if k != "category_slug"}
            attrs.update(
                organizer_id=organizer.id,
                category_id=categories[demo["category_slug"]].id,
                publish=True,
            )
            try:
                return await self._catalog.create(attrs)
            except DuplicateSlug:
                return None

        created_events = await self._gather_bounded([lambda s=s: create_event(s) for s in DEMO_EVENTS])
        for event in created_events:
            if event is None:
                summary.events_existing += 1
            else:
                summary.events_created += 1
        logger.info(f"Demo events: {summary.events_created} created, {summary.events_existing} already present")

        featured = created_events[0] or await self._catalog.get_by_slug(DEMO_EVENTS[0]["slug"])
        attendee = users[DEMO_ATTENDEE_EMAIL]
        # one demo ticket per attendee, whatever the configured policy
        try:
            await self._issuer.issue(featured.id, attendee.id, allow_multiple=False)
        except DuplicateTicket:
            summary.tickets_existing += 1
        else:
            summary.tickets_created += 1
            logger.info(f"Demo ticket issued for event '{featured.slug}'")
