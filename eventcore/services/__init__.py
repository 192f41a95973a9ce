from dataclasses import dataclass
from typing import Optional

from eventcore.auth.security import IdentityStore
from eventcore.database import Database
from eventcore.services.catalog import EventCatalog
from eventcore.services.issuer import TicketIssuer
from eventcore.services.seeder import ReferenceDataSeeder


@dataclass
class Services:
    identity: IdentityStore
    catalog: EventCatalog
    issuer: TicketIssuer
    seeder: ReferenceDataSeeder


def build_services(database: Database, identity: Optional[IdentityStore] = None, **issuer_options) -> Services:
    """Wire every component against one storage handle."""
    identity = identity or IdentityStore()
    catalog = EventCatalog(database.session_factory)
    issuer = TicketIssuer(database.session_factory, catalog, **issuer_options)
    seeder = ReferenceDataSeeder(database.session_factory, identity, catalog, issuer)
    return Services(identity=identity, catalog=catalog, issuer=issuer, seeder=seeder)


__all__ = [
    "Services",
    "build_services",
    "EventCatalog",
    "TicketIssuer",
    "ReferenceDataSeeder",
]
