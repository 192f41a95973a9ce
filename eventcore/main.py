from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
import uvicorn

from eventcore.config import settings
from eventcore.database import Database
from eventcore.logging_setup import configure_logging
from eventcore.routes import categories, events, tickets, users
from eventcore.services import build_services

configure_logging(settings.LOG_LEVEL)


def create_app(database_url: Optional[str] = None, **issuer_options) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with Database(database_url) as database:
            app.state.database = database
            app.state.services = build_services(database, **issuer_options)
            yield

    app = FastAPI(title="eventcore", lifespan=lifespan)

    app.include_router(users.router, tags=["Users"])
    app.include_router(events.router, tags=["Events"])
    app.include_router(categories.router, tags=["Categories"])
    app.include_router(tickets.router, tags=["Tickets"])

    @app.get("/")
    def root():
        return {"service": "eventcore"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("eventcore.main:app", reload=True)
