"""
Feed Notes API Server

FastAPI application providing endpoints for:
- Feed management (add, edit, archive, delete, restore)
- Groups
- Manual refresh and status
- Settings
- OPML import/export

A background scheduler runs the feed updater on the configured interval.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .config import config, state
from .feeds import FeedParser
from .fetcher import Fetcher
from .images import ImageResolver
from .notifications import MemoryNotifier
from .routes import feeds_router, groups_router, misc_router
from .scheduler import UpdateScheduler
from .settings import SettingsStore
from .storage import LocalStorage
from .updater import FeedUpdater

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_updater() -> FeedUpdater:
    """Wire the updater to the shared settings, storage and notifier."""
    fetcher = Fetcher(user_agent=config.USER_AGENT or None)
    return FeedUpdater(
        get_settings=state.get_settings,
        save_settings=state.save_settings,
        storage=state.storage,
        parser=FeedParser(fetcher),
        images=ImageResolver(fetcher),
        notifier=state.notifier,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    # Startup - skip if already initialized (e.g., by tests)
    if state.store is None:
        state.store = SettingsStore(config.SETTINGS_PATH)
        state.settings = state.store.load()
        state.storage = LocalStorage(config.VAULT_PATH, config.ATTACHMENT_FOLDER)
        state.notifier = MemoryNotifier()
        state.updater = build_updater()
        logger.info(f"Saving notes under {config.VAULT_PATH.resolve()}")

    if config.ENABLE_SCHEDULER and state.updater and state.scheduler is None:
        state.scheduler = UpdateScheduler(state.updater, state.get_settings)
        await state.scheduler.start()

    yield

    # Shutdown
    if state.scheduler:
        await state.scheduler.stop()
        state.scheduler = None


app = FastAPI(
    title="Feed Notes API",
    version=__version__,
    lifespan=lifespan
)

# Include routers
app.include_router(misc_router)
app.include_router(feeds_router)
app.include_router(groups_router)


def main():
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run("feednotes.server:app", host="127.0.0.1", port=config.PORT)
