"""Application route table.

    GET  /          pages#root
    /users/...      authentication (see app.api.users)
    /specs          JavaScript spec runner, when available
    /static         assets

Add resources with ``app.include_router(resources(Model))`` in ``draw``.
"""
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import pages, users
from app.api.specs import create_specs_app, specs_available
from app.core.config import Settings, settings as default_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def draw(app: FastAPI, settings: Settings = None) -> FastAPI:
    """Register every route and mount on ``app``."""
    settings = settings or default_settings

    app.include_router(users.router)
    app.include_router(pages.router)

    app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

    if specs_available(settings):
        app.mount("/specs", create_specs_app(settings), name="specs")
        logger.info(f"JavaScript spec runner mounted at /specs ({settings.specs_dir})")
    else:
        logger.debug("JavaScript spec runner not available, /specs not mounted")

    return app
