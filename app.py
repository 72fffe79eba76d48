from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _ensure_extension_config() -> None:
    # Write the default extension config on first start so it can be edited in place.
    from menueditor.config import save_configuration
    from menueditor.models import Configuration
    from persistence.disk_store import DiskConfigStore
    from persistence.paths import config_dir, data_dir
    from settings import get_settings

    settings = get_settings()
    store = DiskConfigStore(config_dir(data_dir()))
    if not store.exists(settings.extension_config):
        save_configuration(store, settings.extension_config, Configuration())
        logger.info("Wrote default extension config %s", settings.extension_config)


def create_app() -> FastAPI:
    load_dotenv("local.env")

    from endpoints.auth_endpoints import router as auth_router
    from endpoints.menueditor_endpoints import EDITOR_PATH, router as menueditor_router

    _ensure_extension_config()

    app = FastAPI(title="menueditor")

    @app.get("/")
    async def index():
        return RedirectResponse(url=EDITOR_PATH, status_code=302)

    app.include_router(auth_router)
    app.include_router(menueditor_router)

    return app


app = create_app()
