from fastapi import FastAPI

from adminserver.api.admin import router as admin_router
from adminserver.api.errors import register_exception_handlers
from adminserver.api.middleware import install_middlewares
from adminserver.config import ServerConfig


def create_app(config: ServerConfig) -> FastAPI:
    """Compose the admin application: middleware chain, error handlers, admin routes."""
    app = FastAPI(title=config.name, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config

    install_middlewares(
        app,
        name=config.name,
        middlewares=config.middlewares,
        debug=config.debug,
    )
    register_exception_handlers(app, debug=config.debug)

    app.include_router(admin_router)

    return app
