import logging
from typing import Optional

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from example_exporter.api.error_handlers import http_exception_handler, unhandled_exception_handler
from example_exporter.api.routes_index import router as index_router
from example_exporter.config import settings
from example_exporter.middleware.request_id import RequestIdMiddleware
from example_exporter.observability import metrics_route
from example_exporter.observability.registry import Registry


def create_app(registry: Registry, metrics_path: Optional[str] = None, title: Optional[str] = None) -> FastAPI:
    logger = logging.getLogger(__name__)
    metrics_path = metrics_path or settings.metrics_path

    app = FastAPI(title=title or settings.app_name, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.registry = registry
    app.state.metrics_path = metrics_path

    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(index_router)
    app.add_api_route(metrics_path, metrics_route.metrics, methods=["GET"], include_in_schema=False)

    logger.info("App initialized (metrics at %s)", metrics_path)
    return app
