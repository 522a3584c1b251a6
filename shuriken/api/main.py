import logging
import sys
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from shuriken import __version__
from shuriken.adapters.sqlite.migrator import SQLiteMigrator
from shuriken.adapters.sqlite.repos import SQLiteRuleRepo
from shuriken.api.auth import require_admin
from shuriken.api.deps import build_redirect_resolver, get_settings
from shuriken.api.middleware import RedirectMiddleware
from shuriken.api.routes import admin_redirects, admin_reserved_paths
from shuriken.app_shell.config import ConfigurationError, validate_ops_rules
from shuriken.components.redirects import RedirectResolver, RuleStoreError
from shuriken.rules.loader import load_rules
from shuriken.shell.http.health import HealthProbes, RuleStoreCheck, create_health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    logging.basicConfig(level=logging.INFO)
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = load_rules(settings.rules_path)
        validate_ops_rules(rules, settings.data_dir)
        applied = SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    except (FileNotFoundError, ValueError, ConfigurationError, RuntimeError) as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    logger.info("Rules loaded from %s", settings.rules_path)
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))

    app.state.health_probes.mark_started()
    yield


def _rule_store_ping() -> None:
    SQLiteRuleRepo(get_settings().db_path).ping()


def create_app(
    resolver_factory: Callable[[], RedirectResolver] = build_redirect_resolver,
) -> FastAPI:
    """Build the application: admin API, health probes and the redirect middleware."""
    app = FastAPI(
        title="Shuriken Redirects API",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # --- Routers ---
    admin = [Depends(require_admin)]
    app.include_router(
        admin_redirects.router,
        prefix="/api/admin",
        tags=["Admin Redirects"],
        dependencies=admin,
    )
    app.include_router(
        admin_reserved_paths.router,
        prefix="/api/admin",
        tags=["Admin Reserved Paths"],
        dependencies=admin,
    )

    probes = HealthProbes([RuleStoreCheck(_rule_store_ping)])
    app.state.health_probes = probes
    app.include_router(create_health_router(probes, version=__version__))

    @app.exception_handler(RuleStoreError)
    async def rule_store_error_handler(request: Request, exc: RuleStoreError) -> JSONResponse:
        logger.error("Rule store error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Rule store unavailable"})

    app.add_middleware(RedirectMiddleware, resolver_factory=resolver_factory)

    return app


app = create_app()
