import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from shuriken.adapters.clock import SystemClock
from shuriken.adapters.sqlite.repos import (
    SQLiteNoticeQueue,
    SQLiteReservedPathRepo,
    SQLiteRuleRepo,
)
from shuriken.components.redirects import (
    ClickCounter,
    ConflictValidator,
    RedirectConfig,
    RedirectResolver,
    RuleAdminService,
)
from shuriken.rules.loader import load_rules, redirect_config_from_rules
from shuriken.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("SHURIKEN_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "shuriken.db")
        self.rules_path = Path(os.environ.get("SHURIKEN_RULES_PATH", self.base_dir / "rules.yaml"))
        self.migrations_dir = os.environ.get(
            "SHURIKEN_MIGRATIONS_DIR", str(self.base_dir / "migrations")
        )
        self.site_url = os.environ.get("SHURIKEN_SITE_URL", "http://localhost:8000")
        self.admin_token = os.environ.get("SHURIKEN_ADMIN_TOKEN", "").strip() or None


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def get_redirect_config(rules: Rules = Depends(get_rules)) -> RedirectConfig:
    return redirect_config_from_rules(rules)


# Time adapter for deterministic time operations
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


# --- Repos ---
def get_rule_repo(settings: Settings = Depends(get_settings)) -> SQLiteRuleRepo:
    return SQLiteRuleRepo(settings.db_path)


def get_reserved_path_repo(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> SQLiteReservedPathRepo:
    return SQLiteReservedPathRepo(
        settings.db_path,
        system_paths=rules.redirects.reserved_system_paths,
    )


def get_notice_queue(
    settings: Settings = Depends(get_settings),
    clock: SystemClock = Depends(get_clock),
) -> SQLiteNoticeQueue:
    return SQLiteNoticeQueue(settings.db_path, time_port=clock)


# --- Component Services ---
def get_admin_service(
    repo: SQLiteRuleRepo = Depends(get_rule_repo),
    reserved: SQLiteReservedPathRepo = Depends(get_reserved_path_repo),
    notices: SQLiteNoticeQueue = Depends(get_notice_queue),
    clock: SystemClock = Depends(get_clock),
    config: RedirectConfig = Depends(get_redirect_config),
) -> RuleAdminService:
    """Get redirect admin service."""
    return RuleAdminService(
        store=repo,
        conflict_validator=ConflictValidator(reserved),
        notices=notices,
        time_port=clock,
        config=config,
    )


def get_redirect_resolver(
    repo: SQLiteRuleRepo = Depends(get_rule_repo),
    reserved: SQLiteReservedPathRepo = Depends(get_reserved_path_repo),
    config: RedirectConfig = Depends(get_redirect_config),
) -> RedirectResolver:
    """Get redirect resolver."""
    return RedirectResolver(
        store=repo,
        counter=ClickCounter(repo),
        conflict_validator=ConflictValidator(reserved),
        config=config,
    )


def build_redirect_resolver() -> RedirectResolver:
    """Resolver wired from settings, for use outside FastAPI's DI (middleware, CLI)."""
    settings = get_settings()
    rules = get_rules()
    return get_redirect_resolver(
        repo=get_rule_repo(settings),
        reserved=get_reserved_path_repo(settings, rules),
        config=redirect_config_from_rules(rules),
    )
