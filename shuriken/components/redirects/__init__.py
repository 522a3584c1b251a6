"""
Redirects component - root-level redirect rules with click tracking.
"""

from ._impl import (
    ClickCounter,
    ConflictValidator,
    RedirectConfig,
    RedirectResolver,
    RuleAdminService,
    build_conflict_notice,
    create_redirect_resolver,
    is_admin_path,
    normalize_slug,
    public_link,
    validate_slug,
    validate_status,
    validate_target_url,
)
from .component import (
    run,
    run_check_conflict,
    run_create,
    run_delete,
    run_get,
    run_list,
    run_resolve,
    run_update,
)
from .models import (
    CONFLICT_OK,
    NO_ACTION,
    NO_MATCH,
    CheckConflictInput,
    ConflictOutput,
    ConflictResult,
    CounterWriteError,
    CreateRuleInput,
    DeleteRuleInput,
    DispatchAction,
    GetRuleInput,
    ListRulesInput,
    LookupUnavailableError,
    NoAction,
    NoMatch,
    Outcome,
    PathReservedError,
    Redirect,
    RedirectAction,
    ResolveOutput,
    ResolvePathInput,
    RuleListOutput,
    RuleOperationOutput,
    RuleOutput,
    RuleStoreError,
    RuleValidationError,
    SlugTakenError,
    UpdateRuleInput,
)
from .ports import NoticeQueuePort, ReservedPathPort, RuleStorePort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_check_conflict",
    "run_create",
    "run_delete",
    "run_get",
    "run_list",
    "run_resolve",
    "run_update",
    # Input models
    "CheckConflictInput",
    "CreateRuleInput",
    "DeleteRuleInput",
    "GetRuleInput",
    "ListRulesInput",
    "ResolvePathInput",
    "UpdateRuleInput",
    # Output models
    "ConflictOutput",
    "ResolveOutput",
    "RuleListOutput",
    "RuleOperationOutput",
    "RuleOutput",
    "RuleValidationError",
    # Outcomes
    "CONFLICT_OK",
    "ConflictResult",
    "DispatchAction",
    "NO_ACTION",
    "NO_MATCH",
    "NoAction",
    "NoMatch",
    "Outcome",
    "Redirect",
    "RedirectAction",
    # Errors
    "CounterWriteError",
    "LookupUnavailableError",
    "PathReservedError",
    "RuleStoreError",
    "SlugTakenError",
    # Ports
    "NoticeQueuePort",
    "ReservedPathPort",
    "RuleStorePort",
    "TimePort",
    # Engine
    "ClickCounter",
    "ConflictValidator",
    "RedirectConfig",
    "RedirectResolver",
    "RuleAdminService",
    "build_conflict_notice",
    "create_redirect_resolver",
    "is_admin_path",
    "normalize_slug",
    "public_link",
    "validate_slug",
    "validate_status",
    "validate_target_url",
]
