"""
Redirects component - entry points.

Handles rule administration, per-request resolution and conflict checks.

Invariants:
- I1: Slug is unique among redirect rules
- I2: Only published rules with a target URL redirect
- I3: Visit count grows by exactly one per served redirect
- I4: Store failures never break normal navigation
- I5: Reserved path conflicts warn, never block
"""

from __future__ import annotations

from ._impl import (
    ClickCounter,
    ConflictValidator,
    RedirectConfig,
    RedirectResolver,
    RuleAdminService,
)
from .models import (
    CheckConflictInput,
    ConflictOutput,
    CreateRuleInput,
    DeleteRuleInput,
    GetRuleInput,
    ListRulesInput,
    ResolveOutput,
    ResolvePathInput,
    RuleListOutput,
    RuleOperationOutput,
    RuleOutput,
    RuleValidationError,
    UpdateRuleInput,
)
from .ports import NoticeQueuePort, ReservedPathPort, RuleStorePort, TimePort


def _create_service(
    store: RuleStorePort,
    reserved: ReservedPathPort | None,
    notices: NoticeQueuePort | None,
    time_port: TimePort | None,
    config: RedirectConfig | None,
) -> RuleAdminService:
    """Create admin service from ports."""
    return RuleAdminService(
        store=store,
        conflict_validator=ConflictValidator(reserved),
        notices=notices,
        time_port=time_port,
        config=config,
    )


# --- Component Entry Points ---


def run_create(
    inp: CreateRuleInput,
    *,
    store: RuleStorePort,
    reserved: ReservedPathPort | None = None,
    notices: NoticeQueuePort | None = None,
    time_port: TimePort | None = None,
    config: RedirectConfig | None = None,
) -> RuleOperationOutput:
    """
    Create a new redirect rule.

    Args:
        inp: Input containing slug, target and status.
        store: Rule store port.
        reserved: Optional reserved path port for conflict checks.
        notices: Optional notice queue for conflict warnings.
        time_port: Optional clock.
        config: Optional redirect configuration.

    Returns:
        RuleOperationOutput with the created rule, conflict and errors.
    """
    service = _create_service(store, reserved, notices, time_port, config)

    rule, errors, conflict = service.create(
        slug=inp.slug,
        target_url=inp.target_url,
        status=inp.status,
        title=inp.title,
    )

    return RuleOperationOutput(
        rule=rule,
        conflict=conflict,
        errors=errors,
        success=len(errors) == 0,
    )


def run_update(
    inp: UpdateRuleInput,
    *,
    store: RuleStorePort,
    reserved: ReservedPathPort | None = None,
    notices: NoticeQueuePort | None = None,
    time_port: TimePort | None = None,
    config: RedirectConfig | None = None,
) -> RuleOperationOutput:
    """Update an existing redirect rule."""
    service = _create_service(store, reserved, notices, time_port, config)

    rule, errors, conflict = service.update(inp.rule_id, inp.updates)

    return RuleOperationOutput(
        rule=rule,
        conflict=conflict,
        errors=errors,
        success=len(errors) == 0,
    )


def run_delete(
    inp: DeleteRuleInput,
    *,
    store: RuleStorePort,
) -> RuleOperationOutput:
    """Delete a redirect rule."""
    service = _create_service(store, None, None, None, None)

    if not service.delete(inp.rule_id):
        return RuleOperationOutput(
            rule=None,
            errors=[
                RuleValidationError(
                    code="not_found",
                    message=f"Redirect {inp.rule_id} not found",
                )
            ],
            success=False,
        )

    return RuleOperationOutput(rule=None, errors=[], success=True)


def run_get(
    inp: GetRuleInput,
    *,
    store: RuleStorePort,
    notices: NoticeQueuePort | None = None,
) -> RuleOutput:
    """
    Get a rule by ID or slug.

    Pending notices for the rule are consumed and returned with it.
    """
    service = _create_service(store, None, notices, None, None)

    if inp.rule_id is not None:
        rule = service.get(inp.rule_id)
    elif inp.slug is not None:
        rule = service.get_by_slug(inp.slug)
    else:
        return RuleOutput(
            rule=None,
            errors=[
                RuleValidationError(
                    code="invalid_input",
                    message="Either rule_id or slug must be provided",
                )
            ],
            success=False,
        )

    if rule is None:
        return RuleOutput(
            rule=None,
            errors=[RuleValidationError(code="not_found", message="Redirect not found")],
            success=False,
        )

    return RuleOutput(rule=rule, notices=service.consume_notices(rule.id))


def run_list(
    inp: ListRulesInput,
    *,
    store: RuleStorePort,
) -> RuleListOutput:
    """List all rules, newest first."""
    service = _create_service(store, None, None, None, None)
    return RuleListOutput(rules=tuple(service.list_all()))


def run_resolve(
    inp: ResolvePathInput,
    *,
    store: RuleStorePort,
    reserved: ReservedPathPort | None = None,
    config: RedirectConfig | None = None,
) -> ResolveOutput:
    """Resolve a request path to a redirect outcome."""
    resolver = RedirectResolver(
        store=store,
        counter=ClickCounter(store),
        conflict_validator=ConflictValidator(reserved),
        config=config,
    )
    return ResolveOutput(outcome=resolver.resolve(inp.path, record_visit=inp.record_visit))


def run_check_conflict(
    inp: CheckConflictInput,
    *,
    reserved: ReservedPathPort | None,
) -> ConflictOutput:
    """Check a candidate slug against reserved paths."""
    validator = ConflictValidator(reserved)
    return ConflictOutput(result=validator.check_conflict(inp.slug, inp.owner_rule_id))


def run(
    inp: (
        CreateRuleInput
        | UpdateRuleInput
        | DeleteRuleInput
        | GetRuleInput
        | ListRulesInput
        | ResolvePathInput
        | CheckConflictInput
    ),
    *,
    store: RuleStorePort,
    reserved: ReservedPathPort | None = None,
    notices: NoticeQueuePort | None = None,
    time_port: TimePort | None = None,
    config: RedirectConfig | None = None,
) -> RuleOutput | RuleListOutput | RuleOperationOutput | ResolveOutput | ConflictOutput:
    """
    Main entry point for the redirects component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, CreateRuleInput):
        return run_create(
            inp, store=store, reserved=reserved, notices=notices, time_port=time_port, config=config
        )
    elif isinstance(inp, UpdateRuleInput):
        return run_update(
            inp, store=store, reserved=reserved, notices=notices, time_port=time_port, config=config
        )
    elif isinstance(inp, DeleteRuleInput):
        return run_delete(inp, store=store)
    elif isinstance(inp, GetRuleInput):
        return run_get(inp, store=store, notices=notices)
    elif isinstance(inp, ListRulesInput):
        return run_list(inp, store=store)
    elif isinstance(inp, ResolvePathInput):
        return run_resolve(inp, store=store, reserved=reserved, config=config)
    elif isinstance(inp, CheckConflictInput):
        return run_check_conflict(inp, reserved=reserved)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
