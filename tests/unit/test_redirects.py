"""
Tests for the redirect engine.

Covers slug normalization, resolution, click counting, conflict checks,
the request dispatcher and the admin rule service.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from shuriken.adapters.memory import (
    InMemoryNoticeQueue,
    InMemoryReservedPathRepo,
    InMemoryRuleStore,
)
from shuriken.components.redirects import (
    NO_ACTION,
    NO_MATCH,
    ClickCounter,
    ConflictValidator,
    CounterWriteError,
    LookupUnavailableError,
    Redirect,
    RedirectAction,
    RedirectConfig,
    RedirectResolver,
    RuleAdminService,
    RuleStoreError,
    build_conflict_notice,
    create_redirect_resolver,
    is_admin_path,
    normalize_slug,
    public_link,
    validate_slug,
    validate_target_url,
)
from shuriken.domain.entities import AdminNotice, RedirectRule

# --- Mock Ports ---


class MockClockPort:
    """Mock clock for deterministic testing."""

    def __init__(self, fixed_time: datetime | None = None) -> None:
        self._time = fixed_time or datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._time

    def advance(self, delta: timedelta) -> None:
        self._time = self._time + delta


class BrokenLookupStore(InMemoryRuleStore):
    """Store whose lookups always fail."""

    def find_published_rule_by_slug(self, slug: str) -> RedirectRule | None:
        raise LookupUnavailableError("database is locked")


class BrokenCounterStore(InMemoryRuleStore):
    """Store whose counter writes always fail."""

    def increment_visit_count(self, rule_id: UUID) -> int:
        raise CounterWriteError("disk I/O error")


class BrokenReservedPaths:
    """Reserved path registry that cannot be queried."""

    def path_is_reserved(self, path: str, excluding_id: UUID | None = None) -> bool:
        raise RuleStoreError("no such table: reserved_paths")


class BrokenNoticeQueue(InMemoryNoticeQueue):
    """Notice queue whose writes always fail."""

    def push(self, notice: AdminNotice) -> None:
        raise RuleStoreError("database is locked")


# --- Fixtures ---


def make_rule(
    slug: str = "promo",
    target_url: str = "https://example.com/sale",
    status: str = "published",
    **kwargs,
) -> RedirectRule:
    return RedirectRule(slug=slug, target_url=target_url, status=status, **kwargs)


@pytest.fixture
def clock() -> MockClockPort:
    return MockClockPort()


@pytest.fixture
def store() -> InMemoryRuleStore:
    return InMemoryRuleStore()


@pytest.fixture
def reserved() -> InMemoryReservedPathRepo:
    repo = InMemoryReservedPathRepo(system_paths=["admin"])
    repo.add("about", "page")
    return repo


@pytest.fixture
def resolver(store: InMemoryRuleStore) -> RedirectResolver:
    return create_redirect_resolver(store)


@pytest.fixture
def notices(clock: MockClockPort) -> InMemoryNoticeQueue:
    return InMemoryNoticeQueue(clock)


@pytest.fixture
def service(store, reserved, notices, clock) -> RuleAdminService:
    return RuleAdminService(
        store=store,
        conflict_validator=ConflictValidator(reserved),
        notices=notices,
        time_port=clock,
    )


# --- Path Helpers ---


class TestNormalizeSlug:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/promo", "promo"),
            ("/promo/", "promo"),
            ("promo", "promo"),
            ("/", ""),
            ("", ""),
            ("/a/b/", "a/b"),
            ("//promo//", "/promo/"),
        ],
    )
    def test_strips_one_slash_each_side(self, path: str, expected: str) -> None:
        assert normalize_slug(path) == expected

    @pytest.mark.parametrize("path", ["/promo", "/promo/", "/a/b/", "promo"])
    def test_idempotent_on_clean_slugs(self, path: str) -> None:
        once = normalize_slug(path)
        assert normalize_slug(once) == once

    def test_case_preserved(self) -> None:
        assert normalize_slug("/Promo") == "Promo"


class TestIsAdminPath:
    def test_matches_prefix_and_children(self) -> None:
        prefixes = ("admin", "api/admin")
        assert is_admin_path("/admin", prefixes)
        assert is_admin_path("/admin/redirects", prefixes)
        assert is_admin_path("/api/admin/redirects/1", prefixes)

    def test_similar_names_do_not_match(self) -> None:
        assert not is_admin_path("/administrator", ("admin",))
        assert not is_admin_path("/api/public", ("api/admin",))


def test_public_link() -> None:
    assert public_link("https://site.test/", "promo") == "https://site.test/promo"
    assert public_link("https://site.test", "promo") == "https://site.test/promo"


# --- Validation ---


class TestValidation:
    def test_slug_required(self) -> None:
        assert validate_slug("")[0].code == "slug_required"

    @pytest.mark.parametrize("slug", ["has space", "a?b", "a#b", "a//b", "a/../b", "."])
    def test_invalid_slugs(self, slug: str) -> None:
        assert validate_slug(slug)[0].code == "invalid_slug"

    @pytest.mark.parametrize("slug", ["promo", "spring-2024", "a/b", "Promo_1"])
    def test_valid_slugs(self, slug: str) -> None:
        assert validate_slug(slug) == []

    def test_empty_target_allowed(self) -> None:
        assert validate_target_url("") == []

    @pytest.mark.parametrize(
        "url", ["/relative", "javascript:alert(1)", "ftp://x.test/file", "https://"]
    )
    def test_invalid_targets(self, url: str) -> None:
        assert validate_target_url(url)[0].code == "invalid_target_url"

    @pytest.mark.parametrize("url", ["https://example.com", "http://x.test/a?b=1#c"])
    def test_valid_targets(self, url: str) -> None:
        assert validate_target_url(url) == []


# --- Resolver ---


class TestResolve:
    def test_published_rule_redirects(self, store, resolver) -> None:
        store.save(make_rule())

        outcome = resolver.resolve("/promo")

        assert outcome == Redirect(target_url="https://example.com/sale", status_code=301)

    def test_trailing_slash_matches(self, store, resolver) -> None:
        store.save(make_rule())

        assert isinstance(resolver.resolve("/promo/"), Redirect)

    def test_root_never_matches(self, store, resolver) -> None:
        assert resolver.resolve("/") is NO_MATCH
        assert resolver.resolve("") is NO_MATCH

    def test_unknown_slug(self, store, resolver) -> None:
        store.save(make_rule())

        assert resolver.resolve("/other") is NO_MATCH

    def test_unpublished_never_redirects(self, store, resolver) -> None:
        rule = store.save(make_rule(status="unpublished"))

        assert resolver.resolve("/promo") is NO_MATCH
        assert store.get_by_id(rule.id).visit_count == 0

    def test_empty_target_never_redirects(self, store, resolver) -> None:
        rule = store.save(make_rule(target_url=""))

        assert resolver.resolve("/promo") is NO_MATCH
        assert store.get_by_id(rule.id).visit_count == 0

    def test_case_sensitive(self, store, resolver) -> None:
        store.save(make_rule(slug="Promo"))

        assert resolver.resolve("/promo") is NO_MATCH
        assert isinstance(resolver.resolve("/Promo"), Redirect)

    def test_no_prefix_matching(self, store, resolver) -> None:
        store.save(make_rule(slug="promo"))

        assert resolver.resolve("/promo/extra") is NO_MATCH
        assert resolver.resolve("/pro") is NO_MATCH

    def test_multi_segment_slug(self, store, resolver) -> None:
        store.save(make_rule(slug="a/b"))

        assert isinstance(resolver.resolve("/a/b/"), Redirect)

    def test_served_redirect_counts_once(self, store, resolver) -> None:
        rule = store.save(make_rule())

        resolver.resolve("/promo")
        resolver.resolve("/promo/")

        assert store.get_by_id(rule.id).visit_count == 2

    def test_dry_run_does_not_count(self, store, resolver) -> None:
        rule = store.save(make_rule())

        assert isinstance(resolver.resolve("/promo", record_visit=False), Redirect)
        assert store.get_by_id(rule.id).visit_count == 0

    def test_lookup_failure_falls_through(self) -> None:
        store = BrokenLookupStore([make_rule()])
        resolver = create_redirect_resolver(store)

        assert resolver.resolve("/promo") is NO_MATCH

    def test_counter_failure_still_redirects(self) -> None:
        store = BrokenCounterStore([make_rule()])
        resolver = create_redirect_resolver(store)

        outcome = resolver.resolve("/promo")

        assert outcome == Redirect(target_url="https://example.com/sale")

    def test_defer_to_reserved_paths(self, store, reserved) -> None:
        store.save(make_rule(slug="about"))
        deferring = create_redirect_resolver(
            store, reserved, RedirectConfig(defer_to_reserved_paths=True)
        )
        default = create_redirect_resolver(store, reserved)

        assert deferring.resolve("/about") is NO_MATCH
        assert isinstance(default.resolve("/about"), Redirect)


class TestOnRequest:
    def test_hit_returns_redirect_action(self, store, resolver) -> None:
        store.save(make_rule())

        action = resolver.on_request("/promo")

        assert action == RedirectAction(redirect_to="https://example.com/sale", status=301)

    def test_miss_returns_no_action(self, resolver) -> None:
        assert resolver.on_request("/missing") is NO_ACTION

    def test_admin_paths_skipped(self, store, resolver) -> None:
        rule = store.save(make_rule(slug="admin/redirects"))

        assert resolver.on_request("/admin/redirects") is NO_ACTION
        assert store.get_by_id(rule.id).visit_count == 0

    def test_disabled(self, store) -> None:
        store.save(make_rule())
        resolver = create_redirect_resolver(store, config=RedirectConfig(enabled=False))

        assert resolver.on_request("/promo") is NO_ACTION


# --- Click Counter ---


class TestClickCounter:
    def test_increment_returns_new_count(self, store) -> None:
        rule = store.save(make_rule())
        counter = ClickCounter(store)

        assert counter.increment(rule.id) == 1
        assert counter.increment(rule.id) == 2

    def test_increment_unknown_rule_raises(self, store) -> None:
        with pytest.raises(CounterWriteError):
            ClickCounter(store).increment(uuid4())

    def test_record_swallows_store_errors(self) -> None:
        store = BrokenCounterStore([make_rule()])

        assert ClickCounter(store).record(uuid4()) is None


# --- Conflict Validator ---


class TestConflictValidator:
    def test_exact_match_conflicts(self, reserved) -> None:
        result = ConflictValidator(reserved).check_conflict("about")

        assert result.conflict == "about"
        assert not result.ok

    def test_prefix_does_not_conflict(self, reserved) -> None:
        assert ConflictValidator(reserved).check_conflict("about-us").ok

    def test_system_path_conflicts(self, reserved) -> None:
        assert not ConflictValidator(reserved).check_conflict("/admin/").ok

    def test_empty_slug_never_conflicts(self, reserved) -> None:
        assert ConflictValidator(reserved).check_conflict("").ok

    def test_no_registry_means_ok(self) -> None:
        assert ConflictValidator(None).check_conflict("about").ok

    def test_registry_failure_is_ok(self) -> None:
        assert ConflictValidator(BrokenReservedPaths()).check_conflict("about").ok


# --- Admin Service ---


class TestRuleAdminService:
    def test_create(self, service, clock) -> None:
        rule, errors, conflict = service.create("/promo/", " https://example.com ")

        assert errors == []
        assert rule is not None
        assert rule.slug == "promo"
        assert rule.target_url == "https://example.com"
        assert rule.created_at == clock.now_utc()
        assert conflict.ok

    def test_create_invalid_status(self, service) -> None:
        rule, errors, _ = service.create("promo", "https://example.com", status="draft")

        assert rule is None
        assert errors[0].code == "invalid_status"

    def test_create_collects_all_errors(self, service) -> None:
        _, errors, _ = service.create("bad slug", "nope", status="draft")

        assert {e.code for e in errors} == {"invalid_slug", "invalid_target_url", "invalid_status"}

    def test_create_duplicate_slug(self, service) -> None:
        service.create("promo", "https://a.test")
        rule, errors, _ = service.create("/promo", "https://b.test")

        assert rule is None
        assert errors[0].code == "slug_exists"

    def test_conflict_saves_and_queues_notice(self, service, store) -> None:
        rule, errors, conflict = service.create("about", "https://example.com")

        assert errors == []
        assert conflict.conflict == "about"
        assert store.get_by_slug("about") is not None

        first = service.consume_notices(rule.id)
        assert len(first) == 1
        assert first[0].code == "slug_conflict"
        assert service.consume_notices(rule.id) == []

    def test_conflict_kept_when_notice_cannot_be_queued(self, store, reserved, clock) -> None:
        service = RuleAdminService(
            store=store,
            conflict_validator=ConflictValidator(reserved),
            notices=BrokenNoticeQueue(clock),
            time_port=clock,
        )

        rule, errors, conflict = service.create("about", "https://example.com")

        assert errors == []
        assert conflict.conflict == "about"
        assert store.get_by_id(rule.id) is not None

    def test_update_slug_into_conflict(self, service) -> None:
        rule, _, _ = service.create("promo", "https://example.com")

        updated, errors, conflict = service.update(rule.id, {"slug": "about"})

        assert errors == []
        assert updated.slug == "about"
        assert conflict.conflict == "about"
        assert len(service.consume_notices(rule.id)) == 1

    def test_update_other_fields_skip_conflict_check(self, service) -> None:
        rule, _, _ = service.create("about", "https://example.com")
        service.consume_notices(rule.id)

        _, errors, conflict = service.update(rule.id, {"title": "About"})

        assert errors == []
        assert conflict.ok
        assert service.consume_notices(rule.id) == []

    def test_update_to_taken_slug(self, service) -> None:
        service.create("one", "https://a.test")
        rule, _, _ = service.create("two", "https://a.test")

        _, errors, _ = service.update(rule.id, {"slug": "one"})

        assert errors[0].code == "slug_exists"

    def test_update_keeps_own_slug(self, service) -> None:
        rule, _, _ = service.create("promo", "https://a.test")

        _, errors, _ = service.update(rule.id, {"slug": "/promo/"})

        assert errors == []

    def test_update_clears_target(self, service, store) -> None:
        rule, _, _ = service.create("promo", "https://a.test")

        updated, errors, _ = service.update(rule.id, {"target_url": None})

        assert errors == []
        assert updated.target_url == ""
        assert not updated.is_matchable

    def test_update_ignores_visit_count(self, service, store) -> None:
        rule, _, _ = service.create("promo", "https://a.test")
        ClickCounter(store).increment(rule.id)

        updated, _, _ = service.update(rule.id, {"visit_count": 0, "title": "Promo"})

        assert updated.visit_count == 1
        assert updated.title == "Promo"

    def test_update_bumps_updated_at(self, service, clock) -> None:
        rule, _, _ = service.create("promo", "https://a.test")
        clock.advance(timedelta(hours=1))

        updated, _, _ = service.update(rule.id, {"status": "unpublished"})

        assert updated.updated_at == clock.now_utc()
        assert updated.created_at == rule.created_at

    def test_update_missing(self, service) -> None:
        rule, errors, _ = service.update(uuid4(), {"title": "x"})

        assert rule is None
        assert errors[0].code == "not_found"

    def test_delete(self, service, store) -> None:
        rule, _, _ = service.create("promo", "https://a.test")

        assert service.delete(rule.id)
        assert not service.delete(rule.id)
        assert store.get_by_id(rule.id) is None


def test_conflict_notice_expires_after_ttl(clock) -> None:
    rule = make_rule(slug="about")

    notice = build_conflict_notice(rule, clock.now_utc(), RedirectConfig(notice_ttl_seconds=45))

    assert notice.expires_at - notice.created_at == timedelta(seconds=45)
    assert notice.slug == "about"
    assert "might not work" in notice.message
