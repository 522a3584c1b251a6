"""
Health endpoints.

- /health: startup state plus every registered check; 503 if anything fails
- /health/ready: same checks, shaped for a readiness probe
- /health/live: 200 whenever the process can answer
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class CheckResult:
    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "latency_ms": round(self.latency_ms, 3),
        }


class HealthCheck(Protocol):
    name: str

    def check(self) -> CheckResult: ...


class RuleStoreCheck:
    """Healthy while the rule store answers a trivial query."""

    name = "rule_store"

    def __init__(self, ping: Callable[[], None]) -> None:
        self._ping = ping

    def check(self) -> CheckResult:
        started = time.perf_counter()
        try:
            self._ping()
        except Exception as e:
            outcome, message = HealthStatus.UNHEALTHY, f"Rule store error: {e!s}"
        else:
            outcome, message = HealthStatus.HEALTHY, "Rule store reachable"
        elapsed_ms = (time.perf_counter() - started) * 1000
        return CheckResult(self.name, outcome, message, elapsed_ms)


class HealthProbes:
    """Startup state plus the checks behind /health and /health/ready."""

    def __init__(self, checks: Iterable[HealthCheck] = ()) -> None:
        self._checks = list(checks)
        self._started_at: float | None = None

    def add(self, check: HealthCheck) -> None:
        self._checks.append(check)

    def mark_started(self) -> None:
        self._started_at = time.monotonic()

    @property
    def started(self) -> bool:
        return self._started_at is not None

    def uptime_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    def run(self) -> list[CheckResult]:
        # Startup is always the first result
        startup = CheckResult(
            "startup",
            HealthStatus.HEALTHY if self.started else HealthStatus.UNHEALTHY,
            "Startup complete" if self.started else "Startup not complete",
        )
        return [startup, *(c.check() for c in self._checks)]


def create_health_router(probes: HealthProbes, version: str = "0.0.0") -> APIRouter:
    """Router exposing the probes at /health, /health/ready and /health/live."""
    router = APIRouter(tags=["health"])

    def _status_code(results: list[CheckResult]) -> int:
        if all(r.ok for r in results):
            return status.HTTP_200_OK
        return status.HTTP_503_SERVICE_UNAVAILABLE

    @router.get("/health", response_model=None)
    def health() -> JSONResponse:
        results = probes.run()
        code = _status_code(results)
        overall = HealthStatus.HEALTHY if code == status.HTTP_200_OK else HealthStatus.UNHEALTHY
        return JSONResponse(
            status_code=code,
            content={
                "status": overall.value,
                "version": version,
                "uptime_seconds": probes.uptime_seconds(),
                "checks": [r.as_dict() for r in results],
            },
        )

    @router.get("/health/ready", response_model=None)
    def ready() -> JSONResponse:
        results = probes.run()
        code = _status_code(results)
        return JSONResponse(
            status_code=code,
            content={
                "ready": code == status.HTTP_200_OK,
                "checks": [r.as_dict() for r in results],
            },
        )

    @router.get("/health/live")
    def live() -> dict[str, Any]:
        return {"alive": True, "uptime_seconds": probes.uptime_seconds()}

    return router
