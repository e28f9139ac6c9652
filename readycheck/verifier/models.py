"""Pydantic models for readiness verification results."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, computed_field


class Overall(str, Enum):
    """Derived health of the conversion service."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


class CheckMode(str, Enum):
    BASIC = "basic"
    JSON = "json"
    FULL = "full"


class Outcome(str, Enum):
    """Result kind of one verifier invocation."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    ROUNDTRIP_FAILED = "roundtrip_failed"
    DOWN = "down"
    CONFIGURATION_ERROR = "configuration_error"

    @property
    def exit_code(self) -> int:
        """Process exit code; only the CLI boundary should need this."""
        return _EXIT_CODES[self]


_EXIT_CODES: dict[Outcome, int] = {
    Outcome.HEALTHY: 0,
    Outcome.DEGRADED: 1,
    Outcome.ROUNDTRIP_FAILED: 1,
    Outcome.DOWN: 2,
    Outcome.CONFIGURATION_ERROR: 3,
}


class Credentials(BaseModel):
    """Basic-auth pair for a protected endpoint."""

    username: str
    password: str

    def as_tuple(self) -> tuple[str, str]:
        return (self.username, self.password)


class HealthStatus(BaseModel):
    """Result of querying the conversion service's status endpoint."""

    chromium_up: bool = False
    libreoffice_up: bool = False
    reachable: bool = True
    timestamp: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall(self) -> Overall:
        if not self.reachable:
            return Overall.DOWN
        if self.chromium_up and self.libreoffice_up:
            return Overall.HEALTHY
        return Overall.DEGRADED

    def down_subsystems(self) -> list[str]:
        down = []
        if not self.chromium_up:
            down.append("chromium")
        if not self.libreoffice_up:
            down.append("libreoffice")
        return down


class VerificationResult(BaseModel):
    """Outcome of one verifier invocation. Never persisted."""

    status: HealthStatus
    mode: CheckMode = CheckMode.BASIC
    roundtrip_verified: bool = False
    outcome: Outcome
    message: str

    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code

    @property
    def reported_status(self) -> Overall:
        """Status as reported to callers; a failed roundtrip reads as degraded."""
        if self.outcome is Outcome.ROUNDTRIP_FAILED:
            return Overall.DEGRADED
        return self.status.overall

    def to_json_dict(self) -> dict[str, str]:
        """Machine-readable encoding with exactly four keys."""
        return {
            "status": self.reported_status.value,
            "chromium": "up" if self.status.chromium_up else "down",
            "libreoffice": "up" if self.status.libreoffice_up else "down",
            "timestamp": self.status.timestamp,
        }
