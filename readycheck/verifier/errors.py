"""Error taxonomy for readiness checks."""

from __future__ import annotations

from readycheck.verifier.models import Outcome


class ReadinessError(Exception):
    """Base class; every subclass maps to one outcome."""

    outcome: Outcome = Outcome.DOWN


class TransportError(ReadinessError):
    """Status endpoint unreachable, timed out, non-2xx, or malformed."""

    outcome = Outcome.DOWN


class ServiceDegraded(ReadinessError):
    """Reachable, but one or both conversion backends are down."""

    outcome = Outcome.DEGRADED

    def __init__(self, subsystems: list[str]) -> None:
        self.subsystems = subsystems
        super().__init__(f"service degraded: {', '.join(subsystems)} down")


class RoundtripFailure(ReadinessError):
    """Status endpoint healthy, but the conversion probe failed."""

    outcome = Outcome.ROUNDTRIP_FAILED

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"status endpoint healthy, conversion roundtrip failed: {reason}"
        )


class ConfigurationError(ReadinessError):
    """Invalid or incomplete configuration, detected before any request."""

    outcome = Outcome.CONFIGURATION_ERROR
