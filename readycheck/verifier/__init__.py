"""Readiness verification for the PDF conversion service."""

from readycheck.verifier.errors import (
    ConfigurationError,
    ReadinessError,
    RoundtripFailure,
    ServiceDegraded,
    TransportError,
)
from readycheck.verifier.models import (
    CheckMode,
    Credentials,
    HealthStatus,
    Outcome,
    Overall,
    VerificationResult,
)
from readycheck.verifier.render import render_json, render_text
from readycheck.verifier.verifier import check_health

__all__ = [
    "CheckMode",
    "ConfigurationError",
    "Credentials",
    "HealthStatus",
    "Outcome",
    "Overall",
    "ReadinessError",
    "RoundtripFailure",
    "ServiceDegraded",
    "TransportError",
    "VerificationResult",
    "check_health",
    "render_json",
    "render_text",
]
