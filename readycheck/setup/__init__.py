"""Deployment setup flow, gated on a healthy readiness check."""

from readycheck.setup.installer import ServiceInstaller, SetupError, SetupReport
from readycheck.setup.runner import CommandError, CommandRunner

__all__ = [
    "CommandError",
    "CommandRunner",
    "ServiceInstaller",
    "SetupError",
    "SetupReport",
]
