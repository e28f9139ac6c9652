from .loader import load_config
from .models import (
    ReadycheckConfig,
    RetryPolicy,
    SetupConfig,
    VerifierConfig,
)

__all__ = [
    "ReadycheckConfig",
    "RetryPolicy",
    "SetupConfig",
    "VerifierConfig",
    "load_config",
]
