"""YAML config loading with env var expansion and overrides."""

import os
import re
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import ReadycheckConfig

# Environment variable -> verifier field
ENV_OVERRIDES: dict[str, str] = {
    "READYCHECK_URL": "base_url",
    "READYCHECK_USER": "username",
    "READYCHECK_PASSWORD": "password",
    "READYCHECK_REQUIRE_AUTH": "require_auth",
    "READYCHECK_TIMEOUT": "timeout",
}


def load_config(
    cli_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ReadycheckConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults.

    Environment overrides from ``READYCHECK_*`` variables are applied last.
    """
    env = os.environ if environ is None else environ
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./readycheck.yaml"),
        Path.home() / ".readycheck" / "config.yaml",
    ]

    raw: dict = {}
    source = "environment"
    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            if loaded is None:
                continue
            if not isinstance(loaded, dict):
                raise ValueError(f"Invalid config in {path}: expected a mapping")
            raw = _expand_env_vars(loaded, env)
            source = str(path)
            break

    verifier = raw.get("verifier")
    if verifier is not None and not isinstance(verifier, dict):
        raise ValueError(f"Invalid config in {source}: 'verifier' must be a mapping")

    raw = _apply_env_overrides(raw, env)
    try:
        return ReadycheckConfig(**raw)
    except ValidationError as e:
        raise ValueError(f"Invalid config in {source}: {e}") from e


def _expand_env_vars(obj: object, env: Mapping[str, str]) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: env.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v, env) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v, env) for v in obj]
    return obj


def _apply_env_overrides(raw: dict, env: Mapping[str, str]) -> dict:
    overrides = {
        field: env[var] for var, field in ENV_OVERRIDES.items() if env.get(var)
    }
    if not overrides:
        return raw
    verifier = dict(raw.get("verifier") or {})
    verifier.update(overrides)
    return {**raw, "verifier": verifier}


# Default YAML template for `readycheck config init`
DEFAULT_CONFIG_TEMPLATE = """\
# readycheck.yaml

# Conversion service probe
verifier:
  base_url: "http://localhost:3001"   # scheme and port required
  # username: "${PDF_SERVICE_USER}"
  # password: "${PDF_SERVICE_PASSWORD}"
  require_auth: false
  status_path: "/health"
  convert_path: "/forms/chromium/convert/html"
  timeout: 5.0                         # status probe, seconds
  roundtrip_timeout: 30.0              # conversion probe, seconds

# Retry wrapper used by `wait` and `setup`
retry:
  max_attempts: 5
  delay_seconds: 5

# Server setup
setup:
  install_dir: "/opt/bg-pdf-service"
  repo_url: "https://github.com/Kanevry/bg-pdf-service.git"
  branch: "main"
  service_name: "bg-pdf-service"
  systemd_dir: "/etc/systemd/system"

# Logging
log_level: "info"              # debug | info | warn | error
"""
