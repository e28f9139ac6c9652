"""Server setup flow for the PDF conversion service.

Installs Docker when missing, syncs the service repository, starts the
compose stack, waits for the service to report healthy and only then
registers the systemd unit. Any failed step raises ``SetupError`` and the
remaining steps are skipped.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path

import httpx
from pydantic import BaseModel, Field

from readycheck.config.models import ReadycheckConfig
from readycheck.retry import RetryOutcome, wait_until_healthy
from readycheck.setup.runner import CommandError, CommandRunner
from readycheck.verifier import CheckMode, VerificationResult, check_health

logger = logging.getLogger(__name__)

DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_APT_REPO = "https://download.docker.com/linux/ubuntu"
DOCKER_PACKAGES = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
]
APT_PREREQUISITES = ["ca-certificates", "curl", "gnupg", "lsb-release"]

GIT_HINT = "Check that git is installed (apt-get install git) and the repository is reachable"
ROOT_HINT = "Check file permissions; setup must run as root"


class SetupError(Exception):
    """A setup step failed; ``hint`` tells the operator what to do next."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        self.hint = hint
        super().__init__(message)


class SetupReport(BaseModel):
    """What a completed setup run did."""

    steps: list[str] = Field(default_factory=list)
    docker_installed: bool = False
    repository_cloned: bool = False
    env_created: bool = False
    health_attempts: int = 0
    unit_path: str | None = None


class ServiceInstaller:
    """Runs the setup steps in order against one config."""

    keyring_path = Path("/etc/apt/keyrings/docker.asc")
    sources_path = Path("/etc/apt/sources.list.d/docker.list")

    def __init__(
        self,
        config: ReadycheckConfig,
        runner: CommandRunner | None = None,
        probe: Callable[[], VerificationResult] | None = None,
        sleep: Callable[[float], None] | None = None,
        euid: Callable[[], int] = os.geteuid,
    ) -> None:
        self._config = config
        self._runner = runner or CommandRunner()
        self._probe = probe or (lambda: check_health(config.verifier, CheckMode.BASIC))
        self._sleep = sleep
        self._euid = euid

    @property
    def install_dir(self) -> Path:
        return Path(self._config.setup.install_dir)

    @property
    def unit_name(self) -> str:
        return f"{self._config.setup.service_name}.service"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, install_docker: bool = True) -> SetupReport:
        report = SetupReport()
        logger.info("Starting %s setup...", self._config.setup.service_name)

        self.ensure_root()
        report.steps.append("root")

        report.docker_installed = self.ensure_docker(install=install_docker)
        report.steps.append("docker")

        report.repository_cloned = self.sync_repository()
        report.steps.append("repository")

        report.env_created = self.ensure_env_file()
        report.steps.append("env")

        self.start_services()
        report.steps.append("services")

        outcome = self.wait_for_health()
        report.health_attempts = outcome.attempts
        report.steps.append("health")

        report.unit_path = str(self.install_systemd_unit())
        report.steps.append("systemd")
        return report

    def ensure_root(self) -> None:
        if self._euid() != 0:
            raise SetupError(
                "This command must be run as root", hint="Re-run with sudo"
            )

    def ensure_docker(self, install: bool = True) -> bool:
        """Make sure docker and its compose plugin exist. Returns True if installed now."""
        installed = False
        if self._runner.exists("docker"):
            version = self._run(["docker", "--version"]).stdout.strip()
            logger.info("✓ Docker already installed (%s)", version)
        elif not install:
            raise SetupError(
                "Docker not found", hint="Install Docker or drop --skip-docker-install"
            )
        else:
            logger.info("Docker not found, installing...")
            self._install_docker()
            installed = True
            logger.info("✓ Docker installed successfully")

        try:
            compose = self._runner.run(["docker", "compose", "version"])
        except CommandError as e:
            raise SetupError(
                "Docker Compose plugin not available",
                hint="Install with: apt-get install docker-compose-plugin",
            ) from e
        logger.info("✓ Docker Compose plugin available (%s)", compose.stdout.strip())
        return installed

    def sync_repository(self) -> bool:
        """Clone or update the service checkout. Returns True on a fresh clone."""
        setup = self._config.setup
        if self.install_dir.is_dir():
            logger.info("Repository exists at %s, updating...", self.install_dir)
            try:
                # Local changes are stashed best-effort; a nonzero exit is fine
                self._runner.run(["git", "stash", "--quiet"], cwd=self.install_dir, check=False)
            except CommandError as e:
                raise SetupError(
                    f"Failed to update repository: {e}", hint=GIT_HINT
                ) from e
            self._run(
                ["git", "pull", "--quiet", "origin", setup.branch],
                cwd=self.install_dir,
                failure="Failed to update repository",
                hint=GIT_HINT,
            )
            logger.info("✓ Repository updated")
            return False

        logger.info("Cloning repository to %s...", self.install_dir)
        try:
            self.install_dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SetupError(
                f"Cannot create {self.install_dir.parent}: {e}", hint=ROOT_HINT
            ) from e
        self._run(
            ["git", "clone", "--quiet", "--branch", setup.branch, setup.repo_url, str(self.install_dir)],
            failure="Failed to clone repository",
            hint=GIT_HINT,
        )
        logger.info("✓ Repository cloned")
        return True

    def ensure_env_file(self) -> bool:
        """Create .env from .env.example if missing. Returns True if created."""
        env_file = self.install_dir / ".env"
        if env_file.is_file():
            logger.info("✓ .env already exists")
            return False

        example = self.install_dir / ".env.example"
        if not example.is_file():
            raise SetupError(".env.example not found in repository")
        try:
            shutil.copyfile(example, env_file)
        except OSError as e:
            raise SetupError(f"Failed to create {env_file}: {e}", hint=ROOT_HINT) from e
        logger.info("✓ .env created (customize if needed)")
        return True

    def start_services(self) -> None:
        logger.info("Starting services with docker compose...")
        self._run(["docker", "compose", "pull", "--quiet"], cwd=self.install_dir)
        self._run(
            ["docker", "compose", "up", "-d", "--remove-orphans"],
            cwd=self.install_dir,
            hint="Check logs: docker compose logs",
        )
        logger.info("✓ Services started")

    def wait_for_health(self) -> RetryOutcome:
        policy = self._config.retry
        logger.info(
            "Waiting for service to become healthy (up to %ds)...",
            policy.max_attempts * policy.delay_seconds,
        )
        outcome = wait_until_healthy(self._probe, policy, sleep=self._sleep)
        if not outcome.succeeded:
            detail = outcome.last_result.message if outcome.last_result else "no result"
            raise SetupError(
                f"Service did not become healthy after {outcome.attempts} attempt(s): {detail}",
                hint="Check logs: docker compose logs",
            )
        logger.info("✓ Service is healthy")
        return outcome

    def install_systemd_unit(self) -> Path:
        logger.info("Installing systemd service...")
        source = self.install_dir / "systemd" / self.unit_name
        if not source.is_file():
            raise SetupError(f"systemd/{self.unit_name} not found in repository")

        dest = Path(self._config.setup.systemd_dir) / self.unit_name
        try:
            shutil.copyfile(source, dest)
        except OSError as e:
            raise SetupError(f"Failed to install {dest}: {e}", hint=ROOT_HINT) from e
        self._run(["systemctl", "daemon-reload"])
        self._run(["systemctl", "enable", self.unit_name])
        self._run(["systemctl", "start", self.unit_name])
        logger.info("✓ Systemd service installed and enabled")
        return dest

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self,
        args: list[str],
        cwd: Path | None = None,
        failure: str | None = None,
        hint: str | None = None,
    ):
        try:
            return self._runner.run(args, cwd=cwd)
        except CommandError as e:
            raise SetupError(failure or str(e), hint=hint) from e

    def _install_docker(self) -> None:
        self._run(["apt-get", "update", "-qq"])
        self._run(["apt-get", "install", "-y", "-qq", *APT_PREREQUISITES])

        try:
            resp = httpx.get(DOCKER_GPG_URL, timeout=30.0, follow_redirects=True)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise SetupError(f"Failed to download Docker GPG key: {e}") from e
        try:
            self.keyring_path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
            self.keyring_path.write_bytes(resp.content)
            self.keyring_path.chmod(0o644)
        except OSError as e:
            raise SetupError(f"Failed to write {self.keyring_path}: {e}", hint=ROOT_HINT) from e

        arch = self._run(["dpkg", "--print-architecture"]).stdout.strip()
        codename = self._run(["lsb_release", "-cs"]).stdout.strip()
        try:
            self.sources_path.write_text(
                f"deb [arch={arch} signed-by={self.keyring_path}] "
                f"{DOCKER_APT_REPO} {codename} stable\n"
            )
        except OSError as e:
            raise SetupError(f"Failed to write {self.sources_path}: {e}", hint=ROOT_HINT) from e

        self._run(["apt-get", "update", "-qq"])
        self._run(["apt-get", "install", "-y", "-qq", *DOCKER_PACKAGES])
