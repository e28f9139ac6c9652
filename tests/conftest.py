"""Shared test fixtures for readycheck."""

import httpx
import pytest

from readycheck.config.loader import ENV_OVERRIDES
from readycheck.config.models import ReadycheckConfig, VerifierConfig
from readycheck.verifier.models import HealthStatus, Outcome, VerificationResult

FIXED_TIMESTAMP = "2026-01-01T00:00:00+00:00"
BASE_URL = "http://pdf.test:3001"
FAKE_PDF = b"%PDF-1.7\n1 0 obj\n<<>>\nendobj\n%%EOF\n"


def gotenberg_health(chromium: str = "up", libreoffice: str = "up") -> dict:
    """Status body in the conversion service's native layout."""
    overall = "up" if chromium == libreoffice == "up" else "down"
    return {
        "status": overall,
        "details": {
            "chromium": {"status": chromium, "timestamp": "2026-01-01T00:00:00Z"},
            "libreoffice": {"status": libreoffice, "timestamp": "2026-01-01T00:00:00Z"},
        },
    }


def _make_result(outcome: Outcome, message: str = "") -> VerificationResult:
    up = outcome is Outcome.HEALTHY
    return VerificationResult(
        status=HealthStatus(
            chromium_up=up,
            libreoffice_up=up,
            reachable=outcome is not Outcome.DOWN,
            timestamp=FIXED_TIMESTAMP,
        ),
        outcome=outcome,
        message=message or outcome.value,
    )


class RecordingService:
    """httpx handler standing in for the conversion service."""

    def __init__(self, health=None, health_status=200, convert_body=FAKE_PDF, convert_status=200, error=None):
        self.health = gotenberg_health() if health is None else health
        self.health_status = health_status
        self.convert_body = convert_body
        self.convert_status = convert_status
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if request.method == "GET" and request.url.path == "/health":
            if isinstance(self.health, (bytes, str)):
                return httpx.Response(self.health_status, content=self.health)
            return httpx.Response(self.health_status, json=self.health)
        if request.method == "POST" and request.url.path == "/forms/chromium/convert/html":
            request.read()
            return httpx.Response(
                self.convert_status,
                content=self.convert_body,
                headers={"Content-Type": "application/pdf"},
            )
        return httpx.Response(404)

    @property
    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real cwd, home config and READYCHECK_* vars."""
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIMESTAMP


@pytest.fixture
def verifier_config():
    return VerifierConfig(base_url=BASE_URL)


@pytest.fixture
def sample_config():
    return ReadycheckConfig()


@pytest.fixture
def make_result():
    """Factory for canned verifier results."""
    return _make_result


@pytest.fixture
def make_service():
    """Factory for fake conversion services; call ``.client()`` on the result."""
    return RecordingService


@pytest.fixture
def status_body():
    """Factory for status bodies in the service's native layout."""
    return gotenberg_health
