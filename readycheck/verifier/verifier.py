"""Readiness verifier for the PDF conversion service.

One invocation runs up to three phases in order: transport check, status
check, and (full mode only) a conversion roundtrip. Each phase either passes
or raises a ``ReadinessError``; ``check_health`` folds the first failure into
a single ``VerificationResult``. Nothing is retried here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

import httpx

from readycheck.config.models import VerifierConfig
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

logger = logging.getLogger(__name__)

Clock = Callable[[], str]

ROUNDTRIP_HTML = """\
<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>readycheck</title></head>
  <body><h1>readycheck</h1><p>Conversion roundtrip probe.</p></body>
</html>
"""

# A4 with narrow margins, inches
ROUNDTRIP_FORM_FIELDS: dict[str, str] = {
    "paperWidth": "8.27",
    "paperHeight": "11.7",
    "marginTop": "0.4",
    "marginBottom": "0.4",
    "marginLeft": "0.4",
    "marginRight": "0.4",
    "printBackground": "true",
}

_UP_VALUES = {"up", "true", "ok", "healthy"}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def validate_endpoint(url: str) -> str:
    """Check that the base URL carries a scheme, host and explicit port.

    Raises ConfigurationError otherwise.
    """
    if "\r" in url or "\n" in url:
        raise ConfigurationError("invalid endpoint: CRLF characters in base_url")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ConfigurationError(
            f"invalid endpoint {url!r}: scheme must be http or https"
        )
    if not parsed.hostname:
        raise ConfigurationError(f"invalid endpoint {url!r}: missing host")
    try:
        port = parsed.port
    except ValueError as e:
        raise ConfigurationError(f"invalid endpoint {url!r}: {e}") from e
    if port is None:
        raise ConfigurationError(
            f"invalid endpoint {url!r}: port is required (e.g. http://localhost:3001)"
        )
    return url.rstrip("/")


def resolve_credentials(config: VerifierConfig) -> Credentials | None:
    """Build the basic-auth pair, or None when the endpoint is open.

    Raises ConfigurationError for a half-configured pair, or for missing
    credentials when ``require_auth`` is set.
    """
    username = config.username or None
    password = config.password or None

    if username and password:
        return Credentials(username=username, password=password)
    if username or password:
        raise ConfigurationError(
            "incomplete credentials: both username and password are required"
        )
    if config.require_auth:
        raise ConfigurationError(
            "endpoint requires basic auth but no credentials are configured "
            "(set READYCHECK_USER and READYCHECK_PASSWORD)"
        )
    return None


def _is_up(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _UP_VALUES
    if isinstance(value, Mapping):
        return _is_up(value.get("status"))
    return False


def parse_status_body(body: Any, timestamp: str) -> HealthStatus:
    """Read subsystem flags from a status response body.

    Understands the service's native ``details.<module>.status`` layout and
    a flat ``chromiumUp``/``libreofficeUp`` layout.
    """
    if not isinstance(body, Mapping):
        raise TransportError("malformed status body: expected a JSON object")

    details = body.get("details")
    if isinstance(details, Mapping) and (
        "chromium" in details or "libreoffice" in details
    ):
        chromium = details.get("chromium")
        libreoffice = details.get("libreoffice")
    elif "chromiumUp" in body or "libreofficeUp" in body:
        chromium = body.get("chromiumUp")
        libreoffice = body.get("libreofficeUp")
    else:
        raise TransportError(
            "malformed status body: no chromium or libreoffice status fields"
        )

    return HealthStatus(
        chromium_up=_is_up(chromium),
        libreoffice_up=_is_up(libreoffice),
        timestamp=timestamp,
    )


def probe_status(
    client: httpx.Client,
    config: VerifierConfig,
    credentials: Credentials | None,
    timestamp: str,
) -> HealthStatus:
    """GET the status endpoint and parse it. Raises TransportError."""
    url = f"{config.base_url.rstrip('/')}{config.status_path}"
    auth = credentials.as_tuple() if credentials else None
    logger.debug("Probing status endpoint %s", url)

    try:
        resp = client.get(url, auth=auth, timeout=config.timeout)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"invalid status URL {url!r}: {e}") from e
    except httpx.TimeoutException as e:
        raise TransportError(
            f"conversion service unreachable: timed out after {config.timeout:g}s"
        ) from e
    except httpx.HTTPError as e:
        raise TransportError(f"conversion service unreachable: {e}") from e

    if not resp.is_success:
        raise TransportError(
            f"conversion service unreachable: status endpoint returned HTTP {resp.status_code}"
        )

    try:
        body = resp.json()
    except ValueError as e:
        raise TransportError("malformed status body: not valid JSON") from e

    return parse_status_body(body, timestamp)


def probe_roundtrip(
    client: httpx.Client,
    config: VerifierConfig,
    credentials: Credentials | None,
) -> int:
    """Submit a minimal HTML conversion and return the PDF size in bytes.

    Raises RoundtripFailure on transport failure, non-2xx, or empty body.
    """
    url = f"{config.base_url.rstrip('/')}{config.convert_path}"
    auth = credentials.as_tuple() if credentials else None
    files = {"files": ("index.html", ROUNDTRIP_HTML.encode(), "text/html")}
    logger.debug("Submitting roundtrip conversion to %s", url)

    try:
        resp = client.post(
            url,
            files=files,
            data=ROUNDTRIP_FORM_FIELDS,
            auth=auth,
            timeout=config.roundtrip_timeout,
        )
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"invalid conversion URL {url!r}: {e}") from e
    except httpx.TimeoutException as e:
        raise RoundtripFailure(
            f"timed out after {config.roundtrip_timeout:g}s"
        ) from e
    except httpx.HTTPError as e:
        raise RoundtripFailure(f"request failed: {e}") from e

    if not resp.is_success:
        raise RoundtripFailure(f"conversion endpoint returned HTTP {resp.status_code}")
    if not resp.content:
        raise RoundtripFailure("roundtrip empty")

    if not resp.content.startswith(b"%PDF"):
        logger.warning("Roundtrip output does not start with a PDF header")
    return len(resp.content)


@contextmanager
def _client_scope(client: httpx.Client | None) -> Iterator[httpx.Client]:
    if client is not None:
        yield client
        return
    with httpx.Client() as owned:
        yield owned


def check_health(
    config: VerifierConfig,
    mode: CheckMode = CheckMode.BASIC,
    client: httpx.Client | None = None,
    clock: Clock | None = None,
) -> VerificationResult:
    """Run one readiness check and return exactly one result.

    Configuration problems are reported before any request is made.
    Runtime failures never raise; they are encoded in the result outcome.
    """
    timestamp = (clock or utc_timestamp)()
    status = HealthStatus(reachable=False, timestamp=timestamp)

    try:
        config = config.model_copy(update={"base_url": validate_endpoint(config.base_url)})
        credentials = resolve_credentials(config)

        with _client_scope(client) as http:
            status = probe_status(http, config, credentials, timestamp)
            if status.overall is not Overall.HEALTHY:
                raise ServiceDegraded(status.down_subsystems())

            if mode is not CheckMode.FULL:
                return VerificationResult(
                    status=status,
                    mode=mode,
                    outcome=Outcome.HEALTHY,
                    message="conversion service healthy (chromium up, libreoffice up)",
                )

            size = probe_roundtrip(http, config, credentials)
    except ReadinessError as exc:
        logger.debug("Readiness check failed: %s", exc)
        return VerificationResult(
            status=status,
            mode=mode,
            outcome=exc.outcome,
            message=str(exc),
        )

    return VerificationResult(
        status=status,
        mode=mode,
        roundtrip_verified=True,
        outcome=Outcome.HEALTHY,
        message=f"status endpoint healthy, conversion roundtrip verified ({size} bytes)",
    )
