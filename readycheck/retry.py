"""Sequential retry loop around the Basic-mode readiness probe."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pydantic import BaseModel

from readycheck.config.models import RetryPolicy
from readycheck.verifier.models import Outcome, VerificationResult

logger = logging.getLogger(__name__)


class RetryOutcome(BaseModel):
    """Summary of a retry loop."""

    succeeded: bool
    attempts: int
    last_result: VerificationResult | None = None


def wait_until_healthy(
    probe: Callable[[], VerificationResult],
    policy: RetryPolicy,
    sleep: Callable[[float], None] | None = None,
) -> RetryOutcome:
    """Call ``probe`` until it reports healthy or the attempt budget runs out.

    Sleeps ``policy.delay_seconds`` between attempts, never after the last
    one. A configuration error stops the loop early since retrying cannot
    fix it.
    """
    sleep = sleep or time.sleep
    last: VerificationResult | None = None
    for attempt in range(1, policy.max_attempts + 1):
        logger.info("Health check attempt %d/%d...", attempt, policy.max_attempts)
        last = probe()
        if last.outcome is Outcome.HEALTHY:
            logger.info("Service is healthy after %d attempt(s)", attempt)
            return RetryOutcome(succeeded=True, attempts=attempt, last_result=last)

        logger.info("Attempt %d: %s", attempt, last.message)
        if last.outcome is Outcome.CONFIGURATION_ERROR:
            return RetryOutcome(succeeded=False, attempts=attempt, last_result=last)
        if attempt < policy.max_attempts:
            sleep(policy.delay_seconds)

    return RetryOutcome(
        succeeded=False, attempts=policy.max_attempts, last_result=last
    )
