"""Capability-fallback ladder for camera acquisition.

The ladder is an ordered list of acquisition attempts, each carrying a typed
constraint descriptor. Attempts are tried strictly in order and the first one
the device accepts wins; device exceptions are mapped to per-attempt outcomes
instead of being nested in handlers.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from core.interfaces.camera import ConstraintRejected, DeviceUnavailable, ICameraDevice, IMediaStream
from core.models.capture import StreamConstraints

logger = logging.getLogger(__name__)

REAR_FACING = "environment"


@dataclass(frozen=True)
class AcquisitionAttempt:
    """One rung of the ladder."""
    tier: int
    constraints: StreamConstraints


@dataclass
class AttemptOutcome:
    """What happened when one rung was tried."""
    attempt: AcquisitionAttempt
    accepted: bool
    error: Optional[str] = None
    stream: Optional[IMediaStream] = field(default=None, repr=False)


@dataclass
class LadderResult:
    """Result of walking the ladder.

    Attributes:
        stream: The acquired stream
        attempt: The rung that succeeded
        outcomes: Every rung that was tried, in order
    """
    stream: Optional[IMediaStream] = None
    attempt: Optional[AcquisitionAttempt] = None
    outcomes: List[AttemptOutcome] = field(default_factory=list)

    @property
    def acquired(self) -> bool:
        return self.stream is not None

    def failure_message(self) -> str:
        reasons = "; ".join(
            f"tier {o.attempt.tier} ({o.attempt.constraints.describe()}): {o.error}"
            for o in self.outcomes
        )
        return f"No camera accepted any constraint: {reasons}"


def build_ladder(preferred_width: int, preferred_height: int) -> List[AcquisitionAttempt]:
    """Build the standard three-rung ladder.

    1. rear-facing camera at the preferred resolution
    2. any camera at the preferred resolution
    3. any camera, no constraints
    """
    return [
        AcquisitionAttempt(1, StreamConstraints(
            facing_mode=REAR_FACING,
            width=preferred_width,
            height=preferred_height,
            label="rear",
        )),
        AcquisitionAttempt(2, StreamConstraints(
            width=preferred_width,
            height=preferred_height,
            label="preferred-resolution",
        )),
        AcquisitionAttempt(3, StreamConstraints(label="any")),
    ]


async def try_attempt(
    device: ICameraDevice,
    attempt: AcquisitionAttempt,
    timeout: Optional[float] = None,
) -> AttemptOutcome:
    """Try a single rung; returns the outcome and never raises device errors.

    On success the acquired stream is carried on the outcome.
    """
    try:
        stream = await asyncio.wait_for(device.open_stream(attempt.constraints), timeout)
    except ConstraintRejected as e:
        return AttemptOutcome(attempt, accepted=False, error=str(e) or "rejected")
    except asyncio.TimeoutError:
        return AttemptOutcome(attempt, accepted=False, error=f"timed out after {timeout}s")
    except Exception as e:
        logger.warning(f"Camera device error on tier {attempt.tier}: {e}")
        return AttemptOutcome(attempt, accepted=False, error=f"{type(e).__name__}: {e}")

    return AttemptOutcome(attempt, accepted=True, stream=stream)


async def acquire(
    device: ICameraDevice,
    ladder: List[AcquisitionAttempt],
    timeout: Optional[float] = None,
    should_continue: Optional[Callable[[], bool]] = None,
) -> LadderResult:
    """Walk the ladder until a rung is accepted.

    Args:
        device: Camera device provider
        ladder: Ordered rungs, strictest first
        timeout: Per-rung bound on the device call (None = unbounded)
        should_continue: Checked before each rung; returning False ends the
            walk without requesting further rungs

    Returns:
        LadderResult carrying the acquired stream, or with no stream when
        the walk was abandoned through should_continue

    Raises:
        DeviceUnavailable: If every rung was rejected
    """
    result = LadderResult()

    for attempt in ladder:
        if should_continue is not None and not should_continue():
            logger.info(f"Camera request abandoned before tier {attempt.tier}")
            return result

        logger.debug(f"Requesting camera, tier {attempt.tier}: {attempt.constraints.describe()}")
        outcome = await try_attempt(device, attempt, timeout)
        result.outcomes.append(outcome)

        if outcome.accepted:
            result.stream = outcome.stream
            result.attempt = attempt
            logger.info(f"Camera acquired on tier {attempt.tier} ({attempt.constraints.describe()})")
            return result

        logger.info(f"Camera tier {attempt.tier} rejected: {outcome.error}")

    raise DeviceUnavailable(result.failure_message(), result.outcomes)
