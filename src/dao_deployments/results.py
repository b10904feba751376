"""Tagged outcomes for ordering-dependent pipeline steps."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Union

from .exceptions import DeploymentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    """A step that completed; ``value`` is whatever the step returned."""

    step: str
    value: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """A step that failed; later steps must not run."""

    step: str
    error: DeploymentError

    @property
    def ok(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.step} failed: {self.error}"


StepResult = Union[Ok, Err]


def run_step(step: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> StepResult:
    """
    Run one pipeline step and tag its outcome.

    Only DeploymentError is converted into Err; anything else is a bug and
    propagates.

    Args:
        step: Step name used in progress output
        fn: Callable implementing the step

    Returns:
        Ok with the return value, or Err with the exception
    """
    logger.info("=== %s ===", step)
    try:
        value = fn(*args, **kwargs)
    except DeploymentError as e:
        logger.error("%s failed: %s", step, e)
        return Err(step, e)
    return Ok(step, value)
