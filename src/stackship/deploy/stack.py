"""Stack lifecycle: create, update, delete and wait for completion."""

import threading
import time
from dataclasses import dataclass
from pathlib import Path

from stackship.config import PollConfig
from stackship.core.exceptions import (
    AWSError,
    StackCreateFailed,
    StackPollCancelled,
    StackPollFailed,
    StackPollTimeout,
)
from stackship.core.logging import StructuredLogger
from stackship.deploy.models import EnsureCreatedResult, StackStatus
from stackship.deploy.providers.base import StackProvider

logger = StructuredLogger(__name__)


@dataclass(frozen=True)
class PollPolicy:
    """How to wait for a stack to settle.

    The n-th wait lasts ``delay * backoff**n`` seconds, capped at
    ``max_delay``. ``deadline`` and ``max_transport_errors`` set to None make
    the wait unbounded.
    """

    delay: float = 5.0
    backoff: float = 1.5
    max_delay: float = 30.0
    deadline: float | None = 3600.0
    max_transport_errors: int | None = 5

    @classmethod
    def from_config(cls, config: PollConfig) -> "PollPolicy":
        return cls(
            delay=config.delay,
            backoff=config.backoff,
            max_delay=config.max_delay,
            deadline=config.deadline,
            max_transport_errors=config.max_transport_errors,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (zero-based) attempt."""
        try:
            grown = self.delay * (self.backoff**attempt)
        except OverflowError:
            # Only a backoff > 1 overflows, and then the power is far past any cap
            return self.max_delay if self.delay > 0 else 0.0
        return min(grown, self.max_delay)


class StackLifecycleController:
    """Drive one stack through create, update and delete."""

    def __init__(
        self,
        stacks: StackProvider,
        policy: PollPolicy | None = None,
        cancel: threading.Event | None = None,
    ):
        self._stacks = stacks
        self._policy = policy or PollPolicy()
        self._cancel = cancel or threading.Event()

    @property
    def cancel_event(self) -> threading.Event:
        """Set this event to stop any wait in progress."""
        return self._cancel

    def ensure_created(
        self,
        stack_name: str,
        stage: str,
        template_path: str | Path,
        wait: bool = True,
    ) -> EnsureCreatedResult:
        """Create the stack unless it already exists.

        Args:
            stack_name: Stack identity
            stage: Target stage
            template_path: Local create template
            wait: Poll a newly created stack until it settles

        Returns:
            Whether the stack was created, plus the settled status if waited on

        Raises:
            StackCreateFailed: If the provider rejected the create request
        """
        result = self._stacks.create_stack(stack_name, stage, template_path)

        if not result.accepted:
            raise StackCreateFailed(
                "Unable to create stack",
                target=stack_name,
                details={"reason": result.error} if result.error else None,
            )

        if result.already_exists:
            logger.debug("Stack already exists", stack=stack_name)
            return EnsureCreatedResult(created=False, already_existed=True)

        logger.info("Creating stack", stack=stack_name)
        status = self.poll_until_terminal(stack_name) if wait else None
        return EnsureCreatedResult(created=True, already_existed=False, status=status)

    def poll_until_terminal(
        self,
        stack_name: str,
        attempt: int = 0,
        *,
        policy: PollPolicy | None = None,
        cancel: threading.Event | None = None,
        missing_is_deleted: bool = False,
    ) -> StackStatus:
        """Query the stack status until it reaches a terminal status.

        Args:
            stack_name: Stack identity
            attempt: Attempt number to start the backoff from
            policy: Overrides the controller's poll policy
            cancel: Overrides the controller's cancel event
            missing_is_deleted: Treat a stack that no longer exists as DELETE_COMPLETE

        Returns:
            The first terminal status observed

        Raises:
            StackPollTimeout: If the deadline passes first
            StackPollFailed: If too many consecutive status queries failed
            StackPollCancelled: If the cancel event was set
        """
        policy = policy or self._policy
        cancel = cancel or self._cancel
        started = time.monotonic()
        transport_errors = 0

        while True:
            if cancel.is_set():
                raise StackPollCancelled("Stopped waiting for stack", target=stack_name)

            try:
                status = self._stacks.get_status(stack_name)
                transport_errors = 0
            except AWSError as e:
                transport_errors += 1
                logger.warning(
                    "Stack status query failed",
                    stack=stack_name,
                    attempt=attempt,
                    error=str(e),
                )
                if (
                    policy.max_transport_errors is not None
                    and transport_errors > policy.max_transport_errors
                ):
                    raise StackPollFailed(
                        "Unable to query stack status",
                        target=stack_name,
                        cause=e,
                        details={"consecutive_errors": transport_errors},
                    )
                status = None

            if status is not None:
                if status.is_terminal:
                    logger.debug("Stack settled", stack=stack_name, status=status.value)
                    return status
                if status == StackStatus.NOT_EXISTS and missing_is_deleted:
                    return StackStatus.DELETE_COMPLETE
                if status.is_in_progress:
                    logger.debug("Stack in progress", stack=stack_name, status=status.value)
                else:
                    logger.debug("Stack not visible yet", stack=stack_name)

            if policy.deadline is not None and time.monotonic() - started >= policy.deadline:
                raise StackPollTimeout(
                    f"Stack did not settle within {policy.deadline:g}s",
                    target=stack_name,
                    timeout_seconds=policy.deadline,
                )

            if cancel.wait(policy.delay_for(attempt)):
                raise StackPollCancelled("Stopped waiting for stack", target=stack_name)
            attempt += 1

    def apply_update(self, stack_name: str, template_url: str) -> bool:
        """Submit an update from an uploaded template. Does not wait."""
        accepted = self._stacks.update_stack(stack_name, template_url)
        if accepted:
            logger.info("Updating stack", stack=stack_name)
        return accepted

    def delete_stack(self, stack_name: str) -> bool:
        """Submit stack deletion. Does not wait."""
        accepted = self._stacks.delete_stack(stack_name)
        if accepted:
            logger.info("Deleting stack", stack=stack_name)
        return accepted
