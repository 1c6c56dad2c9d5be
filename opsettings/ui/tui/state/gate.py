"""
Confirmation gate for irreversible actions.

``IDLE -> PROMPTED -> EXECUTING -> IDLE`` (or ``PROMPTED -> IDLE`` on cancel or
when the action cannot be started).
At most one action is prompted or in flight per gate; triggers that arrive
meanwhile are ignored. Every outcome is reported as a ``GateResult``.
"""

from __future__ import annotations

import itertools
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Literal, Optional, Protocol, Union

from opsettings.errors import ExternalActionFailed
from opsettings.logging import format_exception_summary, get_logger

logger = get_logger(__name__)

Outcome = Literal["completed", "failed", "cancelled"]
ActionDone = Callable[[Optional[int], Optional[BaseException]], None]


class GateState(str, Enum):
    IDLE = "idle"
    PROMPTED = "prompted"
    EXECUTING = "executing"


@dataclass(frozen=True)
class PendingAction:
    """A user-requested operation awaiting confirmation."""

    action_id: str
    prompt: Union[str, Callable[[], str]]
    run: Callable[[], int]
    confirm_text: str = "OK"

    def resolve_prompt(self) -> str:
        return self.prompt() if callable(self.prompt) else self.prompt


@dataclass(frozen=True)
class GateResult:
    """Typed outcome of one gated action."""

    action_id: str
    outcome: Outcome
    exit_status: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == "completed"


class ActionExecutor(Protocol):
    def submit(self, fn: Callable[[], int], done: ActionDone) -> None:
        ...


class InlineExecutor:
    """Runs actions synchronously on the calling thread."""

    def submit(self, fn: Callable[[], int], done: ActionDone) -> None:
        try:
            status = fn()
        except Exception as exc:
            done(None, exc)
            return
        done(status, None)


class ConfirmationGate:
    """Per-control gate holding at most one pending or running action."""

    HISTORY_LIMIT = 32

    def __init__(
        self,
        gate_id: str,
        *,
        executor: Optional[ActionExecutor] = None,
        on_result: Optional[Callable[[GateResult], None]] = None,
    ) -> None:
        self.gate_id = gate_id
        self.executor: ActionExecutor = executor or InlineExecutor()
        self.on_result = on_result
        self._state = GateState.IDLE
        self._pending: Optional[PendingAction] = None
        self._tokens = itertools.count(1)
        self._token = 0
        self.history: deque[GateResult] = deque(maxlen=self.HISTORY_LIMIT)

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def pending(self) -> Optional[PendingAction]:
        return self._pending

    @property
    def busy(self) -> bool:
        return self._state is not GateState.IDLE

    def trigger(self, action: PendingAction) -> Optional[str]:
        """Enter PROMPTED and return the prompt; None when already busy."""
        if self._state is not GateState.IDLE:
            logger.debug("%s busy (%s); ignoring %s", self.gate_id, self._state.value, action.action_id)
            return None
        prompt = action.resolve_prompt()
        self._pending = action
        self._state = GateState.PROMPTED
        return prompt

    def cancel(self) -> Optional[GateResult]:
        if self._state is not GateState.PROMPTED or self._pending is None:
            return None
        result = GateResult(action_id=self._pending.action_id, outcome="cancelled")
        self._finish(result)
        return result

    def fail(self, error: BaseException) -> Optional[GateResult]:
        """Drop the prompted action because it could not be started."""
        if self._state is not GateState.PROMPTED or self._pending is None:
            return None
        logger.warning("%s could not start: %s", self._pending.action_id, format_exception_summary(error))
        result = GateResult(
            action_id=self._pending.action_id,
            outcome="failed",
            exit_status=getattr(error, "exit_status", None),
            error=str(error),
        )
        self._finish(result)
        return result

    def confirm(self) -> Optional[GateResult]:
        """Submit the pending action; returns its result if it finished inline."""
        if self._state is not GateState.PROMPTED or self._pending is None:
            return None
        action = self._pending
        self._state = GateState.EXECUTING
        self._token = next(self._tokens)
        token = self._token
        logger.info("%s confirmed %s", self.gate_id, action.action_id)

        finished: list[GateResult] = []

        def _done(status: Optional[int], error: Optional[BaseException]) -> None:
            result = self._complete(token, action, status, error)
            if result is not None:
                finished.append(result)

        try:
            self.executor.submit(action.run, _done)
        except Exception as exc:
            _done(None, exc)
        return finished[0] if finished else None

    def _complete(
        self,
        token: int,
        action: PendingAction,
        status: Optional[int],
        error: Optional[BaseException],
    ) -> Optional[GateResult]:
        if self._state is not GateState.EXECUTING or token != self._token:
            return None
        if error is None and status not in (None, 0):
            error = ExternalActionFailed(
                f"{action.action_id} failed with exit status {status}", exit_status=status
            )
        if error is not None:
            logger.warning("%s failed: %s", action.action_id, format_exception_summary(error))
            result = GateResult(
                action_id=action.action_id,
                outcome="failed",
                exit_status=getattr(error, "exit_status", status),
                error=str(error),
            )
        else:
            result = GateResult(action_id=action.action_id, outcome="completed", exit_status=status or 0)
        self._finish(result)
        return result

    def _finish(self, result: GateResult) -> None:
        self._pending = None
        self._state = GateState.IDLE
        self.history.append(result)
        if self.on_result is not None:
            self.on_result(result)
