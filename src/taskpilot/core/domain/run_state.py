"""Run lifecycle states and the allowed transitions between them."""

from enum import Enum

import structlog


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    MODEL_CALL_PENDING = "model_call_pending"
    TOOL_DISPATCH_PENDING = "tool_dispatch_pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED})

_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.RUNNING, RunState.FAILED}),
    RunState.RUNNING: frozenset(
        {RunState.MODEL_CALL_PENDING, RunState.FAILED, RunState.CANCELLED}
    ),
    RunState.MODEL_CALL_PENDING: frozenset(
        {
            RunState.TOOL_DISPATCH_PENDING,
            RunState.COMPLETED,
            RunState.FAILED,
            RunState.CANCELLED,
        }
    ),
    RunState.TOOL_DISPATCH_PENDING: frozenset(
        {RunState.MODEL_CALL_PENDING, RunState.FAILED, RunState.CANCELLED}
    ),
    RunState.COMPLETED: frozenset(),
    RunState.FAILED: frozenset(),
    RunState.CANCELLED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    pass


class RunStateMachine:
    """Tracks the state of a single run and rejects illegal transitions."""

    def __init__(self, run_id: str | None = None):
        self.state = RunState.IDLE
        self.history: list[RunState] = [RunState.IDLE]
        self.logger = structlog.get_logger().bind(component="run_state", run_id=run_id)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, target: RunState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"{self.state.value} -> {target.value}")
        self.logger.debug("state_transition", source=self.state.value, target=target.value)
        self.state = target
        self.history.append(target)
