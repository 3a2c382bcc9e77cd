"""
Task Agent - the run loop driving one task to completion.

Implements a single execution loop using native model tool calling:
1. Send the session transcript plus tool definitions to the model
2. If the model returns tool calls, execute them in order, append each
   result to the transcript and loop
3. If the model returns content only, that is the final answer

Every message is appended to the session store as soon as it exists, so
fatal paths (model errors, the step ceiling, cancellation) always leave a
consistent, resumable transcript behind. Tool failures are not fatal: they
become failed tool results the model can react to.
"""

import time
from dataclasses import dataclass, field

import structlog

from taskpilot.core.domain.cancellation import CancellationToken
from taskpilot.core.domain.errors import (
    AgentError,
    MaxStepsExceededError,
    RunCancelledError,
)
from taskpilot.core.domain.event_sink import NullEventSink
from taskpilot.core.domain.events import (
    AssistantMessage,
    Completed,
    ErrorEvent,
    Started,
    ToolCallCompleted,
    ToolCallStarted,
)
from taskpilot.core.domain.models import (
    AgentExecutionResult,
    ExecutionMetadata,
    Message,
    ModelReply,
    ToolCall,
    ToolResult,
    Usage,
)
from taskpilot.core.domain.run_state import RunState, RunStateMachine
from taskpilot.core.interfaces.events import EventSinkProtocol
from taskpilot.core.interfaces.llm import ModelClientProtocol
from taskpilot.core.interfaces.sessions import SessionStoreProtocol
from taskpilot.core.interfaces.tools import ToolLayerProtocol
from taskpilot.infrastructure.llm.retry_policy import DEFAULT_RETRY_CONFIG, RetryConfiguration
from taskpilot.infrastructure.tools.tool_converter import tool_result_to_message


@dataclass
class _RunContext:
    """Mutable bookkeeping for one run."""

    session_id: str
    is_resumed: bool
    started_at: float
    transcript: list[Message] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Usage | None = None
    steps: int = 0

    def add_usage(self, usage: Usage | None) -> None:
        if usage is None:
            return
        self.usage = usage if self.usage is None else self.usage + usage


class TaskAgent:
    """
    Agent run loop with injected collaborators.

    The model client, session store and tool layer are passed in at
    construction so each can be replaced by a fake in tests. One TaskAgent
    may serve several concurrent runs; all per-run state lives in a
    ``_RunContext``.
    """

    MAX_STEPS = 30  # Safety limit to prevent infinite loops

    def __init__(
        self,
        model_client: ModelClientProtocol,
        session_store: SessionStoreProtocol,
        tool_layer: ToolLayerProtocol,
        model_name: str,
        max_steps: int | None = None,
        retry_config: RetryConfiguration | None = None,
        system_prompt: str | None = None,
    ):
        """
        Args:
            model_client: Chat completions endpoint (wraps the request executor)
            session_store: Persistence for session transcripts
            tool_layer: Executor for model-requested tool calls
            model_name: Model identifier sent with every request
            max_steps: Maximum number of model calls per run
            retry_config: Retry settings for each model call
            system_prompt: Optional system prompt prepended to every request
        """
        self.model_client = model_client
        self.session_store = session_store
        self.tool_layer = tool_layer
        self.model_name = model_name
        self.max_steps = max_steps if max_steps is not None else self.MAX_STEPS
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be >= 1, got {self.max_steps}")
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self.system_prompt = system_prompt
        self.logger = structlog.get_logger().bind(component="task_agent")

    async def execute(
        self,
        task: str,
        session_id: str | None = None,
        event_sink: EventSinkProtocol | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AgentExecutionResult:
        """
        Run ``task`` to completion.

        Args:
            task: The user's goal, appended as a user message
            session_id: Existing session to resume; a new one is created if None
            event_sink: Receives lifecycle events in order
            cancel_token: Cooperative cancellation flag

        Returns:
            AgentExecutionResult for the completed run.

        Raises:
            SessionNotFoundError: ``session_id`` is unknown (nothing is mutated)
            MaxStepsExceededError: The model kept requesting tools
            RunCancelledError: ``cancel_token`` fired
            AgentError: Any fatal model API or session storage failure
            Exception: Unexpected collaborator failures, re-raised after the
                error event
        """
        sink = event_sink or NullEventSink()
        machine = RunStateMachine()

        try:
            if session_id is None:
                session = await self.session_store.create()
            else:
                session = await self.session_store.get(session_id)
        except Exception as error:
            machine.transition(RunState.FAILED)
            self.logger.error(
                "session_resolve_failed", session_id=session_id, error=_describe(error)
            )
            raise

        run = _RunContext(
            session_id=session.id,
            is_resumed=session_id is not None,
            started_at=time.monotonic(),
            transcript=list(session.transcript),
        )
        self.logger.info(
            "execute_start",
            session_id=run.session_id,
            resumed=run.is_resumed,
            task=task[:100],
        )

        try:
            await self._commit(run, [Message.user(task)])
            machine.transition(RunState.RUNNING)
            await sink.emit(Started(task=task))
            return await self._loop(run, machine, sink, cancel_token)
        except RunCancelledError:
            machine.transition(RunState.CANCELLED)
            self.logger.warning("execute_cancelled", session_id=run.session_id, step=run.steps)
            await sink.emit(ErrorEvent(message="cancelled"))
            raise
        except Exception as error:
            # A sink failure after completion leaves the run COMPLETED
            if not machine.is_terminal:
                machine.transition(RunState.FAILED)
            self.logger.error(
                "execute_failed",
                session_id=run.session_id,
                step=run.steps,
                error_kind=error.kind.value if isinstance(error, AgentError) else None,
                error_type=type(error).__name__,
                error=_describe(error),
            )
            await sink.emit(ErrorEvent(message=_describe(error)))
            raise

    async def _loop(
        self,
        run: _RunContext,
        machine: RunStateMachine,
        sink: EventSinkProtocol,
        cancel_token: CancellationToken | None,
    ) -> AgentExecutionResult:
        tool_definitions = self.tool_layer.definitions()

        while True:
            if cancel_token:
                cancel_token.raise_if_cancelled()
            if run.steps >= self.max_steps:
                raise MaxStepsExceededError(self.max_steps)

            run.steps += 1
            machine.transition(RunState.MODEL_CALL_PENDING)
            self.logger.info("loop_step", session_id=run.session_id, step=run.steps)

            reply = await self.model_client.complete(
                transcript=run.transcript,
                tools=tool_definitions,
                model=self.model_name,
                system_prompt=self.system_prompt,
                retry_config=self.retry_config,
                cancel_token=cancel_token,
            )
            run.add_usage(reply.usage)

            if reply.is_final:
                return await self._complete(run, machine, sink, reply)

            self.logger.info(
                "tool_calls_received",
                step=run.steps,
                count=len(reply.tool_calls),
                tools=[tc.name for tc in reply.tool_calls],
            )
            machine.transition(RunState.TOOL_DISPATCH_PENDING)
            await self._commit(run, [Message.assistant(reply.content, reply.tool_calls)])

            for tool_call in reply.tool_calls:
                await self._dispatch(run, sink, tool_call)

    async def _complete(
        self,
        run: _RunContext,
        machine: RunStateMachine,
        sink: EventSinkProtocol,
        reply: ModelReply,
    ) -> AgentExecutionResult:
        content = reply.content or ""
        if not content:
            self.logger.warning("empty_response", step=run.steps)

        await self._commit(run, [Message.assistant(content)])
        result = AgentExecutionResult(
            content=content,
            session_id=run.session_id,
            tool_calls=tuple(run.tool_calls),
            metadata=ExecutionMetadata(
                duration=time.monotonic() - run.started_at,
                tool_call_count=len(run.tool_calls),
                model_name=self.model_name,
                is_resumed=run.is_resumed,
            ),
            usage=run.usage,
        )
        machine.transition(RunState.COMPLETED)
        self.logger.info(
            "execute_complete",
            session_id=run.session_id,
            steps=run.steps,
            tool_calls=len(run.tool_calls),
        )

        await sink.emit(AssistantMessage(content=content))
        await sink.emit(Completed(result=result))
        return result

    async def _dispatch(
        self,
        run: _RunContext,
        sink: EventSinkProtocol,
        tool_call: ToolCall,
    ) -> None:
        await sink.emit(ToolCallStarted(name=tool_call.name, arguments=tool_call.arguments))
        result = await self._invoke_tool(tool_call)
        await sink.emit(ToolCallCompleted(tool_call_id=tool_call.id, result=result))

        await self._commit(run, [tool_result_to_message(tool_call.name, result)])
        run.tool_calls.append(tool_call)

    async def _invoke_tool(self, tool_call: ToolCall) -> ToolResult:
        """Invoke a tool, folding any failure into a failed ToolResult."""
        try:
            self.logger.info("tool_execute", tool=tool_call.name, tool_call_id=tool_call.id)
            result = await self.tool_layer.invoke(tool_call.name, tool_call.arguments)
        except Exception as e:
            self.logger.warning("tool_failed", tool=tool_call.name, error=str(e))
            return ToolResult.failure(str(e), tool_call_id=tool_call.id)

        if result.tool_call_id != tool_call.id:
            result = result.model_copy(update={"tool_call_id": tool_call.id})
        self.logger.info("tool_complete", tool=tool_call.name, success=result.success)
        return result

    async def _commit(self, run: _RunContext, messages: list[Message]) -> None:
        session = await self.session_store.append(run.session_id, messages)
        run.transcript = session.transcript


def _describe(error: Exception) -> str:
    if isinstance(error, AgentError):
        return error.message
    return f"{type(error).__name__}: {error}"
