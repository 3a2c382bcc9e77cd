"""
Application Layer - Agent Executor Service

This module provides the service layer used by the CLI (and any other
driver) to execute tasks and inspect sessions.

The AgentExecutor:
- Creates agents using AgentFactory
- Executes the agent run loop with an optional event sink
- Lists persisted sessions
- Logs execution outcome and duration
"""

from datetime import datetime

import structlog

from taskpilot.application.factory import AgentFactory
from taskpilot.core.domain.cancellation import CancellationToken
from taskpilot.core.domain.models import AgentExecutionResult, SessionSummary
from taskpilot.core.interfaces.events import EventSinkProtocol

logger = structlog.get_logger()


class AgentExecutor:
    """Service layer orchestrating task execution.

    Decouples the domain run loop (TaskAgent) from presentation layers so
    every entrypoint gets the same behaviour and logging.
    """

    def __init__(self, factory: AgentFactory | None = None):
        """Initialize AgentExecutor with optional factory.

        Args:
            factory: Optional AgentFactory instance. If not provided,
                    creates a default factory from environment settings.
        """
        self.factory = factory or AgentFactory()
        self.logger = logger.bind(component="agent_executor")

    async def execute_task(
        self,
        task: str,
        session_id: str | None = None,
        model_name: str | None = None,
        event_sink: EventSinkProtocol | None = None,
        max_steps: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AgentExecutionResult:
        """Execute a task, optionally resuming an existing session.

        Args:
            task: What the agent should accomplish
            session_id: Session to resume; a new session is created if None
            model_name: Model override (defaults to settings.default_model)
            event_sink: Receives lifecycle events in real time
            max_steps: Step ceiling override
            cancel_token: Cooperative cancellation flag

        Returns:
            AgentExecutionResult of the completed run

        Raises:
            AgentError: Any fatal run failure, after it has been logged
        """
        start_time = datetime.now()
        agent = self.factory.create_agent(model_name=model_name, max_steps=max_steps)

        self.logger.info(
            "task.execution.started",
            task=task[:100],
            session_id=session_id,
            model=agent.model_name,
        )

        try:
            result = await agent.execute(
                task,
                session_id=session_id,
                event_sink=event_sink,
                cancel_token=cancel_token,
            )
        except Exception as e:
            self.logger.error(
                "task.execution.failed",
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=(datetime.now() - start_time).total_seconds(),
            )
            raise

        self.logger.info(
            "task.execution.completed",
            session_id=result.session_id,
            tool_calls=result.metadata.tool_call_count,
            duration_seconds=(datetime.now() - start_time).total_seconds(),
        )
        return result

    async def list_sessions(self) -> list[SessionSummary]:
        """Return session summaries, most recently updated first."""
        return await self.factory.session_store.list()

    async def close(self) -> None:
        await self.factory.close()
