"""
Agent Factory

Builds the explicitly constructed set of collaborators a run needs
(request executor, model client, session store, tool layer) from
``TaskpilotSettings`` and wires them into a ``TaskAgent``.
"""

import httpx
import structlog

from taskpilot.application.settings import TaskpilotSettings
from taskpilot.core.domain.agent import TaskAgent
from taskpilot.core.interfaces.llm import ModelClientProtocol
from taskpilot.core.interfaces.sessions import SessionStoreProtocol
from taskpilot.core.interfaces.tools import ToolLayerProtocol
from taskpilot.infrastructure.llm.openai_client import OpenAIChatClient
from taskpilot.infrastructure.llm.request_executor import RequestExecutor
from taskpilot.infrastructure.persistence.file_session_store import FileSessionStore
from taskpilot.infrastructure.persistence.memory_session_store import InMemorySessionStore
from taskpilot.infrastructure.tools.registry import ToolRegistry

logger = structlog.get_logger()


class AgentFactory:
    """
    Creates TaskAgent instances with injected dependencies.

    The session store and model client are created once and shared by every
    agent this factory builds, so concurrent runs on distinct sessions share
    nothing else.
    """

    def __init__(
        self,
        settings: TaskpilotSettings | None = None,
        tool_layer: ToolLayerProtocol | None = None,
        session_store: SessionStoreProtocol | None = None,
        model_client: ModelClientProtocol | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or TaskpilotSettings()
        self.tool_layer = tool_layer or ToolRegistry()
        self._session_store = session_store
        self._model_client = model_client
        self._http_client = http_client
        self._executor: RequestExecutor | None = None
        self.logger = logger.bind(component="agent_factory")

    @property
    def session_store(self) -> SessionStoreProtocol:
        if self._session_store is None:
            self._session_store = self._create_session_store()
        return self._session_store

    @property
    def model_client(self) -> ModelClientProtocol:
        if self._model_client is None:
            self._model_client = self._create_model_client()
        return self._model_client

    def _create_session_store(self) -> SessionStoreProtocol:
        if self.settings.session_backend == "memory":
            self.logger.debug("session_store_created", backend="memory")
            return InMemorySessionStore()
        self.logger.debug(
            "session_store_created", backend="file", session_dir=self.settings.session_dir
        )
        return FileSessionStore(self.settings.session_dir)

    def _create_model_client(self) -> ModelClientProtocol:
        if not self.settings.api_key:
            self.logger.warning(
                "api_key_missing",
                hint="Set TASKPILOT_API_KEY or OPENAI_API_KEY for API access",
            )
        self._executor = RequestExecutor(
            http_client=self._http_client,
            debug_api=self.settings.debug_api,
        )
        return OpenAIChatClient(
            api_key=self.settings.api_key or "",
            executor=self._executor,
            base_url=self.settings.base_url,
            timeout=self.settings.request_timeout,
        )

    def create_agent(
        self,
        model_name: str | None = None,
        max_steps: int | None = None,
    ) -> TaskAgent:
        """Create a TaskAgent, falling back to settings for unset options."""
        return TaskAgent(
            model_client=self.model_client,
            session_store=self.session_store,
            tool_layer=self.tool_layer,
            model_name=model_name or self.settings.default_model,
            max_steps=max_steps if max_steps is not None else self.settings.max_steps,
            retry_config=self.settings.retry_config(),
            system_prompt=self.settings.system_prompt,
        )

    async def close(self) -> None:
        """Release the HTTP client created for the model API, if any."""
        if self._executor is not None:
            await self._executor.aclose()
