"""Tests for AgentFactory and AgentExecutor."""

import httpx
import pytest

from taskpilot.application.executor import AgentExecutor
from taskpilot.application.factory import AgentFactory
from taskpilot.application.settings import TaskpilotSettings
from taskpilot.core.domain.errors import SessionNotFoundError
from taskpilot.core.domain.event_sink import CollectingEventSink
from taskpilot.core.domain.models import ModelReply
from taskpilot.infrastructure.llm.openai_client import OpenAIChatClient
from taskpilot.infrastructure.persistence.file_session_store import FileSessionStore
from taskpilot.infrastructure.persistence.memory_session_store import InMemorySessionStore
from taskpilot.infrastructure.tools.registry import ToolRegistry


class StaticModelClient:
    def __init__(self, content: str = "done"):
        self.content = content
        self.models = []

    async def complete(self, transcript, tools, model, system_prompt=None, retry_config=None, cancel_token=None):
        self.models.append(model)
        return ModelReply(content=self.content)


@pytest.fixture
def settings(tmp_path):
    return TaskpilotSettings(
        api_key="sk-test",
        default_model="settings-model",
        session_dir=str(tmp_path / "sessions"),
        max_steps=7,
        retry_max_attempts=2,
    )


class TestAgentFactory:
    """Tests for AgentFactory wiring."""

    def test_creates_file_store_by_default(self, settings, tmp_path):
        factory = AgentFactory(settings)

        assert isinstance(factory.session_store, FileSessionStore)
        assert factory.session_store.session_dir == tmp_path / "sessions"
        assert factory.session_store is factory.session_store

    def test_memory_backend(self, settings):
        settings.session_backend = "memory"

        assert isinstance(AgentFactory(settings).session_store, InMemorySessionStore)

    def test_default_model_client(self, settings):
        factory = AgentFactory(settings)

        client = factory.model_client
        assert isinstance(client, OpenAIChatClient)
        assert client.api_key == "sk-test"

    def test_create_agent_applies_settings(self, settings):
        factory = AgentFactory(settings, model_client=StaticModelClient())

        agent = factory.create_agent()

        assert agent.model_name == "settings-model"
        assert agent.max_steps == 7
        assert agent.retry_config.max_attempts == 2
        assert isinstance(agent.tool_layer, ToolRegistry)

    def test_create_agent_overrides(self, settings):
        factory = AgentFactory(settings, model_client=StaticModelClient())

        agent = factory.create_agent(model_name="other", max_steps=3)

        assert agent.model_name == "other"
        assert agent.max_steps == 3

    def test_create_agent_rejects_explicit_zero_max_steps(self, settings):
        factory = AgentFactory(settings, model_client=StaticModelClient())

        with pytest.raises(ValueError, match="max_steps"):
            factory.create_agent(max_steps=0)

    @pytest.mark.asyncio
    async def test_close_leaves_injected_http_client_open(self, settings):
        http_client = httpx.AsyncClient()
        factory = AgentFactory(settings, http_client=http_client)
        factory.model_client

        await factory.close()

        assert not http_client.is_closed
        await http_client.aclose()


class TestAgentExecutor:
    """Tests for the AgentExecutor service layer."""

    @pytest.mark.asyncio
    async def test_execute_and_list_sessions(self, settings):
        model_client = StaticModelClient("all done")
        executor = AgentExecutor(
            AgentFactory(settings, session_store=InMemorySessionStore(), model_client=model_client)
        )
        sink = CollectingEventSink()

        result = await executor.execute_task("do it", model_name="cli-model", event_sink=sink)

        assert result.content == "all done"
        assert model_client.models == ["cli-model"]
        assert sink.types[-1] == "completed"

        sessions = await executor.list_sessions()
        assert [s.id for s in sessions] == [result.session_id]
        assert sessions[0].message_count == 2

    @pytest.mark.asyncio
    async def test_errors_propagate(self, settings):
        executor = AgentExecutor(
            AgentFactory(settings, session_store=InMemorySessionStore(), model_client=StaticModelClient())
        )

        with pytest.raises(SessionNotFoundError):
            await executor.execute_task("x", session_id="missing")

    @pytest.mark.asyncio
    async def test_sessions_persist_to_disk(self, settings):
        executor = AgentExecutor(AgentFactory(settings, model_client=StaticModelClient()))

        result = await executor.execute_task("persist me")

        reopened = AgentExecutor(AgentFactory(settings, model_client=StaticModelClient()))
        sessions = await reopened.list_sessions()
        assert sessions[0].id == result.session_id
        await executor.close()
