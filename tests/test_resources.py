"""
Tests for file, vector store and assistant managers.

The SDK client is a MagicMock; list endpoints return plain lists, which
iterate the same way the SDK's paginators do.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from conftest import make_completion
from gpt_cli.config import AssistantConfig, ConfigDocument
from gpt_cli.errors import (
    EmptyResponseError,
    FileReadError,
    RemoteRequestError,
    ResourceError,
    RunTimeoutError,
)
from gpt_cli.resources.assistants import AssistantManager, AssistantSpec
from gpt_cli.resources.files import FileManager
from gpt_cli.resources.vector_stores import VectorStoreManager, auto_store_name


def _api_error():
    return openai.APIConnectionError(request=httpx.Request("GET", "https://api.openai.com/v1/files"))


def _file(file_id, filename):
    return SimpleNamespace(id=file_id, filename=filename, bytes=10, purpose="assistants", status="processed")


def _store(store_id, name):
    return SimpleNamespace(id=store_id, name=name, status="completed")


class FakeClock:
    """Monotonic clock that advances only when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


# ════════════════════════════════════════════════════════════════════════════
# FILES
# ════════════════════════════════════════════════════════════════════════════


class TestFileManager:

    def test_upload_file(self, fake_openai, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("hello", encoding="utf-8")
        fake_openai.files.create.return_value = _file("file-1", "notes.md")

        uploaded = FileManager(fake_openai).upload_file(str(path))

        assert uploaded.id == "file-1"
        assert fake_openai.files.create.call_args.kwargs["purpose"] == "assistants"

    def test_upload_missing_file(self, fake_openai, tmp_path):
        with pytest.raises(FileReadError):
            FileManager(fake_openai).upload_file(str(tmp_path / "nope.md"))
        fake_openai.files.create.assert_not_called()

    def test_upload_files_checks_all_paths_first(self, fake_openai, tmp_path):
        good = tmp_path / "a.md"
        good.write_text("a", encoding="utf-8")

        with pytest.raises(FileReadError):
            FileManager(fake_openai).upload_files([str(good), str(tmp_path / "missing.md")])

        fake_openai.files.create.assert_not_called()

    def test_upload_error_wrapped(self, fake_openai, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("a", encoding="utf-8")
        fake_openai.files.create.side_effect = _api_error()

        with pytest.raises(RemoteRequestError):
            FileManager(fake_openai).upload_file(str(path))

    def test_delete_by_name_only_matches(self, fake_openai):
        fake_openai.files.list.return_value = [
            _file("f1", "draft-1.md"),
            _file("f2", "final.md"),
            _file("f3", "draft-2.md"),
        ]

        deleted = FileManager(fake_openai).delete_files_by_name("draft-*")

        assert [f.id for f in deleted] == ["f1", "f3"]
        assert [c.args[0] for c in fake_openai.files.delete.call_args_list] == ["f1", "f3"]

    def test_delete_by_name_collects_failures(self, fake_openai):
        fake_openai.files.list.return_value = [_file("f1", "a.md"), _file("f2", "b.md")]
        fake_openai.files.delete.side_effect = [_api_error(), None]

        with pytest.raises(ResourceError, match="a.md"):
            FileManager(fake_openai).delete_files_by_name("*.md")

        assert fake_openai.files.delete.call_count == 2


# ════════════════════════════════════════════════════════════════════════════
# VECTOR STORES
# ════════════════════════════════════════════════════════════════════════════


class TestVectorStoreManager:

    def test_get_or_create_existing(self, fake_openai):
        fake_openai.vector_stores.list.return_value = [_store("vs_1", "other"), _store("vs_2", "docs")]

        store = VectorStoreManager(fake_openai).get_or_create("docs")

        assert store.id == "vs_2"
        fake_openai.vector_stores.create.assert_not_called()

    def test_get_or_create_new(self, fake_openai):
        fake_openai.vector_stores.list.return_value = []
        fake_openai.vector_stores.create.return_value = _store("vs_9", "docs")

        assert VectorStoreManager(fake_openai).get_or_create("docs").id == "vs_9"
        fake_openai.vector_stores.create.assert_called_once_with(name="docs")

    def test_resolve_requires_id_or_name(self, fake_openai):
        with pytest.raises(ResourceError):
            VectorStoreManager(fake_openai).resolve()

    def test_resolve_by_id(self, fake_openai):
        fake_openai.vector_stores.retrieve.return_value = _store("vs_1", "x")
        assert VectorStoreManager(fake_openai).resolve(vector_store_id="vs_1").id == "vs_1"

    def test_add_files(self, fake_openai):
        VectorStoreManager(fake_openai).add_files("vs_1", ["f1", "f2"])
        calls = fake_openai.vector_stores.files.create.call_args_list
        assert [c.kwargs for c in calls] == [
            {"vector_store_id": "vs_1", "file_id": "f1"},
            {"vector_store_id": "vs_1", "file_id": "f2"},
        ]

    def test_upload_and_add_auto_name(self, fake_openai, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("a", encoding="utf-8")
        fake_openai.files.create.return_value = _file("f1", "a.md")
        fake_openai.vector_stores.list.return_value = []
        fake_openai.vector_stores.create.side_effect = lambda name: _store("vs_new", name)

        store = VectorStoreManager(fake_openai).upload_and_add([str(path)])

        assert store.name.startswith("Auto-Generated Vector Store ")
        fake_openai.vector_stores.files.create.assert_called_once_with(vector_store_id="vs_new", file_id="f1")

    def test_auto_store_name(self):
        assert auto_store_name(1700000000.5) == "Auto-Generated Vector Store 1700000000"

    def test_list_error_wrapped(self, fake_openai):
        fake_openai.vector_stores.list.side_effect = _api_error()
        with pytest.raises(RemoteRequestError):
            VectorStoreManager(fake_openai).list()


# ════════════════════════════════════════════════════════════════════════════
# ASSISTANTS
# ════════════════════════════════════════════════════════════════════════════


class TestResolveCreateOptions:

    @pytest.fixture
    def config(self):
        return ConfigDocument(
            assistants={
                "helper": AssistantConfig(
                    name="helper",
                    description="from config",
                    model="gpt-4o-mini",
                    instruction="be helpful",
                    temperature=0.2,
                    vector_store_name="docs",
                )
            }
        )

    def test_config_entry_with_cli_override(self, config):
        spec = AssistantManager.resolve_create_options(config, "helper", model="gpt-4o", temperature=0.0)
        assert spec.model == "gpt-4o"
        assert spec.temperature == 0.0
        assert spec.description == "from config"
        assert spec.vector_store_name == "docs"

    def test_no_entry_lists_missing_flags(self, config):
        with pytest.raises(ResourceError) as exc:
            AssistantManager.resolve_create_options(config, "new", model="gpt-4o")
        message = str(exc.value)
        for flag in ("--description", "--instruction", "--temperature", "--vector-store-name"):
            assert flag in message
        assert "--model" not in message

    def test_no_entry_all_flags(self, config):
        spec = AssistantManager.resolve_create_options(
            config, "new", description="d", model="m", instruction="i",
            temperature=0.5, vector_store_id="vs_1",
        )
        assert spec == AssistantSpec("new", "d", "m", "i", 0.5, "", "vs_1")

    def test_name_required(self, config):
        with pytest.raises(ResourceError):
            AssistantManager.resolve_create_options(config, "")


class TestAssistantManager:

    def test_create_attaches_tools_and_store(self, fake_openai):
        fake_openai.vector_stores.list.return_value = [_store("vs_7", "docs")]
        fake_openai.beta.assistants.create.return_value = SimpleNamespace(id="asst_1")
        spec = AssistantSpec("helper", "d", "gpt-4o", "be brief", 0.3, vector_store_name="docs")

        created = AssistantManager(fake_openai).create(spec)

        assert created.id == "asst_1"
        kwargs = fake_openai.beta.assistants.create.call_args.kwargs
        assert kwargs["tools"] == [{"type": "code_interpreter"}, {"type": "file_search"}]
        assert kwargs["tool_resources"] == {"file_search": {"vector_store_ids": ["vs_7"]}}
        assert kwargs["instructions"] == "be brief"
        assert kwargs["temperature"] == 0.3

    def test_create_checks_given_store_id(self, fake_openai):
        fake_openai.vector_stores.retrieve.return_value = _store("vs_3", "docs")
        fake_openai.beta.assistants.create.return_value = SimpleNamespace(id="asst_1")
        spec = AssistantSpec("helper", "d", "gpt-4o", "i", 0.3, vector_store_id="vs_3")

        AssistantManager(fake_openai).create(spec)

        fake_openai.vector_stores.retrieve.assert_called_once_with("vs_3")
        fake_openai.vector_stores.list.assert_not_called()
        kwargs = fake_openai.beta.assistants.create.call_args.kwargs
        assert kwargs["tool_resources"] == {"file_search": {"vector_store_ids": ["vs_3"]}}

    def test_create_unknown_store_id(self, fake_openai):
        fake_openai.vector_stores.retrieve.side_effect = _api_error()
        spec = AssistantSpec("helper", "d", "gpt-4o", "i", 0.3, vector_store_id="vs_gone")

        with pytest.raises(RemoteRequestError, match="vs_gone"):
            AssistantManager(fake_openai).create(spec)
        fake_openai.beta.assistants.create.assert_not_called()

    def test_resolve_id_by_name(self, fake_openai):
        fake_openai.beta.assistants.list.return_value = [
            SimpleNamespace(id="asst_1", name="a"),
            SimpleNamespace(id="asst_2", name="b"),
        ]
        assert AssistantManager(fake_openai).resolve_id(name="b") == "asst_2"

    def test_resolve_id_unknown_name(self, fake_openai):
        fake_openai.beta.assistants.list.return_value = []
        with pytest.raises(ResourceError, match="ghost"):
            AssistantManager(fake_openai).resolve_id(name="ghost")

    def test_chat_once_uses_assistant_settings(self, fake_openai):
        fake_openai.beta.assistants.retrieve.return_value = SimpleNamespace(model="gpt-4o-mini", top_p=0.9)

        reply = AssistantManager(fake_openai).chat_once("asst_1", "Hi")

        assert reply == "Hi there"
        kwargs = fake_openai.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["top_p"] == 0.9
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]

    def test_chat_once_empty_choices(self, fake_openai):
        fake_openai.beta.assistants.retrieve.return_value = SimpleNamespace(model="m", top_p=None)
        fake_openai.chat.completions.create.return_value = make_completion(choices=False)
        with pytest.raises(EmptyResponseError):
            AssistantManager(fake_openai).chat_once("asst_1", "Hi")


class TestRunPolling:

    def _manager(self, fake_openai, statuses):
        clock = FakeClock()
        fake_openai.beta.threads.runs.retrieve.side_effect = [
            SimpleNamespace(id="run_1", status=s) for s in statuses
        ]
        return AssistantManager(fake_openai, sleep=clock.sleep, clock=clock), clock

    def test_polls_until_done(self, fake_openai):
        manager, clock = self._manager(fake_openai, ["queued", "in_progress", "completed"])

        run = manager.wait_for_run("thread_1", "run_1", poll_interval=0.5)

        assert run.status == "completed"
        assert clock.sleeps == [0.5, 0.5]
        fake_openai.beta.threads.runs.retrieve.assert_called_with("run_1", thread_id="thread_1")

    def test_timeout(self, fake_openai):
        manager, clock = self._manager(fake_openai, ["in_progress"] * 10)

        with pytest.raises(RunTimeoutError) as exc:
            manager.wait_for_run("thread_1", "run_1", poll_interval=1.0, timeout=2.5)

        assert exc.value.status == "in_progress"
        assert clock.now >= 2.5
        assert len(clock.sleeps) == 3

    def test_ask_returns_latest_assistant_reply(self, fake_openai):
        manager, _ = self._manager(fake_openai, ["completed"])
        fake_openai.beta.threads.runs.create.return_value = SimpleNamespace(id="run_1", status="queued")
        text_part = SimpleNamespace(type="text", text=SimpleNamespace(value="the answer"))
        fake_openai.beta.threads.messages.list.return_value = [
            SimpleNamespace(role="assistant", content=[text_part]),
            SimpleNamespace(role="user", content=[SimpleNamespace(type="text", text=SimpleNamespace(value="q"))]),
        ]

        reply = manager.ask("thread_1", "asst_1", "question")

        assert reply == "the answer"
        fake_openai.beta.threads.messages.create.assert_called_once_with(
            "thread_1", role="user", content="question"
        )
        fake_openai.beta.threads.messages.list.assert_called_once_with("thread_1", order="desc")

    def test_ask_failed_run(self, fake_openai):
        manager, _ = self._manager(fake_openai, ["failed"])
        fake_openai.beta.threads.runs.create.return_value = SimpleNamespace(id="run_1", status="queued")

        with pytest.raises(ResourceError, match="failed"):
            manager.ask("thread_1", "asst_1", "question")

    def test_latest_reply_none(self, fake_openai):
        fake_openai.beta.threads.messages.list.return_value = []
        assert AssistantManager(fake_openai).latest_reply("thread_1") is None
