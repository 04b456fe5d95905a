"""
Tests for conversation history persistence.

Run with: pytest tests/test_history.py
"""

import json
import os
import stat
import sys

import pytest

from gpt_cli.errors import HistoryError
from gpt_cli.history import (
    format_history,
    load_conversation_history,
    normalize_history_name,
    save_conversation_history,
)
from gpt_cli.models.message import Message


@pytest.fixture
def conversation():
    return [
        Message.system("You are terse."),
        Message.user("Hi"),
        Message.assistant("Hello."),
        Message.image("data:image/png;base64,AAAA"),
    ]


class TestSaveAndLoad:

    def test_round_trip(self, tmp_path, conversation):
        name = str(tmp_path / "chat")
        save_conversation_history(name, conversation)
        assert load_conversation_history(name) == conversation

    def test_name_with_and_without_extension_match(self, tmp_path, conversation):
        save_conversation_history(str(tmp_path / "x"), conversation)
        assert (tmp_path / "x.json").exists()
        assert load_conversation_history(str(tmp_path / "x.json")) == conversation

    def test_json_shape(self, tmp_path):
        save_conversation_history(str(tmp_path / "c"), [Message.user("Hi")])
        data = json.loads((tmp_path / "c.json").read_text(encoding="utf-8"))
        assert data == [{"role": "user", "content": "Hi"}]

    def test_overwrites_previous_content(self, tmp_path, conversation):
        name = str(tmp_path / "c")
        save_conversation_history(name, conversation)
        save_conversation_history(name, [Message.user("only")])
        assert load_conversation_history(name) == [Message.user("only")]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_owner_only_permissions(self, tmp_path, conversation):
        path = save_conversation_history(str(tmp_path / "c"), conversation)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path, conversation):
        save_conversation_history(str(tmp_path / "c"), conversation)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["c.json"]

    def test_creates_parent_directory(self, tmp_path):
        path = save_conversation_history(str(tmp_path / "new" / "dir" / "c"), [Message.user("Hi")])
        assert os.path.exists(path)

    def test_save_requires_name(self):
        with pytest.raises(HistoryError):
            save_conversation_history("", [])


class TestLoadEdgeCases:

    def test_empty_name_touches_nothing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_conversation_history("") == []
        assert list(tmp_path.iterdir()) == []

    def test_missing_file(self, tmp_path):
        assert load_conversation_history(str(tmp_path / "nothing")) == []
        assert not (tmp_path / "nothing.json").exists()

    def test_invalid_json(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(HistoryError, match="not valid JSON"):
            load_conversation_history(str(tmp_path / "bad"))

    def test_not_a_list(self, tmp_path):
        (tmp_path / "obj.json").write_text('{"role": "user"}', encoding="utf-8")
        with pytest.raises(HistoryError):
            load_conversation_history(str(tmp_path / "obj"))

    def test_bad_role(self, tmp_path):
        (tmp_path / "r.json").write_text('[{"role": "robot", "content": "x"}]', encoding="utf-8")
        with pytest.raises(HistoryError, match="entry 0"):
            load_conversation_history(str(tmp_path / "r"))

    def test_invalid_utf8(self, tmp_path):
        (tmp_path / "u.json").write_bytes(b'[{"role": "user", "content": "\xff"}]')
        with pytest.raises(HistoryError, match="UTF-8"):
            load_conversation_history(str(tmp_path / "u"))


class TestHelpers:

    def test_normalize_adds_json(self):
        assert normalize_history_name("x") == "x.json"

    def test_normalize_keeps_extension(self):
        assert normalize_history_name("x.txt") == "x.txt"

    def test_format_history_summarizes_images(self, conversation):
        text = format_history(conversation)
        assert "[system]\nYou are terse." in text
        assert "[image: image/png]" in text
        assert "AAAA" not in text
