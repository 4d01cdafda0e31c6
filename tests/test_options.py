"""ProcessOptions tests."""

from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

import pytest

from cmdstream import Process, ProcessEvent, ProcessOptions
from cmdstream.config import reload_config


class TestProcessOptions:
    """Test option coercion and immutability."""

    def test_frozen(self):
        options = ProcessOptions("echo hi")
        with pytest.raises(AttributeError):
            options.command = "other"  # type: ignore

    def test_env_read_only(self):
        options = ProcessOptions("echo hi", env={"A": "1"})
        with pytest.raises(TypeError):
            options.env["A"] = "2"  # type: ignore

    def test_command_coerced(self):
        assert ProcessOptions(Path("/bin/true")).command == "/bin/true"

    def test_sequence_command_quoted(self):
        assert ProcessOptions(["echo", "a b", 3]).command == "echo 'a b' 3"

    def test_env_defaults_to_os_environ(self):
        with mock.patch.dict(os.environ, {"CMDSTREAM_TEST_VAR": "x"}):
            options = ProcessOptions("true")
        assert options.env["CMDSTREAM_TEST_VAR"] == "x"
        assert "CMDSTREAM_TEST_VAR" not in os.environ

    def test_env_overrides_merged(self):
        with mock.patch.dict(os.environ, {"KEEP": "1", "FOO": "old"}):
            options = ProcessOptions("true", env={"FOO": "new", 1: 2})
        assert options.env["KEEP"] == "1"
        assert options.env["FOO"] == "new"
        assert options.env["1"] == "2"

    def test_no_inherit(self):
        options = ProcessOptions("true", env={"ONLY": "me"}, inherit_env=False)
        assert dict(options.env) == {"ONLY": "me"}

    def test_cwd_coerced(self, tmp_path: Path):
        assert ProcessOptions("true", cwd=str(tmp_path)).cwd == tmp_path
        assert ProcessOptions("true").cwd is None

    def test_events_from_mapping(self):
        options = ProcessOptions("true", events={"stdout": print, ProcessEvent.EXIT: repr})
        assert options.events == (("stdout", print), (ProcessEvent.EXIT, repr))

    def test_events_from_pairs(self):
        options = ProcessOptions("true", events=[("stdout", print), ("stdout", repr)])
        assert [listener for _, listener in options.events] == [print, repr]

    def test_events_must_be_callable(self):
        with pytest.raises(TypeError):
            ProcessOptions("true", events={"stdout": "not callable"})

    def test_encoding_default_from_config(self, monkeypatch: pytest.MonkeyPatch):
        assert ProcessOptions("true").encoding == "utf-8"
        monkeypatch.setenv("CMDSTREAM_ENCODING", "latin-1")
        reload_config()
        assert ProcessOptions("true").encoding == "iso8859-1"

    def test_create(self):
        process = ProcessOptions("true").create()
        assert isinstance(process, Process)
        assert process.options.command == "true"

    def test_repr_hides_env(self):
        text = repr(ProcessOptions("true", env={"SECRET": "value"}))
        assert "value" not in text
