"""Result tests."""

from __future__ import annotations

import dataclasses
import signal

import pytest

from cmdstream import Result


def make_result(exit_status: int = 0) -> Result:
    return Result(stdout="out", stderr="err", output="outerr", exit_status=exit_status, pid=1234)


class TestResult:
    """Test the Result value object."""

    def test_success(self):
        assert make_result(0).success is True
        assert make_result(1).success is False
        assert make_result(-9).success is False

    def test_frozen(self):
        result = make_result()
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.stdout = "changed"  # type: ignore

    def test_equality(self):
        assert make_result(3) == make_result(3)
        assert make_result(3) != make_result(4)

    def test_signal(self):
        assert make_result(0).signal is None
        assert make_result(2).signal is None
        assert make_result(-signal.SIGTERM).signal is signal.SIGTERM

    def test_to_dict(self):
        data = make_result(-signal.SIGKILL).to_dict()
        assert data == {
            "pid": 1234,
            "exit_status": -signal.SIGKILL,
            "success": False,
            "signal": "SIGKILL",
            "stdout": "out",
            "stderr": "err",
            "output": "outerr",
        }

    def test_repr(self):
        assert "exit_status=0" in repr(make_result())
