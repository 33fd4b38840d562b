"""shell.py 执行器与 run_cmd 测试"""

from __future__ import annotations

import os

import pytest

from gemnix.core.exceptions import ExecutionError
from gemnix.utils.shell import LocalExecutor, get_executor, run_cmd, set_executor


class TestLocalExecutor:
    def test_success(self) -> None:
        r = LocalExecutor().execute(["echo", "hello"])
        assert r.success
        assert "hello" in r.stdout

    def test_failure(self) -> None:
        r = LocalExecutor().execute(["false"])
        assert not r.success

    def test_env_passed(self) -> None:
        env = {**os.environ, "MY_TEST_VAR": "42"}
        r = LocalExecutor().execute(["env"], env=env)
        assert "MY_TEST_VAR=42" in r.stdout
        assert "MY_TEST_VAR" not in os.environ


class TestRunCmd:
    def test_returns_stdout(self) -> None:
        assert run_cmd(LocalExecutor(), ["echo", "hello"]).strip() == "hello"

    def test_failure_raises_execution_error(self) -> None:
        with pytest.raises(ExecutionError, match="cmd失败"):
            run_cmd(LocalExecutor(), ["false"])

    def test_custom_label_in_error(self, fake_executor) -> None:
        with pytest.raises(ExecutionError, match="nix-prefetch-url失败 \\(rc=127\\)"):
            run_cmd(fake_executor, ["nix-prefetch-url", "x"], label="nix-prefetch-url")

    def test_env_forwarded(self, fake_executor) -> None:
        fake_executor.handlers["tool"] = "ok"
        run_cmd(fake_executor, ["tool"], env={"HOME": "/tmp/h"})
        assert fake_executor.calls == [(["tool"], {"HOME": "/tmp/h"})]


class TestDefaultExecutor:
    def test_replace_and_restore(self, fake_executor) -> None:
        original = get_executor()
        set_executor(fake_executor)
        try:
            assert get_executor() is fake_executor
        finally:
            set_executor(original)
        assert isinstance(get_executor(), LocalExecutor)
