"""测试公共 fixture - 可编程的 fake 命令执行器"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from gemnix.utils.shell import CommandResult


class FakeExecutor:
    """按程序名分派的 fake 执行器，记录全部调用

    handlers 的值可以是固定 stdout 字符串、CommandResult，
    或者接收 cmd 返回二者之一的函数。未注册的程序返回 127。
    """

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], dict[str, str] | None]] = []
        self.handlers: dict[str, str | CommandResult | Callable[[list[str]], object]] = {
            # nix-hash --to-base32 原样回显（输入已是 base32）
            "nix-hash": lambda cmd: cmd[-1] + "\n",
        }

    def execute(self, cmd: list[str], *, env: dict[str, str] | None = None) -> CommandResult:
        self.calls.append((list(cmd), env))
        handler = self.handlers.get(cmd[0])
        if handler is None:
            return CommandResult(127, "", f"{cmd[0]}: command not found")
        out = handler(cmd) if callable(handler) else handler
        if isinstance(out, CommandResult):
            return out
        return CommandResult(0, str(out), "")

    def calls_to(self, program: str) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls if cmd[0] == program]


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()
