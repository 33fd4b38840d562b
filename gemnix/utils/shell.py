"""Shell 命令执行工具 - 统一子进程调用

nix-prefetch-url / nix-prefetch-git / nix-hash / nix-instantiate
全部通过 CommandExecutor 协议调用，测试时注入 fake 实现即可，无需 patch subprocess。
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from gemnix.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议

    env 为完整的子进程环境；为 None 时继承当前进程环境。
    实现方不得修改 os.environ。
    """

    def execute(
        self,
        cmd: list[str],
        *,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


class LocalExecutor:
    """本地子进程执行器（默认实现）"""

    def execute(
        self,
        cmd: list[str],
        *,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        r = subprocess.run(
            cmd, capture_output=True, text=True, env=env, check=False,
        )
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor


# =========================================================================
# 便捷函数
# =========================================================================

def run_cmd(
    executor: CommandExecutor,
    cmd: list[str],
    *,
    env: dict[str, str] | None = None,
    label: str = "cmd",
) -> str:
    """执行命令，失败抛 ExecutionError，成功返回 stdout

    Args:
        executor: 命令执行器
        cmd: 参数列表
        env: 环境变量（不传则继承当前进程）
        label: 日志与错误信息中的标签
    """
    logger.debug("  $ %s", " ".join(cmd))
    r = executor.execute(cmd, env=env)
    if not r.success:
        logger.debug("  %s 输出: %s", label, r.stdout[:500])
        raise ExecutionError(f"{label}失败 (rc={r.returncode}): {r.stderr[:500]}")
    return r.stdout
