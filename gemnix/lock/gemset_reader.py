"""读取上一次生成的 gemset.nix

通过 nix-instantiate 求值为 JSON 字符串再解析，文件不存在时返回空映射。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from gemnix.core.exceptions import ValidationError
from gemnix.lock.nixer import serialize
from gemnix.utils.shell import CommandExecutor, LocalExecutor, run_cmd

logger = logging.getLogger(__name__)

NIX_INSTANTIATE = "nix-instantiate"


def decode_nix_string(output: str) -> str:
    """把 nix-instantiate --eval 输出的 Nix 字符串字面量还原为原始文本"""
    text = output.strip()
    if len(text) < 2 or text[0] != '"' or text[-1] != '"':
        raise ValidationError(f"{NIX_INSTANTIATE} 输出不是字符串字面量: {text[:80]!r}")
    # Nix 的字符串转义是 JSON 的子集，外加 \$ ；先把 \$ 还原再按 JSON 解码
    return json.loads(text.replace("\\$", "$"))


def read_gemset(path: str | Path, executor: CommandExecutor | None = None) -> dict[str, Any]:
    """返回 name -> 条目字典；文件不存在返回 {}"""
    gemset = Path(path).expanduser().resolve()
    if not gemset.is_file():
        return {}

    expr = f"builtins.toJSON (import {serialize(str(gemset))})"
    output = run_cmd(
        executor or LocalExecutor(),
        [NIX_INSTANTIATE, "--eval", "-E", expr],
        label=NIX_INSTANTIATE,
    )
    data = json.loads(decode_nix_string(output))
    if not isinstance(data, dict):
        raise ValidationError(f"gemset 顶层不是属性集: {gemset}")
    logger.info("已加载现有 gemset: %s (%d 个包)", gemset, len(data))
    return data
