"""读取现有 gemset.nix 测试"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gemnix.core.exceptions import ExecutionError, ValidationError
from gemnix.lock.gemset_reader import decode_nix_string, read_gemset
from gemnix.utils.shell import CommandResult


def _nix_output(data) -> str:
    # nix-instantiate --eval 输出的字符串字面量；JSON 中的 "${" 会被转义为 "\${"
    return json.dumps(json.dumps(data)).replace("${", "\\${") + "\n"


class TestDecode:
    def test_unescapes_dollar(self) -> None:
        assert decode_nix_string(_nix_output({"a": "${x}"})) == '{"a": "${x}"}'

    def test_not_a_string_literal(self) -> None:
        with pytest.raises(ValidationError, match="不是字符串字面量"):
            decode_nix_string("{ a = 1; }")


class TestReadGemset:
    def test_missing_file_is_empty(self, tmp_path: Path, fake_executor) -> None:
        assert read_gemset(tmp_path / "gemset.nix", fake_executor) == {}
        assert fake_executor.calls == []

    def test_evaluates_with_nix_instantiate(self, tmp_path: Path, fake_executor) -> None:
        gemset = tmp_path / "gemset.nix"
        gemset.write_text("{ }\n")
        data = {"rake": {"version": "13.0.6", "source": None, "targets": []}}
        fake_executor.handlers["nix-instantiate"] = _nix_output(data)

        assert read_gemset(gemset, fake_executor) == data
        cmd = fake_executor.calls_to("nix-instantiate")[0]
        assert cmd[:3] == ["nix-instantiate", "--eval", "-E"]
        assert cmd[3] == f'builtins.toJSON (import "{gemset.resolve()}")'

    def test_path_with_spaces_is_quoted(self, tmp_path: Path, fake_executor) -> None:
        project = tmp_path / "my project"
        project.mkdir()
        gemset = project / "gemset.nix"
        gemset.write_text("{ }\n")
        fake_executor.handlers["nix-instantiate"] = _nix_output({})

        assert read_gemset(gemset, fake_executor) == {}
        expr = fake_executor.calls_to("nix-instantiate")[0][3]
        assert expr == f'builtins.toJSON (import "{gemset.resolve()}")'

    def test_top_level_must_be_attrset(self, tmp_path: Path, fake_executor) -> None:
        gemset = tmp_path / "gemset.nix"
        gemset.write_text("[ ]\n")
        fake_executor.handlers["nix-instantiate"] = _nix_output([])
        with pytest.raises(ValidationError, match="不是属性集"):
            read_gemset(gemset, fake_executor)

    def test_evaluation_failure(self, tmp_path: Path, fake_executor) -> None:
        gemset = tmp_path / "gemset.nix"
        gemset.write_text("{ broken\n")
        fake_executor.handlers["nix-instantiate"] = CommandResult(1, "", "syntax error")
        with pytest.raises(ExecutionError, match="nix-instantiate失败"):
            read_gemset(gemset, fake_executor)
