"""gem 平台解析与匹配测试"""

from __future__ import annotations

import pytest

from gemnix.core.platforms import (
    PLATFORM_MAPPING,
    GemPlatform,
    expand_platforms,
    platform_equals,
    platform_matches,
)


class TestGemPlatformParse:
    @pytest.mark.parametrize("raw, expected", [
        ("x86_64-linux", GemPlatform("x86_64", "linux")),
        ("x86_64-linux-musl", GemPlatform("x86_64", "linux", "musl")),
        ("arm64-darwin-21", GemPlatform("arm64", "darwin", "21")),
        ("x86_64-darwin20", GemPlatform("x86_64", "darwin", "20")),
        ("universal-darwin", GemPlatform("universal", "darwin")),
        ("i686-linux", GemPlatform("x86", "linux")),
        ("java", GemPlatform(None, "java")),
        ("x64-mingw32", GemPlatform("x64", "mingw32")),
        ("x64-mingw-ucrt", GemPlatform("x64", "mingw", "ucrt")),
        ("x86-mswin32-60", GemPlatform("x86", "mswin32", "60")),
    ])
    def test_parse(self, raw: str, expected: GemPlatform) -> None:
        assert GemPlatform.parse(raw) == expected

    def test_str(self) -> None:
        assert str(GemPlatform.parse("arm64-darwin-21")) == "arm64-darwin-21"
        assert str(GemPlatform.parse("java")) == "java"


class TestMatching:
    def test_universal_cpu_matches_any(self) -> None:
        assert platform_matches("universal-darwin", "arm64-darwin")

    def test_os_version_wildcard(self) -> None:
        assert platform_matches("arm64-darwin", "arm64-darwin-21")

    def test_different_os_rejected(self) -> None:
        assert not platform_matches("x86_64-linux", "x86_64-darwin")

    def test_pure_only_matches_pure(self) -> None:
        assert platform_matches("ruby", "ruby")
        assert not platform_matches("ruby", "x86_64-linux")
        assert not platform_matches("x86_64-linux", "ruby")

    def test_equality_is_exact(self) -> None:
        assert platform_equals("x86_64-linux", "x86_64-linux")
        assert not platform_equals("universal-darwin", "arm64-darwin")
        assert not platform_equals("arm64-darwin", "arm64-darwin-21")


class TestExpandPlatforms:
    def test_engine_names(self) -> None:
        assert expand_platforms(["mri"]) == [{"engine": "ruby"}, {"engine": "maglev"}]

    def test_versioned_names(self) -> None:
        assert expand_platforms(["ruby_31"]) == [
            {"engine": "ruby", "version": "3.1"},
            {"engine": "rbx", "version": "3.1"},
            {"engine": "maglev", "version": "3.1"},
        ]

    def test_unknown_names_ignored(self) -> None:
        assert expand_platforms(["windows_95", "jruby"]) == [{"engine": "jruby"}]

    def test_mapping_not_mutated(self) -> None:
        expand_platforms(["mri"])[0]["engine"] = "changed"
        assert PLATFORM_MAPPING["mri"][0] == {"engine": "ruby"}
