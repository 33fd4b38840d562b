"""依赖约束闭包测试"""

from __future__ import annotations

import pytest

from gemnix.core.closure import DependencyClosureBuilder
from gemnix.core.exceptions import ClosureDivergedError, UnsatisfiedDependencyError
from gemnix.core.models import DependencyConstraint, LockedPackage, RegistryOrigin

_ORIGIN = RegistryOrigin(remotes=("https://rubygems.org",))


def _pkg(name: str, *deps: str, platform: str | None = None) -> LockedPackage:
    return LockedPackage(name, "1.0", _ORIGIN, platform, tuple(deps))


class TestPropagation:
    def test_transitive_dep_inherits_groups(self) -> None:
        declared = [DependencyConstraint("pry", groups=("development",))]
        packages = [_pkg("pry", "coderay"), _pkg("coderay")]
        result = DependencyClosureBuilder().build(declared, packages)
        assert result["pry"].groups == ("development",)
        assert result["coderay"].groups == ("development", "default")

    def test_default_group_alone_does_not_propagate(self) -> None:
        declared = [DependencyConstraint("rails")]
        packages = [_pkg("rails", "rack"), _pkg("rack")]
        result = DependencyClosureBuilder().build(declared, packages)
        assert result["rack"].groups == ("default",)

    def test_shared_dep_gets_union_of_parents(self) -> None:
        declared = [
            DependencyConstraint("rails"),
            DependencyConstraint("rspec", groups=("test",)),
            DependencyConstraint("pry", groups=("development",)),
        ]
        packages = [
            _pkg("rails", "rack"),
            _pkg("rspec", "rack"),
            _pkg("pry", "rack"),
            _pkg("rack"),
        ]
        result = DependencyClosureBuilder().build(declared, packages)
        assert set(result["rack"].groups) == {"default", "test", "development"}

    def test_platforms_propagate(self) -> None:
        declared = [DependencyConstraint("nokogiri", platforms=("mri",))]
        packages = [_pkg("nokogiri", "mini_portile2"), _pkg("mini_portile2")]
        result = DependencyClosureBuilder().build(declared, packages)
        assert result["mini_portile2"].platforms == ("mri",)

    def test_deep_chain(self) -> None:
        declared = [DependencyConstraint("a", groups=("test",))]
        packages = [_pkg("a", "b"), _pkg("b", "c"), _pkg("c", "d"), _pkg("d")]
        result = DependencyClosureBuilder().build(declared, packages)
        assert "test" in result["d"].groups

    def test_cycle_terminates(self) -> None:
        declared = [DependencyConstraint("a", groups=("test",))]
        packages = [_pkg("a", "b"), _pkg("b", "a")]
        result = DependencyClosureBuilder().build(declared, packages)
        assert "test" in result["b"].groups

    def test_edges_merged_across_platform_variants(self) -> None:
        declared = [DependencyConstraint("nokogiri", groups=("assets",))]
        packages = [
            _pkg("nokogiri", "racc", "mini_portile2"),
            _pkg("nokogiri", "racc", platform="x86_64-linux"),
            _pkg("racc"),
            _pkg("mini_portile2"),
        ]
        result = DependencyClosureBuilder().build(declared, packages)
        assert "assets" in result["racc"].groups
        assert "assets" in result["mini_portile2"].groups


class TestSeeding:
    def test_every_locked_name_covered(self) -> None:
        packages = [_pkg("orphan")]
        result = DependencyClosureBuilder().build([], packages)
        assert result["orphan"].groups == ("default",)
        assert result["orphan"].platforms == ()

    def test_build_tool_always_present(self) -> None:
        result = DependencyClosureBuilder().build([], [_pkg("rake")])
        assert "bundler" in result

    def test_dependency_on_build_tool_is_satisfied(self) -> None:
        packages = [_pkg("rails", "bundler")]
        result = DependencyClosureBuilder().build([DependencyConstraint("rails")], packages)
        assert result["bundler"].groups == ("default",)

    def test_custom_build_tool_name(self) -> None:
        packages = [_pkg("app", "gel")]
        result = DependencyClosureBuilder(build_tool="gel").build([], packages)
        assert "gel" in result


class TestFixpoint:
    def test_idempotent(self) -> None:
        declared = [
            DependencyConstraint("pry", groups=("development",)),
            DependencyConstraint("nokogiri", platforms=("mri", "mingw")),
        ]
        packages = [
            _pkg("pry", "coderay", "method_source"),
            _pkg("coderay"),
            _pkg("method_source"),
            _pkg("nokogiri", "racc"),
            _pkg("racc"),
        ]
        builder = DependencyClosureBuilder()
        first = builder.build(declared, packages)
        again = builder.build(
            [DependencyConstraint(n, c.groups, c.platforms) for n, c in first.items()],
            packages,
        )
        assert again == first

    def test_redundant_edge_does_not_change_result(self) -> None:
        declared = [DependencyConstraint("rails", groups=("web",))]
        base = [_pkg("rails", "actionpack"), _pkg("actionpack", "rack"), _pkg("rack")]
        redundant = [
            _pkg("rails", "actionpack", "rack"),
            _pkg("actionpack", "rack"),
            _pkg("rack"),
        ]
        builder = DependencyClosureBuilder()
        assert builder.build(declared, base) == builder.build(declared, redundant)

    def test_divergence_is_reported(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            DependencyClosureBuilder, "_iteration_cap", staticmethod(lambda graph: 0),
        )
        with pytest.raises(ClosureDivergedError, match="未收敛"):
            DependencyClosureBuilder().build([], [_pkg("a")])


class TestUnsatisfied:
    def test_unknown_dependency_is_fatal(self) -> None:
        packages = [_pkg("rails", "ghost")]
        with pytest.raises(UnsatisfiedDependencyError, match="ghost") as exc:
            DependencyClosureBuilder(lockfile="Gemfile.lock").build([], packages)
        assert exc.value.name == "ghost"
        assert exc.value.code == "UNSATISFIED_DEPENDENCY"

    def test_declared_but_unlocked_dependency_is_satisfied(self) -> None:
        declared = [DependencyConstraint("ghost")]
        packages = [_pkg("rails", "ghost")]
        result = DependencyClosureBuilder().build(declared, packages)
        assert "ghost" in result
