"""依赖约束闭包

Gemfile 只为顶层依赖声明 group / platform，传递依赖需要继承所有祖先的约束。
这里把锁定包组织成显式的图（name -> 约束 + 出边），反复做并集直到不动点。

并集单调且取值域有限，迭代必然收敛；超过上限说明实现有缺陷，
抛 ClosureDivergedError 而不是死循环。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from gemnix.core.exceptions import ClosureDivergedError, UnsatisfiedDependencyError
from gemnix.core.models import DependencyConstraint, EffectiveConstraint, LockedPackage

logger = logging.getLogger(__name__)


@dataclass
class ConstraintNode:
    """约束图节点"""

    constraint: EffectiveConstraint
    edges: tuple[str, ...] = ()


class DependencyClosureBuilder:
    """计算每个锁定包名的有效约束"""

    def __init__(self, build_tool: str = "bundler", lockfile: str = "") -> None:
        self.build_tool = build_tool
        self.lockfile = lockfile

    def build(
        self,
        declared: Iterable[DependencyConstraint],
        packages: Iterable[LockedPackage],
    ) -> dict[str, EffectiveConstraint]:
        """返回 name -> EffectiveConstraint，覆盖全部锁定包名以及构建工具伪依赖"""
        packages = list(packages)
        graph = self._seed(declared, packages)
        self._check_edges(graph)

        cap = self._iteration_cap(graph)
        for iteration in range(1, cap + 1):
            if not self._propagate(graph):
                logger.debug("约束闭包在第 %d 轮收敛 (%d 个包)", iteration, len(graph))
                return {name: node.constraint for name, node in graph.items()}
        raise ClosureDivergedError(f"约束闭包超过 {cap} 轮仍未收敛")

    def _seed(
        self,
        declared: Iterable[DependencyConstraint],
        packages: list[LockedPackage],
    ) -> dict[str, ConstraintNode]:
        graph: dict[str, ConstraintNode] = {}
        for dep in declared:
            graph[dep.name] = ConstraintNode(
                EffectiveConstraint(dep.name, tuple(dep.groups), tuple(dep.platforms)),
            )
        for pkg in packages:
            node = graph.setdefault(pkg.name, ConstraintNode(EffectiveConstraint(pkg.name)))
            # 同名多平台变体共享一个节点，出边取并集
            node.edges = tuple(dict.fromkeys(node.edges + pkg.dependencies))
        # 构建工具不出现在锁定 specs 中，但总是隐式可用
        graph.setdefault(self.build_tool, ConstraintNode(EffectiveConstraint(self.build_tool)))
        return graph

    def _check_edges(self, graph: Mapping[str, ConstraintNode]) -> None:
        for node in graph.values():
            for dep in node.edges:
                if dep not in graph:
                    raise UnsatisfiedDependencyError(dep, self.lockfile)

    @staticmethod
    def _iteration_cap(graph: Mapping[str, ConstraintNode]) -> int:
        # 每轮有变化就至少向某个节点加入一个新元素，元素总数有上界
        groups = {g for n in graph.values() for g in n.constraint.groups}
        platforms = {p for n in graph.values() for p in n.constraint.platforms}
        return len(graph) * (len(groups) + len(platforms)) + 2

    @staticmethod
    def _propagate(graph: dict[str, ConstraintNode]) -> bool:
        changed = False
        for node in graph.values():
            for dep in node.edges:
                target = graph[dep]
                if target.constraint.covers(node.constraint):
                    continue
                target.constraint = target.constraint.union(node.constraint)
                changed = True
        return changed
