"""gemset 条目合并

同名包的多个平台变体合并为一条记录:
  - 平台为空或 ruby 的变体作为 primary（source）
  - 其余变体按锁定顺序进入 targets
  - 没有纯平台变体时，以第一个变体伪造 primary（描述符置空），全部描述符进入 targets
"""

from __future__ import annotations

from gemnix.core.models import (
    GemsetEntry,
    ResolvedVariant,
    ResolveFailure,
    SourceDescriptor,
    is_pure_platform,
)


def _is_pure(variant: ResolvedVariant) -> bool:
    # 失败的变体没有解析出的平台，按锁定平台归类
    if variant.failed:
        return not variant.package.is_platform_specific
    return is_pure_platform(variant.platform)


class GemsetAssembler:
    """ResolvedVariant 列表 -> GemsetEntry"""

    def __init__(self, build_tool: str = "bundler") -> None:
        self.build_tool = build_tool

    def assemble(
        self,
        variants: list[ResolvedVariant],
        *,
        groups: list[str] | None = None,
        platforms: list[dict[str, str]] | None = None,
    ) -> GemsetEntry:
        if not variants:
            raise ValueError("assemble() 至少需要一个变体")

        primary_variant = next((v for v in variants if _is_pure(v)), None)
        primary: SourceDescriptor | None = None
        if primary_variant is not None:
            if not isinstance(primary_variant.descriptor, ResolveFailure):
                primary = primary_variant.descriptor
            others = [v for v in variants if v is not primary_variant]
        else:
            primary_variant = variants[0]
            others = list(variants)

        targets: list[SourceDescriptor] = [
            v.descriptor for v in others if not isinstance(v.descriptor, ResolveFailure)
        ]
        failures = [v.descriptor for v in variants if isinstance(v.descriptor, ResolveFailure)]

        deps = [
            d for d in dict.fromkeys(primary_variant.package.dependencies)
            if d != self.build_tool
        ]
        return GemsetEntry(
            version=primary_variant.package.version,
            primary=primary,
            groups=list(groups or []),
            platforms=list(platforms or []),
            dependencies=deps,
            targets=targets,
            failures=failures,
        )
