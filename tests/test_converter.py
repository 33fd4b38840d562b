"""转换编排测试 - 缓存复用 + 失败汇总"""

from __future__ import annotations

from gemnix.core.converter import GemsetConverter
from gemnix.core.exceptions import HashFetchError
from gemnix.core.fetch.hasher import ArtifactHash
from gemnix.core.gemset_cache import GemsetCache
from gemnix.core.models import (
    EffectiveConstraint,
    GitOrigin,
    LockedPackage,
    PathOrigin,
    RegistryOrigin,
)
from gemnix.core.resolver import SourceResolver

HASH_A = "0" * 51 + "a"
HASH_B = "1" * 51 + "b"
GIT_URL = "https://git.example/beta.git"


class _CountingFetcher:
    def __init__(self) -> None:
        self.revision_calls = 0
        self.artifact_calls = 0
        self.broken: set[str] = set()

    def artifact_hash(self, package, remotes):
        self.artifact_calls += 1
        if package.name in self.broken:
            raise HashFetchError(f"无法获取 {package.full_name} 的哈希")
        return ArtifactHash(remotes[0], HASH_A, package.platform)

    def revision_hash(self, url, rev, submodules=False):
        self.revision_calls += 1
        return HASH_B


def _packages() -> list[LockedPackage]:
    gem = RegistryOrigin(("https://example.org",))
    return [
        LockedPackage("beta", "0.1", GitOrigin(GIT_URL, "abcd1234"), dependencies=("rack",)),
        LockedPackage("local", "0.0.1", PathOrigin("engines/local")),
        LockedPackage("rack", "3.0.8", gem, dependencies=("bundler",)),
    ]


def _constraints() -> dict[str, EffectiveConstraint]:
    return {
        "beta": EffectiveConstraint("beta", groups=("test",)),
        "local": EffectiveConstraint("local"),
        "rack": EffectiveConstraint("rack", ("test", "default"), ("mri",)),
    }


def _previous_beta(rev: str) -> dict:
    return {"beta": {
        "version": "0.1",
        "source": {"type": "git", "url": GIT_URL, "rev": rev, "sha256": HASH_A,
                   "fetchSubmodules": False},
        "targets": [],
    }}


class TestConvert:
    def test_entries_for_every_name(self) -> None:
        fetcher = _CountingFetcher()
        report = GemsetConverter(_packages(), _constraints(), SourceResolver(fetcher)).convert()

        gemset = report.to_gemset()
        assert list(gemset) == ["beta", "local", "rack"]
        assert gemset["beta"]["source"]["sha256"] == HASH_B
        assert gemset["beta"]["groups"] == ["test"]
        assert gemset["beta"]["dependencies"] == ["rack"]
        assert gemset["local"]["source"] == {"type": "path", "path": "engines/local"}
        assert gemset["rack"]["platforms"] == [{"engine": "ruby"}, {"engine": "maglev"}]
        assert "dependencies" not in gemset["rack"]
        assert report.success

    def test_unchanged_revision_reuses_cache(self) -> None:
        fetcher = _CountingFetcher()
        report = GemsetConverter(
            _packages(), _constraints(), SourceResolver(fetcher),
            cache=GemsetCache(_previous_beta("abcd1234")),
        ).convert()

        assert fetcher.revision_calls == 0
        assert report.cached == ["beta"]
        assert report.entries["beta"].primary.sha256 == HASH_A
        # groups 按当前闭包重新计算，而非沿用缓存
        assert report.entries["beta"].groups == ["test"]

    def test_changed_revision_refetches(self) -> None:
        fetcher = _CountingFetcher()
        report = GemsetConverter(
            _packages(), _constraints(), SourceResolver(fetcher),
            cache=GemsetCache(_previous_beta("00000000")),
        ).convert()
        assert fetcher.revision_calls == 1
        assert report.cached == []

    def test_failure_is_reported_not_hidden(self, caplog) -> None:
        fetcher = _CountingFetcher()
        fetcher.broken.add("rack")
        report = GemsetConverter(_packages(), _constraints(), SourceResolver(fetcher)).convert()

        assert not report.success
        assert [f.name for f in report.failures] == ["rack"]
        assert report.to_gemset()["rack"]["source"] is None
        assert report.to_gemset()["beta"]["source"] is not None
        assert "rack" in caplog.text

    def test_platform_variants_grouped(self) -> None:
        gem = RegistryOrigin(("https://example.org",))
        packages = [
            LockedPackage("nokogiri", "1.0", gem, "arm64-darwin"),
            LockedPackage("nokogiri", "1.0", gem),
            LockedPackage("nokogiri", "1.0", gem, "x86_64-linux"),
        ]
        report = GemsetConverter(packages, {}, SourceResolver(_CountingFetcher())).convert()
        entry = report.to_gemset()["nokogiri"]
        assert entry["source"]["target"] is None
        assert [t["target"] for t in entry["targets"]] == ["arm64-darwin", "x86_64-linux"]
        assert entry["groups"] == ["default"]
