"""统一异常体系

所有业务异常继承 GemnixError，每个子类携带稳定的 code。
致命异常直接中止整个转换；单包解析异常由 SourceResolver 捕获，
转化为 ResolveFailure 结果，不影响其他包。
"""

from __future__ import annotations


class GemnixError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(GemnixError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(GemnixError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class LockfileError(GemnixError):
    """Gemfile.lock 内容无法解析"""

    code = "LOCKFILE_ERROR"


class UnsatisfiedDependencyError(GemnixError):
    """依赖边指向既未声明也未锁定的包（致命）"""

    code = "UNSATISFIED_DEPENDENCY"

    def __init__(self, name: str, lockfile: str = "") -> None:
        where = f" {lockfile}" if lockfile else " lock 文件"
        super().__init__(f"依赖 '{name}' 未在{where} 中锁定")
        self.name = name


class UnknownOriginError(GemnixError):
    """锁定包的来源不是 registry / git / path 之一（致命）"""

    code = "UNKNOWN_ORIGIN"


class ClosureDivergedError(GemnixError):
    """约束闭包超过迭代上限，属于内部缺陷，而非输入错误"""

    code = "CLOSURE_DIVERGED"


class ExecutionError(GemnixError):
    """外部命令以非零状态退出"""

    code = "EXECUTION_ERROR"


class HashFetchError(GemnixError):
    """无法为包获取内容哈希（单包可恢复）"""

    code = "HASH_FETCH_FAILURE"


class PlatformResolutionError(HashFetchError):
    """远程没有与所需平台匹配的 spec（单包可恢复）"""

    code = "PLATFORM_RESOLUTION_FAILURE"


class CredentialDeniedError(HashFetchError):
    """远程返回 401/403"""

    code = "CREDENTIAL_DENIED"

    def __init__(self, host: str, status: int) -> None:
        super().__init__(
            f"{host} 需要认证 (HTTP {status})。请为该源提供凭据，例如执行:\n"
            f"  bundle config {host} username:password"
        )
        self.host = host
        self.status = status
