# packages/core/src/lingosync_core/exceptions.py
"""
本模块定义了 LingoSync 项目中所有自定义的、语义化的异常类型。

每个异常都带有一个 `retryable` 类属性，任务队列据此决定
失败的任务是进入退避重试，还是直接转入死信。
"""


class LingoSyncError(Exception):
    """
    所有 LingoSync 自定义异常的通用基类。
    捕获此异常可以处理所有源自本项目的预期错误。
    """

    retryable: bool = True


class ConfigurationError(LingoSyncError):
    """
    表示在加载、解析或验证配置时发生的错误。
    例如，.env 文件缺失关键字段，或配置值格式不正确。
    """

    retryable = False


class EngineNotFoundError(LingoSyncError, KeyError):
    """
    表示尝试访问一个未注册或不可用的翻译引擎时引发的错误。
    继承自 KeyError 是为了保持与字典查找行为的一致性。
    """

    retryable = False


class DatabaseError(LingoSyncError):
    """表示在持久化层操作中发生的错误，通常是底层驱动异常的包装。"""


class NotFoundError(LingoSyncError):
    """请求的实体（翻译记录、租户）不存在。"""

    retryable = False


class RecordNotFoundError(NotFoundError):
    """翻译记录不存在，或不属于给定的租户。"""


class TenantNotFoundError(NotFoundError):
    """租户不存在或已被停用。"""


class DuplicateRecordError(LingoSyncError):
    """非 upsert 路径尝试写入一条违反唯一性约束的记录。"""

    retryable = False


class ProviderError(LingoSyncError):
    """外部翻译服务调用失败（包括超时与空译文）。"""

    def __init__(self, message: str, *, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class SyncError(LingoSyncError):
    """向外部电商平台推送或拉取数据失败。"""


class AuthError(LingoSyncError):
    """Webhook 签名缺失或不匹配。致命错误，不重试。"""

    retryable = False


class ValidationError(LingoSyncError):
    """输入格式错误（如不支持的语言代码、未知的资源类型）。不重试。"""

    retryable = False


class InvalidTransitionError(ValidationError):
    """翻译记录的状态迁移违反了状态机定义。"""
