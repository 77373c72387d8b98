"""
统一异常定义模块
提供投票系统特定的异常类和错误处理机制
"""

from typing import Optional, Dict, Any


class VoteSystemError(Exception):
    """投票系统基础异常类"""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ConfigurationError(VoteSystemError):
    """配置相关错误"""
    pass


class ValidationError(VoteSystemError):
    """数据验证错误"""
    pass


class StorageError(VoteSystemError):
    """存储相关错误"""
    pass


class StorageIOError(StorageError):
    """持久化写入失败"""
    pass


class LedgerError(VoteSystemError):
    """会话投票账本错误"""
    pass


# 以下为面向用户的业务结果，不属于系统错误
class QuoteNotFoundError(VoteSystemError):
    """引用不存在"""
    pass


class AlreadyVotedError(VoteSystemError):
    """会话已经为该引用投过票"""
    pass


class LimitReachedError(VoteSystemError):
    """会话票数已用完"""
    pass


class RateLimitedError(VoteSystemError):
    """投票尝试过于频繁"""
    pass


class VoteConsistencyError(VoteSystemError):
    """补偿失败，账本与存储不一致"""
    pass


# 错误代码常量
class ErrorCodes:
    """错误代码常量"""

    # 配置错误
    CONFIG_NOT_FOUND = "CONFIG_001"
    CONFIG_INVALID_FORMAT = "CONFIG_002"
    CONFIG_INVALID_VALUE = "CONFIG_003"

    # 存储错误
    STORE_LOAD_FAILED = "STORE_001"
    STORE_WRITE_FAILED = "STORE_002"
    STORE_INVALID_DATA = "STORE_003"

    # 账本错误
    LEDGER_ENTRY_MISSING = "LEDGER_001"
    LEDGER_VOTE_MISSING = "LEDGER_002"

    # 投票结果
    QUOTE_NOT_FOUND = "VOTE_001"
    ALREADY_VOTED = "VOTE_002"
    LIMIT_REACHED = "VOTE_003"
    RATE_LIMITED = "VOTE_004"
    INCONSISTENT_STATE = "VOTE_005"

    # 验证错误
    VALIDATION_INVALID_ID = "VAL_001"
    VALIDATION_INVALID_FORMAT = "VAL_002"


def create_error_response(error: VoteSystemError) -> Dict[str, Any]:
    """创建标准化的错误响应，不包含内部上下文"""
    return {
        "error": error.message,
        "error_code": error.error_code,
    }
