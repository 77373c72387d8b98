"""
工具模块包
提供项目所需的通用工具和功能
"""

# 导出核心工具
from .config_manager import (
    config_manager,
    UnifiedConfigManager,
    LoggingConfig,
    ApiConfig,
    StoreConfig,
    VotingConfig,
    SessionConfig,
    RateLimitConfig
)
from .exceptions import (
    VoteSystemError,
    ConfigurationError,
    ValidationError,
    StorageError,
    StorageIOError,
    LedgerError,
    QuoteNotFoundError,
    AlreadyVotedError,
    LimitReachedError,
    RateLimitedError,
    VoteConsistencyError,
    ErrorCodes,
    create_error_response
)
from .logging_manager import (
    LogConfig,
    LoggingManager,
    MetricsCounter,
    timed_operation,
    log_execution,
    logging_manager,
    initialize_logging,
    voting_metrics,
    api_logger,
    store_logger,
    ledger_logger,
    voting_logger,
    config_logger
)
from .security_utils import SecurityValidator, SecurityHeaders, RateLimiter
from .path_utils import BASE_DIR, CONFIG_DIR, LOG_DIR, resolve_path

# 版本信息
__version__ = "1.0.0"

__all__ = [
    # 配置管理
    "config_manager",
    "UnifiedConfigManager",
    "LoggingConfig",
    "ApiConfig",
    "StoreConfig",
    "VotingConfig",
    "SessionConfig",
    "RateLimitConfig",

    # 异常处理
    "VoteSystemError",
    "ConfigurationError",
    "ValidationError",
    "StorageError",
    "StorageIOError",
    "LedgerError",
    "QuoteNotFoundError",
    "AlreadyVotedError",
    "LimitReachedError",
    "RateLimitedError",
    "VoteConsistencyError",
    "ErrorCodes",
    "create_error_response",

    # 日志工具
    "LogConfig",
    "LoggingManager",
    "MetricsCounter",
    "timed_operation",
    "log_execution",
    "logging_manager",
    "initialize_logging",
    "voting_metrics",
    "api_logger",
    "store_logger",
    "ledger_logger",
    "voting_logger",
    "config_logger",

    # 安全工具
    "SecurityValidator",
    "SecurityHeaders",
    "RateLimiter",

    # 路径工具
    "BASE_DIR",
    "CONFIG_DIR",
    "LOG_DIR",
    "resolve_path",
]
