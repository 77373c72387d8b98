"""
统一的配置管理模块
整合底层配置操作和应用层类型安全访问
"""

import json
import logging
import os
from typing import Any, Optional, Dict, List, TypeVar
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigurationError, ErrorCodes
from .path_utils import CONFIG_DIR


# 获取配置专用日志器
config_logger = logging.getLogger("Config")

# 为泛型类型定义一个TypeVar
T = TypeVar('T')

# 环境变量 -> (配置路径, 类型转换)
ENV_OVERRIDES = {
    'QUOTES_FILE': ('store_config.quotes_file', str),
    'STORE_BACKEND': ('store_config.backend', str),
    'HOST': ('api_config.host', str),
    'PORT': ('api_config.port', int),
    'SESSION_SECRET': ('session_config.secret_key', str),
    'MAX_VOTES': ('voting_config.max_votes', int),
    'RATE_LIMIT_WINDOW': ('rate_limit_config.window_seconds', int),
    'RATE_LIMIT_MAX_ATTEMPTS': ('rate_limit_config.max_attempts', int),
    'LOG_LEVEL': ('logging_config.level', str),
}

# ============================================================================
# 配置数据类型定义
# ============================================================================

@dataclass
class LoggingModuleConfig:
    """模块日志配置"""
    level: str = "INFO"
    enabled: bool = True

@dataclass
class FileLoggingConfig:
    """文件日志配置"""
    enabled: bool = True
    directory: str = "log"
    filename: str = "sys.log"
    rotation: Optional[Dict[str, Any]] = None

@dataclass
class ConsoleLoggingConfig:
    """控制台日志配置"""
    enabled: bool = True

@dataclass
class LoggingConfig:
    """完整日志配置"""
    level: str = "INFO"
    format: str = "[%(levelname)s][%(asctime)s][%(filename)s:%(lineno)d] - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_config: FileLoggingConfig = field(default_factory=FileLoggingConfig)
    console_config: ConsoleLoggingConfig = field(default_factory=ConsoleLoggingConfig)
    modules: Dict[str, LoggingModuleConfig] = field(default_factory=dict)

@dataclass
class ApiConfig:
    """API配置"""
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False
    prefix: str = "/api"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    static_dir: Optional[str] = None

@dataclass
class StoreConfig:
    """引用存储配置"""
    backend: str = "json"  # "json" or "sqlite"
    quotes_file: str = "data/quotes.json"
    template_file: str = "data/quotes.json.example"
    db_path: str = "data/quotes.db"

@dataclass
class VotingConfig:
    """投票规则配置"""
    max_votes: int = 25

@dataclass
class SessionConfig:
    """会话配置"""
    secret_key: str = ""
    cookie_name: str = "quotes_session"
    ttl_seconds: int = 24 * 60 * 60
    https_only: bool = False

@dataclass
class RateLimitConfig:
    """投票限流配置"""
    enabled: bool = True
    max_attempts: int = 30
    window_seconds: int = 60


# ============================================================================
# 统一配置管理器
# ============================================================================

class UnifiedConfigManager:
    """统一配置管理器 - 整合底层操作和应用层抽象"""

    def __init__(self, config_dir: str = str(CONFIG_DIR), use_env: bool = True):
        self._config_dir = Path(config_dir)
        self._config_data: Dict[str, Any] = {}
        self._use_env = use_env

        # 类型化配置缓存
        self._typed_cache: Dict[str, Any] = {}

        # 初始化配置
        self._load_config()

    def _load_config(self) -> None:
        """加载配置文件"""
        merged_config = {}
        config_logger.info(f"Loading configuration from directory: {self._config_dir}")

        if not self._config_dir.is_dir():
            raise ConfigurationError(
                f"Configuration path is not a directory: {self._config_dir}",
                ErrorCodes.CONFIG_NOT_FOUND
            )

        # 按文件名排序加载，确保加载顺序一致
        config_files = sorted(self._config_dir.glob('*.json'))
        if not config_files:
            raise ConfigurationError(
                f"No configuration files (.json) found in: {self._config_dir}",
                ErrorCodes.CONFIG_NOT_FOUND
            )

        for config_file in config_files:
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    f"Invalid JSON in configuration file {config_file.name}: {e}",
                    ErrorCodes.CONFIG_INVALID_FORMAT
                ) from e
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Configuration file {config_file.name} must contain a JSON object",
                    ErrorCodes.CONFIG_INVALID_FORMAT
                )
            merged_config.update(data)
            config_logger.debug(f"Loaded and merged: {config_file.name}")

        self._config_data = merged_config
        config_logger.info(f"Configuration loaded and merged from {len(config_files)} files.")

        if self._use_env:
            self._apply_env_overrides()

        # 清除类型化缓存
        self._typed_cache.clear()

    def _apply_env_overrides(self) -> None:
        """应用环境变量覆盖"""
        for env_name, (path, cast) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw is None or raw == "":
                continue
            try:
                value = cast(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for environment variable {env_name}: {raw!r}",
                    ErrorCodes.CONFIG_INVALID_VALUE
                ) from e
            self.set_nested(path, value)
            # 不记录敏感值
            config_logger.debug(f"Applied environment override {env_name} -> {path}")

    # ========================================================================
    # 底层访问方法
    # ========================================================================

    def get_nested(self, path: str, default: Optional[T] = None) -> Optional[T]:
        """获取嵌套配置值，支持点分隔路径"""
        keys = path.split('.')
        current = self._config_data

        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set_nested(self, path: str, value: Any) -> None:
        """设置嵌套配置值"""
        keys = path.split('.')
        current = self._config_data

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
        self._typed_cache.pop(keys[0], None)

    # ========================================================================
    # 类型安全访问方法
    # ========================================================================

    def get_logging_config(self) -> LoggingConfig:
        """获取日志配置（类型安全）"""
        if 'logging_config' not in self._typed_cache:
            try:
                logging_data = self.get_nested('logging_config', {})

                # 解析文件日志配置
                file_data = logging_data.get('file_config', {})
                file_config = FileLoggingConfig(
                    enabled=file_data.get('enabled', True),
                    directory=file_data.get('directory', 'log'),
                    filename=file_data.get('filename', 'sys.log'),
                    rotation=file_data.get('rotation')
                )

                console_data = logging_data.get('console_config', {})
                console_config = ConsoleLoggingConfig(
                    enabled=console_data.get('enabled', True)
                )

                # 解析模块配置
                modules = {}
                for module_name, module_data in logging_data.get('modules', {}).items():
                    modules[module_name] = LoggingModuleConfig(
                        level=module_data.get('level', 'INFO'),
                        enabled=module_data.get('enabled', True)
                    )

                defaults = LoggingConfig()
                self._typed_cache['logging_config'] = LoggingConfig(
                    level=logging_data.get('level', defaults.level),
                    format=logging_data.get('format', defaults.format),
                    date_format=logging_data.get('date_format', defaults.date_format),
                    file_config=file_config,
                    console_config=console_config,
                    modules=modules
                )
            except (AttributeError, TypeError) as e:
                config_logger.error(f"Failed to parse logging config: {e}")
                self._typed_cache['logging_config'] = LoggingConfig()

        return self._typed_cache['logging_config']

    def get_api_config(self) -> ApiConfig:
        """获取API配置（类型安全）"""
        if 'api_config' not in self._typed_cache:
            try:
                api_data = self.get_nested('api_config', {})
                self._typed_cache['api_config'] = ApiConfig(
                    host=api_data.get('host', '0.0.0.0'),
                    port=int(api_data.get('port', 3000)),
                    reload=api_data.get('reload', False),
                    prefix=api_data.get('prefix', '/api'),
                    cors_origins=api_data.get('cors_origins', ['*']),
                    static_dir=api_data.get('static_dir')
                )
            except (AttributeError, TypeError, ValueError) as e:
                config_logger.error(f"Failed to parse api config: {e}")
                self._typed_cache['api_config'] = ApiConfig()

        return self._typed_cache['api_config']

    def get_store_config(self) -> StoreConfig:
        """获取存储配置（类型安全）"""
        if 'store_config' not in self._typed_cache:
            try:
                store_data = self.get_nested('store_config', {})
                self._typed_cache['store_config'] = StoreConfig(
                    backend=store_data.get('backend', 'json'),
                    quotes_file=store_data.get('quotes_file', 'data/quotes.json'),
                    template_file=store_data.get('template_file', 'data/quotes.json.example'),
                    db_path=store_data.get('db_path', 'data/quotes.db')
                )
            except (AttributeError, TypeError) as e:
                config_logger.error(f"Failed to parse store config: {e}")
                self._typed_cache['store_config'] = StoreConfig()

        return self._typed_cache['store_config']

    def get_voting_config(self) -> VotingConfig:
        """获取投票配置（类型安全）"""
        if 'voting_config' not in self._typed_cache:
            voting_data = self.get_nested('voting_config', {})
            max_votes = voting_data.get('max_votes', 25)
            # 票数上限非法时直接失败，不回退默认值
            if not isinstance(max_votes, int) or isinstance(max_votes, bool) or max_votes <= 0:
                raise ConfigurationError(
                    f"voting_config.max_votes must be a positive integer, got {max_votes!r}",
                    ErrorCodes.CONFIG_INVALID_VALUE
                )
            self._typed_cache['voting_config'] = VotingConfig(max_votes=max_votes)

        return self._typed_cache['voting_config']

    def get_session_config(self) -> SessionConfig:
        """获取会话配置（类型安全）"""
        if 'session_config' not in self._typed_cache:
            try:
                session_data = self.get_nested('session_config', {})
                secret_key = session_data.get('secret_key', '')

                # 记录时遮蔽敏感信息
                config_logger.debug(f"Session secret: {'*' * len(secret_key) if secret_key else 'None'}")

                self._typed_cache['session_config'] = SessionConfig(
                    secret_key=secret_key,
                    cookie_name=session_data.get('cookie_name', 'quotes_session'),
                    ttl_seconds=int(session_data.get('ttl_seconds', 24 * 60 * 60)),
                    https_only=session_data.get('https_only', False)
                )
            except (AttributeError, TypeError, ValueError) as e:
                config_logger.error(f"Failed to parse session config: {e}")
                self._typed_cache['session_config'] = SessionConfig()

        return self._typed_cache['session_config']

    def get_rate_limit_config(self) -> RateLimitConfig:
        """获取限流配置（类型安全）"""
        if 'rate_limit_config' not in self._typed_cache:
            try:
                limit_data = self.get_nested('rate_limit_config', {})
                self._typed_cache['rate_limit_config'] = RateLimitConfig(
                    enabled=limit_data.get('enabled', True),
                    max_attempts=int(limit_data.get('max_attempts', 30)),
                    window_seconds=int(limit_data.get('window_seconds', 60))
                )
            except (AttributeError, TypeError, ValueError) as e:
                config_logger.error(f"Failed to parse rate limit config: {e}")
                self._typed_cache['rate_limit_config'] = RateLimitConfig()

        return self._typed_cache['rate_limit_config']


# ============================================================================
# 全局实例
# ============================================================================

# 创建统一配置管理器实例
config_manager = UnifiedConfigManager()
