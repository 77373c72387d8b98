"""
Logging setup for the quote voting service.
Routes the per-component loggers (API, Store, Ledger, Voting, Config) to the
console and a rotating log file, and keeps in-process vote counters that the
health endpoint reports.
"""

import functools
import logging
import sys
import threading
import time
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config_manager import config_manager, LoggingConfig
from .exceptions import ConfigurationError, ErrorCodes
from .path_utils import LOG_DIR, resolve_path

COMPONENTS = ("API", "Store", "Ledger", "Voting", "Config")

logger = logging.getLogger("quotevote")


@dataclass
class LogConfig:
    """日志输出配置"""
    level: str = "INFO"
    format: str = "[%(levelname)s][%(asctime)s][%(filename)s:%(lineno)d] - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    enable_console: bool = True
    enable_file: bool = True
    log_directory: Path = LOG_DIR
    log_filename: str = "sys.log"
    rotation_type: str = "size"  # "size" or "time"
    file_max_bytes: int = 10 * 1024 * 1024
    file_backup_count: int = 5
    # 组件名 -> 日志级别；禁用的组件只保留 CRITICAL
    component_levels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: LoggingConfig) -> "LogConfig":
        """由配置文件中的 logging_config 构造"""
        rotation = settings.file_config.rotation or {}
        return cls(
            level=settings.level,
            format=settings.format,
            date_format=settings.date_format,
            enable_console=settings.console_config.enabled,
            enable_file=settings.file_config.enabled,
            log_directory=resolve_path(settings.file_config.directory),
            log_filename=settings.file_config.filename,
            rotation_type=rotation.get('type', 'size'),
            file_max_bytes=int(rotation.get('max_bytes_mb', 10) * 1024 * 1024),
            file_backup_count=int(rotation.get('backup_count', 5)),
            component_levels={
                name: module.level if module.enabled else "CRITICAL"
                for name, module in settings.modules.items()
            }
        )


def _parse_level(level: str) -> int:
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ConfigurationError(f"Unknown log level: {level!r}", ErrorCodes.CONFIG_INVALID_VALUE)
    return value


class LoggingManager:
    """日志管理器（单例）"""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, '_initialized'):
            return
        self._initialized = True
        self.config = LogConfig()
        self._handlers: List[logging.Handler] = []

    def configure(self, config: Optional[LogConfig] = None) -> LogConfig:
        """安装处理器并设置各组件级别，可重复调用"""
        if config is not None:
            self.config = config

        root = logging.getLogger()
        root.setLevel(_parse_level(self.config.level))

        # 只移除本管理器安装的处理器
        for handler in self._handlers:
            root.removeHandler(handler)
            handler.close()
        self._handlers = self._build_handlers()
        for handler in self._handlers:
            root.addHandler(handler)

        for name in COMPONENTS:
            level = self.config.component_levels.get(name)
            logging.getLogger(name).setLevel(_parse_level(level) if level else logging.NOTSET)

        return self.config

    def configure_from_config_file(self) -> LogConfig:
        """从配置文件加载日志配置"""
        try:
            return self.configure(LogConfig.from_settings(config_manager.get_logging_config()))
        except (OSError, TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to configure logging from config file: {e}",
                ErrorCodes.CONFIG_INVALID_FORMAT
            ) from e

    def _build_handlers(self) -> List[logging.Handler]:
        formatter = logging.Formatter(self.config.format, datefmt=self.config.date_format)
        handlers: List[logging.Handler] = []

        if self.config.enable_console:
            handlers.append(logging.StreamHandler(sys.stdout))

        if self.config.enable_file:
            directory = Path(self.config.log_directory)
            directory.mkdir(parents=True, exist_ok=True)
            path = directory / self.config.log_filename
            if self.config.rotation_type == "time":
                handlers.append(TimedRotatingFileHandler(
                    path, when="midnight", backupCount=self.config.file_backup_count, encoding="utf-8"
                ))
            else:
                handlers.append(RotatingFileHandler(
                    path, maxBytes=self.config.file_max_bytes,
                    backupCount=self.config.file_backup_count, encoding="utf-8"
                ))

        for handler in handlers:
            handler.setFormatter(formatter)
        return handlers


@contextmanager
def timed_operation(component: str, operation: str):
    """记录操作耗时，失败时记录错误后继续抛出"""
    component_logger = logging.getLogger(component)
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        component_logger.error(
            f"[{component}] {operation} failed after {time.perf_counter() - start:.3f}s: {e}"
        )
        raise
    component_logger.info(f"[{component}] {operation} finished in {time.perf_counter() - start:.3f}s")


def log_execution(component: str, operation: Optional[str] = None) -> Callable:
    """timed_operation 的装饰器形式"""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with timed_operation(component, operation or func.__name__):
                return func(*args, **kwargs)
        return wrapper
    return decorator


class MetricsCounter:
    """线程安全的计数器"""

    def __init__(self, component: str):
        self.component = component
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def increment(self, name: str, value: int = 1) -> int:
        with self._lock:
            self._counts[name] += value
            return self._counts[name]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)


logging_manager = LoggingManager()

# 投票结果计数：recorded / rejected / failed / rate_limited
voting_metrics = MetricsCounter("Voting")

api_logger = logging.getLogger("API")
store_logger = logging.getLogger("Store")
ledger_logger = logging.getLogger("Ledger")
voting_logger = logging.getLogger("Voting")
config_logger = logging.getLogger("Config")


def initialize_logging(use_config_file: bool = True) -> LogConfig:
    """初始化日志系统

    配置文件无效时退回到仅控制台输出，而不是让命令行启动失败。
    """
    if not use_config_file:
        return logging_manager.configure(LogConfig())

    try:
        config = logging_manager.configure_from_config_file()
    except ConfigurationError as e:
        config = logging_manager.configure(LogConfig(enable_file=False))
        logger.warning(f"[Logging] Falling back to console logging: {e}")
        return config

    logger.info(
        f"[Logging] Initialized (level={config.level}, file={config.enable_file}, "
        f"console={config.enable_console})"
    )
    return config
