"""
安全工具模块
提供会话令牌生成、输入清理、安全响应头和限流功能
"""

import re
import secrets
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from .exceptions import ValidationError, ErrorCodes


class SecurityValidator:
    """安全验证器"""

    @staticmethod
    def sanitize_input(text: Optional[str], max_length: int = 200) -> str:
        """清理输入文本"""
        if not text:
            return ""

        text = str(text)

        if len(text) > max_length:
            raise ValidationError(
                f"Input too long: {len(text)} > {max_length}",
                ErrorCodes.VALIDATION_INVALID_FORMAT
            )

        # 移除控制字符
        text = re.sub(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]', '', text)

        return text

    @staticmethod
    def generate_secure_token(length: int = 32) -> str:
        """生成安全令牌"""
        return secrets.token_urlsafe(length)


class SecurityHeaders:
    """安全HTTP头"""

    @staticmethod
    def get_security_headers() -> Dict[str, str]:
        """获取安全HTTP头"""
        return {
            'X-Content-Type-Options': 'nosniff',
            'X-Frame-Options': 'DENY',
            'Referrer-Policy': 'strict-origin-when-cross-origin',
        }


class RateLimiter:
    """滑动窗口内存限流器（线程安全）"""

    def __init__(self, max_requests: int = 30, window_seconds: float = 60,
                 clock: Callable[[], float] = time.monotonic):
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    @staticmethod
    def _evict(timestamps: Deque[float], window_start: float) -> None:
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

    def _sweep_locked(self, now: float) -> None:
        """移除窗口内没有请求的客户端"""
        window_start = now - self.window_seconds
        for identifier in list(self._requests):
            timestamps = self._requests[identifier]
            self._evict(timestamps, window_start)
            if not timestamps:
                del self._requests[identifier]
        self._last_sweep = now

    def is_allowed(self, identifier: str) -> bool:
        """检查是否允许请求，允许时记录本次请求"""
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep_locked(now)

            timestamps = self._requests.get(identifier)
            if timestamps is not None:
                self._evict(timestamps, now - self.window_seconds)
                if len(timestamps) >= self.max_requests:
                    return False
            else:
                timestamps = self._requests[identifier] = deque()

            timestamps.append(now)
            return True
