"""
Request-scoped dependencies: the vote services owned by the application and the
caller's anonymous session identity.
"""

from dataclasses import dataclass

from fastapi import HTTPException, Request

from storage import QuoteStore, create_quote_store
from utils import UnifiedConfigManager, RateLimiter, SecurityValidator, api_logger
from voting import SessionLedger, VoteCoordinator, QuoteViews

SESSION_ID_KEY = "sid"


@dataclass
class VoteServices:
    """应用持有的投票组件"""
    store: QuoteStore
    ledger: SessionLedger
    coordinator: VoteCoordinator
    views: QuoteViews

    def close(self) -> None:
        self.store.close()


def build_services(config: UnifiedConfigManager) -> VoteServices:
    """根据配置创建并初始化投票组件"""
    store = create_quote_store(config.get_store_config())
    ledger = SessionLedger(
        max_votes=config.get_voting_config().max_votes,
        ttl_seconds=config.get_session_config().ttl_seconds
    )

    rate_limit = config.get_rate_limit_config()
    rate_limiter = None
    if rate_limit.enabled:
        rate_limiter = RateLimiter(rate_limit.max_attempts, rate_limit.window_seconds)

    api_logger.info(
        f"[API] Vote services ready (max_votes={ledger.max_votes}, "
        f"rate_limit={'on' if rate_limiter else 'off'})"
    )
    return VoteServices(
        store=store,
        ledger=ledger,
        coordinator=VoteCoordinator(store, ledger, rate_limiter),
        views=QuoteViews(store)
    )


def get_services(request: Request) -> VoteServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return services


def get_session_id(request: Request) -> str:
    """获取会话ID，首次访问时生成"""
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        session_id = SecurityValidator.generate_secure_token(16)
        request.session[SESSION_ID_KEY] = session_id
    return session_id


def get_client_key(request: Request) -> str:
    """限流使用的客户端标识"""
    return request.client.host if request.client else "unknown"
