"""
API routes for the quote voting system.
Browsing, searching and voting endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from utils import SecurityValidator
from .dependencies import VoteServices, get_services, get_session_id, get_client_key
from .models import (
    QuoteResponse,
    VoteResponse,
    SessionVotesResponse,
    ErrorResponse
)

router = APIRouter()


# Quotes
@router.get("/quotes", response_model=List[QuoteResponse], tags=["Quotes"])
async def list_quotes(services: VoteServices = Depends(get_services)):
    """按票数降序获取全部引用"""
    return [QuoteResponse.from_quote(quote) for quote in services.views.ranked()]


@router.get("/quotes/quiz", response_model=List[QuoteResponse], tags=["Quotes"])
async def get_quiz(services: VoteServices = Depends(get_services)):
    """随机获取两条引用"""
    return [QuoteResponse.from_quote(quote) for quote in services.views.quiz()]


@router.get("/quotes/random", response_model=QuoteResponse, tags=["Quotes"],
            responses={404: {"model": ErrorResponse}})
async def get_random_quote(services: VoteServices = Depends(get_services)):
    """随机获取一条引用"""
    return QuoteResponse.from_quote(services.views.random_quote())


@router.get("/quotes/search", response_model=List[QuoteResponse], tags=["Quotes"])
async def search_quotes(
    q: Optional[str] = Query(None, description="搜索关键字"),
    services: VoteServices = Depends(get_services)
):
    """按内容搜索引用，空关键字返回空列表"""
    # 超长关键字返回 400，控制字符被移除
    query = SecurityValidator.sanitize_input(q, max_length=200)
    return [QuoteResponse.from_quote(quote) for quote in services.views.search(query)]


# Votes
@router.post(
    "/quotes/{quote_id}/vote",
    response_model=VoteResponse,
    tags=["Votes"],
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)
async def vote_for_quote(
    quote_id: int,
    services: VoteServices = Depends(get_services),
    session_id: str = Depends(get_session_id),
    client_key: str = Depends(get_client_key)
):
    """为引用投票"""
    # 持久化可能阻塞，放到线程池中执行
    result = await run_in_threadpool(services.coordinator.vote, session_id, quote_id, client_key)
    return VoteResponse.from_result(result)


@router.get("/session/votes", response_model=SessionVotesResponse, tags=["Votes"])
async def get_session_votes(
    services: VoteServices = Depends(get_services),
    session_id: str = Depends(get_session_id)
):
    """获取当前会话的投票状态"""
    return SessionVotesResponse.from_summary(services.coordinator.session_summary(session_id))
