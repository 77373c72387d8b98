"""
API data models for the quote voting system.
Pydantic models for response serialization; JSON keys follow the camelCase
names the frontend expects.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storage import Quote
from voting import VoteResult, SessionSummary


class QuoteResponse(BaseModel):
    """引用响应模型"""
    id: int = Field(..., description="引用ID")
    text: str = Field(..., description="引用内容")
    votes: int = Field(..., description="票数", ge=0)

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteResponse":
        return cls(id=quote.id, text=quote.text, votes=quote.votes)


class VoteResponse(BaseModel):
    """投票成功响应模型"""
    success: bool = Field(True, description="是否成功")
    votes: int = Field(..., description="引用最新票数", ge=0)
    votes_left: int = Field(..., alias="votesLeft", description="会话剩余票数", ge=0)
    total_votes: int = Field(..., alias="totalVotes", description="会话票数上限", gt=0)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: VoteResult) -> "VoteResponse":
        return cls(
            votes=result.votes,
            votes_left=result.votes_left,
            total_votes=result.total_votes
        )


class SessionVotesResponse(BaseModel):
    """会话投票状态响应模型"""
    votes_left: int = Field(..., alias="votesLeft", description="剩余票数", ge=0)
    total_votes: int = Field(..., alias="totalVotes", description="票数上限", gt=0)
    voted_quotes: List[int] = Field(default_factory=list, alias="votedQuotes",
                                    description="已投票的引用ID")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_summary(cls, summary: SessionSummary) -> "SessionVotesResponse":
        return cls(
            votes_left=summary.votes_left,
            total_votes=summary.total_votes,
            voted_quotes=summary.voted_quotes
        )


class ErrorResponse(BaseModel):
    """错误响应模型"""
    error: str = Field(..., description="错误信息")
    error_code: Optional[str] = Field(None, description="错误代码")


class HealthResponse(BaseModel):
    """健康检查响应模型"""
    status: str = Field(..., description="服务状态")
    timestamp: datetime = Field(..., description="检查时间")
    version: str = Field(..., description="版本号")
    quotes: int = Field(..., description="引用数量", ge=0)
    active_sessions: int = Field(..., description="活跃会话数量", ge=0)
    vote_stats: Dict[str, int] = Field(default_factory=dict, description="投票结果计数")
