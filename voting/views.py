"""
Read-only projections of the quote store: ranking, quiz pairs, random pick and
text search.
"""

import random
from typing import List, Optional, Sequence

from storage import Quote, QuoteStore
from utils.exceptions import QuoteNotFoundError, ErrorCodes


class QuoteViews:
    """引用展示视图"""

    def __init__(self, store: QuoteStore, rng: Optional[random.Random] = None):
        self.store = store
        self._rng = rng or random.Random()

    def ranked(self, quotes: Optional[Sequence[Quote]] = None) -> List[Quote]:
        """按票数降序排列，同票数保持插入顺序"""
        if quotes is None:
            quotes = self.store.list_all()
        # sorted 是稳定排序，reverse=True 时同样保持相等元素的原始顺序
        return sorted(quotes, key=lambda quote: quote.votes, reverse=True)

    def quiz(self, size: int = 2) -> List[Quote]:
        """无放回地随机抽取引用，数量不足时返回全部"""
        quotes = self.store.list_all()
        return self._rng.sample(quotes, min(size, len(quotes)))

    def random_quote(self) -> Quote:
        quotes = self.store.list_all()
        if not quotes:
            raise QuoteNotFoundError("No quotes available", ErrorCodes.QUOTE_NOT_FOUND)
        return self._rng.choice(quotes)

    def search(self, query: Optional[str]) -> List[Quote]:
        """不区分大小写的子串匹配

        空查询（或只有空白）返回空列表，而不是全部引用。
        """
        if not query or not query.strip():
            return []

        needle = query.casefold()
        return [quote for quote in self.store.list_all() if needle in quote.text.casefold()]
