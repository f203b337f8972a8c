"""
Base classes for item sources
"""
from abc import ABC, abstractmethod
from typing import List, Optional
from pydantic import BaseModel


class ItemNotFoundError(LookupError):
    """Raised when an item id does not resolve to a stored item."""


class ContentItem(BaseModel):
    """
    Read-only view of one interview question as stored by the content bots.
    """
    id: str
    channel: str
    sub_channel: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    explanation: Optional[str] = None
    difficulty: Optional[str] = None
    diagram: Optional[str] = None
    tags: List[str] = []
    voice_keywords: Optional[List[str]] = None
    voice_suitable: bool = False
    status: str = "active"

    @property
    def combined_text(self) -> str:
        return f"{self.question or ''} {self.answer or ''} {self.explanation or ''}"


class ItemSource(ABC):
    """
    Read interface onto the item store owned by the content bots.
    """

    @abstractmethod
    async def fetch_unjudged(
        self,
        *,
        bot_name: str,
        limit: int,
        channel: Optional[str] = None,
        within_days: int = 7,
    ) -> List[ContentItem]:
        """
        Active items with no verify/flag ledger entry from bot_name
        within the last within_days days.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_item(self, item_id: str) -> ContentItem:
        """
        Load one item. Raises ItemNotFoundError when absent.
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_channel_candidates(
        self,
        *,
        channel: str,
        exclude_id: str,
        limit: int,
    ) -> List[ContentItem]:
        """Active items of the same channel used as the similarity pool."""
        raise NotImplementedError
