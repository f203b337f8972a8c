"""
Contains base class for bot pipelines
"""
from abc import ABC, abstractmethod

from core.entities import RunReport


class BotPipeline(ABC):
    """
    One bot's pass over a batch of items.
    """

    name: str

    @abstractmethod
    async def run(self) -> RunReport:
        """
        Execute one pass and return its report.
        Per-item failures are contained; only storage outages propagate.
        """
        raise NotImplementedError
