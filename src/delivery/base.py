"""
Module to contain base class for report delivery channels
"""
from abc import ABC, abstractmethod

from core.entities import RunReport


class DeliveryChannel(ABC):
    """
    Base interface for run report delivery.
    """

    name: str

    @abstractmethod
    async def deliver(
        self,
        *,
        report: RunReport,
        run_date: str,
    ) -> None:
        """
        Deliver the run report.
        Must raise exceptions on failure (handled upstream).
        """
        raise NotImplementedError
