"""
Workflows module - bot pass orchestration.
"""
from workflows.base import BotPipeline
from workflows.verifier import VerifierPipeline

__all__ = [
    "BotPipeline",
    "VerifierPipeline",
]
