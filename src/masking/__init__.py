"""
Masked agent view: per-tick renderer and its render loop.
"""

from .renderer import MaskingRenderer, MASKING_OFFLINE_TEXT, SEARCHING_TEXT, PLACEHOLDER_TEXT
from .agent_view import AgentView, TickScheduler

__all__ = [
    "MaskingRenderer",
    "MASKING_OFFLINE_TEXT",
    "SEARCHING_TEXT",
    "PLACEHOLDER_TEXT",
    "AgentView",
    "TickScheduler",
]
