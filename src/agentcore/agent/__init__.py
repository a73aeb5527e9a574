"""
Public exports for the agent package.
"""

from .config import AgentConfig
from .core import Agent, AgentResult, LoopState
from .transcript import Transcript

__all__ = ["Agent", "AgentConfig", "AgentResult", "LoopState", "Transcript"]
