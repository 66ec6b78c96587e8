"""
Capture-and-verify session flow.
"""

from .state_machine import SessionStateMachine

__all__ = ["SessionStateMachine"]
