"""Services for the action bridge."""

from .dispatcher import ActionDispatcher, create_bridge
from .interfaces import ExecBridge
from .mapper import ResponseMapper

__all__ = ["ActionDispatcher", "ExecBridge", "ResponseMapper", "create_bridge"]
