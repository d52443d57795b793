"""Adapters — concrete implementations of the ports."""

from .console import ConsoleMessenger
from .memory import InMemoryMessenger, InMemoryScheduledOrderRepository

__all__ = ["ConsoleMessenger", "InMemoryMessenger", "InMemoryScheduledOrderRepository"]
