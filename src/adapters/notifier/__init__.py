"""Notifier adapters - Participant message delivery."""

from .console import ConsoleNotifier

__all__ = ["ConsoleNotifier"]
