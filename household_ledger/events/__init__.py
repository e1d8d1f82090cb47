"""Structured event logging package."""

from household_ledger.events.logger import EventLogger

__all__ = ["EventLogger"]
