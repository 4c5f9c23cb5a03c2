# Integration Module
"""
Observer for the transfer pipelines: stage events are handed to an
injected EventLogger instead of being printed.
"""

from .event_logger import EventLogger, EventType, TransferEvent, emit

__all__ = [
    'EventType',
    'TransferEvent',
    'EventLogger',
    'emit',
]
