"""
Event Logger

Every ledger mutation, household transition and failure is logged
as a structured event. This provides:
1. Traceability of who changed what
2. Debugging capability when a write fails halfway
3. A visible warning when goal funding is skipped
"""

import structlog

from household_ledger.models.events import EventSeverity, LedgerEvent


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class EventLogger:
    """Routes ledger events to the structured log by severity."""

    def __init__(self, name: str = "household_ledger"):
        self._logger = structlog.get_logger(name)

    def log(self, event: LedgerEvent) -> LedgerEvent:
        log_dict = event.to_log_dict()

        if event.severity == EventSeverity.ERROR:
            self._logger.error("ledger_event", **log_dict)
        elif event.severity == EventSeverity.WARNING:
            self._logger.warning("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)

        return event
