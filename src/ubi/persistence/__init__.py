"""Persistence — audit event log and state store."""

from ubi.persistence.event_log import EventKind, EventLog, EventRecord
from ubi.persistence.state_store import StateStore

__all__ = ["EventKind", "EventLog", "EventRecord", "StateStore"]
