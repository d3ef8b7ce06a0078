"""Exception hierarchy for caller-visible failures."""

from __future__ import annotations


class IntelligenceError(Exception):
    """Base class for errors raised by the monitoring services."""


class NotFoundError(IntelligenceError):
    """An operation referenced an id that does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class InvalidStateError(IntelligenceError):
    """An operation is not allowed in the record's current state."""

    def __init__(self, kind: str, identifier: str, state: str, action: str) -> None:
        self.kind = kind
        self.identifier = identifier
        self.state = state
        self.action = action
        super().__init__(f"cannot {action} {kind} {identifier} in state '{state}'")


class FetchError(IntelligenceError):
    """A data source could not produce a snapshot (unreachable, timeout, bad payload)."""

    def __init__(self, source: str, entity_id: str, reason: str) -> None:
        self.source = source
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"fetch from {source} for {entity_id} failed: {reason}")


class ResponseGenerationError(IntelligenceError):
    """The text-generation capability failed to produce a usable draft."""
