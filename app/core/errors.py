"""Exception taxonomy for a run.

Operator refusal is not an exception: it ends the run normally with a
cancellation result. A failed command is not an exception either; it is a
``CommandResult`` with ``ok == False`` that the validator recovers from.
"""

from __future__ import annotations


class AgentError(Exception):
    """Base class for every fatal error raised during a run."""


class ConfigurationError(AgentError, ValueError):
    """Missing credentials or unusable settings."""


class GatewayError(AgentError):
    """The model call failed or returned something unusable."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"[{stage}] {message}")
        self.stage = stage


class ResponseParseError(GatewayError):
    """The model answered, but not in the shape the caller expects."""


class AssessmentParseError(ResponseParseError):
    """A safety rating that is not SAFE/CAUTION/DANGEROUS [1-10]."""


class RoutingError(AgentError):
    """The next-node pointer is unset or names an unknown node."""


class IterationLimitError(AgentError):
    """A bounded loop ran out of iterations before reaching a terminal state."""
