"""Immutable handle threaded through the walker and the resolver."""

from dataclasses import dataclass
from typing import Any, Callable

from .config_utils import AuditSettings
from .retry import RetryPolicy


@dataclass(frozen=True)
class AuditContext:
    """
    Everything a component needs to talk to the remote.

    Attributes:
        remote: Authenticated remote (``SharePointClient`` or a test double)
        policy: Retry policy wrapping every remote round trip
        settings: Audit settings for this run
    """

    remote: Any
    policy: RetryPolicy
    settings: AuditSettings

    @classmethod
    def from_settings(cls, remote, settings: AuditSettings, **policy_kwargs) -> "AuditContext":
        policy = RetryPolicy(
            max_attempts=settings.max_attempts,
            initial_delay=settings.initial_delay,
            max_delay=settings.max_delay,
            **policy_kwargs,
        )
        return cls(remote=remote, policy=policy, settings=settings)

    def call(self, operation: Callable[..., Any], *args, **kwargs) -> Any:
        """Run one remote round trip under the retry policy."""
        return self.policy.execute(operation, *args, **kwargs)
