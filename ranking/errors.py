"""
Ranking engine error taxonomy.
"""
from typing import Iterable, Optional


class RankingError(Exception):
    """Base class for every error raised by the ranking engine"""

    retryable = False


class InvalidArgument(RankingError, ValueError):
    """Input outside the valid domain (wager, placement, coordinates...)"""


class NotFound(RankingError, LookupError):
    """Lookup key has no matching entry (wager band, tier code)"""


class ConfigurationError(RankingError):
    """Authored configuration violates its invariants; raised at import"""


class SnapshotSwapError(RankingError):
    """
    Standings snapshot could not be replaced atomically.

    The previous snapshot is left intact, so the recomputation can be retried.
    """

    retryable = True

    def __init__(self, scope_key: str, message: str, scope_keys: Optional[Iterable[str]] = None):
        super().__init__(f"{scope_key}: {message}")
        self.scope_key = scope_key
        # every scope whose snapshot still needs a retry
        self.scope_keys = list(scope_keys) if scope_keys else [scope_key]
