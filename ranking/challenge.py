"""
Challenge configuration

Maps a challenge's bet points to its race length and handicaps.
"""
from dataclasses import dataclass
from typing import Sequence

from .errors import InvalidArgument, NotFound
from .tiers import MAX_BET_POINTS, MIN_BET_POINTS, WAGER_TIERS, WagerTier


@dataclass(frozen=True)
class ChallengeTerms:
    """Match parameters persisted alongside a new challenge"""
    bet_points: int
    race_to: int
    handicap_full_rank: float
    handicap_half_rank: float


def _require_int(amount) -> int:
    # bool is an int subclass but never a wager
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidArgument(f"Bet points must be an integer, got {amount!r}")
    return amount


def is_valid_bet_points(amount) -> bool:
    """Whether a wager is inside the globally allowed range"""
    if isinstance(amount, bool) or not isinstance(amount, int):
        return False
    return MIN_BET_POINTS <= amount <= MAX_BET_POINTS


def validate_bet_points(amount) -> int:
    """
    Caller-level wager check

    Raises:
        InvalidArgument: not an integer or outside [MIN_BET_POINTS, MAX_BET_POINTS]
    """
    amount = _require_int(amount)
    if not MIN_BET_POINTS <= amount <= MAX_BET_POINTS:
        raise InvalidArgument(
            f"Bet points must be between {MIN_BET_POINTS} and {MAX_BET_POINTS}, got {amount}"
        )
    return amount


def resolve_challenge_config(amount, tiers: Sequence[WagerTier] = WAGER_TIERS) -> WagerTier:
    """
    Find the wager band containing the amount

    Args:
        amount: bet points
        tiers: ordered wager table (defaults to the authored table)

    Returns:
        The matching WagerTier

    Raises:
        InvalidArgument: amount is not an integer
        NotFound: no band contains the amount
    """
    amount = _require_int(amount)
    for tier in tiers:
        if tier.contains(amount):
            return tier
    raise NotFound(f"No wager tier covers {amount} bet points")


def challenge_terms(amount) -> ChallengeTerms:
    """Validate a wager and return the terms to store with the challenge"""
    amount = validate_bet_points(amount)
    tier = resolve_challenge_config(amount)
    return ChallengeTerms(
        bet_points=amount,
        race_to=tier.race_to,
        handicap_full_rank=tier.handicap_full_rank,
        handicap_half_rank=tier.handicap_half_rank,
    )
