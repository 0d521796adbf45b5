"""
Tier tables

Authored reference data for the ranking engine:
- wager bands -> challenge race length and handicaps
- tournament tiers -> placement point tables, entry fee band, rank bounds
- recommendation weights

Every table is checked when this module is imported. A table that breaks its
invariants raises ConfigurationError so a bad deploy fails at startup rather
than at call time. Bump CONFIG_VERSION whenever any value here changes.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from .errors import ConfigurationError, InvalidArgument


CONFIG_VERSION = "2024.1"


# =====================================================
# Player rank ladder
# =====================================================

# Ascending skill order
RANK_ORDER: Tuple[str, ...] = ("K", "K+", "I", "I+", "H", "H+", "G")


def rank_index(rank: str) -> int:
    """Position of a rank on the ladder (0 = lowest)"""
    try:
        return RANK_ORDER.index(rank.strip().upper())
    except (AttributeError, ValueError):
        raise InvalidArgument(f"Unknown player rank: {rank!r}") from None


# =====================================================
# Data classes
# =====================================================

@dataclass(frozen=True)
class WagerTier:
    """Bet band sharing the same match length and handicaps"""
    min_bet: int
    max_bet: int
    race_to: int
    handicap_full_rank: float
    handicap_half_rank: float
    description: str

    def contains(self, amount: int) -> bool:
        return self.min_bet <= amount <= self.max_bet


@dataclass(frozen=True)
class PlacementPointTable:
    """Points awarded by final placement"""
    first: int
    second: int
    third: int
    fourth: int
    top8: int
    participation: int

    def as_tuple(self) -> Tuple[int, ...]:
        return (
            self.first,
            self.second,
            self.third,
            self.fourth,
            self.top8,
            self.participation,
        )


@dataclass(frozen=True)
class TournamentTier:
    """Tournament class with its point table and entry requirements"""
    code: str
    name: str
    description: str
    points: PlacementPointTable
    entry_fee_min: int
    entry_fee_max: int
    min_rank: Optional[str] = None
    max_rank: Optional[str] = None

    def accepts_entry_fee(self, fee: int) -> bool:
        """Whether an entry fee sits inside this tier's band"""
        return self.entry_fee_min <= fee <= self.entry_fee_max

    def is_rank_eligible(self, rank: str) -> bool:
        """
        Whether a player of the given rank may register

        Raises:
            InvalidArgument: rank is not on the ladder
        """
        idx = rank_index(rank)
        if self.min_rank is not None and idx < rank_index(self.min_rank):
            return False
        if self.max_rank is not None and idx > rank_index(self.max_rank):
            return False
        return True


# =====================================================
# Challenge wager bands
# =====================================================

MIN_BET_POINTS = 100
MAX_BET_POINTS = 650

# Ordered by min_bet descending, closed intervals on both ends
_WAGER_TIERS = [
    WagerTier(600, 650, 22, 3.5, 2.5, "Premium challenge - Race to 22"),
    WagerTier(500, 599, 18, 3.0, 2.0, "Upper-intermediate challenge - Race to 18"),
    WagerTier(400, 499, 16, 2.5, 1.5, "Intermediate challenge - Race to 16"),
    WagerTier(300, 399, 14, 2.0, 1.5, "Standard challenge - Race to 14"),
    WagerTier(200, 299, 12, 1.5, 1.0, "Basic challenge - Race to 12"),
    WagerTier(100, 199, 8, 1.0, 0.5, "Beginner challenge - Race to 8"),
]


def validate_wager_tiers(
    tiers: Iterable[WagerTier],
    min_bet: int = MIN_BET_POINTS,
    max_bet: int = MAX_BET_POINTS
) -> Tuple[WagerTier, ...]:
    """
    Check a hand-authored wager table

    - each band has min_bet <= max_bet
    - bands ordered by min_bet descending
    - adjacent bands neither overlap nor leave an integer gap
    - the union of the bands is exactly [min_bet, max_bet]

    Returns:
        The table as an immutable tuple

    Raises:
        ConfigurationError: any invariant fails
    """
    table = tuple(tiers)
    if not table:
        raise ConfigurationError("Wager tier table is empty")

    for tier in table:
        if tier.min_bet > tier.max_bet:
            raise ConfigurationError(
                f"Wager band [{tier.min_bet}, {tier.max_bet}] has min above max"
            )
        if tier.race_to < 1:
            raise ConfigurationError(f"Wager band starting {tier.min_bet} has race_to < 1")

    for upper, lower in zip(table, table[1:]):
        if upper.min_bet <= lower.min_bet:
            raise ConfigurationError(
                f"Wager bands out of order: {upper.min_bet} listed before {lower.min_bet}"
            )
        if lower.max_bet >= upper.min_bet:
            raise ConfigurationError(
                f"Wager bands overlap: [{lower.min_bet}, {lower.max_bet}] "
                f"and [{upper.min_bet}, {upper.max_bet}]"
            )
        if lower.max_bet + 1 != upper.min_bet:
            raise ConfigurationError(
                f"Gap between wager bands: {lower.max_bet} .. {upper.min_bet}"
            )

    if table[-1].min_bet != min_bet or table[0].max_bet != max_bet:
        raise ConfigurationError(
            f"Wager bands cover [{table[-1].min_bet}, {table[0].max_bet}], "
            f"expected [{min_bet}, {max_bet}]"
        )

    return table


# =====================================================
# Tournament tiers
# =====================================================

_TOURNAMENT_TIERS = [
    TournamentTier(
        code="G",
        name="Tier G Tournament",
        description="Top-level tournament",
        points=PlacementPointTable(1200, 900, 700, 500, 250, 100),
        entry_fee_min=500_000,
        entry_fee_max=2_000_000,
    ),
    TournamentTier(
        code="H",
        name="Tier H Tournament",
        description="Intermediate tournament",
        points=PlacementPointTable(1100, 850, 650, 450, 200, 100),
        entry_fee_min=200_000,
        entry_fee_max=800_000,
    ),
    TournamentTier(
        code="I",
        name="Tier I Tournament",
        description="Basic tournament",
        points=PlacementPointTable(1000, 800, 600, 400, 150, 100),
        entry_fee_min=100_000,
        entry_fee_max=500_000,
    ),
    TournamentTier(
        code="K",
        name="Tier K Tournament",
        description="Tournament for newcomers",
        points=PlacementPointTable(1000, 800, 600, 400, 150, 100),
        entry_fee_min=50_000,
        entry_fee_max=200_000,
    ),
]


def validate_tournament_tiers(tiers: Iterable[TournamentTier]) -> Dict[str, TournamentTier]:
    """
    Check the tournament tier table and index it by code

    Raises:
        ConfigurationError: duplicate or malformed code, point table not
            non-increasing or negative, bad entry fee band, bad rank bounds
    """
    indexed: Dict[str, TournamentTier] = {}

    for tier in tiers:
        if len(tier.code) != 1 or not tier.code.isalpha() or not tier.code.isupper():
            raise ConfigurationError(f"Tier code must be one upper-case letter: {tier.code!r}")
        if tier.code in indexed:
            raise ConfigurationError(f"Duplicate tier code: {tier.code}")

        values = tier.points.as_tuple()
        if any(v < 0 for v in values):
            raise ConfigurationError(f"Tier {tier.code} has negative points")
        if any(a < b for a, b in zip(values, values[1:])):
            raise ConfigurationError(f"Tier {tier.code} points are not non-increasing: {values}")

        if tier.entry_fee_min < 0 or tier.entry_fee_min > tier.entry_fee_max:
            raise ConfigurationError(
                f"Tier {tier.code} entry fee band [{tier.entry_fee_min}, {tier.entry_fee_max}] is invalid"
            )

        try:
            low = rank_index(tier.min_rank) if tier.min_rank is not None else None
            high = rank_index(tier.max_rank) if tier.max_rank is not None else None
        except InvalidArgument as e:
            raise ConfigurationError(f"Tier {tier.code}: {e}") from e
        if low is not None and high is not None and low > high:
            raise ConfigurationError(f"Tier {tier.code} rank bounds are inverted")

        indexed[tier.code] = tier

    if not indexed:
        raise ConfigurationError("Tournament tier table is empty")
    return indexed


# =====================================================
# Recommendation weights
# =====================================================

PLATFORM_OWNED_BONUS = 1000

PAYMENT_DIVISOR = 10
PAYMENT_SCORE_CAP = 500

DISTANCE_HORIZON_KM = 100
EARTH_RADIUS_KM = 6371.0

TABLE_WEIGHT = 2
RATING_WEIGHT = 20
MAX_RATING = 5.0

INTERACTION_SCORE_CAP = 350
RECENT_INTERACTION_BONUS = 50
RECENT_INTERACTION_DAYS = 30

PRIZE_POOL_DIVISOR = 10
PRIZE_POOL_SCORE_CAP = 200

SWEET_SPOT_RANGE = (0.3, 0.8)
SWEET_SPOT_BONUS = 50

REGISTRATION_WINDOW_DAYS = 7
REGISTRATION_OPENING_BONUS = 30


# =====================================================
# Load-time checks
# =====================================================

try:
    WAGER_TIERS: Tuple[WagerTier, ...] = validate_wager_tiers(_WAGER_TIERS)
    TOURNAMENT_TIERS: Dict[str, TournamentTier] = validate_tournament_tiers(_TOURNAMENT_TIERS)
except ConfigurationError as e:
    logger.critical(f"Tier configuration {CONFIG_VERSION} rejected: {e}")
    raise


def list_tournament_tiers() -> List[TournamentTier]:
    """Tournament tiers in authored order (highest first)"""
    return list(TOURNAMENT_TIERS.values())
