"""
Cue ranking engine

Challenge wager tiers, tournament placement points, club/season/global
standings and venue/tournament recommendation scoring.
"""
from .calculator import (
    GLOBAL_SCOPE_ID,
    MatchResult,
    Scope,
    ScopeKind,
    ScopeSummary,
    Standing,
    StandingsAggregator,
    aggregate_standings,
    allocate_points,
    allocate_tournament_points,
    get_tournament_tier,
    summarize_standings,
    verify_player_standing,
)
from .challenge import (
    ChallengeTerms,
    challenge_terms,
    is_valid_bet_points,
    resolve_challenge_config,
    validate_bet_points,
)
from .errors import (
    ConfigurationError,
    InvalidArgument,
    NotFound,
    RankingError,
    SnapshotSwapError,
)
from .recommendation import (
    TournamentCandidate,
    UserLocation,
    VenueCandidate,
    VenueInteraction,
    haversine_km,
    rank_tournaments,
    rank_venues,
    score_tournament,
    score_venue,
)
from .tiers import (
    CONFIG_VERSION,
    TOURNAMENT_TIERS,
    WAGER_TIERS,
    PlacementPointTable,
    TournamentTier,
    WagerTier,
)

__all__ = [
    # Tiers
    "CONFIG_VERSION",
    "WAGER_TIERS",
    "TOURNAMENT_TIERS",
    "WagerTier",
    "TournamentTier",
    "PlacementPointTable",
    # Challenge
    "ChallengeTerms",
    "challenge_terms",
    "is_valid_bet_points",
    "validate_bet_points",
    "resolve_challenge_config",
    # Points & standings
    "GLOBAL_SCOPE_ID",
    "Scope",
    "ScopeKind",
    "MatchResult",
    "Standing",
    "ScopeSummary",
    "StandingsAggregator",
    "get_tournament_tier",
    "allocate_points",
    "allocate_tournament_points",
    "aggregate_standings",
    "verify_player_standing",
    "summarize_standings",
    # Recommendation
    "UserLocation",
    "VenueInteraction",
    "VenueCandidate",
    "TournamentCandidate",
    "haversine_km",
    "score_venue",
    "score_tournament",
    "rank_venues",
    "rank_tournaments",
    # Errors
    "RankingError",
    "InvalidArgument",
    "NotFound",
    "ConfigurationError",
    "SnapshotSwapError",
]
