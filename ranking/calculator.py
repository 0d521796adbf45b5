"""
Tournament points and standings

- Placement points by tournament tier
- Whole-scope standings (club, season, global) from finalized results
- Rank change against the previous snapshot of the same scope
"""
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from loguru import logger

from .errors import InvalidArgument, NotFound
from .tiers import TOURNAMENT_TIERS, TournamentTier


GLOBAL_SCOPE_ID = "global"


# =====================================================
# Data classes
# =====================================================

class ScopeKind(str, Enum):
    """Ranking context"""
    CLUB = "club"
    SEASON = "season"
    GLOBAL = "global"


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    scope_id: str = GLOBAL_SCOPE_ID

    def __post_init__(self):
        if self.kind == ScopeKind.GLOBAL and self.scope_id != GLOBAL_SCOPE_ID:
            raise InvalidArgument(f"Global scope id must be {GLOBAL_SCOPE_ID!r}")
        if not self.scope_id:
            raise InvalidArgument("Scope id is required")

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.scope_id}"

    @classmethod
    def club(cls, club_id: str) -> "Scope":
        return cls(ScopeKind.CLUB, club_id)

    @classmethod
    def season(cls, season_id: str) -> "Scope":
        return cls(ScopeKind.SEASON, season_id)

    @classmethod
    def global_(cls) -> "Scope":
        return cls(ScopeKind.GLOBAL)


@dataclass(frozen=True)
class MatchResult:
    """One player's result in one finalized tournament"""
    player_id: str
    scope_id: str
    placement: int
    points_earned: int
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    recorded_at: Optional[datetime] = None
    prize_money: int = 0
    tournament_id: Optional[str] = None


@dataclass
class Standing:
    """A player's row in a scope's standings snapshot"""
    scope_id: str
    player_id: str
    total_points: int
    tournaments_played: int
    best_finish: Optional[int]
    current_rank: int = 0
    previous_rank: Optional[int] = None
    rank_change: int = 0
    verified_at: Optional[datetime] = None
    total_prize_money: int = 0
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0

    def to_dict(self) -> dict:
        return {
            "scope_id": self.scope_id,
            "player_id": self.player_id,
            "total_points": self.total_points,
            "tournaments_played": self.tournaments_played,
            "best_finish": self.best_finish,
            "current_rank": self.current_rank,
            "previous_rank": self.previous_rank,
            "rank_change": self.rank_change,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "total_prize_money": self.total_prize_money,
            "matches_played": self.matches_played,
            "matches_won": self.matches_won,
            "matches_lost": self.matches_lost,
        }


@dataclass(frozen=True)
class ScopeSummary:
    """Aggregate statistics of one standings snapshot"""
    total_players: int
    total_points: int
    average_points: float
    total_tournaments: int
    verified_players: int


# =====================================================
# Placement points
# =====================================================

def get_tournament_tier(code: str) -> TournamentTier:
    """
    Tournament tier by its letter code

    Raises:
        NotFound: unknown code
    """
    key = code.strip().upper() if isinstance(code, str) else code
    tier = TOURNAMENT_TIERS.get(key)
    if tier is None:
        raise NotFound(f"Unknown tournament tier: {code!r}")
    return tier


def allocate_points(
    tier_code: str,
    placement: int,
    participant_count: Optional[int] = None
) -> int:
    """
    Points earned for a final placement

    Order: 1st, 2nd, 3rd, 4th, top 8, participation (first match wins).

    Args:
        tier_code: tournament tier letter (G/H/I/K)
        placement: 1-based final position
        participant_count: tournament size, checked against placement when given

    Raises:
        NotFound: unknown tier
        InvalidArgument: placement < 1 or beyond participant_count
    """
    if isinstance(placement, bool) or not isinstance(placement, int):
        raise InvalidArgument(f"Placement must be an integer, got {placement!r}")
    if placement < 1:
        raise InvalidArgument(f"Placement must be 1 or greater, got {placement}")
    if participant_count is not None:
        if participant_count < 1:
            raise InvalidArgument(f"Participant count must be positive, got {participant_count}")
        if placement > participant_count:
            raise InvalidArgument(
                f"Placement {placement} exceeds participant count {participant_count}"
            )

    table = get_tournament_tier(tier_code).points

    if placement == 1:
        return table.first
    if placement == 2:
        return table.second
    if placement == 3:
        return table.third
    if placement == 4:
        return table.fourth
    if placement <= 8:
        return table.top8
    return table.participation


def allocate_tournament_points(
    tier_code: str,
    placements: Mapping[str, int]
) -> Dict[str, int]:
    """
    Points for every finisher of a finalized tournament

    Args:
        tier_code: tournament tier letter
        placements: player_id -> final placement

    Returns:
        player_id -> points earned
    """
    count = len(placements)
    return {
        player_id: allocate_points(tier_code, placement, count)
        for player_id, placement in placements.items()
    }


# =====================================================
# Standings
# =====================================================

def _standing_sort_key(standing: Standing):
    # points, then participation, then player id as an arbitrary fixed order
    return (-standing.total_points, -standing.tournaments_played, standing.player_id)


def verify_player_standing(
    scope_id: str,
    player_id: str,
    verified_at: datetime
) -> Standing:
    """Zero-baseline row for a player verified into a scope without results"""
    return Standing(
        scope_id=scope_id,
        player_id=player_id,
        total_points=0,
        tournaments_played=0,
        best_finish=None,
        verified_at=verified_at,
    )


def aggregate_standings(
    scope_id: str,
    results: Iterable[MatchResult],
    previous: Iterable[Standing] = (),
    verified: Optional[Mapping[str, datetime]] = None
) -> List[Standing]:
    """
    Rank every player of a scope from its full result set

    total = sum(points_earned); ties are broken by tournaments
    played (more first), then player_id ascending.

    Args:
        scope_id: club/season id, or GLOBAL_SCOPE_ID to accept every result
        results: all MatchResult rows of the scope
        previous: the scope's current snapshot (source of previous_rank)
        verified: player_id -> verified_at for players verified into the scope

    Returns:
        The complete new snapshot, ordered by current_rank

    Raises:
        InvalidArgument: a result belongs to another scope
    """
    previous_by_player = {s.player_id: s for s in previous}

    verified_at: Dict[str, datetime] = {
        s.player_id: s.verified_at for s in previous_by_player.values() if s.verified_at
    }
    if verified:
        verified_at.update(verified)

    grouped: Dict[str, List[MatchResult]] = defaultdict(list)
    for r in results:
        if scope_id != GLOBAL_SCOPE_ID and r.scope_id != scope_id:
            raise InvalidArgument(
                f"Result for player {r.player_id} belongs to scope {r.scope_id}, not {scope_id}"
            )
        if r.placement < 1:
            raise InvalidArgument(f"Result for player {r.player_id} has placement {r.placement}")
        grouped[r.player_id].append(r)

    standings: List[Standing] = []
    for player_id, rows in grouped.items():
        standings.append(Standing(
            scope_id=scope_id,
            player_id=player_id,
            total_points=sum(r.points_earned for r in rows),
            tournaments_played=len(rows),
            best_finish=min(r.placement for r in rows),
            verified_at=verified_at.get(player_id),
            total_prize_money=sum(r.prize_money for r in rows),
            matches_played=sum(r.matches_played for r in rows),
            matches_won=sum(r.matches_won for r in rows),
            matches_lost=sum(r.matches_lost for r in rows),
        ))

    for player_id, at in verified_at.items():
        if player_id not in grouped:
            standings.append(verify_player_standing(scope_id, player_id, at))

    standings.sort(key=_standing_sort_key)

    for rank, standing in enumerate(standings, 1):
        standing.current_rank = rank
        prior = previous_by_player.get(standing.player_id)
        if prior is not None and prior.current_rank:
            standing.previous_rank = prior.current_rank
            standing.rank_change = prior.current_rank - rank
        else:
            standing.previous_rank = None
            standing.rank_change = 0

    return standings


def summarize_standings(standings: Iterable[Standing]) -> ScopeSummary:
    """Player count, point totals and verified count of a snapshot"""
    rows = list(standings)
    total_points = sum(s.total_points for s in rows)
    return ScopeSummary(
        total_players=len(rows),
        total_points=total_points,
        average_points=total_points / len(rows) if rows else 0.0,
        total_tournaments=sum(s.tournaments_played for s in rows),
        verified_players=sum(1 for s in rows if s.verified_at),
    )


# =====================================================
# Aggregator
# =====================================================

class StandingsAggregator:
    """Standings calculator over an in-memory result set"""

    def __init__(self, results: Optional[Iterable[MatchResult]] = None):
        self.results: List[MatchResult] = []
        if results:
            self.load(results)

    def load(self, results: Iterable[MatchResult]):
        """Append finalized results"""
        before = len(self.results)
        self.results.extend(results)
        logger.debug(f"Loaded {len(self.results) - before} results ({len(self.results)} total)")

    def filter_results(
        self,
        scope: Scope,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None
    ) -> List[MatchResult]:
        """
        Results belonging to a scope, optionally limited to a date window

        Rows without recorded_at are dropped once a window is given.
        """
        filtered = self.results
        if scope.kind != ScopeKind.GLOBAL:
            filtered = [r for r in filtered if r.scope_id == scope.scope_id]
        if since is not None:
            filtered = [r for r in filtered if r.recorded_at is not None and r.recorded_at >= since]
        if until is not None:
            filtered = [r for r in filtered if r.recorded_at is not None and r.recorded_at <= until]
        return filtered

    def calculate_standings(
        self,
        scope: Scope,
        previous: Iterable[Standing] = (),
        verified: Optional[Mapping[str, datetime]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None
    ) -> List[Standing]:
        """Standings snapshot for one scope"""
        results = self.filter_results(scope, since=since, until=until)
        return aggregate_standings(scope.scope_id, results, previous=previous, verified=verified)

    def scope_ids(self) -> List[str]:
        """Distinct scope ids present in the loaded results"""
        return sorted({r.scope_id for r in self.results})

    def calculate_all(self, kind: ScopeKind) -> Dict[str, List[Standing]]:
        """
        Fresh standings for every scope of one kind

        Previous snapshots are not consulted, so rank_change is 0 everywhere.
        """
        if kind == ScopeKind.GLOBAL:
            return {GLOBAL_SCOPE_ID: self.calculate_standings(Scope.global_())}

        all_standings = {}
        for scope_id in self.scope_ids():
            standings = self.calculate_standings(Scope(kind, scope_id))
            if standings:
                all_standings[scope_id] = standings
                logger.info(f"{kind.value}:{scope_id}: {len(standings)} players")
        return all_standings


def with_points(result: MatchResult, tier_code: str, participant_count: Optional[int] = None) -> MatchResult:
    """Copy of a result with points_earned allocated from its placement"""
    return replace(
        result,
        points_earned=allocate_points(tier_code, result.placement, participant_count),
    )
