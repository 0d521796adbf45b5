"""
Ranking services

Orchestration between the data store and the pure ranking functions:
- tournament finalization (points allocation + result persistence)
- standings recomputation, serialized per scope
- player verification / removal
- suggested clubs and recommended tournaments

A store is any object with the methods of database.supabase_client.SupabaseStore
(database.memory_store.InMemoryStore in tests).
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from loguru import logger

from .calculator import (
    MatchResult,
    Scope,
    ScopeSummary,
    Standing,
    aggregate_standings,
    allocate_tournament_points,
    summarize_standings,
)
from .config import EngineConfig, get_engine_config
from .errors import InvalidArgument, SnapshotSwapError
from .recommendation import TournamentCandidate, VenueCandidate, rank_tournaments, rank_venues


@dataclass(frozen=True)
class Finisher:
    """A participant's final line in a finalized tournament"""
    player_id: str
    placement: int
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    prize_money: int = 0


class StandingsService:
    """Standings maintenance over a data store"""

    def __init__(self, store):
        self.store = store
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, scope: Scope) -> asyncio.Lock:
        # one lock per scope: read-modify-write of a scope never interleaves
        return self._locks.setdefault(scope.key, asyncio.Lock())

    async def _rebuild(
        self,
        scope: Scope,
        verified: Optional[Dict[str, datetime]] = None,
        drop_player: Optional[str] = None
    ) -> List[Standing]:
        """Read results and snapshot, aggregate, swap. Caller holds the scope lock."""
        results = await self.store.fetch_results(scope)
        previous = await self.store.fetch_standings(scope)

        if drop_player is not None:
            previous = [s for s in previous if s.player_id != drop_player]

        standings = aggregate_standings(scope.scope_id, results, previous=previous, verified=verified)
        await self.store.replace_standings(scope, standings)

        movers = sum(1 for s in standings if s.rank_change)
        logger.info(
            f"{scope.key}: {len(standings)} players ranked from {len(results)} results "
            f"({movers} rank changes)"
        )
        return standings

    async def recompute(self, scope: Scope) -> List[Standing]:
        """
        Re-rank a whole scope from its results

        Raises:
            SnapshotSwapError: the new snapshot could not be written; retryable
        """
        async with self._lock_for(scope):
            logger.info(f"{scope.key}: recomputing standings")
            return await self._rebuild(scope)

    async def verify_player(
        self,
        scope: Scope,
        player_id: str,
        verified_at: Optional[datetime] = None
    ) -> Standing:
        """Register a player into a scope with a zero baseline, then re-rank"""
        verified_at = verified_at or datetime.now(timezone.utc)
        async with self._lock_for(scope):
            standings = await self._rebuild(scope, verified={player_id: verified_at})

        logger.info(f"{scope.key}: verified player {player_id}")
        return next(s for s in standings if s.player_id == player_id)

    async def remove_player(self, scope: Scope, player_id: str) -> List[Standing]:
        """
        Drop a verified player without results from a scope

        Raises:
            InvalidArgument: the player has recorded results in the scope
        """
        async with self._lock_for(scope):
            results = await self.store.fetch_results(scope)
            if any(r.player_id == player_id for r in results):
                raise InvalidArgument(
                    f"Player {player_id} has recorded results in {scope.key}; standings follow results"
                )
            standings = await self._rebuild(scope, drop_player=player_id)

        logger.info(f"{scope.key}: removed player {player_id}")
        return standings

    async def finalize_tournament(
        self,
        tournament_id: str,
        tier_code: str,
        finishers: Iterable[Finisher],
        club_id: Optional[str] = None,
        season_id: Optional[str] = None,
        recorded_at: Optional[datetime] = None
    ) -> Dict[str, List[Standing]]:
        """
        Allocate placement points, save the results and re-rank affected scopes

        Points are allocated for every finisher before anything is written, so
        an invalid placement or tier leaves the store untouched. Results are
        upserted per (tournament_id, player), so the call can be retried with
        the same finishers after a failed swap. Every scope is recomputed even
        when an earlier one fails.

        Returns:
            scope key -> new standings for the club, season and global scopes

        Raises:
            SnapshotSwapError: one or more swaps failed; scope_keys lists them
        """
        finishers = list(finishers)
        placements: Dict[str, int] = {}
        for f in finishers:
            if f.player_id in placements:
                raise InvalidArgument(f"Player {f.player_id} listed twice in tournament {tournament_id}")
            placements[f.player_id] = f.placement

        points = allocate_tournament_points(tier_code, placements)
        recorded_at = recorded_at or datetime.now(timezone.utc)

        results = [
            MatchResult(
                player_id=f.player_id,
                scope_id=club_id or season_id or "",
                placement=f.placement,
                points_earned=points[f.player_id],
                matches_played=f.matches_played,
                matches_won=f.matches_won,
                matches_lost=f.matches_lost,
                recorded_at=recorded_at,
                prize_money=f.prize_money,
                tournament_id=tournament_id,
            )
            for f in finishers
        ]
        saved = await self.store.insert_results(results, club_id=club_id, season_id=season_id)
        logger.info(f"Tournament {tournament_id} (tier {tier_code}): saved {saved} results")

        scopes = [Scope.global_()]
        if club_id:
            scopes.insert(0, Scope.club(club_id))
        if season_id:
            scopes.insert(-1, Scope.season(season_id))

        updated = {}
        failed: Dict[str, SnapshotSwapError] = {}
        for scope in scopes:
            try:
                updated[scope.key] = await self.recompute(scope)
            except SnapshotSwapError as e:
                failed[scope.key] = e

        if failed:
            keys = list(failed)
            logger.error(f"Tournament {tournament_id}: standings not replaced for {', '.join(keys)}")
            raise SnapshotSwapError(
                keys[0],
                f"tournament {tournament_id} results saved, standings of {len(keys)} scope(s) pending; "
                f"retry finalize_tournament or recompute",
                scope_keys=keys,
            ) from failed[keys[0]]
        return updated

    async def summary(self, scope: Scope) -> ScopeSummary:
        """Statistics of a scope's stored snapshot"""
        return summarize_standings(await self.store.fetch_standings(scope))


class RecommendationService:
    """Suggested clubs and recommended tournaments for a user"""

    def __init__(self, store, config: Optional[EngineConfig] = None):
        self.store = store
        self.config = config or get_engine_config()

    async def suggest_clubs(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[VenueCandidate]:
        now = now or datetime.now(timezone.utc)
        clubs = await self.store.fetch_clubs()
        location = await self.store.fetch_user_location(user_id)
        interactions = await self.store.fetch_interactions(user_id)

        if location is None:
            logger.debug(f"User {user_id} has no saved location; distance not scored")

        return rank_venues(
            clubs,
            user_location=location,
            interactions=interactions,
            now=now,
            limit=limit if limit is not None else self.config.suggestion_limit,
        )

    async def recommend_tournaments(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[TournamentCandidate]:
        now = now or datetime.now(timezone.utc)
        tournaments = await self.store.fetch_open_tournaments(now)
        location = await self.store.fetch_user_location(user_id)
        interactions = await self.store.fetch_interactions(user_id)

        return rank_tournaments(
            tournaments,
            user_location=location,
            interactions=interactions,
            now=now,
            limit=limit if limit is not None else self.config.recommendation_limit,
        )
