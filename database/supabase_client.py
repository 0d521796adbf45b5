"""
Supabase data store

Reads raw rows for the ranking engine and writes standings snapshots back.
A snapshot is replaced through the replace_scope_standings Postgres function
(database/migrations/001_replace_scope_standings.sql) so the delete and insert
happen in one transaction.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from supabase import Client, create_client

from database.schemas import (
    ClubSchema,
    InteractionSchema,
    StandingSchema,
    TournamentResultSchema,
    TournamentSchema,
    UserLocationSchema,
    parse_rows,
    standing_to_row,
)
from ranking.calculator import MatchResult, Scope, ScopeKind, Standing
from ranking.config import get_supabase_config
from ranking.errors import ConfigurationError, SnapshotSwapError
from ranking.recommendation import TournamentCandidate, UserLocation, VenueCandidate, VenueInteraction


PAGE_SIZE = 1000

RESULTS_TABLE = "tournament_results"

# scope kind -> (standings table, scope column)
STANDINGS_TABLES: Dict[ScopeKind, Tuple[str, str]] = {
    ScopeKind.CLUB: ("club_standings", "club_id"),
    ScopeKind.SEASON: ("season_standings", "season_id"),
    ScopeKind.GLOBAL: ("global_standings", "scope_id"),
}

# scope kind -> tournament_results column (None = every row)
RESULT_SCOPE_COLUMNS: Dict[ScopeKind, Optional[str]] = {
    ScopeKind.CLUB: "club_id",
    ScopeKind.SEASON: "season_id",
    ScopeKind.GLOBAL: None,
}

OPEN_TOURNAMENT_STATUSES = ["upcoming", "registration_open"]

CLUB_SCORING_COLUMNS = (
    "id, name, is_sabo_owned, monthly_payment, latitude, longitude, "
    "available_tables, average_rating"
)


# Singleton client
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Supabase client instance (singleton)"""
    global _supabase_client
    if _supabase_client is None:
        config = get_supabase_config()
        if not config.supabase_url or not config.supabase_key:
            raise ConfigurationError("Set the SUPABASE_URL and SUPABASE_KEY environment variables")
        _supabase_client = create_client(config.supabase_url, config.supabase_key)
    return _supabase_client


class SupabaseStore:
    """Ranking engine data store backed by Supabase"""

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    def _fetch_all(self, query_factory) -> List[Dict[str, Any]]:
        """Page through a select; PostgREST caps a response at PAGE_SIZE rows"""
        rows: List[Dict[str, Any]] = []
        start = 0
        while True:
            result = query_factory().range(start, start + PAGE_SIZE - 1).execute()
            page = result.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            start += PAGE_SIZE

    # ==================== Results ====================

    async def fetch_results(self, scope: Scope) -> List[MatchResult]:
        """Every finalized result of a scope"""
        column = RESULT_SCOPE_COLUMNS[scope.kind]

        def query():
            q = self.client.table(RESULTS_TABLE).select("*")
            if column:
                q = q.eq(column, scope.scope_id)
            return q.order("id")

        rows = self._fetch_all(query)
        return [r.to_match_result(scope.scope_id) for r in parse_rows(TournamentResultSchema, rows)]

    async def insert_results(
        self,
        results: Iterable[MatchResult],
        club_id: Optional[str] = None,
        season_id: Optional[str] = None
    ) -> int:
        """
        Persist the results of a finalized tournament

        Upserts on (tournament_id, user_id), so saving the same tournament
        again overwrites its rows instead of adding duplicates.
        """
        payload = [
            {
                "tournament_id": r.tournament_id,
                "user_id": r.player_id,
                "club_id": club_id,
                "season_id": season_id,
                "final_position": r.placement,
                "elo_points_earned": r.points_earned,
                "prize_money": r.prize_money,
                "matches_played": r.matches_played,
                "matches_won": r.matches_won,
                "matches_lost": r.matches_lost,
                "created_at": r.recorded_at.isoformat() if r.recorded_at else None,
            }
            for r in results
        ]
        if not payload:
            return 0

        try:
            result = self.client.table(RESULTS_TABLE).upsert(
                payload, on_conflict="tournament_id,user_id"
            ).execute()
        except Exception as e:
            logger.error(f"Failed to save tournament results: {e}")
            raise
        return len(result.data or [])

    # ==================== Standings ====================

    async def fetch_standings(self, scope: Scope) -> List[Standing]:
        """Current standings snapshot of a scope"""
        table, column = STANDINGS_TABLES[scope.kind]
        rows = self._fetch_all(
            lambda: self.client.table(table).select("*").eq(column, scope.scope_id).order("current_rank")
        )
        rows = [{**row, "scope_id": row.get(column)} for row in rows]
        return [s.to_standing() for s in parse_rows(StandingSchema, rows)]

    async def replace_standings(self, scope: Scope, standings: List[Standing]):
        """
        Swap the scope's whole snapshot in one transaction

        Raises:
            SnapshotSwapError: the swap failed; the previous snapshot is unchanged
        """
        table, column = STANDINGS_TABLES[scope.kind]
        payload = [standing_to_row(s, column) for s in standings]

        try:
            self.client.rpc("replace_scope_standings", {
                "p_table": table,
                "p_scope_column": column,
                "p_scope_id": scope.scope_id,
                "p_rows": payload,
            }).execute()
        except Exception as e:
            logger.error(f"Standings swap failed for {scope.key}: {e}")
            raise SnapshotSwapError(scope.key, str(e)) from e

        logger.debug(f"{scope.key}: wrote {len(payload)} standings rows")

    # ==================== Venues ====================

    async def fetch_clubs(self) -> List[VenueCandidate]:
        """Active clubs with their scoring attributes"""
        rows = self._fetch_all(
            lambda: self.client.table("clubs").select(CLUB_SCORING_COLUMNS).eq("status", "active").order("id")
        )
        return [c.to_candidate() for c in parse_rows(ClubSchema, rows)]

    async def fetch_open_tournaments(self, now: Optional[datetime] = None) -> List[TournamentCandidate]:
        """Tournaments still open for registration, joined with their club"""
        now = now or datetime.now(timezone.utc)
        rows = self._fetch_all(
            lambda: self.client.table("tournaments").select(
                f"id, name, prize_pool, current_participants, max_participants, "
                f"registration_start, clubs!inner({CLUB_SCORING_COLUMNS})"
            ).in_("status", OPEN_TOURNAMENT_STATUSES).gte(
                "registration_end", now.isoformat()
            ).order("id")
        )
        return [t.to_candidate() for t in parse_rows(TournamentSchema, rows)]

    # ==================== User context ====================

    async def fetch_user_location(self, user_id: str) -> Optional[UserLocation]:
        """User's saved location, or None"""
        result = self.client.table("user_locations").select(
            "user_id, latitude, longitude"
        ).eq("user_id", user_id).limit(1).execute()

        rows = parse_rows(UserLocationSchema, result.data or [])
        return rows[0].to_location() if rows else None

    async def fetch_interactions(self, user_id: str) -> List[VenueInteraction]:
        """User's club interaction records"""
        rows = self._fetch_all(
            lambda: self.client.table("user_club_interactions").select(
                "club_id, interaction_score, last_interaction"
            ).eq("user_id", user_id).order("club_id")
        )
        return [i.to_interaction() for i in parse_rows(InteractionSchema, rows)]
