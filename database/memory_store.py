"""
In-memory data store

Same interface as SupabaseStore, holding rows in plain dicts. Used for tests
and dry runs of the CLI against exported JSON data.
"""
import copy
import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from pydantic import TypeAdapter

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
from database.supabase_client import OPEN_TOURNAMENT_STATUSES, RESULT_SCOPE_COLUMNS, STANDINGS_TABLES
from ranking.calculator import MatchResult, Scope, Standing
from ranking.recommendation import TournamentCandidate, UserLocation, VenueCandidate, VenueInteraction


_DATETIME = TypeAdapter(datetime)


def _parse_utc(value) -> datetime:
    """Timestamp column value -> aware datetime; naive values are UTC"""
    moment = _DATETIME.validate_python(value)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class InMemoryStore:
    """Ranking engine data store over in-memory tables"""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "tournament_results": [],
            "club_standings": [],
            "season_standings": [],
            "global_standings": [],
            "clubs": [],
            "tournaments": [],
            "user_locations": [],
            "user_club_interactions": [],
        }
        if tables:
            for name, rows in tables.items():
                self.tables[name] = copy.deepcopy(rows)

    @classmethod
    def from_json(cls, path: str) -> "InMemoryStore":
        """Load tables from a JSON file shaped {table_name: [rows]}"""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        store = cls(data)
        logger.info(f"Loaded {sum(len(rows) for rows in store.tables.values())} rows from {path}")
        return store

    # ==================== Results ====================

    async def fetch_results(self, scope: Scope) -> List[MatchResult]:
        column = RESULT_SCOPE_COLUMNS[scope.kind]
        rows = self.tables["tournament_results"]
        if column:
            rows = [r for r in rows if r.get(column) == scope.scope_id]
        return [r.to_match_result(scope.scope_id) for r in parse_rows(TournamentResultSchema, rows)]

    async def insert_results(
        self,
        results: Iterable[MatchResult],
        club_id: Optional[str] = None,
        season_id: Optional[str] = None
    ) -> int:
        table = self.tables["tournament_results"]
        inserted = 0
        for r in results:
            # one row per (tournament_id, user_id); a repeated finalize overwrites
            if r.tournament_id is not None:
                table[:] = [
                    row for row in table
                    if (row.get("tournament_id"), row.get("user_id")) != (r.tournament_id, r.player_id)
                ]
            table.append({
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
            })
            inserted += 1
        return inserted

    # ==================== Standings ====================

    async def fetch_standings(self, scope: Scope) -> List[Standing]:
        table, column = STANDINGS_TABLES[scope.kind]
        rows = [
            {**row, "scope_id": row.get(column)}
            for row in self.tables[table]
            if row.get(column) == scope.scope_id
        ]
        standings = [s.to_standing() for s in parse_rows(StandingSchema, rows)]
        return sorted(standings, key=lambda s: s.current_rank)

    async def replace_standings(self, scope: Scope, standings: List[Standing]):
        table, column = STANDINGS_TABLES[scope.kind]
        # build the new table fully before assigning it
        new_rows = [standing_to_row(s, column) for s in standings]
        kept = [row for row in self.tables[table] if row.get(column) != scope.scope_id]
        self.tables[table] = kept + new_rows

    # ==================== Venues ====================

    async def fetch_clubs(self) -> List[VenueCandidate]:
        rows = [r for r in self.tables["clubs"] if r.get("status", "active") == "active"]
        return [c.to_candidate() for c in parse_rows(ClubSchema, rows)]

    async def fetch_open_tournaments(self, now: Optional[datetime] = None) -> List[TournamentCandidate]:
        now = _parse_utc(now or datetime.now(timezone.utc))
        clubs = {c["id"]: c for c in self.tables["clubs"]}
        rows = []
        for t in self.tables["tournaments"]:
            if t.get("status") not in OPEN_TOURNAMENT_STATUSES:
                continue
            if t.get("registration_end"):
                if _parse_utc(t["registration_end"]) < now:
                    continue
            club = clubs.get(t.get("club_id"))
            if club is None:
                continue
            rows.append({**t, "clubs": club})
        return [t.to_candidate() for t in parse_rows(TournamentSchema, rows)]

    # ==================== User context ====================

    async def fetch_user_location(self, user_id: str) -> Optional[UserLocation]:
        rows = [r for r in self.tables["user_locations"] if r.get("user_id") == user_id]
        parsed = parse_rows(UserLocationSchema, rows[:1])
        return parsed[0].to_location() if parsed else None

    async def fetch_interactions(self, user_id: str) -> List[VenueInteraction]:
        rows = [r for r in self.tables["user_club_interactions"] if r.get("user_id") == user_id]
        return [i.to_interaction() for i in parse_rows(InteractionSchema, rows)]
