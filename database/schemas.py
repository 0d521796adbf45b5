"""
Backend row schemas

Pydantic models validating rows read from Supabase before they reach the
ranking engine, plus conversion to and from the engine's data classes.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, Field, ValidationError as PydanticValidationError, model_validator

from ranking.calculator import MatchResult, Standing
from ranking.errors import InvalidArgument
from ranking.recommendation import TournamentCandidate, UserLocation, VenueCandidate, VenueInteraction


T = TypeVar("T", bound=BaseModel)


def parse_rows(schema: Type[T], rows: Iterable[Dict[str, Any]]) -> List[T]:
    """
    Validate raw rows against a schema

    Raises:
        InvalidArgument: a row fails validation (names the row index and fields)
    """
    parsed = []
    for idx, row in enumerate(rows):
        try:
            parsed.append(schema.model_validate(row))
        except PydanticValidationError as e:
            fields = ", ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise InvalidArgument(f"{schema.__name__} row {idx} is invalid ({fields})") from e
    return parsed


# ==================== Results ====================

class TournamentResultSchema(BaseModel):
    """tournament_results row"""

    tournament_id: Optional[str] = Field(None, description="Tournament id")
    user_id: str = Field(..., min_length=1, description="Player id")
    club_id: Optional[str] = Field(None, description="Host club id")
    season_id: Optional[str] = Field(None, description="Season id")
    final_position: int = Field(..., ge=1, description="1-based final placement")
    elo_points_earned: int = Field(default=0, ge=0, description="Points allocated for the placement")
    prize_money: int = Field(default=0, ge=0, description="Prize money won")
    matches_played: int = Field(default=0, ge=0)
    matches_won: int = Field(default=0, ge=0)
    matches_lost: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = Field(None, description="When the result was recorded")

    @model_validator(mode="after")
    def validate_match_counts(self) -> "TournamentResultSchema":
        if self.matches_won + self.matches_lost > self.matches_played:
            raise ValueError(
                f"matches_won + matches_lost ({self.matches_won + self.matches_lost}) "
                f"exceeds matches_played ({self.matches_played})"
            )
        return self

    def to_match_result(self, scope_id: str) -> MatchResult:
        return MatchResult(
            player_id=self.user_id,
            scope_id=scope_id,
            placement=self.final_position,
            points_earned=self.elo_points_earned,
            matches_played=self.matches_played,
            matches_won=self.matches_won,
            matches_lost=self.matches_lost,
            recorded_at=self.created_at,
            prize_money=self.prize_money,
            tournament_id=self.tournament_id,
        )


# ==================== Standings ====================

class StandingSchema(BaseModel):
    """club_standings / season_standings / global_standings row"""

    scope_id: str = Field(..., min_length=1, description="Club, season or 'global'")
    user_id: str = Field(..., min_length=1)
    total_elo_points: int = Field(default=0, ge=0)
    tournaments_played: int = Field(default=0, ge=0)
    best_finish: Optional[int] = Field(None, ge=1)
    current_rank: int = Field(default=0, ge=0)
    previous_rank: Optional[int] = Field(None, ge=1)
    rank_change: int = Field(default=0)
    verified_at: Optional[datetime] = None
    total_prize_money: int = Field(default=0, ge=0)
    matches_played: int = Field(default=0, ge=0)
    matches_won: int = Field(default=0, ge=0)
    matches_lost: int = Field(default=0, ge=0)

    def to_standing(self) -> Standing:
        return Standing(
            scope_id=self.scope_id,
            player_id=self.user_id,
            total_points=self.total_elo_points,
            tournaments_played=self.tournaments_played,
            best_finish=self.best_finish,
            current_rank=self.current_rank,
            previous_rank=self.previous_rank,
            rank_change=self.rank_change,
            verified_at=self.verified_at,
            total_prize_money=self.total_prize_money,
            matches_played=self.matches_played,
            matches_won=self.matches_won,
            matches_lost=self.matches_lost,
        )


def standing_to_row(standing: Standing, scope_column: str) -> Dict[str, Any]:
    """Standing -> row payload for a standings table"""
    return {
        scope_column: standing.scope_id,
        "user_id": standing.player_id,
        "total_elo_points": standing.total_points,
        "tournaments_played": standing.tournaments_played,
        "best_finish": standing.best_finish,
        "current_rank": standing.current_rank,
        "previous_rank": standing.previous_rank,
        "rank_change": standing.rank_change,
        "verified_at": standing.verified_at.isoformat() if standing.verified_at else None,
        "total_prize_money": standing.total_prize_money,
        "matches_played": standing.matches_played,
        "matches_won": standing.matches_won,
        "matches_lost": standing.matches_lost,
    }


# ==================== Venues ====================

class ClubSchema(BaseModel):
    """clubs row (scoring columns only)"""

    id: str = Field(..., min_length=1)
    name: Optional[str] = Field(default="")
    is_sabo_owned: Optional[bool] = Field(None, description="Operated by the platform")
    monthly_payment: Optional[float] = Field(None, ge=0)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    available_tables: Optional[int] = Field(None, ge=0)
    average_rating: Optional[float] = Field(None, ge=0, le=5)

    def to_candidate(self) -> VenueCandidate:
        return VenueCandidate(
            venue_id=self.id,
            name=self.name or "",
            is_platform_owned=bool(self.is_sabo_owned),
            monthly_payment=self.monthly_payment,
            latitude=self.latitude,
            longitude=self.longitude,
            available_tables=self.available_tables,
            average_rating=self.average_rating,
        )


class TournamentSchema(BaseModel):
    """tournaments row joined with its host club"""

    id: str = Field(..., min_length=1)
    name: Optional[str] = Field(default="")
    club: ClubSchema = Field(..., validation_alias=AliasChoices("club", "clubs"))
    prize_pool: Optional[float] = Field(
        None, ge=0, validation_alias=AliasChoices("prize_pool", "total_prize_pool")
    )
    current_participants: Optional[int] = Field(None, ge=0)
    max_participants: Optional[int] = Field(None, ge=0)
    registration_start: Optional[datetime] = None

    def to_candidate(self) -> TournamentCandidate:
        return TournamentCandidate(
            tournament_id=self.id,
            venue=self.club.to_candidate(),
            name=self.name or "",
            prize_pool=self.prize_pool,
            current_participants=self.current_participants,
            max_participants=self.max_participants,
            registration_start=self.registration_start,
        )


# ==================== User context ====================

class UserLocationSchema(BaseModel):
    """user_locations row"""

    user_id: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def to_location(self) -> UserLocation:
        return UserLocation(latitude=self.latitude, longitude=self.longitude)


class InteractionSchema(BaseModel):
    """user_club_interactions row"""

    club_id: str = Field(..., min_length=1)
    interaction_score: Optional[float] = Field(default=0, ge=0)
    last_interaction: Optional[datetime] = None

    def to_interaction(self) -> VenueInteraction:
        return VenueInteraction(
            venue_id=self.club_id,
            interaction_score=self.interaction_score or 0,
            last_interaction=self.last_interaction,
        )
