"""
Venue and tournament recommendation scoring

Weighted sum of independently bounded terms. The score only orders candidates
scored in the same batch and is recomputed on every call, never stored as
authoritative. Weights live in ranking.tiers.
"""
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from .errors import InvalidArgument
from .tiers import (
    DISTANCE_HORIZON_KM,
    EARTH_RADIUS_KM,
    INTERACTION_SCORE_CAP,
    MAX_RATING,
    PAYMENT_DIVISOR,
    PAYMENT_SCORE_CAP,
    PLATFORM_OWNED_BONUS,
    PRIZE_POOL_DIVISOR,
    PRIZE_POOL_SCORE_CAP,
    RATING_WEIGHT,
    RECENT_INTERACTION_BONUS,
    RECENT_INTERACTION_DAYS,
    REGISTRATION_OPENING_BONUS,
    REGISTRATION_WINDOW_DAYS,
    SWEET_SPOT_BONUS,
    SWEET_SPOT_RANGE,
    TABLE_WEIGHT,
)


SECONDS_PER_DAY = 24 * 60 * 60


# =====================================================
# Data classes
# =====================================================

@dataclass(frozen=True)
class UserLocation:
    latitude: float
    longitude: float

    def __post_init__(self):
        _check_coordinates(self.latitude, self.longitude)


@dataclass(frozen=True)
class VenueInteraction:
    """A user's accumulated interaction with one venue"""
    venue_id: str
    interaction_score: float = 0
    last_interaction: Optional[datetime] = None


@dataclass(frozen=True)
class VenueCandidate:
    """Venue attributes used for scoring"""
    venue_id: str
    name: str = ""
    is_platform_owned: bool = False
    monthly_payment: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    available_tables: Optional[int] = None
    average_rating: Optional[float] = None
    priority_score: Optional[int] = None
    distance_km: Optional[float] = None


@dataclass(frozen=True)
class TournamentCandidate:
    """Open tournament with the venue hosting it"""
    tournament_id: str
    venue: VenueCandidate
    name: str = ""
    prize_pool: Optional[float] = None
    current_participants: Optional[int] = None
    max_participants: Optional[int] = None
    registration_start: Optional[datetime] = None
    priority_score: Optional[int] = None


# =====================================================
# Helpers
# =====================================================

def _check_coordinates(latitude: float, longitude: float):
    if not -90 <= latitude <= 90:
        raise InvalidArgument(f"Latitude out of range: {latitude}")
    if not -180 <= longitude <= 180:
        raise InvalidArgument(f"Longitude out of range: {longitude}")


def _require_non_negative(name: str, value):
    if value is not None and value < 0:
        raise InvalidArgument(f"{name} must not be negative, got {value}")


def _as_utc(moment: datetime) -> datetime:
    # naive datetimes from the store are UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _whole_days(start: datetime, end: datetime) -> int:
    """Floor of the day difference end - start"""
    seconds = (_as_utc(end) - _as_utc(start)).total_seconds()
    return math.floor(seconds / SECONDS_PER_DAY)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _check_limit(limit: Optional[int]):
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
        raise InvalidArgument(f"limit must be a positive integer, got {limit!r}")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres"""
    _check_coordinates(lat1, lon1)
    _check_coordinates(lat2, lon2)

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def venue_distance_km(venue: VenueCandidate, user_location: Optional[UserLocation]) -> Optional[float]:
    """Distance between user and venue, or None when either side has no coordinates"""
    if user_location is None or venue.latitude is None or venue.longitude is None:
        return None
    return haversine_km(
        user_location.latitude,
        user_location.longitude,
        venue.latitude,
        venue.longitude,
    )


# =====================================================
# Score terms
# =====================================================

def ownership_score(venue: VenueCandidate) -> float:
    return PLATFORM_OWNED_BONUS if venue.is_platform_owned else 0


def payment_score(venue: VenueCandidate) -> float:
    _require_non_negative("monthly_payment", venue.monthly_payment)
    if not venue.monthly_payment:
        return 0
    return min(venue.monthly_payment / PAYMENT_DIVISOR, PAYMENT_SCORE_CAP)


def distance_score(distance_km: Optional[float]) -> float:
    if distance_km is None:
        return 0
    return max(0.0, DISTANCE_HORIZON_KM - distance_km)


def capacity_score(venue: VenueCandidate) -> float:
    _require_non_negative("available_tables", venue.available_tables)
    return (venue.available_tables or 0) * TABLE_WEIGHT


def reputation_score(venue: VenueCandidate) -> float:
    if venue.average_rating is None:
        return 0
    if not 0 <= venue.average_rating <= MAX_RATING:
        raise InvalidArgument(f"average_rating must be within 0-{MAX_RATING}, got {venue.average_rating}")
    return venue.average_rating * RATING_WEIGHT


def interaction_score(
    venue: VenueCandidate,
    interactions: Iterable[VenueInteraction],
    now: datetime
) -> float:
    """
    Capped interaction score for this venue, plus a bonus when the user
    interacted with it within RECENT_INTERACTION_DAYS
    """
    match = next((i for i in interactions if i.venue_id == venue.venue_id), None)
    if match is None:
        return 0

    _require_non_negative("interaction_score", match.interaction_score)
    score = min(match.interaction_score or 0, INTERACTION_SCORE_CAP)
    if match.last_interaction is not None:
        if _whole_days(match.last_interaction, now) < RECENT_INTERACTION_DAYS:
            score += RECENT_INTERACTION_BONUS
    return score


def prize_pool_score(tournament: TournamentCandidate) -> float:
    _require_non_negative("prize_pool", tournament.prize_pool)
    if not tournament.prize_pool:
        return 0
    return min(tournament.prize_pool / PRIZE_POOL_DIVISOR, PRIZE_POOL_SCORE_CAP)


def participation_score(tournament: TournamentCandidate) -> float:
    """Bonus for tournaments that are filling up but not yet full"""
    _require_non_negative("current_participants", tournament.current_participants)
    _require_non_negative("max_participants", tournament.max_participants)
    if not tournament.max_participants or tournament.current_participants is None:
        return 0

    ratio = tournament.current_participants / tournament.max_participants
    low, high = SWEET_SPOT_RANGE
    return SWEET_SPOT_BONUS if low <= ratio <= high else 0


def registration_score(tournament: TournamentCandidate, now: datetime) -> float:
    """Bonus when registration opens within REGISTRATION_WINDOW_DAYS"""
    if tournament.registration_start is None:
        return 0
    days_until = _whole_days(now, tournament.registration_start)
    if 0 <= days_until <= REGISTRATION_WINDOW_DAYS:
        return REGISTRATION_OPENING_BONUS
    return 0


# =====================================================
# Scorers
# =====================================================

def _venue_terms(
    venue: VenueCandidate,
    user_location: Optional[UserLocation],
    interactions: Sequence[VenueInteraction],
    now: datetime
) -> float:
    if venue.latitude is not None and venue.longitude is not None:
        _check_coordinates(venue.latitude, venue.longitude)

    return (
        ownership_score(venue)
        + payment_score(venue)
        + distance_score(venue_distance_km(venue, user_location))
        + capacity_score(venue)
        + reputation_score(venue)
        + interaction_score(venue, interactions, now)
    )


def score_venue(
    venue: VenueCandidate,
    user_location: Optional[UserLocation] = None,
    interactions: Sequence[VenueInteraction] = (),
    now: Optional[datetime] = None
) -> int:
    """
    Priority score of a venue for one user

    Args:
        venue: venue attributes
        user_location: user's coordinates, if known
        interactions: the user's venue interaction records
        now: clock used for the recency bonus (defaults to current UTC time)

    Returns:
        Non-negative integer score, higher sorts first

    Raises:
        InvalidArgument: malformed coordinates, negative amounts, rating out of range
    """
    now = now or datetime.now(timezone.utc)
    return _round_half_up(_venue_terms(venue, user_location, interactions, now))


def score_tournament(
    tournament: TournamentCandidate,
    user_location: Optional[UserLocation] = None,
    interactions: Sequence[VenueInteraction] = (),
    now: Optional[datetime] = None
) -> int:
    """Venue score of the host plus prize pool, sweet spot and registration terms"""
    now = now or datetime.now(timezone.utc)
    total = (
        _venue_terms(tournament.venue, user_location, interactions, now)
        + prize_pool_score(tournament)
        + participation_score(tournament)
        + registration_score(tournament, now)
    )
    return _round_half_up(total)


def rank_venues(
    venues: Iterable[VenueCandidate],
    user_location: Optional[UserLocation] = None,
    interactions: Sequence[VenueInteraction] = (),
    now: Optional[datetime] = None,
    limit: Optional[int] = None
) -> List[VenueCandidate]:
    """
    Suggested clubs: scored copies ordered by priority_score

    Ties keep a fixed order by venue_id. Inputs are not modified.
    """
    _check_limit(limit)
    now = now or datetime.now(timezone.utc)
    interactions = list(interactions)

    scored = []
    for venue in venues:
        distance = venue_distance_km(venue, user_location)
        scored.append(replace(
            venue,
            priority_score=score_venue(venue, user_location, interactions, now),
            distance_km=round(distance, 1) if distance is not None else None,
        ))

    scored.sort(key=lambda v: (-v.priority_score, v.venue_id))
    return scored[:limit] if limit is not None else scored


def rank_tournaments(
    tournaments: Iterable[TournamentCandidate],
    user_location: Optional[UserLocation] = None,
    interactions: Sequence[VenueInteraction] = (),
    now: Optional[datetime] = None,
    limit: Optional[int] = None
) -> List[TournamentCandidate]:
    """Recommended tournaments: scored copies ordered by priority_score"""
    _check_limit(limit)
    now = now or datetime.now(timezone.utc)
    interactions = list(interactions)

    scored = [
        replace(t, priority_score=score_tournament(t, user_location, interactions, now))
        for t in tournaments
    ]
    scored.sort(key=lambda t: (-t.priority_score, t.tournament_id))
    return scored[:limit] if limit is not None else scored
