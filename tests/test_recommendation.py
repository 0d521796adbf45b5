"""
Recommendation scoring tests
"""
import pytest
from datetime import timedelta

from ranking.errors import InvalidArgument
from ranking.recommendation import (
    TournamentCandidate,
    UserLocation,
    VenueCandidate,
    VenueInteraction,
    capacity_score,
    haversine_km,
    interaction_score,
    participation_score,
    prize_pool_score,
    rank_tournaments,
    rank_venues,
    registration_score,
    reputation_score,
    score_tournament,
    score_venue,
)


ORIGIN = UserLocation(latitude=0.0, longitude=0.0)


def _tournament(venue=None, **kwargs):
    return TournamentCandidate(
        tournament_id=kwargs.pop("tournament_id", "t"),
        venue=venue or VenueCandidate(venue_id="v"),
        **kwargs
    )


class TestDistance:
    """Haversine"""

    def test_one_degree_of_longitude_at_equator(self):
        assert haversine_km(0, 0, 0, 1) == pytest.approx(111.19, abs=0.01)

    def test_same_point(self):
        assert haversine_km(10.5, 106.7, 10.5, 106.7) == 0

    def test_invalid_coordinates(self):
        with pytest.raises(InvalidArgument):
            haversine_km(91, 0, 0, 0)
        with pytest.raises(InvalidArgument):
            UserLocation(latitude=0, longitude=181)


class TestVenueScore:
    """score_venue"""

    def test_platform_owned(self, fixed_now):
        venue = VenueCandidate(venue_id="a", is_platform_owned=True, monthly_payment=0)
        assert score_venue(venue, now=fixed_now) == 1000

    def test_payment_is_capped(self, fixed_now):
        venue = VenueCandidate(venue_id="b", monthly_payment=10_000_000)
        assert score_venue(venue, now=fixed_now) == 500

    def test_owned_beats_best_paying_venue(self, fixed_now):
        owned = VenueCandidate(venue_id="a", is_platform_owned=True, monthly_payment=0)
        paying = VenueCandidate(
            venue_id="b",
            monthly_payment=5_000_000,
            latitude=0.0,
            longitude=0.0,
            available_tables=20,
            average_rating=5.0,
        )
        assert score_venue(paying, ORIGIN, now=fixed_now) == 740
        ranked = rank_venues([paying, owned], ORIGIN, now=fixed_now)
        assert [v.venue_id for v in ranked] == ["a", "b"]

    def test_distance_term(self, fixed_now):
        venue = VenueCandidate(venue_id="v", latitude=0.0, longitude=0.5)
        assert score_venue(venue, ORIGIN, now=fixed_now) == 44

    def test_distance_beyond_horizon_scores_zero(self, fixed_now):
        venue = VenueCandidate(venue_id="v", latitude=0.0, longitude=5.0)
        assert score_venue(venue, ORIGIN, now=fixed_now) == 0

    def test_unknown_location_scores_no_distance(self, fixed_now):
        venue = VenueCandidate(venue_id="v", latitude=0.0, longitude=0.0)
        assert score_venue(venue, None, now=fixed_now) == 0

    def test_capacity_and_reputation(self):
        venue = VenueCandidate(venue_id="v", available_tables=12, average_rating=4.5)
        assert capacity_score(venue) == 24
        assert reputation_score(venue) == 90

    def test_half_up_rounding(self, fixed_now):
        assert score_venue(VenueCandidate(venue_id="v", monthly_payment=5), now=fixed_now) == 1
        assert score_venue(VenueCandidate(venue_id="v", monthly_payment=4), now=fixed_now) == 0

    def test_rating_out_of_range(self, fixed_now):
        with pytest.raises(InvalidArgument):
            score_venue(VenueCandidate(venue_id="v", average_rating=5.5), now=fixed_now)

    def test_negative_amounts(self, fixed_now):
        with pytest.raises(InvalidArgument):
            score_venue(VenueCandidate(venue_id="v", monthly_payment=-1), now=fixed_now)
        with pytest.raises(InvalidArgument):
            score_venue(VenueCandidate(venue_id="v", available_tables=-2), now=fixed_now)

    def test_bad_venue_coordinates(self, fixed_now):
        with pytest.raises(InvalidArgument):
            score_venue(VenueCandidate(venue_id="v", latitude=100.0, longitude=0.0), now=fixed_now)

    def test_deterministic(self, fixed_now):
        venue = VenueCandidate(
            venue_id="v", monthly_payment=1234, latitude=0.1, longitude=0.2,
            available_tables=7, average_rating=3.3,
        )
        assert score_venue(venue, ORIGIN, now=fixed_now) == score_venue(venue, ORIGIN, now=fixed_now)


class TestInteractionScore:
    """Past interaction with a venue"""

    def test_recent_interaction_gets_bonus(self, fixed_now):
        venue = VenueCandidate(venue_id="v")
        interactions = [VenueInteraction("v", 400, fixed_now - timedelta(days=10))]
        assert interaction_score(venue, interactions, fixed_now) == 400

    def test_old_interaction_is_capped_only(self, fixed_now):
        venue = VenueCandidate(venue_id="v")
        interactions = [VenueInteraction("v", 400, fixed_now - timedelta(days=45))]
        assert interaction_score(venue, interactions, fixed_now) == 350

    def test_other_venue_ignored(self, fixed_now):
        venue = VenueCandidate(venue_id="v")
        interactions = [VenueInteraction("w", 100, fixed_now)]
        assert interaction_score(venue, interactions, fixed_now) == 0

    def test_naive_timestamp_treated_as_utc(self, fixed_now):
        venue = VenueCandidate(venue_id="v")
        naive = (fixed_now - timedelta(days=5)).replace(tzinfo=None)
        assert interaction_score(venue, [VenueInteraction("v", 10, naive)], fixed_now) == 60


class TestTournamentScore:
    """score_tournament terms"""

    def test_prize_pool(self):
        assert prize_pool_score(_tournament(prize_pool=5000)) == 200
        assert prize_pool_score(_tournament(prize_pool=1000)) == 100
        assert prize_pool_score(_tournament(prize_pool=None)) == 0

    @pytest.mark.parametrize("current,maximum,expected", [
        (15, 32, 50), (3, 10, 50), (8, 10, 50), (30, 32, 0), (1, 10, 0), (0, 0, 0),
    ])
    def test_sweet_spot(self, current, maximum, expected):
        t = _tournament(current_participants=current, max_participants=maximum)
        assert participation_score(t) == expected

    @pytest.mark.parametrize("offset,expected", [
        (timedelta(days=3), 30),
        (timedelta(days=7), 30),
        (timedelta(days=8), 0),
        (timedelta(hours=-2), 0),
        (timedelta(hours=5), 30),
    ])
    def test_registration_window(self, fixed_now, offset, expected):
        t = _tournament(registration_start=fixed_now + offset)
        assert registration_score(t, fixed_now) == expected

    def test_total_includes_host_venue(self, fixed_now):
        venue = VenueCandidate(venue_id="v", is_platform_owned=True)
        t = _tournament(
            venue=venue,
            prize_pool=1000,
            current_participants=15,
            max_participants=32,
            registration_start=fixed_now + timedelta(days=3),
        )
        assert score_tournament(t, now=fixed_now) == 1000 + 100 + 50 + 30

    def test_negative_participants(self, fixed_now):
        with pytest.raises(InvalidArgument):
            score_tournament(_tournament(current_participants=-1, max_participants=10), now=fixed_now)


class TestRanking:
    """rank_venues / rank_tournaments"""

    def test_rank_venues_returns_annotated_copies(self, fixed_now):
        near = VenueCandidate(venue_id="near", latitude=0.0, longitude=0.1)
        far = VenueCandidate(venue_id="far", latitude=0.0, longitude=0.6)
        ranked = rank_venues([far, near], ORIGIN, now=fixed_now)

        assert [v.venue_id for v in ranked] == ["near", "far"]
        assert ranked[0].distance_km == pytest.approx(11.1, abs=0.05)
        assert ranked[0].priority_score == 89
        assert near.priority_score is None
        assert near.distance_km is None

    def test_ties_ordered_by_id(self, fixed_now):
        venues = [VenueCandidate(venue_id=v) for v in ("c", "a", "b")]
        assert [v.venue_id for v in rank_venues(venues, now=fixed_now)] == ["a", "b", "c"]

    def test_limit(self, fixed_now):
        venues = [VenueCandidate(venue_id=str(i), available_tables=i) for i in range(5)]
        ranked = rank_venues(venues, now=fixed_now, limit=2)
        assert [v.venue_id for v in ranked] == ["4", "3"]

    def test_rank_tournaments(self, fixed_now):
        rich = _tournament(tournament_id="rich", prize_pool=2000)
        poor = _tournament(tournament_id="poor", prize_pool=100)
        ranked = rank_tournaments([poor, rich], now=fixed_now)
        assert [t.tournament_id for t in ranked] == ["rich", "poor"]
        assert [t.priority_score for t in ranked] == [200, 10]

    @pytest.mark.parametrize("limit", [0, -2])
    def test_non_positive_limit_rejected(self, fixed_now, limit):
        venues = [VenueCandidate(venue_id="a"), VenueCandidate(venue_id="b")]
        with pytest.raises(InvalidArgument):
            rank_venues(venues, now=fixed_now, limit=limit)
        with pytest.raises(InvalidArgument):
            rank_tournaments([_tournament()], now=fixed_now, limit=limit)
