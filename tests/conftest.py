"""
Pytest configuration and fixtures for the ranking engine tests
"""

import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ranking.calculator import MatchResult


@pytest.fixture(scope="session")
def fixed_now():
    """Fixed clock for time-dependent scoring"""
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_result():
    """Factory for MatchResult rows"""
    def _make(player_id, points, placement=1, scope_id="club-1", **kwargs):
        return MatchResult(
            player_id=player_id,
            scope_id=scope_id,
            placement=placement,
            points_earned=points,
            **kwargs
        )
    return _make


@pytest.fixture
def sample_tables(fixed_now):
    """Backend tables for a small club and season"""
    earlier = (fixed_now - timedelta(days=30)).isoformat()
    return {
        "tournament_results": [
            {"tournament_id": "t1", "user_id": "alice", "club_id": "club-1", "season_id": "s-2024",
             "final_position": 1, "elo_points_earned": 1200, "matches_played": 4,
             "matches_won": 4, "matches_lost": 0, "prize_money": 5_000_000, "created_at": earlier},
            {"tournament_id": "t1", "user_id": "bob", "club_id": "club-1", "season_id": "s-2024",
             "final_position": 2, "elo_points_earned": 900, "matches_played": 4,
             "matches_won": 3, "matches_lost": 1, "prize_money": 2_000_000, "created_at": earlier},
            {"tournament_id": "t1", "user_id": "carol", "club_id": "club-1", "season_id": "s-2024",
             "final_position": 3, "elo_points_earned": 700, "matches_played": 3,
             "matches_won": 2, "matches_lost": 1, "created_at": earlier},
            {"tournament_id": "t2", "user_id": "dave", "club_id": "club-2", "season_id": "s-2024",
             "final_position": 1, "elo_points_earned": 1000, "matches_played": 3,
             "matches_won": 3, "matches_lost": 0, "created_at": earlier},
        ],
        "clubs": [
            {"id": "club-1", "name": "Platform Billiards", "is_sabo_owned": True,
             "monthly_payment": 0, "latitude": 10.7769, "longitude": 106.7009,
             "available_tables": 18, "average_rating": 4.8, "status": "active"},
            {"id": "club-2", "name": "Big Spender Pool", "is_sabo_owned": False,
             "monthly_payment": 10_000_000, "latitude": 10.7769, "longitude": 106.7009,
             "available_tables": 30, "average_rating": 5.0, "status": "active"},
            {"id": "club-3", "name": "Closed Hall", "is_sabo_owned": False,
             "monthly_payment": 1000, "status": "inactive"},
        ],
        "tournaments": [
            {"id": "trn-1", "name": "Summer Open", "club_id": "club-2", "status": "registration_open",
             "prize_pool": 10_000, "current_participants": 16, "max_participants": 32,
             "registration_start": (fixed_now + timedelta(days=2)).isoformat(),
             "registration_end": (fixed_now + timedelta(days=20)).isoformat()},
            {"id": "trn-2", "name": "Club Cup", "club_id": "club-1", "status": "upcoming",
             "prize_pool": 0, "current_participants": 0, "max_participants": 16,
             "registration_start": (fixed_now + timedelta(days=30)).isoformat(),
             "registration_end": (fixed_now + timedelta(days=40)).isoformat()},
            {"id": "trn-3", "name": "Finished Cup", "club_id": "club-1", "status": "completed",
             "registration_end": earlier},
        ],
        "user_locations": [
            {"user_id": "u1", "latitude": 10.7769, "longitude": 106.7009},
        ],
        "user_club_interactions": [
            {"user_id": "u1", "club_id": "club-2", "interaction_score": 120,
             "last_interaction": (fixed_now - timedelta(days=3)).isoformat()},
        ],
    }
