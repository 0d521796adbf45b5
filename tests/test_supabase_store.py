"""
SupabaseStore tests with a mocked client
"""
import pytest
from unittest.mock import MagicMock, patch

from database import run_migration
from database.supabase_client import PAGE_SIZE, SupabaseStore
from ranking.calculator import MatchResult, Scope, Standing
from ranking.errors import SnapshotSwapError


@pytest.fixture
def client():
    return MagicMock()


class TestFetch:

    @pytest.mark.asyncio
    async def test_results_are_paged(self, client):
        first = MagicMock(data=[{"user_id": f"p{i}", "final_position": 1} for i in range(PAGE_SIZE)])
        last = MagicMock(data=[{"user_id": "tail", "final_position": 2}])
        ranged = client.table.return_value.select.return_value.order.return_value.range
        ranged.return_value.execute.side_effect = [first, last]

        results = await SupabaseStore(client).fetch_results(Scope.global_())

        assert len(results) == PAGE_SIZE + 1
        assert results[-1].player_id == "tail"
        assert results[-1].scope_id == "global"
        assert [c.args for c in ranged.call_args_list] == [(0, PAGE_SIZE - 1), (PAGE_SIZE, 2 * PAGE_SIZE - 1)]

    @pytest.mark.asyncio
    async def test_club_results_filtered_by_column(self, client):
        query = client.table.return_value.select.return_value
        query.eq.return_value.order.return_value.range.return_value.execute.return_value = MagicMock(data=[])

        assert await SupabaseStore(client).fetch_results(Scope.club("club-1")) == []
        query.eq.assert_called_with("club_id", "club-1")


class TestInsertResults:

    @pytest.mark.asyncio
    async def test_results_upserted_per_tournament_player(self, client):
        client.table.return_value.upsert.return_value.execute.return_value = MagicMock(data=[{}, {}])
        results = [
            MatchResult("carol", "club-1", 1, 1200, tournament_id="t3"),
            MatchResult("alice", "club-1", 2, 900, tournament_id="t3"),
        ]

        saved = await SupabaseStore(client).insert_results(results, club_id="club-1", season_id="s-2024")

        assert saved == 2
        payload = client.table.return_value.upsert.call_args.args[0]
        assert [(r["tournament_id"], r["user_id"]) for r in payload] == [("t3", "carol"), ("t3", "alice")]
        assert client.table.return_value.upsert.call_args.kwargs["on_conflict"] == "tournament_id,user_id"
        client.table.return_value.insert.assert_not_called()

    def test_migration_adds_conflict_key(self):
        sql = run_migration.load_migration_sql()
        assert "ON tournament_results(tournament_id, user_id)" in sql


class TestReplaceStandings:

    @pytest.mark.asyncio
    async def test_swap_goes_through_rpc(self, client):
        standing = Standing("s-2024", "alice", 1200, 1, 1, current_rank=1)
        await SupabaseStore(client).replace_standings(Scope.season("s-2024"), [standing])

        name, params = client.rpc.call_args.args
        assert name == "replace_scope_standings"
        assert params["p_table"] == "season_standings"
        assert params["p_scope_column"] == "season_id"
        assert params["p_scope_id"] == "s-2024"
        assert params["p_rows"][0]["season_id"] == "s-2024"
        assert params["p_rows"][0]["total_elo_points"] == 1200

    @pytest.mark.asyncio
    async def test_rpc_failure_is_retryable(self, client):
        client.rpc.return_value.execute.side_effect = Exception("canceling statement due to lock timeout")

        with pytest.raises(SnapshotSwapError) as exc_info:
            await SupabaseStore(client).replace_standings(Scope.club("club-1"), [])

        assert exc_info.value.retryable
        assert exc_info.value.scope_key == "club:club-1"


class TestMigrationHelper:

    def test_sql_defines_swap_function(self):
        sql = run_migration.load_migration_sql()
        assert "FUNCTION replace_scope_standings" in sql
        assert "pg_advisory_xact_lock" in sql

    def test_missing_table_prints_sql(self, client, capsys):
        client.table.return_value.select.return_value.limit.return_value.execute.side_effect = Exception(
            'relation "public.global_standings" does not exist'
        )
        with patch.object(run_migration, "get_supabase_client", return_value=client):
            assert run_migration.run_migration() is False
        assert "replace_scope_standings" in capsys.readouterr().out

    def test_applied_migration(self, client):
        with patch.object(run_migration, "get_supabase_client", return_value=client):
            assert run_migration.run_migration() is True
