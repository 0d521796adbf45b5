"""
Cue ranking engine CLI
"""
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from ranking import (
    CONFIG_VERSION,
    RankingError,
    Scope,
    ScopeKind,
    allocate_points,
    challenge_terms,
    get_tournament_tier,
)
from ranking.config import get_engine_config
from ranking.service import RecommendationService, StandingsService
from ranking.tiers import list_tournament_tiers


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None):
    """stderr sink plus a daily-rotated file sink"""
    config = get_engine_config()
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level or config.log_level
    )
    logger.add(
        f"{log_dir or config.log_dir}/ranking_{{time:YYYY-MM-DD}}.log",
        rotation="1 day",
        retention="30 days",
        level="DEBUG"
    )


def open_store(data_file: Optional[str]):
    """JSON-backed in-memory store when a data file is given, else Supabase"""
    if data_file:
        from database.memory_store import InMemoryStore
        return InMemoryStore.from_json(data_file)

    from database.supabase_client import SupabaseStore
    return SupabaseStore()


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(description="Cue ranking engine")
    parser.add_argument("--data", type=str, help="JSON table dump to use instead of Supabase")
    parser.add_argument("--log-level", type=str, help="stderr log level")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("challenge", help="Race length and handicaps for a wager")
    p.add_argument("amount", type=int, help="Bet points (100-650)")

    p = sub.add_parser("points", help="Points for a tournament placement")
    p.add_argument("tier", type=str, help="Tier code (G/H/I/K)")
    p.add_argument("placement", type=int, help="1-based final position")
    p.add_argument("--participants", type=int, help="Tournament size")

    sub.add_parser("tiers", help="Print the tournament tier tables")

    p = sub.add_parser("recompute", help="Recompute a scope's standings")
    p.add_argument("kind", choices=[k.value for k in ScopeKind], help="Scope kind")
    p.add_argument("scope_id", nargs="?", default=None, help="Club or season id")
    p.add_argument("--top", type=int, default=20, help="Rows to print")

    p = sub.add_parser("suggest-clubs", help="Suggested clubs for a user")
    p.add_argument("user_id", type=str)
    p.add_argument("--limit", type=int)

    p = sub.add_parser("recommend-tournaments", help="Recommended tournaments for a user")
    p.add_argument("user_id", type=str)
    p.add_argument("--limit", type=int)

    sub.add_parser("migrate", help="Check / print the standings SQL migration")

    return parser


def print_tiers():
    print(f"\nTier tables v{CONFIG_VERSION}")
    print(f"{'Tier':<5} {'1st':>6} {'2nd':>6} {'3rd':>6} {'4th':>6} {'Top8':>6} {'Part':>6}  Entry fee")
    for tier in list_tournament_tiers():
        p = tier.points
        print(
            f"{tier.code:<5} {p.first:>6} {p.second:>6} {p.third:>6} {p.fourth:>6} "
            f"{p.top8:>6} {p.participation:>6}  {tier.entry_fee_min:,}-{tier.entry_fee_max:,}"
        )


def print_standings(scope: Scope, standings, top_n: int):
    print(f"\n{'='*60}")
    print(f" {scope.key} standings")
    print(f"{'='*60}")
    print(f"{'Rank':>4} {'Player':<38} {'Points':>7} {'Trn':>4} {'Chg':>4}")
    print(f"{'-'*60}")
    for s in standings[:top_n]:
        print(f"{s.current_rank:>4} {s.player_id:<38} {s.total_points:>7} {s.tournaments_played:>4} {s.rank_change:>+4}")


async def run(args) -> int:
    if args.command == "challenge":
        terms = challenge_terms(args.amount)
        print(f"Race to {terms.race_to} | handicap {terms.handicap_full_rank} / {terms.handicap_half_rank}")

    elif args.command == "points":
        tier = get_tournament_tier(args.tier)
        points = allocate_points(tier.code, args.placement, args.participants)
        print(f"{tier.name}: placement {args.placement} -> {points} points")

    elif args.command == "tiers":
        print_tiers()

    elif args.command == "recompute":
        kind = ScopeKind(args.kind)
        scope = Scope.global_() if kind == ScopeKind.GLOBAL else Scope(kind, args.scope_id or "")
        service = StandingsService(open_store(args.data))
        standings = await service.recompute(scope)
        print_standings(scope, standings, args.top)

    elif args.command == "suggest-clubs":
        service = RecommendationService(open_store(args.data))
        for venue in await service.suggest_clubs(args.user_id, limit=args.limit):
            distance = f"{venue.distance_km} km" if venue.distance_km is not None else "-"
            print(f"{venue.priority_score:>6}  {venue.name or venue.venue_id:<30} {distance}")

    elif args.command == "recommend-tournaments":
        service = RecommendationService(open_store(args.data))
        for t in await service.recommend_tournaments(args.user_id, limit=args.limit):
            print(f"{t.priority_score:>6}  {t.name or t.tournament_id:<30} @ {t.venue.name or t.venue.venue_id}")

    elif args.command == "migrate":
        from database.run_migration import run_migration
        if not run_migration():
            return 1

    return 0


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        return await run(args)
    except RankingError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 2 if e.retryable else 1


def cli():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
