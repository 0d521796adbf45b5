"""
Engine settings

Environment configuration only. Tier tables and scoring weights are authored
constants in ranking.tiers and are not overridable from the environment.
"""
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase settings"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase service role key")

    class Config:
        env_prefix = ""
        case_sensitive = False


class EngineConfig(BaseSettings):
    """Ranking engine settings"""

    log_level: str = Field(default="INFO", description="stderr log level")
    log_dir: str = Field(default="logs", description="Directory of the rotated log files")
    suggestion_limit: int = Field(default=10, ge=1, description="Suggested clubs returned")
    recommendation_limit: int = Field(default=20, ge=1, description="Recommended tournaments returned")

    class Config:
        env_prefix = "RANKING_"
        case_sensitive = False


@lru_cache()
def get_supabase_config() -> SupabaseConfig:
    return SupabaseConfig()


@lru_cache()
def get_engine_config() -> EngineConfig:
    return EngineConfig()
