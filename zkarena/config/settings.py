"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProofBackendKind(str, Enum):
    """Supported proof backends."""

    LOCAL = "local"
    SNARKJS = "snarkjs"


_PROJECT_ROOT = Path(__file__).parent.parent.parent


class ZKSettings(BaseSettings):
    """Proof generation and key material configuration."""

    model_config = SettingsConfigDict(env_prefix="ZK_")

    backend: ProofBackendKind = ProofBackendKind.LOCAL
    build_dir: Path = Field(default_factory=lambda: _PROJECT_ROOT / "circuits" / "build")
    snarkjs_command: str = "npx snarkjs"
    prove_timeout_seconds: int = 120

    # Generate development keys on first use when none are present
    auto_setup: bool = False

    @property
    def snarkjs_argv(self) -> list[str]:
        """Split the snarkjs command into argv form."""
        return self.snarkjs_command.split()


class LedgerSettings(BaseSettings):
    """Session state machine configuration."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    inactivity_timeout_seconds: int = 900
    expiry_sweep_seconds: int = 30
    retention_seconds: int = 3600
    max_sessions: int = 10000
    default_stake: int = 0


class ArenaSettings(BaseSettings):
    """Arena shooter defaults."""

    model_config = SettingsConfigDict(env_prefix="ARENA_")

    arena_size: int = 500
    max_health: int = 100
    max_speed: int = 15
    move_delta_ms: int = 1000
    hit_radius: int = 10
    collection_radius: int = 10
    kill_limit: int = 10
    turn_limit: int = 100
    item_count: int = 12
    initial_ammo: int = 50


class DuelSettings(BaseSettings):
    """Card duel defaults."""

    model_config = SettingsConfigDict(env_prefix="DUEL_")

    initial_lp: int = 8000
    initial_hand_size: int = 5
    max_monster_zones: int = 5
    max_copies: int = 2


class PokerSettings(BaseSettings):
    """Five-card poker defaults."""

    model_config = SettingsConfigDict(env_prefix="POKER_")

    starting_stack: int = 1000
    ante: int = 10


class DrawSettings(BaseSettings):
    """Dead Man's Draw defaults."""

    model_config = SettingsConfigDict(env_prefix="DRAW_")

    win_score: int = 60
    max_busts: int = 3


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServicePorts(BaseSettings):
    """Service port configuration."""

    prover: int = Field(default=8010, alias="PROVER_PORT")
    ledger: int = Field(default=8011, alias="LEDGER_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Project paths
    project_root: Path = Field(default_factory=lambda: _PROJECT_ROOT)

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Proofs and ledger
    zk: ZKSettings = Field(default_factory=ZKSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)

    # Game defaults
    arena: ArenaSettings = Field(default_factory=ArenaSettings)
    duel: DuelSettings = Field(default_factory=DuelSettings)
    poker: PokerSettings = Field(default_factory=PokerSettings)
    draw: DrawSettings = Field(default_factory=DrawSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
