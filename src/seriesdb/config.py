import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load the appropriate .env file on module import
env = os.environ.get("SERIESDB_ENV", "development").lower()
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    # Fall back to the default .env file
    load_dotenv()


def _split_values(raw: str | None) -> tuple[str, ...] | None:
    if raw is None:
        return None
    return tuple(v.strip() for v in raw.split(",") if v.strip())


@dataclass
class Config:
    environment: str
    database_url: str
    statement_timeout_ms: int
    connect_timeout: int
    default_no_data_values: tuple[str, ...] | None
    log_level: str
    log_file: Path | None

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            environment=env,
            database_url=os.environ.get(
                "DATABASE_URL",
                "postgresql://localhost:5432/seriesdb_test"
                if env == "test"
                else "postgresql://localhost:5432/seriesdb",
            ),
            statement_timeout_ms=int(os.environ.get("SERIESDB_STATEMENT_TIMEOUT_MS", "30000")),
            connect_timeout=int(os.environ.get("SERIESDB_CONNECT_TIMEOUT", "10")),
            default_no_data_values=_split_values(os.environ.get("SERIESDB_NO_DATA_VALUES")),
            log_level=os.environ.get("SERIESDB_LOG_LEVEL", "WARNING"),
            log_file=Path(os.environ["SERIESDB_LOG_FILE"]) if os.environ.get("SERIESDB_LOG_FILE") else None,
        )


config = Config.from_env()
