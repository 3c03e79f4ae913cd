from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class JwtSettings:
    key: Optional[str] = None
    issuer: Optional[str] = None
    audience: Optional[str] = None
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    def missing(self) -> list[str]:
        names = []
        for name in ("key", "issuer", "audience"):
            if not getattr(self, name):
                names.append(name)
        return names


@dataclass(frozen=True)
class Settings:
    database_url: str = "postgresql://postgres:postgres@db:5432/cinema"
    redis_url: str = "redis://redis:6379/0"
    redis_prefix: str = "CinemaAPI_"
    redis_timeout: float = 5.0
    sql_echo: bool = False
    environment: str = "production"
    release: Optional[str] = None
    sentry_dsn: Optional[str] = None
    otlp_endpoint: Optional[str] = None
    jwt: JwtSettings = field(default_factory=JwtSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            redis_url=os.getenv("REDIS_URL", cls.redis_url),
            redis_prefix=os.getenv("REDIS_PREFIX", cls.redis_prefix),
            redis_timeout=float(os.getenv("REDIS_TIMEOUT", cls.redis_timeout)),
            sql_echo=_env_flag("SQL_ECHO"),
            environment=os.getenv("ENVIRONMENT", cls.environment),
            release=os.getenv("RELEASE"),
            sentry_dsn=os.getenv("SENTRY_DSN"),
            otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"),
            jwt=JwtSettings(
                key=os.getenv("JWT_KEY"),
                issuer=os.getenv("JWT_ISSUER"),
                audience=os.getenv("JWT_AUDIENCE"),
                algorithm=os.getenv("ALGORITHM", "HS256"),
                access_token_expire_minutes=int(os.getenv("ACCESS_EXPIRE_MIN", 60)),
            ),
        )


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read from the environment once."""
    return Settings.from_env()
