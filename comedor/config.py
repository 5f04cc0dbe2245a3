from __future__ import annotations

import os
from dataclasses import dataclass, field


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    secret_key: str = "change-me"
    database_url: str = "sqlite:///comedor.db"
    document_backend: str = "sql"  # sql | memory
    timezone: str = "America/Mexico_City"
    # Default confirmation window: Thursday afternoon -> Saturday morning before the week
    confirm_start_time: str = "16:10"
    confirm_end_time: str = "10:00"
    confirm_start_offset_days: int = 4
    confirm_end_offset_days: int = 2
    working_days_per_week: int = 5  # 5 (lunes..viernes) or 7
    meal_cost: float = 50.0
    dev_bypass_date_validation: bool = False
    cors_allowed_origins: list[str] = field(default_factory=list)
    strict_csrf: bool = False
    auth_rate_limit: dict[str, int] = field(
        default_factory=lambda: {"window_sec": 300, "max_failures": 5, "lock_sec": 600}
    )
    notice_durations_ms: dict[str, int] = field(
        default_factory=lambda: {"error": 5000, "success": 3000, "info": 4000, "warning": 4000}
    )

    @classmethod
    def from_env(cls) -> Config:
        cors = os.getenv("CORS_ALLOW_ORIGINS", "")
        return cls(
            secret_key=os.getenv("SECRET_KEY", "change-me"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///comedor.db"),
            document_backend=os.getenv("DOCUMENT_BACKEND", "sql").strip().lower(),
            timezone=os.getenv("COMEDOR_TIMEZONE", "America/Mexico_City"),
            confirm_start_time=os.getenv("CONFIRM_START_HOUR", "16:10"),
            confirm_end_time=os.getenv("CONFIRM_END_HOUR", "10:00"),
            confirm_start_offset_days=int(os.getenv("CONFIRM_START_OFFSET_DAYS", "4")),
            confirm_end_offset_days=int(os.getenv("CONFIRM_END_OFFSET_DAYS", "2")),
            working_days_per_week=int(os.getenv("WORKING_DAYS_PER_WEEK", "5")),
            meal_cost=float(os.getenv("MEAL_COST", "50")),
            dev_bypass_date_validation=_flag("DEV_BYPASS_DATE_VALIDATION"),
            cors_allowed_origins=[o for o in [c.strip() for c in cors.split(",")] if o],
            strict_csrf=_flag("COMEDOR_STRICT_CSRF"),
        )

    def override(self, d: dict):
        for k, v in d.items():
            if hasattr(self, k):
                setattr(self, k, v)

    def to_flask_dict(self):
        if self.working_days_per_week not in (5, 7):
            raise ValueError("working_days_per_week must be 5 or 7")
        return {
            "SECRET_KEY": self.secret_key,
            "SQLALCHEMY_DATABASE_URI": self.database_url,
            "DOCUMENT_BACKEND": self.document_backend,
            "COMEDOR_TIMEZONE": self.timezone,
            "CONFIRM_START_HOUR": self.confirm_start_time,
            "CONFIRM_END_HOUR": self.confirm_end_time,
            "CONFIRM_START_OFFSET_DAYS": self.confirm_start_offset_days,
            "CONFIRM_END_OFFSET_DAYS": self.confirm_end_offset_days,
            "WORKING_DAYS_PER_WEEK": self.working_days_per_week,
            "MEAL_COST": self.meal_cost,
            "DEV_BYPASS_DATE_VALIDATION": self.dev_bypass_date_validation,
            "CORS_ALLOWED_ORIGINS": self.cors_allowed_origins,
            "COMEDOR_STRICT_CSRF": self.strict_csrf,
            "AUTH_RATE_LIMIT": dict(self.auth_rate_limit),
            "NOTICE_DURATIONS_MS": dict(self.notice_durations_ms),
            # Harden session cookie defaults (still allow override in tests)
            "SESSION_COOKIE_HTTPONLY": True,
            "SESSION_COOKIE_SAMESITE": "Lax",
        }
