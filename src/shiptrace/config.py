"""Application configuration and settings management."""

import json
from typing import Annotated, Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="SHIPTRACE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "ShipTrace Tracking API"
    api_prefix: str = "/api"
    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Admin console access
    admin_key: Optional[str] = Field(
        default=None,
        description="Shared secret expected in the x-admin-key header.",
    )
    admin_username: Optional[str] = None
    admin_password: Optional[str] = None

    # OpenRouteService (directions + geocoding)
    ors_base_url: str = Field(
        default="https://api.openrouteservice.org",
        description="Base URL for the OpenRouteService API.",
    )
    ors_api_key: Optional[str] = Field(default=None, description="OpenRouteService API key.")
    ors_profile: Literal["driving-car", "driving-hgv"] = Field(
        default="driving-car",
        description="Directions profile used when generating shipment routes.",
    )
    ors_timeout_seconds: float = Field(default=10.0, gt=0.0)
    ors_max_retries: int = Field(default=2, ge=0)
    ors_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Route sampling
    route_target_points: int = Field(default=8, ge=1)
    route_min_spacing_meters: float = Field(default=80.0, ge=0.0)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    shipments_table: str = "trackings"

    # Tracking views
    public_history_limit: int = Field(default=50, ge=1)
    progress_override_tolerance_pct: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Allowed gap between an explicit progress override and the index-derived value.",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> tuple[str, ...]:
        """Accept origins as a JSON array or a comma-separated list."""
        if isinstance(value, (list, tuple)):
            return tuple(str(item).strip() for item in value if str(item).strip())
        if not isinstance(value, str):
            return ()
        text = value.strip()
        if text.startswith("["):
            return tuple(str(item).strip() for item in json.loads(text))
        return tuple(item.strip() for item in text.split(",") if item.strip())


settings = Settings()
