#!/usr/bin/env python3
"""Report which SHIPTRACE_ settings are configured, writing a template .env if none exists."""

import sys
from pathlib import Path

ENV_TEMPLATE = """# Admin console access
SHIPTRACE_ADMIN_KEY=change-me
SHIPTRACE_ADMIN_USERNAME=admin
SHIPTRACE_ADMIN_PASSWORD=change-me

# OpenRouteService (route generation and geocoding)
SHIPTRACE_ORS_API_KEY=
# SHIPTRACE_ORS_PROFILE=driving-car

# Supabase (leave empty to keep records in memory)
SHIPTRACE_SUPABASE_URL=https://your-project-id.supabase.co
SHIPTRACE_SUPABASE_KEY=your-service-role-key-here
# SHIPTRACE_SHIPMENTS_TABLE=trackings

# CORS, JSON array or comma-separated
# SHIPTRACE_FRONTEND_ALLOWED_ORIGINS=http://localhost:5173,http://127.0.0.1:5173
"""

SECRET_FIELDS = ("admin_key", "admin_password", "ors_api_key", "supabase_key")
CHECKED_FIELDS = (
    "admin_key",
    "admin_username",
    "admin_password",
    "ors_api_key",
    "supabase_url",
    "supabase_key",
)


def _mask(value: str) -> str:
    return value[:4] + "..." if len(value) > 8 else "***"


def main() -> int:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    if not env_file.exists():
        env_file.write_text(ENV_TEMPLATE, encoding="utf-8")
        print(f"Created template .env at {env_file}; fill in the values and rerun.")
        return 1

    sys.path.insert(0, str(project_root / "src"))
    from shiptrace.config import Settings

    settings = Settings(_env_file=env_file)
    missing = []
    for name in CHECKED_FIELDS:
        value = getattr(settings, name)
        if value:
            shown = _mask(value) if name in SECRET_FIELDS else value
            print(f"[ok]      SHIPTRACE_{name.upper()} = {shown}")
        else:
            print(f"[missing] SHIPTRACE_{name.upper()}")
            missing.append(name)

    if "supabase_url" in missing or "supabase_key" in missing:
        print("Supabase is not configured: records will be kept in memory only.")
    if "ors_api_key" in missing:
        print("Directions key missing: new shipments get an empty route.")
    return 1 if {"admin_key", "admin_username", "admin_password"} & set(missing) else 0


if __name__ == "__main__":
    sys.exit(main())
