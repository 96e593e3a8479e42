import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lifehub.db")

# Access tokens are issued by the hosted auth backend and only verified here
AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET")
if not AUTH_JWT_SECRET:
    import warnings

    warnings.warn(
        "AUTH_JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    AUTH_JWT_SECRET = "INSECURE-DEV-JWT-SECRET-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUTH_JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE", "authenticated")

# Frontend base URL (CORS + CSP frame-ancestors)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Calendar sync
# Bulk propagation processes roadmap events in batches and yields between them
CALENDAR_SYNC_BATCH_SIZE = int(os.getenv("CALENDAR_SYNC_BATCH_SIZE", "25"))
# Label used for shared projections when the project row can't be read
CALENDAR_SYNC_UNKNOWN_PROJECT_NAME = os.getenv(
    "CALENDAR_SYNC_UNKNOWN_PROJECT_NAME", "Unknown Project"
)
