"""Application configuration."""

import os

# Upstream estimate API (holdings-weighted intraday estimates)
ESTIMATE_API_BASE_URL = os.getenv("ESTIMATE_API_BASE_URL", "http://localhost:3000/api")
ESTIMATE_API_TIMEOUT = float(os.getenv("ESTIMATE_API_TIMEOUT", "10"))  # seconds

# Tracker limits
MAX_QUERY_CODES = int(os.getenv("MAX_QUERY_CODES", "5"))
REFRESH_ZONE_CAPACITY = int(os.getenv("REFRESH_ZONE_CAPACITY", "5"))

CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]
