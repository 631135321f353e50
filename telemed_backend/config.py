"""
config.py
=========
Runtime settings for the telemedicine backend, read from environment variables.
"""

import os

# Database path (from environment or default to local SQLite file)
DB_PATH = os.getenv("TELEMED_DB", "data/telemed.db")

# Comma separated list of frontend origins allowed by CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("TELEMED_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# Analytics defaults
DEFAULT_WINDOW_DAYS = int(os.getenv("TELEMED_WINDOW_DAYS", "7"))
DEFAULT_DOCTOR_ANALYTICS_DAYS = 30
CLUSTER_GAP_MINUTES = int(os.getenv("TELEMED_CLUSTER_GAP_MINUTES", "30"))

LOG_LEVEL = os.getenv("TELEMED_LOG_LEVEL", "INFO").upper()
