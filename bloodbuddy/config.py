"""
Configuration for the Blood Buddy service.
Domain constants live here so every component reads the same values.
"""
import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

# Environment
MONGO_URL = os.environ.get("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.environ.get("DB_NAME", "bloodbuddy")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

# Donor eligibility
DONATION_COOLDOWN_DAYS = 90
MIN_DONOR_AGE = 18
MAX_DONOR_AGE = 65
MIN_DONOR_WEIGHT = 50
MAX_DONOR_WEIGHT = 150

# Request lifetime by urgency
REQUEST_TTL = {
    "critical": timedelta(hours=24),
    "urgent": timedelta(hours=72),
    "normal": timedelta(days=7),
}

# Sort priority, higher is served first
URGENCY_RANK = {
    "critical": 3,
    "urgent": 2,
    "normal": 1,
}

# Points
BASE_POINTS = 50
REQUEST_BONUS_POINTS = 25
EXTRA_UNIT_POINTS = 25

# Unit bounds
MIN_UNITS_NEEDED = 1
MAX_UNITS_NEEDED = 10
MIN_UNITS_CONTRIBUTED = 1
MAX_UNITS_CONTRIBUTED = 2

# Listing
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
SEARCH_RESULT_LIMIT = 20
DEFAULT_LEADERBOARD_LIMIT = 10
