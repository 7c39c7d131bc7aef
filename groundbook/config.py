import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./groundbook.db")

# Firebase Configuration (identity provider)
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Venue clock - all booking dates/times are wall-clock times at the venue
VENUE_TIMEZONE = os.getenv("VENUE_TIMEZONE", "Asia/Kolkata")

# Slot model - one slot unit shared by the user grid, admin grid and conflict checks
SLOT_MINUTES = 30
DAY_WINDOW_START_HOUR = 7
DAY_WINDOW_END_HOUR = 18
NIGHT_WINDOW_START_HOUR = 18
NIGHT_WINDOW_END_HOUR = 23
DAY_PRICE_PER_HOUR = Decimal(os.getenv("DAY_PRICE_PER_HOUR", "600"))
NIGHT_PRICE_PER_HOUR = Decimal(os.getenv("NIGHT_PRICE_PER_HOUR", "800"))
CURRENCY = os.getenv("CURRENCY", "INR")

# Background sweep (pending -> expired, confirmed -> completed)
SWEEP_INTERVAL_MINUTES = int(os.getenv("SWEEP_INTERVAL_MINUTES", "5"))

# Redis-backed availability cache and rate limiting
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"
AVAILABILITY_CACHE_TTL = int(os.getenv("AVAILABILITY_CACHE_TTL", "300"))
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "20"))
BOOKING_RATE_WINDOW_SECONDS = int(os.getenv("BOOKING_RATE_WINDOW_SECONDS", "60"))

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Box Cricket <bookings@boxcricket.app>")
# Receives a copy of every new booking request so staff can confirm or reject it
ADMIN_NOTIFICATION_EMAIL = os.getenv("ADMIN_NOTIFICATION_EMAIL")
