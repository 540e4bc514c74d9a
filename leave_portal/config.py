"""
Runtime configuration read from environment variables.

Every setting has a development default so the service starts with
SQLite and the static question bank without any .env file.
"""

import os

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./leave_portal.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Identity gate (bearer JWT)
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# Leave policy
DEFAULT_LEAVE_BALANCE = int(os.getenv("DEFAULT_LEAVE_BALANCE", "20"))
REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 500
REMARKS_MAX_LENGTH = 500

# Tests
DEFAULT_TEST_DURATION = 3600         # seconds
DEFAULT_PASS_RATIO = 0.6             # pass marks = ceil(0.6 * total marks)

