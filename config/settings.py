"""
Configuration Settings for the Sankshep Client

This module centralizes all configuration settings for the client,
including environment variables, service endpoints, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

# =============================================================================
# Publishing API Settings
# =============================================================================

PUBLISHING_API_BASE_URL = os.getenv("PUBLISHING_API_BASE_URL", "https://sankshep.app/wp-json/wp/v2")
HTTP_TIMEOUT = int(os.getenv("HTTP_TIMEOUT", "15"))   # Seconds per publishing/identity request
CATEGORIES_PER_PAGE = 100                             # Category list is expected in a single page

# Feed categories per role (matched case-insensitively against category names)
DOCTOR_FEED_CATEGORY = os.getenv("DOCTOR_FEED_CATEGORY", "doctor")
NON_DOCTOR_FEED_CATEGORY = os.getenv("NON_DOCTOR_FEED_CATEGORY", "non doctor")

# =============================================================================
# Content Processing Settings
# =============================================================================

SUMMARY_WORD_LIMIT = 60              # Words kept in a post summary
SUMMARY_ELLIPSIS = "..."             # Marker appended to truncated summaries
ALLOWED_LINK_SCHEMES = ("http", "https")

# =============================================================================
# Identity Settings
# =============================================================================

# Firebase project (email/password accounts + Realtime Database user profiles)
FIREBASE_API_KEY = os.getenv("FIREBASE_API_KEY", "")
FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL", "")
IDENTITY_TOOLKIT_URL = os.getenv("IDENTITY_TOOLKIT_URL", "https://identitytoolkit.googleapis.com/v1")
SECURE_TOKEN_URL = os.getenv("SECURE_TOKEN_URL", "https://securetoken.googleapis.com/v1")

# Provider-owned auth state (refresh token) that keeps the session across launches
AUTH_STATE_FILE = os.getenv("AUTH_STATE_FILE", os.path.join(APP_ROOT, "auth_state.json"))

# Persisted role slot
ROLE_STORAGE_KEY = "userRole"
ROLE_STORE_FILE = os.getenv("ROLE_STORE_FILE", os.path.join(APP_ROOT, "persisted_state.json"))

# =============================================================================
# HTTP Settings
# =============================================================================

USER_AGENT = 'SankshepClient/1.0 (+https://sankshep.app)'
REQUEST_HEADERS = {
    'User-Agent': USER_AGENT,
    'Accept': 'application/json',
    'Accept-Language': 'en-US,en;q=0.5',
}
