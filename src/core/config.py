"""
Configuration constants and environment setup.
"""

import os
from datetime import time
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(os.environ.get("DB_PATH", PROJECT_ROOT / "data" / "db" / "buildscan.db"))
CONFIG_STORE_PATH = Path(
    os.environ.get("CONFIG_STORE_PATH", PROJECT_ROOT / "data" / "storage.json")
)

# =============================================================================
# SCHEDULING
# =============================================================================

CALENDAR_TIMEZONE = os.environ.get("CALENDAR_TIMEZONE", "Europe/Paris")

SLOT_DURATION_MINUTES = 120
DAY_START = time(8, 30)
LATEST_START = time(15, 30)
MAX_SEARCH_ITERATIONS = 100

# Events fetched around today for a technician
FETCH_DAYS_BEFORE = 7
FETCH_DAYS_AFTER = 90
FETCH_PAGE_SIZE = 250

# Sentinel id of the computed, never persisted proposal
TENTATIVE_EVENT_ID = "tentative"

# Schedule field format, e.g. "03/11/2025 08h30"
SCHEDULE_FORMAT = "%d/%m/%Y %Hh%M"

# Shorter reference codes are too generic to match an event
MIN_REFERENCE_LENGTH = 4

# =============================================================================
# ERP DEFAULTS
# =============================================================================

DEFAULT_WEBHOOK_URL = os.environ.get("BUILDSCAN_WEBHOOK_URL", "")
DEFAULT_DEAL_TYPE = "O3-0"
ERP_SECTOR = "80"
ERP_PHASE = "0"

# Field names a webhook reply may carry the ERP job id under, by priority
REPLY_REFERENCE_FIELDS = ("chantier_id", "num_chantier", "chantier", "reference", "id")

# =============================================================================
# DOCUMENT ANALYSIS
# =============================================================================

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-pro")
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
GEMINI_TIMEOUT_SECONDS = float(os.environ.get("GEMINI_TIMEOUT_SECONDS", "60"))
SUPPORTED_MIME_TYPES = {"application/pdf"}

# =============================================================================
# MS GRAPH CREDENTIALS (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MICROSOFT_GRAPH_TENANT_ID", "")
GRAPH_APP_ID = os.environ.get("MICROSOFT_GRAPH_APP_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MICROSOFT_GRAPH_CLIENT_SECRET", "")

# =============================================================================
# API CONFIGURATION
# =============================================================================

BUILDSCAN_API_KEY = os.environ.get("BUILDSCAN_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
MAX_UPLOAD_SIZE_MB = int(os.environ.get("MAX_UPLOAD_SIZE_MB", "20"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
WEBHOOK_TIMEOUT_SECONDS = float(os.environ.get("WEBHOOK_TIMEOUT_SECONDS", "30"))
API_VERSION = "1.0.0"
