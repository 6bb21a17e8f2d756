"""
Centralized configuration — env vars and pipeline constants.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Runtime ──────────────────────────────────────────────────────────────────
APP_ENV = os.getenv('APP_ENV', 'development')
PORT = int(os.getenv('PORT', 8080))

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Credential store ──────────────────────────────────────────────────────────
# 32-byte AES-256 key, hex encoded (64 chars)
TOKEN_ENCRYPTION_KEY = os.getenv('TOKEN_ENCRYPTION_KEY', '')

# ── Stats provider ────────────────────────────────────────────────────────────
# 'simulator' (default) or 'meta'
STATS_PROVIDER = os.getenv('STATS_PROVIDER', 'simulator')

# ── Meta Graph API ────────────────────────────────────────────────────────────
META_GRAPH_URL = os.getenv('META_GRAPH_URL', 'https://graph.facebook.com/v21.0')
META_REQUEST_TIMEOUT = float(os.getenv('META_REQUEST_TIMEOUT', 8))
META_PAGE_LIMIT = int(os.getenv('META_PAGE_LIMIT', 500))
META_MAX_PAGES = int(os.getenv('META_MAX_PAGES', 50))
META_CALLS_PER_HOUR = int(os.getenv('META_CALLS_PER_HOUR', 200))

# ── Job queue ─────────────────────────────────────────────────────────────────
QUEUE_NAME = os.getenv('QUEUE_NAME', 'stats-sync')
WORKER_CONCURRENCY = int(os.getenv('WORKER_CONCURRENCY', 5))
SYNC_JOB_ATTEMPTS = int(os.getenv('SYNC_JOB_ATTEMPTS', 3))
SYNC_BACKOFF_SECONDS = int(os.getenv('SYNC_BACKOFF_SECONDS', 60))
SYNC_JOB_TIMEOUT = int(os.getenv('SYNC_JOB_TIMEOUT', 600))
SYNC_RESULT_TTL = int(os.getenv('SYNC_RESULT_TTL', 86400))       # 1 day
SYNC_FAILURE_TTL = int(os.getenv('SYNC_FAILURE_TTL', 86400 * 7))  # 7 days

# ── Scheduler ─────────────────────────────────────────────────────────────────
SCHEDULER_INTERVAL_MINUTES = int(os.getenv('SCHEDULER_INTERVAL_MINUTES', 5))

# ── HTTP ──────────────────────────────────────────────────────────────────────
# Set by the auth gateway in front of this service
TENANT_HEADER = os.getenv('TENANT_HEADER', 'X-Tenant-Id')

# ── Domain constants ──────────────────────────────────────────────────────────
STAT_LEVELS = ['CAMPAIGN', 'ADSET', 'AD']
SYNCABLE_STATUSES = ['ACTIVE', 'PAUSED']
BUDGET_TYPES = ['DAILY', 'LIFETIME']
LIFETIME_BUDGET_DAYS = 30
AD_SOURCE = 'META'
