"""
Error taxonomy for the stats sync pipeline.

Provider errors raised out of the live provider are fatal for one ad account
only; the job processor catches them per account. TerminalSyncError marks a
job that must not be retried.
"""


class StatsSyncError(Exception):
    """Base class for all pipeline errors."""


class CredentialError(StatsSyncError):
    """Stored access token could not be decrypted, or the key is misconfigured."""


class ProviderError(StatsSyncError):
    """The stats provider could not return data for an account."""


class ProviderAuthError(ProviderError):
    """Insights API rejected the request (400/401/403)."""
    def __init__(self, status_code, message=''):
        self.status_code = status_code
        super().__init__(f"Insights API returned {status_code}: {message}".rstrip(': '))


class ProviderResponseError(ProviderError):
    """Insights page carried an error object or an unusable body."""


class PaginationLimitError(ProviderError):
    """Cursor pagination exceeded the page cap while a next cursor remained."""
    def __init__(self, max_pages, level=None):
        self.max_pages = max_pages
        self.level = level
        super().__init__(f"Pagination exceeded {max_pages} pages (level={level})")


class RateLimitExceeded(ProviderError):
    """Per-account API call budget for the current window is used up."""
    def __init__(self, account_id, retry_after=None):
        self.account_id = account_id
        self.retry_after = retry_after
        super().__init__(f"Rate limit reached for ad account {account_id} "
                         f"(retry after {retry_after}s)")


class TerminalSyncError(StatsSyncError):
    """Job can never succeed; retrying would only waste retry budget."""


class InvalidJobPayload(TerminalSyncError):
    """Job arguments are malformed (unknown level, bad date, missing tenant)."""
