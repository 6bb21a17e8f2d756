"""
Live stats provider — Meta Graph API insights.

Fetches campaign, ad set and ad level insights for one ad account, one row
per entity per day (time_increment=1), following paging.next up to
META_MAX_PAGES pages per level.

Failure handling:
  - network errors, timeouts, 5xx/429, non-JSON bodies → logged, pagination
    for that level stops with whatever was already fetched
  - error object inside a 200 body → logged, that level is skipped
  - 400/401/403 → ProviderAuthError (fatal for this account)
  - page cap hit while a cursor remains → PaginationLimitError
  - per-account call budget spent → RateLimitExceeded
"""
import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import requests

from adstats.config import (
    META_GRAPH_URL, META_REQUEST_TIMEOUT, META_PAGE_LIMIT,
    META_MAX_PAGES, META_CALLS_PER_HOUR, STAT_LEVELS,
)
from adstats.exceptions import ProviderAuthError, ProviderResponseError, PaginationLimitError
from adstats.pipeline.base import (
    StatsProvider, RawStatRow, EntityStats, AccountFetchResult,
)
from adstats.pipeline.dates import parse_date, format_date
from adstats.pipeline.metrics import map_insight_row, COUNTER_FIELDS, RATIO_FIELDS

logger = logging.getLogger('pipeline.live')

INSIGHT_FIELDS = ','.join([
    'spend',
    'impressions',
    'inline_link_clicks',
    'actions',
    'action_values',
    'campaign_id',
    'adset_id',
    'ad_id',
])

# Our level name → (Meta level param, row key holding the entity id)
META_LEVELS = {
    'CAMPAIGN': ('campaign', 'campaign_id'),
    'ADSET': ('adset', 'adset_id'),
    'AD': ('ad', 'ad_id'),
}

AUTH_STATUS_CODES = (400, 401, 403)


def _error_detail(response) -> str:
    """Message from a Graph API error body; empty when the body has no usable error."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get('error') if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get('message') or '')
    return ''


class MetaInsightsProvider(StatsProvider):
    name = 'meta'
    requires_credentials = True

    def __init__(self, rate_limiter=None, base_url=META_GRAPH_URL,
                 timeout=META_REQUEST_TIMEOUT, page_limit=META_PAGE_LIMIT,
                 max_pages=META_MAX_PAGES):
        if rate_limiter is None:
            from adstats.extensions import redis_client
            from adstats.services.rate_limit import RateLimiter
            rate_limiter = RateLimiter(redis_client, max_calls=META_CALLS_PER_HOUR)
        self.rate_limiter = rate_limiter
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.page_limit = page_limit
        self.max_pages = max_pages

    # ── StatsProvider contract ────────────────────────────────────────

    def fetch_stats(self, tenant_id, level, entities, date_from, date_to, account=None) -> List[RawStatRow]:
        if account is None:
            raise ValueError("MetaInsightsProvider requires an account credential")
        rows, _ = self.fetch_account_rows(tenant_id, level, entities, date_from, date_to, account)
        return rows

    def fetch_account_rows(self, tenant_id, level, entities, date_from, date_to,
                           account) -> Tuple[List[RawStatRow], AccountFetchResult]:
        """
        Fetch one level for one account and match rows to internal entities.

        Rows whose external id is not one of `entities` are dropped. The
        AccountFetchResult carries the page count and any skipped-level errors.
        """
        result = self.fetch_for_account(
            account.internal_id, account.external_id, account.access_token,
            date_from, date_to, levels=[level],
        )
        by_external_id = {e.external_id: e for e in entities if e.external_id}

        rows = []
        unmatched = 0
        fetched_at = datetime.now(timezone.utc)
        for stats in result.levels.get(level, []):
            entity = by_external_id.get(stats.external_id)
            if entity is None:
                unmatched += 1
                continue
            rows.append(RawStatRow(
                tenant_id=tenant_id,
                entity_type=level,
                entity_id=entity.id,
                external_entity_id=stats.external_id,
                fetched_at=fetched_at,
                date_start=stats.date_start,
                date_stop=stats.date_stop,
                **stats.counters,
                **stats.ratios,
            ))
        if unmatched:
            logger.info("Account %s: dropped %d %s rows with unknown external ids",
                        account.external_id, unmatched, level)
        return rows, result

    # ── Account fetch ─────────────────────────────────────────────────

    def fetch_for_account(self, account_internal_id, account_external_id, access_token,
                          date_from, date_to, levels=None) -> AccountFetchResult:
        """Fetch every requested level for one ad account."""
        since = format_date(parse_date(date_from))
        until = format_date(parse_date(date_to))
        result = AccountFetchResult(account_id=account_internal_id)

        for level in levels or STAT_LEVELS:
            meta_level, id_key = META_LEVELS[level]
            try:
                raw_rows, pages = self._fetch_level(account_external_id, access_token,
                                                    meta_level, since, until)
            except ProviderResponseError as e:
                logger.error("Failed to fetch %s insights for account %s: %s",
                             meta_level, account_external_id, e)
                result.errors.append(f"{level}: {e}")
                result.levels[level] = []
                continue

            result.pages += pages
            result.levels[level] = self._map_rows(raw_rows, id_key)

        logger.info("Account %s: fetched %d insight rows over %d pages",
                    account_external_id, result.row_count, result.pages)
        return result

    def _map_rows(self, raw_rows, id_key) -> List[EntityStats]:
        mapped_rows = []
        for row in raw_rows:
            external_id = row.get(id_key)
            if not external_id:
                continue
            try:
                date_start = parse_date(row.get('date_start'))
                date_stop = parse_date(row.get('date_stop') or row.get('date_start'))
            except ValueError:
                logger.warning("Skipping insight row with bad dates: %s", row.get('date_start'))
                continue
            mapped = map_insight_row(row)
            mapped_rows.append(EntityStats(
                external_id=str(external_id),
                date_start=date_start,
                date_stop=date_stop,
                counters={k: mapped[k] for k in COUNTER_FIELDS},
                ratios={k: mapped[k] for k in RATIO_FIELDS},
            ))
        return mapped_rows

    def _fetch_level(self, account_external_id, access_token, meta_level, since, until):
        """Follow paging.next for one level. Returns (rows, pages fetched)."""
        url = f"{self.base_url}/act_{account_external_id}/insights"
        params = {
            'fields': INSIGHT_FIELDS,
            'level': meta_level,
            'time_range': json.dumps({'since': since, 'until': until}),
            'time_increment': 1,
            'limit': self.page_limit,
            'access_token': access_token,
        }

        rows = []
        pages = 0
        while url:
            if pages >= self.max_pages:
                raise PaginationLimitError(self.max_pages, level=meta_level)
            self.rate_limiter.check(account_external_id)
            body = self._fetch_page(url, params)
            pages += 1
            if body is None:
                break

            error = body.get('error')
            if error:
                if not isinstance(error, dict):
                    raise ProviderResponseError(f"Meta API error: {error}")
                raise ProviderResponseError(
                    f"Meta API error {error.get('code')}: {error.get('message')}")

            data = body.get('data') or []
            if not isinstance(data, list):
                raise ProviderResponseError("Malformed insights page: 'data' is not a list")
            rows.extend(item for item in data if isinstance(item, dict))

            # The next URL already carries every query parameter
            paging = body.get('paging')
            url = paging.get('next') if isinstance(paging, dict) else None
            params = None

        return rows, pages

    def _fetch_page(self, url, params) -> Optional[Dict]:
        """GET one page. None on transient failure."""
        try:
            response = requests.get(url, params=params, timeout=self.timeout,
                                    headers={'Accept': 'application/json'})
        except requests.exceptions.RequestException as e:
            logger.error("Network error fetching Meta insights: %s", e)
            return None

        if response.status_code in AUTH_STATUS_CODES:
            raise ProviderAuthError(response.status_code, _error_detail(response))

        if not response.ok:
            logger.error("Meta API returned %s for insights request", response.status_code)
            return None

        try:
            body = response.json()
        except ValueError:
            logger.error("Meta API returned a non-JSON insights page")
            return None
        if not isinstance(body, dict):
            logger.error("Meta API returned an unexpected insights payload")
            return None
        return body
