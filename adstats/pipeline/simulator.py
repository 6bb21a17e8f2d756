"""
Simulated stats provider — deterministic, seeded fake insights.

Seed derivation:
    seed = first 4 bytes (big-endian) of sha256("<tenant>:<entity_id>:<YYYY-MM-DD>")

The same (tenant, entity, day) always produces the same row, across calls and
across processes, so re-runs and tests are reproducible. The provider never
raises: bad budgets become 0 and an unparseable window yields no rows.
"""
import hashlib
import logging
import math
import random
from datetime import datetime, timezone
from typing import List

from adstats.pipeline.base import StatsProvider, RawStatRow, EntityRef
from adstats.pipeline.dates import parse_date, format_date, iter_days
from adstats.pipeline.metrics import derive_ratios, round_money

logger = logging.getLogger('pipeline.simulator')

# ── Model constants ───────────────────────────────────────────────────────────
CPM_BASE = 8.50                   # $ per 1000 impressions
SPEND_NOISE = (0.85, 1.15)
STEP_NOISE = (0.90, 1.10)
AOV_RANGE = (35.0, 150.0)

# Conversion from the previous funnel stage
FUNNEL_STEPS = (
    ('link_clicks', 0.020),
    ('content_views', 0.70),
    ('add_to_cart', 0.12),
    ('checkout_initiated', 0.50),
    ('purchases', 0.40),
)


def make_seed(tenant_id: str, entity_id: str, day: str) -> int:
    digest = hashlib.sha256(f"{tenant_id}:{entity_id}:{day}".encode('utf-8')).digest()
    return int.from_bytes(digest[:4], 'big')


def _uniform(rng: random.Random, bounds) -> float:
    low, high = bounds
    return low + rng.random() * (high - low)


def _to_count(value: float) -> int:
    """Floor at zero, round half up."""
    return int(math.floor(max(0.0, value) + 0.5))


def _coerce_budget(value) -> float:
    try:
        budget = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(budget) or budget < 0:
        return 0.0
    return budget


class SimulatedStatsProvider(StatsProvider):
    name = 'simulator'
    requires_credentials = False

    def fetch_stats(self, tenant_id, level, entities, date_from, date_to, account=None) -> List[RawStatRow]:
        try:
            start = parse_date(date_from)
            stop = parse_date(date_to)
        except ValueError:
            logger.warning("Simulator got an invalid window %r..%r — returning no rows",
                           date_from, date_to)
            return []

        fetched_at = datetime.now(timezone.utc)
        rows = []
        for entity in entities or []:
            for day in iter_days(start, stop):
                rows.append(self.generate_row(tenant_id, level, entity, day, fetched_at))
        return rows

    def generate_row(self, tenant_id, level, entity: EntityRef, day, fetched_at) -> RawStatRow:
        """Build one deterministic observation for an entity on a day."""
        entity_id = str(entity.id)
        rng = random.Random(make_seed(str(tenant_id), entity_id, format_date(day)))

        spend = round_money(_coerce_budget(entity.budget) * _uniform(rng, SPEND_NOISE))
        counters = {
            'spend': spend,
            'impressions': _to_count(spend / CPM_BASE * 1000 * _uniform(rng, STEP_NOISE)),
        }
        previous = counters['impressions']
        for name, rate in FUNNEL_STEPS:
            previous = _to_count(previous * rate * _uniform(rng, STEP_NOISE))
            counters[name] = previous

        aov = _uniform(rng, AOV_RANGE)
        counters['purchase_value'] = round_money(counters['purchases'] * aov)

        return RawStatRow(
            tenant_id=tenant_id,
            entity_type=level,
            entity_id=entity_id,
            external_entity_id=entity.external_id or entity_id,
            fetched_at=fetched_at,
            date_start=day,
            date_stop=day,
            **counters,
            **derive_ratios(counters),
        )
