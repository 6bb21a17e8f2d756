"""
Metric helpers shared by the providers, the aggregator and the rollup.

Rule: never average ratios. Sum the raw counters first, then derive.
"""
import math
from typing import Any, Dict, Iterable, List, Optional

COUNTER_FIELDS = (
    'spend', 'impressions', 'link_clicks', 'content_views',
    'add_to_cart', 'checkout_initiated', 'purchases', 'purchase_value',
)
MONEY_FIELDS = ('spend', 'purchase_value')
RATIO_FIELDS = ('cpm', 'ctr', 'cpc', 'cost_per_purchase', 'roas')

# Ordered top to bottom; each stage should be <= the one before it
FUNNEL_FIELDS = (
    'impressions', 'link_clicks', 'content_views',
    'add_to_cart', 'checkout_initiated', 'purchases',
)

# Meta action_type names, first match wins
ACTION_TYPES = {
    'content_views': ('content_view', 'offsite_conversion.fb_pixel_view_content'),
    'add_to_cart': ('add_to_cart', 'offsite_conversion.fb_pixel_add_to_cart'),
    'checkout_initiated': ('initiate_checkout', 'offsite_conversion.fb_pixel_initiate_checkout'),
    'purchases': ('purchase', 'offsite_conversion.fb_pixel_purchase'),
}


def safe_divide(numerator, denominator) -> float:
    """Divide, returning 0 when the denominator is 0, missing or not finite."""
    try:
        numerator = float(numerator or 0)
        denominator = float(denominator or 0)
    except (TypeError, ValueError):
        return 0.0
    if not denominator or not math.isfinite(denominator) or not math.isfinite(numerator):
        return 0.0
    return numerator / denominator


def round_money(value) -> float:
    return round(float(value or 0), 2)


def round_ratio(value) -> float:
    return round(float(value or 0), 4)


def to_number(value) -> float:
    """Parse a Meta string number, defaulting to 0."""
    if value is None or value == '':
        return 0.0
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) else 0.0


def derive_ratios(counters: Dict[str, Any]) -> Dict[str, float]:
    """
    Derive cpm, ctr, cpc, cost_per_purchase and roas from summed counters.

    ctr is a fraction (0.02 == 2%), not a percentage. Every ratio is 0 when its
    denominator is 0.
    """
    spend = counters.get('spend') or 0
    impressions = counters.get('impressions') or 0
    clicks = counters.get('link_clicks') or 0
    purchases = counters.get('purchases') or 0
    value = counters.get('purchase_value') or 0
    return {
        'cpm': round_ratio(safe_divide(spend, impressions) * 1000),
        'ctr': round_ratio(safe_divide(clicks, impressions)),
        'cpc': round_ratio(safe_divide(spend, clicks)),
        'cost_per_purchase': round_ratio(safe_divide(spend, purchases)),
        'roas': round_ratio(safe_divide(value, spend)),
    }


def funnel_rates(counters: Dict[str, Any]) -> Dict[str, float]:
    """cr1 = clicks/impressions, cr2 = purchases/clicks, cr3 = purchases/content views."""
    impressions = counters.get('impressions') or 0
    clicks = counters.get('link_clicks') or 0
    views = counters.get('content_views') or 0
    purchases = counters.get('purchases') or 0
    return {
        'cr1': round_ratio(safe_divide(clicks, impressions)),
        'cr2': round_ratio(safe_divide(purchases, clicks)),
        'cr3': round_ratio(safe_divide(purchases, views)),
    }


def sum_counters(rows: Iterable[Any]) -> Dict[str, float]:
    """Sum COUNTER_FIELDS across objects or dicts."""
    totals = {name: 0 for name in COUNTER_FIELDS}
    for row in rows:
        for name in COUNTER_FIELDS:
            value = row.get(name) if isinstance(row, dict) else getattr(row, name, 0)
            totals[name] += value or 0
    for name in MONEY_FIELDS:
        totals[name] = round_money(totals[name])
    return totals


def funnel_is_monotonic(counters: Dict[str, Any]) -> bool:
    """True when impressions >= clicks >= views >= add-to-cart >= checkout >= purchases."""
    values = [counters.get(name) or 0 for name in FUNNEL_FIELDS]
    return all(a >= b for a, b in zip(values, values[1:]))


def find_action_value(actions: Optional[List[Dict[str, Any]]], action_types) -> float:
    """
    Return the value of the first matching action_type in a Meta actions array.

    action_types may be a single name or a sequence tried in order. Missing
    arrays and missing entries give 0.
    """
    if not actions or not isinstance(actions, list):
        return 0.0
    if isinstance(action_types, str):
        action_types = (action_types,)
    by_type = {}
    for item in actions:
        if isinstance(item, dict) and 'action_type' in item:
            by_type.setdefault(item['action_type'], item.get('value'))
    for action_type in action_types:
        if action_type in by_type:
            return to_number(by_type[action_type])
    return 0.0


def map_insight_row(row: Dict[str, Any]) -> Dict[str, float]:
    """
    Map one Meta insights row to canonical counters plus fetch-time ratios.

    inline_link_clicks → link_clicks; content views, add-to-cart, checkout and
    purchases come from the actions array; purchase value from action_values.
    """
    actions = row.get('actions')
    action_values = row.get('action_values')
    counters = {
        'spend': round_money(to_number(row.get('spend'))),
        'impressions': int(to_number(row.get('impressions'))),
        'link_clicks': int(to_number(row.get('inline_link_clicks'))),
        'content_views': int(find_action_value(actions, ACTION_TYPES['content_views'])),
        'add_to_cart': int(find_action_value(actions, ACTION_TYPES['add_to_cart'])),
        'checkout_initiated': int(find_action_value(actions, ACTION_TYPES['checkout_initiated'])),
        'purchases': int(find_action_value(actions, ACTION_TYPES['purchases'])),
        'purchase_value': round_money(find_action_value(action_values, ACTION_TYPES['purchases'])),
    }
    mapped = dict(counters)
    mapped.update(derive_ratios(counters))
    return mapped
