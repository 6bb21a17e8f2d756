"""
Stats provider contracts.

Every provider implements StatsProvider.fetch_stats() and returns canonical
RawStatRow objects. Provider-specific logic (simulation, Meta insights) lives
in concrete classes; the job processor only sees the uniform interface.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Type


@dataclass
class RawStatRow:
    """One fetched or generated observation. Field names match AdStatsRaw columns."""
    tenant_id: str
    entity_type: str
    entity_id: str
    external_entity_id: Optional[str]
    fetched_at: datetime
    date_start: date
    date_stop: date
    spend: float = 0.0
    impressions: int = 0
    link_clicks: int = 0
    content_views: int = 0
    add_to_cart: int = 0
    checkout_initiated: int = 0
    purchases: int = 0
    purchase_value: float = 0.0
    cpm: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cost_per_purchase: float = 0.0
    roas: float = 0.0


@dataclass
class EntityRef:
    """A syncable campaign, ad set or ad with its derived daily budget."""
    id: str
    external_id: Optional[str]
    budget: float
    sellpage_id: Optional[str] = None


@dataclass
class EntityStats:
    """Mapped insights for one external entity on one day (live provider output)."""
    external_id: str
    date_start: date
    date_stop: date
    counters: Dict[str, float] = field(default_factory=dict)
    ratios: Dict[str, float] = field(default_factory=dict)


@dataclass
class AccountFetchResult:
    """Everything fetched for one ad account, keyed by level."""
    account_id: str
    levels: Dict[str, List[EntityStats]] = field(default_factory=dict)
    pages: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return sum(len(rows) for rows in self.levels.values())


@dataclass
class AccountCredential:
    """A decrypted ad account connection handed to credentialed providers."""
    internal_id: str
    external_id: str
    access_token: str


class StatsProvider(ABC):
    """
    Base class for stats providers.

    Providers with requires_credentials=True are called once per ad account
    with a decrypted AccountCredential; the others are called once per job.
    """
    name: str = ''
    requires_credentials: bool = False

    @abstractmethod
    def fetch_stats(
        self,
        tenant_id: str,
        level: str,
        entities: List[EntityRef],
        date_from: date,
        date_to: date,
        account: Optional[AccountCredential] = None,
    ) -> List[RawStatRow]:
        """
        Return raw observations for the given entities over [date_from, date_to].

        Args:
            tenant_id: Owning tenant.
            level:     CAMPAIGN, ADSET or AD.
            entities:  Resolved entities for that level.
            account:   Decrypted account connection (credentialed providers only).
        """
        ...

    def fetch_account_rows(
        self,
        tenant_id: str,
        level: str,
        entities: List[EntityRef],
        date_from: date,
        date_to: date,
        account: AccountCredential,
    ) -> Tuple[List[RawStatRow], AccountFetchResult]:
        """Rows for one account plus the fetch report (pages, skipped levels)."""
        rows = self.fetch_stats(tenant_id, level, entities, date_from, date_to, account=account)
        return rows, AccountFetchResult(account_id=account.internal_id)


# ── Provider registry ─────────────────────────────────────────────────────────
# The processor builds PROVIDER_REGISTRY = {'simulator': ..., 'meta': ...}


def get_provider(registry: Dict[str, Type[StatsProvider]], name: str, **kwargs: Any) -> StatsProvider:
    """Look up and instantiate the provider registered under name."""
    provider_cls = registry.get(name)
    if not provider_cls:
        raise ValueError(f"No stats provider registered as '{name}'. "
                         f"Available: {sorted(registry)}")
    return provider_cls(**kwargs)
