"""Shared test fixtures."""
import pytest
from datetime import date
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from adstats.database import Base, import_models


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_engine):
    """Route every get_session() call to a fresh session on the test engine.

    Modules import get_session by name, so each binding is patched.
    """
    TestSession = sessionmaker(bind=db_engine)
    factory = lambda: TestSession()
    with patch('adstats.database.get_session', side_effect=factory), \
         patch('adstats.pipeline.processor.get_session', side_effect=factory), \
         patch('adstats.scheduler.get_session', side_effect=factory):
        yield TestSession


# ── Fake RQ queue ─────────────────────────────────────────────────────────────

class FakeJob:
    """Just enough of rq.job.Job for the queue helpers."""

    def __init__(self, job_id, func, kwargs, status='queued'):
        self.id = job_id
        self.func = func
        self.kwargs = kwargs
        self.status = status
        self.retries_left = None
        self.enqueued_at = None
        self.ended_at = None
        self.options = {}
        self.result = None

    def get_status(self):
        return self.status

    def return_value(self):
        return self.result


class FakeQueue:
    """In-memory stand-in for rq.Queue keyed by job id."""

    def __init__(self):
        self.jobs = {}
        self.enqueue_calls = 0

    def fetch_job(self, job_id):
        return self.jobs.get(job_id)

    def enqueue(self, func, kwargs=None, job_id=None, **options):
        self.enqueue_calls += 1
        job = FakeJob(job_id, func, kwargs or {})
        job.options = options
        job.retries_left = getattr(options.get('retry'), 'max', None)
        self.jobs[job_id] = job
        return job


@pytest.fixture
def fake_queue():
    """FakeQueue installed as the module-level RQ queue."""
    queue = FakeQueue()
    with patch('adstats.queue._get_queue', return_value=queue):
        yield queue


@pytest.fixture
def mock_redis():
    """Mock Redis client. Returns a MagicMock with common Redis methods."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.incr.return_value = 1
    mock.ttl.return_value = 3600
    with patch('adstats.extensions.redis_client', mock):
        yield mock


@pytest.fixture
def app():
    """Flask test app."""
    from adstats import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


# ── Entity hierarchy factory ──────────────────────────────────────────────────

STAT_DAY = date(2026, 3, 10)


@pytest.fixture
def stat_day():
    return STAT_DAY


@pytest.fixture
def seed_tenant(db_session):
    """Factory: insert an ad account, sellpage and campaign → ad set → ad tree.

    Returns a dict of the created ids. Defaults give one ACTIVE DAILY
    campaign with budget 100, two ad sets, and two ads under the first set.
    """
    from adstats.models.ad import Ad
    from adstats.models.ad_account import AdAccount
    from adstats.models.adset import AdSet
    from adstats.models.campaign import Campaign
    from adstats.models.sellpage import Sellpage

    def _seed(tenant_id='tenant-a', campaign_id='cmp-1', sellpage_id='page-1',
              account_id='acct-1', account_active=True, budget=100.0, budget_type='DAILY',
              status='ACTIVE', adsets=None, token_enc=None, external_account_id='111'):
        adsets = adsets if adsets is not None else {'as-1': ['ad-1', 'ad-2'], 'as-2': []}

        if db_session.get(AdAccount, account_id) is None:
            db_session.add(AdAccount(id=account_id, tenant_id=tenant_id, external_id=external_account_id,
                                     is_active=account_active, access_token_enc=token_enc))
        if sellpage_id and db_session.get(Sellpage, sellpage_id) is None:
            db_session.add(Sellpage(id=sellpage_id, tenant_id=tenant_id, slug=sellpage_id))
        db_session.flush()

        db_session.add(Campaign(id=campaign_id, tenant_id=tenant_id, sellpage_id=sellpage_id,
                                ad_account_id=account_id, external_campaign_id=f'ext-{campaign_id}',
                                status=status, budget=budget, budget_type=budget_type))
        db_session.flush()
        for adset_id, ad_ids in adsets.items():
            db_session.add(AdSet(id=adset_id, tenant_id=tenant_id, campaign_id=campaign_id,
                                 external_adset_id=f'ext-{adset_id}', status='ACTIVE'))
            db_session.flush()
            for ad_id in ad_ids:
                db_session.add(Ad(id=ad_id, tenant_id=tenant_id, adset_id=adset_id,
                                  external_ad_id=f'ext-{ad_id}', status='ACTIVE'))
        db_session.commit()
        return {
            'tenant_id': tenant_id,
            'campaign_id': campaign_id,
            'sellpage_id': sellpage_id,
            'account_id': account_id,
            'adset_ids': list(adsets),
            'ad_ids': [a for ads in adsets.values() for a in ads],
        }
    return _seed


@pytest.fixture
def make_raw_row():
    """Factory for RawStatRow objects with zeroed counters."""
    from datetime import datetime, timezone
    from adstats.pipeline.base import RawStatRow

    def _make(entity_id='cmp-1', level='CAMPAIGN', tenant_id='tenant-a', day=STAT_DAY, **counters):
        return RawStatRow(
            tenant_id=tenant_id,
            entity_type=level,
            entity_id=entity_id,
            external_entity_id=f'ext-{entity_id}',
            fetched_at=datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc),
            date_start=day,
            date_stop=day,
            **counters,
        )
    return _make
