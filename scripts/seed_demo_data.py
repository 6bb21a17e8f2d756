#!/usr/bin/env python3
"""
Seed a demo tenant for running the stats pipeline locally.

Creates one tenant with:
  1. An active ad account (optionally with an encrypted access token)
  2. Two sellpages
  3. Three campaigns (DAILY, LIFETIME, and one ARCHIVED that must be skipped)
  4. Ad sets and ads under each campaign

Usage:
    python scripts/seed_demo_data.py                 # seed demo-tenant
    python scripts/seed_demo_data.py --run           # seed, then sync today inline
    python scripts/seed_demo_data.py --clear         # wipe seeded rows first
    python scripts/seed_demo_data.py --token EAAB..  # store an encrypted Meta token

Requires DATABASE_URL (or defaults to sqlite:///local.db). --run uses the
simulator provider and does not need Redis.
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adstats.config import STAT_LEVELS
from adstats.database import get_session, init_db
from adstats.logging_config import configure_logging
from adstats.models.ad import Ad
from adstats.models.ad_account import AdAccount
from adstats.models.ad_stats_daily import AdStatsDaily
from adstats.models.ad_stats_raw import AdStatsRaw
from adstats.models.adset import AdSet
from adstats.models.campaign import Campaign
from adstats.models.sellpage import Sellpage
from adstats.models.sellpage_stats_daily import SellpageStatsDaily
from adstats.pipeline.dates import format_date, utc_today
from adstats.pipeline.processor import process_sync_job
from adstats.services.credentials import encrypt_token

TENANT_ID = 'demo-tenant'

# (campaign id, sellpage, budget, budget type, status, adsets → ad count)
CAMPAIGNS = [
    ('demo-cmp-1', 'demo-page-1', 120.0, 'DAILY', 'ACTIVE', {'demo-as-1a': 2, 'demo-as-1b': 1}),
    ('demo-cmp-2', 'demo-page-1', 1500.0, 'LIFETIME', 'PAUSED', {'demo-as-2a': 3}),
    ('demo-cmp-3', 'demo-page-2', 80.0, 'DAILY', 'ARCHIVED', {'demo-as-3a': 1}),
]

SEEDED_MODELS = [SellpageStatsDaily, AdStatsDaily, AdStatsRaw, Ad, AdSet, Campaign, Sellpage, AdAccount]


def clear_seeded_data(session):
    for model in SEEDED_MODELS:
        deleted = session.query(model).filter_by(tenant_id=TENANT_ID).delete()
        print(f'  {model.__tablename__}: {deleted} rows deleted')
    session.commit()


def seed_tenant(session, token=None):
    session.add(AdAccount(
        id='demo-acct-1',
        tenant_id=TENANT_ID,
        external_id='1234567890',
        name='Demo Ad Account',
        is_active=True,
        access_token_enc=encrypt_token(token) if token else None,
    ))
    for page_id in sorted({c[1] for c in CAMPAIGNS}):
        session.add(Sellpage(id=page_id, tenant_id=TENANT_ID, slug=page_id.replace('demo-', '')))
    session.flush()

    for n, (campaign_id, page_id, budget, budget_type, status, adsets) in enumerate(CAMPAIGNS, 1):
        session.add(Campaign(
            id=campaign_id, tenant_id=TENANT_ID, sellpage_id=page_id,
            ad_account_id='demo-acct-1', external_campaign_id=f'2385{n:04d}',
            name=f'Demo campaign {n}', status=status,
            budget=budget, budget_type=budget_type,
        ))
        session.flush()
        for adset_id, ad_count in adsets.items():
            session.add(AdSet(id=adset_id, tenant_id=TENANT_ID, campaign_id=campaign_id,
                              external_adset_id=f'x-{adset_id}', name=adset_id, status='ACTIVE'))
            session.flush()
            for i in range(1, ad_count + 1):
                ad_id = f'{adset_id}-ad{i}'
                session.add(Ad(id=ad_id, tenant_id=TENANT_ID, adset_id=adset_id,
                               external_ad_id=f'x-{ad_id}', name=ad_id, status='ACTIVE'))
    session.commit()
    print(f'Seeded tenant {TENANT_ID}: {len(CAMPAIGNS)} campaigns')


def main():
    parser = argparse.ArgumentParser(description='Seed a demo tenant for the stats pipeline')
    parser.add_argument('--clear', action='store_true', help='Clear seeded data before (or instead of) seeding')
    parser.add_argument('--clear-only', action='store_true', help='Only clear, do not re-seed')
    parser.add_argument('--run', action='store_true', help='Run today\'s sync inline after seeding')
    parser.add_argument('--token', help='Plain Meta access token to store encrypted')
    args = parser.parse_args()

    configure_logging()
    init_db()

    session = get_session()
    try:
        if args.clear or args.clear_only:
            clear_seeded_data(session)
            if args.clear_only:
                return
        seed_tenant(session, token=args.token)
    except Exception as e:
        session.rollback()
        print(f'Error: {e}')
        raise
    finally:
        session.close()

    if args.run:
        today = format_date(utc_today())
        for level in STAT_LEVELS:
            summary = process_sync_job(TENANT_ID, today, today, level, provider_name='simulator')
            print(f'{level}: {summary}')


if __name__ == '__main__':
    main()
