"""Tests for adstats.pipeline.simulator — deterministic simulated insights."""
from datetime import date

import pytest

from adstats.pipeline.base import EntityRef
from adstats.pipeline.metrics import funnel_is_monotonic, derive_ratios
from adstats.pipeline.simulator import SimulatedStatsProvider, make_seed

DAY = date(2026, 3, 10)


def _fetch(entities, date_from=DAY, date_to=DAY, tenant_id='tenant-a', level='CAMPAIGN'):
    return SimulatedStatsProvider().fetch_stats(tenant_id, level, entities, date_from, date_to)


class TestDeterminism:

    def test_same_inputs_same_output(self):
        entity = EntityRef(id='cmp-1', external_id='ext-1', budget=100.0)
        first = _fetch([entity])[0]
        second = _fetch([entity])[0]
        for name in ('spend', 'impressions', 'link_clicks', 'purchases', 'purchase_value', 'roas'):
            assert getattr(first, name) == getattr(second, name)

    def test_seed_is_stable(self):
        # First 4 bytes of sha256("t:e:2026-03-10") read big-endian: 0x2e5649c8
        assert make_seed('t', 'e', '2026-03-10') == 777406920
        assert make_seed('t', 'e', '2026-03-10') != make_seed('t', 'e', '2026-03-11')
        assert 0 <= make_seed('t', 'e', '2026-03-10') < 2 ** 32

    def test_row_matches_recorded_values(self):
        # Values recorded from a reference run; any change to the seed, the
        # PRNG or the model constants shows up here
        row = SimulatedStatsProvider().fetch_stats(
            't', 'CAMPAIGN', [EntityRef(id='e', external_id=None, budget=100.0)], DAY, DAY)[0]
        assert row.spend == 106.85
        assert row.impressions == 12465
        assert row.link_clicks == 231
        assert row.content_views == 149
        assert row.add_to_cart == 18
        assert row.checkout_initiated == 9
        assert row.purchases == 4
        assert row.purchase_value == 310.79

    def test_different_entities_differ(self):
        rows = _fetch([EntityRef(id='a', external_id=None, budget=100.0),
                       EntityRef(id='b', external_id=None, budget=100.0)])
        assert (rows[0].spend, rows[0].impressions) != (rows[1].spend, rows[1].impressions)

    def test_different_tenants_differ(self):
        entity = EntityRef(id='cmp-1', external_id=None, budget=100.0)
        a = _fetch([entity], tenant_id='tenant-a')[0]
        b = _fetch([entity], tenant_id='tenant-b')[0]
        assert (a.spend, a.impressions) != (b.spend, b.impressions)


class TestModel:

    @pytest.mark.parametrize('entity_id', [f'cmp-{n}' for n in range(25)])
    def test_spend_within_budget_band(self, entity_id):
        row = _fetch([EntityRef(id=entity_id, external_id=None, budget=200.0)])[0]
        assert 0.85 * 200 - 0.01 <= row.spend <= 1.15 * 200 + 0.01

    @pytest.mark.parametrize('entity_id', [f'ad-{n}' for n in range(25)])
    def test_funnel_is_non_increasing(self, entity_id):
        row = _fetch([EntityRef(id=entity_id, external_id=None, budget=5000.0)])[0]
        assert funnel_is_monotonic(row.__dict__)
        assert row.impressions > 0

    def test_ratios_derived_from_row_values(self):
        row = _fetch([EntityRef(id='cmp-1', external_id=None, budget=3000.0)])[0]
        expected = derive_ratios(row.__dict__)
        assert row.cpm == expected['cpm']
        assert row.ctr == expected['ctr']
        assert row.roas == expected['roas']

    def test_average_order_value_in_band(self):
        row = _fetch([EntityRef(id='cmp-7', external_id=None, budget=20000.0)])[0]
        assert row.purchases > 0
        assert 35 * row.purchases - 0.01 <= row.purchase_value <= 150 * row.purchases + 0.01


class TestRowShape:

    def test_one_row_per_entity_per_day(self):
        entities = [EntityRef(id='a', external_id=None, budget=10.0),
                    EntityRef(id='b', external_id=None, budget=10.0)]
        rows = _fetch(entities, date(2026, 3, 1), date(2026, 3, 3))
        assert len(rows) == 6
        assert {(r.entity_id, r.date_start) for r in rows} == {
            (e, date(2026, 3, d)) for e in ('a', 'b') for d in (1, 2, 3)
        }
        assert all(r.date_start == r.date_stop for r in rows)

    def test_accepts_string_dates(self):
        rows = _fetch([EntityRef(id='a', external_id=None, budget=10.0)], '2026-03-10', '2026-03-10')
        assert rows[0].date_start == DAY

    def test_external_id_falls_back_to_internal(self):
        row = _fetch([EntityRef(id='cmp-9', external_id=None, budget=10.0)])[0]
        assert row.external_entity_id == 'cmp-9'

    def test_carries_level_and_tenant(self):
        row = _fetch([EntityRef(id='ad-1', external_id='x', budget=10.0)], level='AD')[0]
        assert row.entity_type == 'AD'
        assert row.tenant_id == 'tenant-a'


class TestNeverRaises:

    def test_empty_entities(self):
        assert _fetch([]) == []

    def test_none_entities(self):
        assert _fetch(None) == []

    @pytest.mark.parametrize('budget', [None, -50, 'abc', float('nan')])
    def test_bad_budget_gives_zero_row(self, budget):
        row = _fetch([EntityRef(id='cmp-1', external_id=None, budget=budget)])[0]
        assert row.spend == 0.0
        assert row.impressions == 0
        assert row.cpm == 0.0 and row.roas == 0.0

    def test_bad_dates_give_no_rows(self):
        assert _fetch([EntityRef(id='a', external_id=None, budget=10.0)], 'not-a-date', DAY) == []

    def test_reversed_window_gives_no_rows(self):
        rows = _fetch([EntityRef(id='a', external_id=None, budget=10.0)],
                      date(2026, 3, 5), date(2026, 3, 1))
        assert rows == []
