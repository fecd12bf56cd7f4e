"""
Tests for PriorityScoringEngine (configuration and separation queue).
"""

from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError
from django.core.management import call_command

from dispatchman.exceptions import InvalidConfigurationError
from dispatchman.models import OrderStatus, OutboundOrder, PriorityFactorConfig
from dispatchman.scoring import FactorKind, OrderSnapshot, parse_factors
from dispatchman.services.priority import PriorityScoringEngine


pytestmark = pytest.mark.django_db


VIP_AND_AGE = [
    {'id': 'vip_flag', 'enabled': True, 'weight': 60},
    {'id': 'queue_age', 'enabled': True, 'weight': 40},
]


@pytest.fixture
def make_order(depot_id, now):
    def _make(hours_waiting=0, status=OrderStatus.PENDING_SEPARATION, **kwargs):
        return OutboundOrder.objects.create(
            depot_id=kwargs.pop('depot', depot_id),
            status=status,
            created_by='user-1',
            created_at=now - timedelta(hours=hours_waiting),
            **kwargs,
        )
    return _make


class TestConfiguration:
    """Tests for save_config(), validate_config() and get_config()."""

    def test_default_config_is_fifo_with_five_factors(self, depot_id):
        config = PriorityScoringEngine.get_config(depot_id)

        assert config.pk is None
        assert config.mode == 'fifo'
        assert [f.kind for f in config.parsed_factors()] == list(FactorKind)

    def test_save_sum_100(self, depot_id):
        config = PriorityScoringEngine.save_config(depot_id, 'weighted', VIP_AND_AGE, updated_by='gestor')

        assert config.pk is not None
        assert config.mode == 'weighted'
        assert config.updated_by == 'gestor'
        assert config.factors[0]['kind'] == 'vip_flag'
        assert config.factors[1]['parameters'] == {'saturation_hours': 48.0}

    def test_save_sum_105_rejected_and_previous_kept(self, depot_id):
        PriorityScoringEngine.save_config(depot_id, 'weighted', VIP_AND_AGE)

        with pytest.raises(InvalidConfigurationError):
            PriorityScoringEngine.save_config(depot_id, 'weighted', [
                {'id': 'vip_flag', 'enabled': True, 'weight': 60},
                {'id': 'queue_age', 'enabled': True, 'weight': 45},
            ])

        stored = PriorityFactorConfig.objects.get(depot_id=depot_id)
        assert [f['weight'] for f in stored.factors] == [60, 40]

    def test_save_replaces_config(self, depot_id):
        PriorityScoringEngine.save_config(depot_id, 'weighted', VIP_AND_AGE)
        PriorityScoringEngine.save_config(depot_id, 'fifo', [])

        assert PriorityFactorConfig.objects.get(depot_id=depot_id).mode == 'fifo'
        assert PriorityFactorConfig.objects.count() == 1

    def test_save_accepts_factor_objects(self, depot_id):
        factors = parse_factors(VIP_AND_AGE)

        config = PriorityScoringEngine.save_config(depot_id, 'customizado', factors)

        assert config.mode == 'weighted'

    def test_model_clean_runs_same_validation(self, depot_id):
        config = PriorityFactorConfig(depot_id=depot_id, mode='weighted', factors=[
            {'id': 'vip_flag', 'enabled': True, 'weight': 70},
            {'id': 'queue_age', 'enabled': True, 'weight': 35},
        ])

        with pytest.raises(ValidationError):
            config.full_clean()


class TestSnapshots:
    """Tests for snapshots()."""

    def test_pending_orders_only(self, make_order, depot_id, now):
        pending = make_order()
        make_order(status=OrderStatus.SEPARATED)
        make_order(depot='dep-2')

        assert [s.order_id for s in PriorityScoringEngine.snapshots(depot_id, now=now)] == [pending.pk]

    def test_producer_misses_in_window(self, make_order, depot_id, now):
        order = make_order(producer_id='prod-1')
        late = dict(
            status=OrderStatus.DELIVERED,
            producer_id='prod-1',
            due_at=now - timedelta(days=10),
        )
        make_order(delivered_at=now - timedelta(days=5), **late)
        make_order(delivered_at=now - timedelta(days=6), **late)
        make_order(delivered_at=now - timedelta(days=200), due_at=now - timedelta(days=201),
                   status=OrderStatus.DELIVERED, producer_id='prod-1')
        make_order(delivered_at=now - timedelta(days=20), status=OrderStatus.DELIVERED,
                   producer_id='prod-1', due_at=now - timedelta(days=19))
        make_order(delivered_at=now - timedelta(days=5), due_at=now - timedelta(days=10),
                   status=OrderStatus.DELIVERED, producer_id='prod-2')

        [snap] = PriorityScoringEngine.snapshots(depot_id, now=now)

        assert snap.order_id == order.pk
        assert snap.producer_misses == 2


class TestRanking:
    """Tests for rank(), score() and separation_queue()."""

    def test_fifo_by_default(self, make_order, depot_id, now):
        newer = make_order(hours_waiting=1, is_urgent=True)
        older = make_order(hours_waiting=5)

        assert PriorityScoringEngine.rank(depot_id, [newer, older], now=now) == [older.pk, newer.pk]

    def test_weighted_ranking(self, make_order, depot_id, now):
        PriorityScoringEngine.save_config(depot_id, 'weighted', VIP_AND_AGE)
        waiting = make_order(hours_waiting=24)
        vip = make_order(hours_waiting=1, is_urgent=True)

        queue = PriorityScoringEngine.separation_queue(depot_id, now=now)

        assert [o.pk for o in queue] == [vip.pk, waiting.pk]

    def test_rank_accepts_snapshots(self, depot_id, now):
        PriorityScoringEngine.save_config(depot_id, 'weighted', [{'id': 'vip_flag', 'enabled': True, 'weight': 10}])
        snapshots = [
            OrderSnapshot(order_id=1, created_at=now - timedelta(hours=2)),
            OrderSnapshot(order_id=2, created_at=now, is_urgent=True),
        ]

        assert PriorityScoringEngine.rank(depot_id, snapshots, now=now) == [2, 1]

    def test_ranking_is_stable_across_calls(self, make_order, depot_id, now):
        PriorityScoringEngine.save_config(depot_id, 'weighted', [{'id': 'vip_flag', 'enabled': True, 'weight': 100}])
        orders = [make_order(hours_waiting=2) for _ in range(5)]

        results = {tuple(PriorityScoringEngine.rank(depot_id, orders, now=now)) for _ in range(5)}

        assert results == {tuple(o.pk for o in orders)}

    def test_ranking_writes_nothing(self, make_order, depot_id, now):
        order = make_order()
        before = OutboundOrder.objects.get(pk=order.pk).updated_at

        PriorityScoringEngine.separation_queue(depot_id, now=now)

        assert OutboundOrder.objects.get(pk=order.pk).updated_at == before
        assert not PriorityFactorConfig.objects.exists()

    def test_score_breakdown(self, depot_id, now):
        PriorityScoringEngine.save_config(depot_id, 'weighted', VIP_AND_AGE)

        score, breakdown = PriorityScoringEngine.score(
            depot_id, OrderSnapshot(order_id=1, created_at=now - timedelta(hours=24), is_urgent=True), now=now,
        )

        assert breakdown == {'vip_flag': 100.0, 'queue_age': 50.0}
        assert score == pytest.approx(80.0)


class TestSeparationQueueCommand:
    """Tests for the separation_queue management command."""

    def test_prints_queue_with_explanation(self, make_order, depot_id, capsys):
        PriorityScoringEngine.save_config(depot_id, 'weighted', VIP_AND_AGE)
        make_order(is_urgent=True)

        call_command('separation_queue', depot=depot_id, explain=True)

        out = capsys.readouterr().out
        assert 'modo weighted' in out
        assert 'vip_flag=100.0' in out

    def test_empty_queue(self, depot_id, capsys):
        call_command('separation_queue', depot=depot_id)

        assert 'Nenhuma saída' in capsys.readouterr().out
