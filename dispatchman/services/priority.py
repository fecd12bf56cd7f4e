"""
Priority engine — per-depot factor configuration and separation queue ranking.

Scoring itself is pure (dispatchman.scoring). This module loads the
configuration, builds order snapshots from the database and never writes
while ranking.
"""

import logging
from datetime import datetime, timedelta

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from dispatchman import scoring
from dispatchman.models.enums import PriorityMode
from dispatchman.models.order import OutboundOrder
from dispatchman.models.priority import PriorityFactorConfig

logger = logging.getLogger('dispatchman')

DEFAULT_WINDOW_DAYS = scoring.ProducerPerformanceParams().window_days


def _raw_factors(factors) -> list:
    """Accept Factor objects or their dict form."""
    if factors is None:
        return []
    return [f.to_dict() if isinstance(f, scoring.Factor) else f for f in factors]


def _misses_window(factors) -> int:
    windows = [
        f.params.window_days for f in factors
        if f.enabled and f.kind == scoring.FactorKind.PRODUCER_PERFORMANCE
    ]
    return max(windows) if windows else DEFAULT_WINDOW_DAYS


class PriorityScoringEngine:
    """Separation queue prioritization."""

    # ══════════════════════════════════════════════════════════════
    # CONFIGURATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def validate_config(cls, mode, factors) -> tuple[str, list[scoring.Factor]]:
        """
        Validate a configuration without saving it.

        Raises:
            InvalidConfigurationError
        """
        return scoring.validate_config(mode, _raw_factors(factors))

    @classmethod
    def save_config(cls, depot_id, mode, factors, updated_by='') -> PriorityFactorConfig:
        """
        Validate, then create or replace the depot configuration.

        An invalid configuration raises before anything is written, so the
        previous configuration stays in effect.

        Raises:
            InvalidConfigurationError
        """
        mode, parsed = cls.validate_config(mode, factors)

        with transaction.atomic():
            config, created = PriorityFactorConfig.objects.update_or_create(
                depot_id=depot_id,
                defaults={
                    'mode': mode,
                    'factors': [f.to_dict() for f in parsed],
                    'updated_by': updated_by or '',
                },
            )

        logger.info(
            "priority.config_saved",
            extra={
                "depot_id": depot_id,
                "mode": mode,
                "enabled": [f.id for f in parsed if f.enabled],
                "config_created": created,
                "updated_by": updated_by,
            },
        )
        return config

    @classmethod
    def get_config(cls, depot_id) -> PriorityFactorConfig:
        """
        Stored configuration of the depot.

        Depots never configured get an unsaved default: FIFO mode with the
        five standard factors at their default weights.
        """
        config = PriorityFactorConfig.objects.filter(depot_id=depot_id).first()
        if config is None:
            config = PriorityFactorConfig(
                depot_id=depot_id,
                mode=PriorityMode.FIFO,
                factors=[f.to_dict() for f in scoring.default_factors()],
            )
        return config

    # ══════════════════════════════════════════════════════════════
    # SNAPSHOTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def snapshots(cls, depot_id, now: datetime | None = None, orders=None) -> list[scoring.OrderSnapshot]:
        """
        Scoring inputs of orders (default: the depot's pending separation queue).

        producer_misses counts the producer's orders delivered after their
        due date within the producer performance window.
        """
        now = now or timezone.now()
        if orders is None:
            orders = OutboundOrder.objects.pending_separation(depot_id)
        orders = list(orders)

        factors = cls.get_config(depot_id).parsed_factors()
        since = now - timedelta(days=_misses_window(factors))
        producers = {o.producer_id for o in orders if o.producer_id}

        misses = {}
        if producers:
            misses = dict(
                OutboundOrder.objects.delivered_late()
                .filter(producer_id__in=producers, delivered_at__gte=since, delivered_at__lte=now)
                .values('producer_id')
                .annotate(n=Count('id'))
                .values_list('producer_id', 'n')
            )

        return [
            scoring.OrderSnapshot(
                order_id=o.pk,
                created_at=o.created_at,
                dispatch_date=o.dispatch_date,
                sla_hours=o.sla_hours,
                is_urgent=o.is_urgent,
                producer_misses=misses.get(o.producer_id, 0),
            )
            for o in orders
        ]

    # ══════════════════════════════════════════════════════════════
    # RANKING
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def rank(cls, depot_id, pending_orders, now: datetime | None = None) -> list:
        """
        Priority order of pending orders, highest first.

        Args:
            pending_orders: OrderSnapshots, or OutboundOrder instances
                (converted with snapshots())

        Returns:
            List of order ids
        """
        now = now or timezone.now()
        pending_orders = list(pending_orders)
        if all(isinstance(o, scoring.OrderSnapshot) for o in pending_orders):
            snapshots = pending_orders
        else:
            snapshots = cls.snapshots(depot_id, now=now, orders=pending_orders)

        config = cls.get_config(depot_id)
        return scoring.rank(config.mode, config.parsed_factors(), snapshots, now)

    @classmethod
    def score(cls, depot_id, snapshot: scoring.OrderSnapshot,
              now: datetime | None = None) -> tuple[float, dict[str, float]]:
        """Composite score and per-factor breakdown of one order."""
        config = cls.get_config(depot_id)
        return scoring.composite_score(config.parsed_factors(), snapshot, now or timezone.now())

    @classmethod
    def separation_queue(cls, depot_id, now: datetime | None = None) -> list[OutboundOrder]:
        """Pending separation orders of the depot, highest priority first."""
        now = now or timezone.now()
        orders = {o.pk: o for o in OutboundOrder.objects.pending_separation(depot_id)}
        ranked = cls.rank(depot_id, cls.snapshots(depot_id, now=now, orders=orders.values()), now=now)
        return [orders[order_id] for order_id in ranked]
