"""
Priority scoring — isolated, pure, deterministic.

Each priority factor is a tagged variant: a FactorKind plus a typed
parameter dataclass. Every kind has exactly one scoring function mapping
an order snapshot to a sub-score in [0, 100]. The composite score is the
weight-normalized mean of the enabled factors.

No database, no clock: callers pass `now` explicitly, so the same
configuration and snapshot always produce the same ranking.

Examples:
    factors = parse_factors([
        {"id": "vip_flag", "enabled": True, "weight": 60},
        {"id": "queue_age", "enabled": True, "weight": 40,
         "parameters": {"saturation_hours": 24}},
    ])
    rank("weighted", factors, snapshots, now)  # -> [order_id, ...]
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass, fields
from datetime import date, datetime
from enum import Enum
from typing import Any

from dispatchman.exceptions import InvalidConfigurationError


MAX_TOTAL_WEIGHT = 100


class FactorKind(str, Enum):
    """Available priority factors."""

    PRODUCER_PERFORMANCE = "producer_performance"  # On-time history of the producer
    CONTRACT_SLA = "contract_sla"                  # Tighter contractual SLA first
    SCHEDULE_PROXIMITY = "schedule_proximity"      # Closer dispatch date first
    VIP_FLAG = "vip_flag"                          # VIP / urgent orders first
    QUEUE_AGE = "queue_age"                        # Longer wait first


# Factor ids used by the legacy configuration screen
LEGACY_FACTOR_IDS = {
    "performance_sla_produtor": FactorKind.PRODUCER_PERFORMANCE,
    "sla_contrato": FactorKind.CONTRACT_SLA,
    "proximidade_agendamento": FactorKind.SCHEDULE_PROXIMITY,
    "cliente_vip": FactorKind.VIP_FLAG,
    "tempo_fila": FactorKind.QUEUE_AGE,
}

LEGACY_MODES = {"customizado": "weighted"}


# ══════════════════════════════════════════════════════════════
# PARAMETERS (one dataclass per kind)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProducerPerformanceParams:
    """
    Producer on-time performance over a trailing window.

    Starts at 100 and loses points per missed SLA:
    - linear:      100 - penalty_per_miss * misses (floor 0)
    - exponential: 100 * decay_rate ** misses
    """

    window_days: int = 90
    penalty_per_miss: float = 10.0
    decay: str = "linear"
    decay_rate: float = 0.8

    def validate(self) -> None:
        _require_positive("window_days", self.window_days)
        _require_non_negative("penalty_per_miss", self.penalty_per_miss)
        if self.decay not in ("linear", "exponential"):
            raise InvalidConfigurationError(
                message=f"Função de decaimento desconhecida: {self.decay!r}",
                parameter="decay",
            )
        if not 0 < self.decay_rate <= 1:
            raise InvalidConfigurationError(
                message="decay_rate deve estar entre 0 (exclusive) e 1",
                parameter="decay_rate",
            )


@dataclass(frozen=True)
class ContractSlaParams:
    """SLA of max_hours or more scores 0; an immediate SLA scores 100."""

    max_hours: float = 72.0

    def validate(self) -> None:
        _require_positive("max_hours", self.max_hours)


@dataclass(frozen=True)
class ScheduleProximityParams:
    """Dispatch today (or overdue) scores 100; horizon_days away or more scores 0."""

    horizon_days: int = 7

    def validate(self) -> None:
        _require_positive("horizon_days", self.horizon_days)


@dataclass(frozen=True)
class VipFlagParams:
    """No parameters: VIP/urgent maps to 100, anything else to 0."""

    def validate(self) -> None:
        pass


@dataclass(frozen=True)
class QueueAgeParams:
    """Score grows linearly with waiting time and saturates at saturation_hours."""

    saturation_hours: float = 48.0

    def validate(self) -> None:
        _require_positive("saturation_hours", self.saturation_hours)


PARAMS_BY_KIND: dict[FactorKind, type] = {
    FactorKind.PRODUCER_PERFORMANCE: ProducerPerformanceParams,
    FactorKind.CONTRACT_SLA: ContractSlaParams,
    FactorKind.SCHEDULE_PROXIMITY: ScheduleProximityParams,
    FactorKind.VIP_FLAG: VipFlagParams,
    FactorKind.QUEUE_AGE: QueueAgeParams,
}


def _require_positive(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise InvalidConfigurationError(
            message=f"{name} deve ser um número positivo",
            parameter=name,
            value=value,
        )


def _require_non_negative(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise InvalidConfigurationError(
            message=f"{name} não pode ser negativo",
            parameter=name,
            value=value,
        )


# ══════════════════════════════════════════════════════════════
# FACTORS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Factor:
    """One configured priority factor."""

    id: str
    kind: FactorKind
    enabled: bool
    weight: int | float
    params: Any

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Factor:
        """
        Build a factor from its stored JSON shape.

        Shape: {"id", "kind"?, "enabled", "weight", "parameters"?}
        When "kind" is missing, the id names the kind (legacy ids accepted).
        Unknown parameter keys are ignored.

        Raises:
            InvalidConfigurationError: unknown kind, bad weight or parameters
        """
        if not isinstance(raw, dict):
            raise InvalidConfigurationError(message="Fator deve ser um objeto", factor=raw)

        factor_id = raw.get("id")
        if not factor_id or not isinstance(factor_id, str):
            raise InvalidConfigurationError(message="Identificador do fator é obrigatório", factor=raw)

        kind = _resolve_kind(raw.get("kind") or factor_id)

        weight = raw.get("weight", 0)
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or not 0 <= weight <= 100:
            raise InvalidConfigurationError(
                message="Peso do fator deve ser um número entre 0 e 100",
                factor=factor_id,
                weight=weight,
            )

        enabled = raw.get("enabled", True)
        if not isinstance(enabled, bool):
            raise InvalidConfigurationError(
                message="Indicador de fator ativo deve ser booleano",
                factor=factor_id,
            )

        params_cls = PARAMS_BY_KIND[kind]
        raw_params = raw.get("parameters") or {}
        if not isinstance(raw_params, dict):
            raise InvalidConfigurationError(
                message="Parâmetros do fator devem ser um objeto",
                factor=factor_id,
            )
        known = {f.name for f in fields(params_cls)}
        params = params_cls(**{k: v for k, v in raw_params.items() if k in known})
        params.validate()

        return cls(id=factor_id, kind=kind, enabled=enabled, weight=weight, params=params)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "enabled": self.enabled,
            "weight": self.weight,
            "parameters": asdict(self.params),
        }


def _resolve_kind(value: str) -> FactorKind:
    if value in LEGACY_FACTOR_IDS:
        return LEGACY_FACTOR_IDS[value]
    try:
        return FactorKind(value)
    except ValueError:
        raise InvalidConfigurationError(
            message=f"Fator de prioridade desconhecido: {value!r}",
            factor=value,
        ) from None


def default_factors() -> list[Factor]:
    """The five factors offered to operators, with their default weights."""
    return parse_factors([
        {"id": FactorKind.PRODUCER_PERFORMANCE.value, "enabled": True, "weight": 25},
        {"id": FactorKind.CONTRACT_SLA.value, "enabled": True, "weight": 25},
        {"id": FactorKind.SCHEDULE_PROXIMITY.value, "enabled": True, "weight": 25},
        {"id": FactorKind.VIP_FLAG.value, "enabled": True, "weight": 15},
        {"id": FactorKind.QUEUE_AGE.value, "enabled": True, "weight": 10},
    ])


def parse_factors(raw_factors: Iterable[dict[str, Any]] | None) -> list[Factor]:
    """Parse a stored factor list; duplicate ids are rejected."""
    if raw_factors is None:
        return []
    if not isinstance(raw_factors, (list, tuple)):
        raise InvalidConfigurationError(message="Fatores devem ser uma lista")

    factors = [Factor.from_dict(raw) for raw in raw_factors]
    seen = set()
    for factor in factors:
        if factor.id in seen:
            raise InvalidConfigurationError(
                message=f"Fator duplicado: {factor.id!r}",
                factor=factor.id,
            )
        seen.add(factor.id)
    return factors


def normalize_mode(mode: str) -> str:
    mode = LEGACY_MODES.get(mode, mode)
    if mode not in ("fifo", "weighted"):
        raise InvalidConfigurationError(
            message=f"Modo de priorização desconhecido: {mode!r}",
            mode=mode,
        )
    return mode


def validate_config(mode: str, raw_factors) -> tuple[str, list[Factor]]:
    """
    Validate a configuration before it is persisted.

    Returns:
        (normalized mode, parsed factors)

    Raises:
        InvalidConfigurationError: bad mode/factor, or enabled weights above 100
            in weighted mode
    """
    mode = normalize_mode(mode)
    factors = parse_factors(raw_factors)

    if mode == "weighted":
        total = sum(f.weight for f in factors if f.enabled)
        if total > MAX_TOTAL_WEIGHT:
            raise InvalidConfigurationError(
                message=f"Soma dos pesos ativos ({total}) excede {MAX_TOTAL_WEIGHT}",
                total_weight=total,
                max_weight=MAX_TOTAL_WEIGHT,
            )

    return mode, factors


# ══════════════════════════════════════════════════════════════
# SNAPSHOTS AND SCORERS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OrderSnapshot:
    """Attributes of a pending order that feed the priority factors."""

    order_id: Any
    created_at: datetime
    dispatch_date: date | None = None
    sla_hours: float | None = None
    is_urgent: bool = False
    producer_misses: int = 0


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def score_producer_performance(snapshot: OrderSnapshot, params: ProducerPerformanceParams,
                               now: datetime) -> float:
    misses = max(0, snapshot.producer_misses)
    if params.decay == "exponential":
        return _clamp(100.0 * params.decay_rate ** misses)
    return _clamp(100.0 - params.penalty_per_miss * misses)


def score_contract_sla(snapshot: OrderSnapshot, params: ContractSlaParams,
                       now: datetime) -> float:
    if snapshot.sla_hours is None:
        return 0.0
    return _clamp(100.0 * (1 - snapshot.sla_hours / params.max_hours))


def score_schedule_proximity(snapshot: OrderSnapshot, params: ScheduleProximityParams,
                             now: datetime) -> float:
    if snapshot.dispatch_date is None:
        return 0.0
    days = (snapshot.dispatch_date - now.date()).days
    if days <= 0:
        return 100.0
    return _clamp(100.0 * (1 - days / params.horizon_days))


def score_vip_flag(snapshot: OrderSnapshot, params: VipFlagParams, now: datetime) -> float:
    return 100.0 if snapshot.is_urgent else 0.0


def score_queue_age(snapshot: OrderSnapshot, params: QueueAgeParams, now: datetime) -> float:
    hours = (now - snapshot.created_at).total_seconds() / 3600
    return _clamp(100.0 * hours / params.saturation_hours)


SCORERS: dict[FactorKind, Callable[[OrderSnapshot, Any, datetime], float]] = {
    FactorKind.PRODUCER_PERFORMANCE: score_producer_performance,
    FactorKind.CONTRACT_SLA: score_contract_sla,
    FactorKind.SCHEDULE_PROXIMITY: score_schedule_proximity,
    FactorKind.VIP_FLAG: score_vip_flag,
    FactorKind.QUEUE_AGE: score_queue_age,
}


def factor_score(factor: Factor, snapshot: OrderSnapshot, now: datetime) -> float:
    """Sub-score in [0, 100] of one factor for one order."""
    return SCORERS[factor.kind](snapshot, factor.params, now)


def composite_score(factors: Sequence[Factor], snapshot: OrderSnapshot,
                    now: datetime) -> tuple[float, dict[str, float]]:
    """
    Weighted composite score of an order.

    composite = Σ(sub_score × weight) / Σ(weight), enabled factors only.

    Returns:
        (composite, {factor_id: sub_score}); composite is 0 when no enabled
        factor carries weight.
    """
    breakdown: dict[str, float] = {}
    weighted_sum = 0.0
    total_weight = 0.0
    for factor in factors:
        if not factor.enabled:
            continue
        sub = factor_score(factor, snapshot, now)
        breakdown[factor.id] = round(sub, 6)
        weighted_sum += sub * factor.weight
        total_weight += factor.weight

    if total_weight == 0:
        return 0.0, breakdown
    return round(weighted_sum / total_weight, 6), breakdown


def _order_id_key(order_id) -> tuple:
    if isinstance(order_id, int):
        return (0, order_id, "")
    return (1, 0, str(order_id))


def _fifo_key(snapshot: OrderSnapshot) -> tuple:
    return (snapshot.created_at, _order_id_key(snapshot.order_id))


def uses_weights(mode: str, factors: Sequence[Factor]) -> bool:
    """Weighted ranking applies only with at least one enabled, weighted factor."""
    return mode == "weighted" and sum(f.weight for f in factors if f.enabled) > 0


def rank(mode: str, factors: Sequence[Factor], snapshots: Iterable[OrderSnapshot],
         now: datetime) -> list:
    """
    Total order of the separation queue.

    - fifo (or no weighted factor enabled): creation time ascending
    - weighted: composite score descending, then creation time ascending

    Returns:
        List of order ids, highest priority first
    """
    snapshots = list(snapshots)

    if not uses_weights(mode, factors):
        return [s.order_id for s in sorted(snapshots, key=_fifo_key)]

    scored = [(composite_score(factors, s, now)[0], s) for s in snapshots]
    scored.sort(key=lambda item: (-item[0], *_fifo_key(item[1])))
    return [s.order_id for _, s in scored]
