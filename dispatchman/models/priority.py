"""
PriorityFactorConfig model — Per-depot separation queue policy.
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from dispatchman.exceptions import InvalidConfigurationError
from dispatchman.models.enums import PriorityMode


class PriorityFactorConfig(models.Model):
    """
    Operator-tunable prioritization of the separation queue of a depot.

    factors holds a list of {id, kind, enabled, weight, parameters}.
    In weighted mode the enabled weights must add up to at most 100.
    Always save through PriorityScoringEngine.save_config(), which
    validates before writing.
    """

    depot_id = models.CharField(
        max_length=64,
        unique=True,
        verbose_name=_('Depósito'),
    )
    mode = models.CharField(
        max_length=20,
        choices=PriorityMode.choices,
        default=PriorityMode.FIFO,
        verbose_name=_('Modo de priorização'),
    )
    factors = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_('Fatores'),
    )
    updated_by = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Atualizado por'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Configuração de Priorização')
        verbose_name_plural = _('Configurações de Priorização')

    def clean(self):
        from dispatchman.scoring import validate_config

        try:
            validate_config(self.mode, self.factors)
        except InvalidConfigurationError as e:
            raise ValidationError({'factors': e.message}) from e

    def parsed_factors(self):
        from dispatchman.scoring import parse_factors
        return parse_factors(self.factors)

    def __str__(self) -> str:
        return f"Priorização {self.depot_id} [{self.mode}]"
