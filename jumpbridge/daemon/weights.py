"""Usage event kinds and the weight each one carries in the jumper database."""

from enum import Enum
from typing import Dict, Optional

from .config import WeightsConfig
from .errors import ConfigurationError


class EventKind(Enum):
    """Kinds of usage signal observed in the editor."""
    OPEN = "open"
    MANUAL_SAVE = "manual_save"
    AUTO_SAVE = "auto_save"
    ACTIVE_FOCUS = "active_focus"
    DIRECTORY_VISIT = "directory_visit"


class WeightPolicy:
    """
    Immutable lookup from event kind to weight.

    Built once per activation. A kind configured as null resolves to the
    fallback weight; without a fallback the policy refuses to build.
    """

    def __init__(self, table: Dict[EventKind, Optional[float]],
                 fallback: Optional[float] = None):
        self._table = dict(table)
        self._fallback = fallback

        unmapped = [kind.value for kind in EventKind
                    if self._table.get(kind) is None]
        if unmapped and fallback is None:
            raise ConfigurationError(
                f"No weight configured for {', '.join(unmapped)} and no fallback set"
            )

    @classmethod
    def from_config(cls, weights: WeightsConfig) -> "WeightPolicy":
        table = {kind: getattr(weights, kind.value) for kind in EventKind}
        return cls(table, fallback=weights.fallback)

    def weight_for(self, kind: EventKind) -> float:
        weight = self._table.get(kind)
        if weight is not None:
            return weight
        if self._fallback is not None:
            return self._fallback
        raise ConfigurationError(f"No weight configured for {kind.value}")

    def as_dict(self) -> Dict[str, float]:
        return {kind.value: self.weight_for(kind) for kind in EventKind}
