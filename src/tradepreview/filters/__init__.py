"""Exchange trading rules: per-symbol filter sets and the registry that serves them."""

from tradepreview.filters.registry import FilterRegistry
from tradepreview.filters.types import (
    FilterSet,
    quantize_to_step,
    round_to_step,
    round_up_to_step,
    step_places,
)

__all__ = [
    "FilterRegistry",
    "FilterSet",
    "quantize_to_step",
    "round_to_step",
    "round_up_to_step",
    "step_places",
]
