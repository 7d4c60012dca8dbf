"""Partition observed dependencies into consolidatable and conflicting."""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping


@dataclass(frozen=True)
class ConsolidationDecision:
    """Which dependencies move to the catalog and which stay pinned."""

    selected: Dict[str, str] = field(default_factory=dict)
    conflicting: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_selection(self) -> bool:
        return len(self.selected) > 0

    def is_selected(self, name: str) -> bool:
        return name in self.selected


def select_consolidation(observations: Mapping[str, List[str]]) -> ConsolidationDecision:
    """
    Split the observation table.

    A dependency with exactly one distinct specifier is selected, with that
    specifier as its catalog value. Two or more distinct specifiers make it
    conflicting. Observation order is kept in both partitions.
    """
    selected: Dict[str, str] = {}
    conflicting: Dict[str, List[str]] = {}

    for name, specifiers in observations.items():
        if len(specifiers) == 1:
            selected[name] = specifiers[0]
        elif len(specifiers) > 1:
            conflicting[name] = list(specifiers)

    return ConsolidationDecision(selected=selected, conflicting=conflicting)
