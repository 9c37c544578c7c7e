"""Tie-aware ranking shared by the team and category leaderboards."""

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ranked(Generic[T]):
    rank: int
    item: T
    value: int
    diff_to_leader: int
    diff_to_next: int


def rank_descending(items: Iterable[T], value_of: Callable[[T], int]) -> List[Ranked[T]]:
    """Sort by value (highest first) and rank with shared ranks for ties.

    Tied entries share a rank and the entry after a tie takes ``previous rank + 1``,
    e.g. values [15000, 15000, 1000] rank as [1, 1, 2].
    ``diff_to_next`` compares against the entry directly above.
    """
    ordered = sorted(items, key=value_of, reverse=True)
    if not ordered:
        return []

    leader_value = value_of(ordered[0])
    ranked: List[Ranked[T]] = []
    previous_value = leader_value
    rank = 1
    for item in ordered:
        value = value_of(item)
        if value != previous_value:
            rank += 1
        ranked.append(
            Ranked(
                rank=rank,
                item=item,
                value=value,
                diff_to_leader=leader_value - value,
                diff_to_next=previous_value - value,
            )
        )
        previous_value = value
    return ranked
