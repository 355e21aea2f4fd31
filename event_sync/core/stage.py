"""Interface between the reconciliation engine and a concrete pipeline stage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

from .markers import DurableMarkerStore
from .policy import DedupPolicy
from .types import WorkItem


@dataclass
class PreparedItem:
    """What a stage knows about an item before classification.

    Attributes:
        group_key: Logical group key for session dedup, None disables dedup
        policy: Dedup policy chosen from the item's declared category
        context: Stage-private data handed back to perform()
    """

    group_key: str | None = None
    policy: DedupPolicy = DedupPolicy.STANDARD
    context: Any = None


class Stage(ABC):
    """One source-to-side-effect pipeline run through the engine.

    Attributes:
        name: Stage name used in logs and run statistics
        markers: Durable marker store with the stage's own visibility
    """

    name: str = "stage"
    markers: DurableMarkerStore

    @abstractmethod
    def discover(self) -> Iterable[WorkItem]:
        """Return the candidate work items for this run, in processing order."""
        raise NotImplementedError

    def prepare(self, item: WorkItem) -> PreparedItem:
        """Read whatever is needed to classify the item.

        Raising a terminal error here marks the item without publishing;
        a non-terminal error leaves it for the next run.
        """
        return PreparedItem()

    @abstractmethod
    def perform(self, item: WorkItem, prepared: PreparedItem) -> None:
        """Perform the side effect. Raise to abort the item."""
        raise NotImplementedError
