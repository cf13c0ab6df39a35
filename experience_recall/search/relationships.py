"""
Relationship resolution over 'reflects' links.

A record that reflects on another is connected to it; traversal ignores
direction and returns the whole connected component of the seed.
"""

import logging
from collections import defaultdict, deque
from typing import Dict, Iterable, List, Set

from experience_recall.records.models import ExperienceRecord

logger = logging.getLogger(__name__)


class RelationshipGraph:
    """Forward and backward adjacency for one snapshot of records."""

    def __init__(self, records: Iterable[ExperienceRecord]):
        self._forward: Dict[str, List[str]] = defaultdict(list)
        self._backward: Dict[str, List[str]] = defaultdict(list)

        records = list(records)
        self.ids: Set[str] = {record.id for record in records}
        dangling = 0
        for record in records:
            for target in record.reflects:
                if target not in self.ids:
                    dangling += 1
                    continue
                self._forward[record.id].append(target)
                self._backward[target].append(record.id)
        if dangling:
            logger.debug(f"Ignored {dangling} reflects links to unknown records")

    def reflections_of(self, record_id: str) -> List[str]:
        """Ids of records that record_id reflects on."""
        return list(self._forward.get(record_id, []))

    def reflected_by(self, record_id: str) -> List[str]:
        """Ids of records that reflect on record_id."""
        return list(self._backward.get(record_id, []))

    def neighbours(self, record_id: str) -> List[str]:
        return self._forward.get(record_id, []) + self._backward.get(record_id, [])

    def component(self, seed_id: str) -> Set[str]:
        """Breadth-first connected component containing seed_id."""
        if seed_id not in self.ids:
            return set()
        visited = {seed_id}
        queue = deque([seed_id])
        while queue:
            current = queue.popleft()
            for neighbour in self.neighbours(current):
                if neighbour not in visited:
                    visited.add(neighbour)
                    queue.append(neighbour)
        return visited


def resolve_related(seed_id: str, records: Iterable[ExperienceRecord]) -> Set[str]:
    """
    Find every record connected to seed_id through reflects links.

    Args:
        seed_id: Record to start from
        records: All records to consider

    Returns:
        Ids of the connected component including the seed; empty if the seed
        is not among records
    """
    return RelationshipGraph(records).component(seed_id)
