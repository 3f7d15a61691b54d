"""
Graph Analyzer - Reachability queries over the privilege graph.

For every target vertex a reverse traversal over predecessors finds each
principal that can reach it. Traversal is breadth-first with a visited set
per root, so every reported chain is a shortest one, cycles (mutual role
assumption) terminate, and no (source, destination) pair is reported twice.

Modes:
    admin_only=True   sources are non-admin vertices, targets are admins;
                      a source lying on another source's chain is not
                      reported on its own
    admin_only=False  every vertex is both a source and a target
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List

from cape.graph.models import NodeType, TriState
from cape.graph.store import PrivescGraph

logger = logging.getLogger(__name__)


@dataclass
class PathHop:
    """One edge of a path with every reason recorded on it."""
    source: str
    destination: str
    reasons: Dict[str, str] = field(default_factory=dict)

    @property
    def explanation(self) -> str:
        return '; '.join(
            f"{code}: {text}" if text else code
            for code, text in sorted(self.reasons.items())
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'destination': self.destination,
            'reasons': dict(sorted(self.reasons.items())),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PathHop':
        return cls(
            source=data['source'],
            destination=data['destination'],
            reasons=dict(data.get('reasons', {})),
        )


@dataclass
class PrivescPath:
    """Ordered chain of hops from a source principal to a destination."""
    source: str
    destination: str
    hops: List[PathHop] = field(default_factory=list)
    source_name: str = ""
    source_type: NodeType = NodeType.UNKNOWN
    source_account_id: str = ""
    source_can_privesc_to_admin: TriState = TriState.UNKNOWN
    destination_name: str = ""
    destination_type: NodeType = NodeType.UNKNOWN
    destination_account_id: str = ""
    destination_is_admin: TriState = TriState.UNKNOWN

    @property
    def length(self) -> int:
        return len(self.hops)

    @property
    def arns(self) -> List[str]:
        if not self.hops:
            return [self.source]
        return [self.hops[0].source] + [hop.destination for hop in self.hops]

    @property
    def crosses_accounts(self) -> bool:
        return bool(self.source_account_id and self.destination_account_id
                    and self.source_account_id != self.destination_account_id)

    @property
    def explanation(self) -> str:
        """Reasons of every hop, in path order."""
        return ' -> '.join(hop.explanation for hop in self.hops)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'source_name': self.source_name,
            'source_type': self.source_type.value,
            'source_account_id': self.source_account_id,
            'source_can_privesc_to_admin': self.source_can_privesc_to_admin.value,
            'destination': self.destination,
            'destination_name': self.destination_name,
            'destination_type': self.destination_type.value,
            'destination_account_id': self.destination_account_id,
            'destination_is_admin': self.destination_is_admin.value,
            'hops': [hop.to_dict() for hop in self.hops],
            'explanation': self.explanation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrivescPath':
        return cls(
            source=data['source'],
            destination=data['destination'],
            hops=[PathHop.from_dict(h) for h in data.get('hops', [])],
            source_name=data.get('source_name', ''),
            source_type=NodeType(data.get('source_type', NodeType.UNKNOWN.value)),
            source_account_id=data.get('source_account_id', ''),
            source_can_privesc_to_admin=TriState(
                data.get('source_can_privesc_to_admin', TriState.UNKNOWN.value)),
            destination_name=data.get('destination_name', ''),
            destination_type=NodeType(data.get('destination_type', NodeType.UNKNOWN.value)),
            destination_account_id=data.get('destination_account_id', ''),
            destination_is_admin=TriState(data.get('destination_is_admin', TriState.UNKNOWN.value)),
        )


class PathQueryEngine:
    """Answers 'who can reach what' over an assembled PrivescGraph."""

    def __init__(self, graph: PrivescGraph):
        self.graph = graph

    def find_admin_paths(self, admin_only: bool = True) -> List[PrivescPath]:
        """
        Find every principal with a path into a target vertex.

        Args:
            admin_only: Restrict targets to admins and sources to non-admins

        Returns:
            Paths ordered by destination ARN, then source ARN
        """
        paths: List[PrivescPath] = []
        for target in self._targets(admin_only):
            paths.extend(self._paths_into(target, admin_only))
        logger.info("Found %d paths (admin_only=%s)", len(paths), admin_only)
        return paths

    def paths_to(self, destination: str, admin_only: bool = False) -> List[PrivescPath]:
        """Every path ending at one destination."""
        if not self.graph.has_vertex(destination):
            return []
        return self._paths_into(destination, admin_only)

    def paths_from(self, source: str, admin_only: bool = False) -> List[PrivescPath]:
        """Every path starting at one source."""
        if not self.graph.has_vertex(source):
            return []
        return [p for p in self.find_admin_paths(admin_only) if p.source == source]

    def _targets(self, admin_only: bool) -> List[str]:
        if not admin_only:
            return self.graph.arns()
        return [
            arn for arn in self.graph.arns()
            if self.graph.vertex_attributes(arn)['is_admin'] is TriState.YES
        ]

    def _paths_into(self, target: str, admin_only: bool) -> List[PrivescPath]:
        # next_hop[arn] is the successor of arn on its shortest path to target
        next_hop: Dict[str, str] = {}
        visited = {target}
        queue = deque([target])
        while queue:
            current = queue.popleft()
            for predecessor in self.graph.predecessors(current):
                if predecessor in visited:
                    continue
                visited.add(predecessor)
                next_hop[predecessor] = current
                queue.append(predecessor)

        sources = sorted(next_hop)
        if admin_only:
            sources = [s for s in sources if self.graph.vertex_attributes(s)['is_admin'] is not TriState.YES]
            # A source already on another source's chain is that chain's suffix
            on_chain = set()
            for source in sources:
                current = next_hop[source]
                while current != target and current not in on_chain:
                    on_chain.add(current)
                    current = next_hop[current]
            sources = [s for s in sources if s not in on_chain]

        return [self._build_path(source, target, next_hop) for source in sources]

    def _build_path(self, source: str, target: str, next_hop: Dict[str, str]) -> PrivescPath:
        hops = []
        current = source
        while current != target:
            following = next_hop[current]
            hops.append(PathHop(current, following, self.graph.edge(current, following) or {}))
            current = following

        source_node = self.graph.vertex(source)
        target_node = self.graph.vertex(target)
        return PrivescPath(
            source=source,
            destination=target,
            hops=hops,
            source_name=source_node.name,
            source_type=source_node.type,
            source_account_id=source_node.account_id,
            source_can_privesc_to_admin=source_node.can_privesc_to_admin,
            destination_name=target_node.name,
            destination_type=target_node.type,
            destination_account_id=target_node.account_id,
            destination_is_admin=target_node.is_admin,
        )


def find_admin_paths(graph: PrivescGraph, admin_only: bool = True) -> List[PrivescPath]:
    """Module-level shortcut for PathQueryEngine(graph).find_admin_paths()."""
    return PathQueryEngine(graph).find_admin_paths(admin_only)


def inbound_paths(paths: List[PrivescPath], account_id: str) -> List[PrivescPath]:
    """Paths whose destination lives in the given account."""
    return [p for p in paths if p.destination_account_id == account_id]


def summarize_paths(paths: List[PrivescPath]) -> Dict[str, Any]:
    """Counts used by the CLI summary."""
    sources = {p.source for p in paths}
    destinations = {p.destination for p in paths}
    return {
        'path_count': len(paths),
        'source_count': len(sources),
        'destination_count': len(destinations),
        'cross_account_paths': sum(1 for p in paths if p.crosses_accounts),
        'longest_path': max((p.length for p in paths), default=0),
    }