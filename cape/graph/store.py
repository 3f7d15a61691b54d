"""
Graph Store - Immutable-vertex directed graph on top of NetworkX.

Vertices are written once with their final attributes; a second insert of
the same ARN is an error rather than a silent update. Edges hold a
mapping of reason code -> explanation and can be updated in place.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

import networkx as nx

from cape.errors import EdgeExistsError, VertexExistsError, VertexNotFoundError
from cape.graph.models import Node, NodeType, TriState


class PrivescGraph:
    """Directed graph of principals keyed by ARN."""

    def __init__(self):
        self._graph = nx.DiGraph()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add_vertex(self, node: Node) -> None:
        if self._graph.has_node(node.arn):
            raise VertexExistsError(node.arn)
        self._graph.add_node(node.arn, **node.vertex_attributes())

    def remove_vertex(self, arn: str) -> bool:
        """Remove a vertex and its incident edges. Returns False if absent."""
        if not self._graph.has_node(arn):
            return False
        self._graph.remove_node(arn)
        return True

    def add_edge(self, source: str, destination: str, reasons: Dict[str, str]) -> None:
        for arn in (source, destination):
            if not self._graph.has_node(arn):
                raise VertexNotFoundError(arn)
        if self._graph.has_edge(source, destination):
            raise EdgeExistsError(source, destination)
        self._graph.add_edge(source, destination, reasons=dict(reasons))

    def update_edge(self, source: str, destination: str, reasons: Dict[str, str]) -> None:
        """Merge reasons into an existing edge."""
        if not self._graph.has_edge(source, destination):
            raise VertexNotFoundError(f"{source} -> {destination}")
        self._graph.edges[source, destination]['reasons'].update(reasons)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    def has_vertex(self, arn: str) -> bool:
        return self._graph.has_node(arn)

    def has_edge(self, source: str, destination: str) -> bool:
        return self._graph.has_edge(source, destination)

    def vertex(self, arn: str) -> Node:
        if not self._graph.has_node(arn):
            raise VertexNotFoundError(arn)
        return Node(arn=arn, **self._graph.nodes[arn])

    def vertex_attributes(self, arn: str) -> Mapping[str, Any]:
        if not self._graph.has_node(arn):
            raise VertexNotFoundError(arn)
        return MappingProxyType(self._graph.nodes[arn])

    def vertices(self) -> List[Node]:
        return [self.vertex(arn) for arn in sorted(self._graph.nodes)]

    def arns(self) -> List[str]:
        return sorted(self._graph.nodes)

    def edge(self, source: str, destination: str) -> Optional[Dict[str, str]]:
        """Copy of the reasons on an edge, or None."""
        data = self._graph.get_edge_data(source, destination)
        if data is None:
            return None
        return dict(data['reasons'])

    def edges(self) -> Iterator[tuple]:
        """Yield (source, destination, reasons) sorted by pair."""
        for source, destination in sorted(self._graph.edges()):
            yield source, destination, dict(self._graph.edges[source, destination]['reasons'])

    def successors(self, arn: str) -> List[str]:
        return sorted(self._graph.successors(arn))

    def predecessors(self, arn: str) -> List[str]:
        return sorted(self._graph.predecessors(arn))

    def vertices_in_account(self, account_id: str) -> List[Node]:
        return [
            self.vertex(arn) for arn in sorted(self._graph.nodes)
            if self._graph.nodes[arn].get('account_id') == account_id
        ]

    def number_of_vertices(self) -> int:
        return self._graph.number_of_nodes()

    def number_of_edges(self) -> int:
        return self._graph.number_of_edges()

    def __contains__(self, arn: str) -> bool:
        return self._graph.has_node(arn)

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def stats(self) -> Dict[str, Any]:
        """Counts by node type plus cross-account edges and accounts seen."""
        by_type = {t.value: 0 for t in NodeType}
        accounts = set()
        admins = 0
        for arn, data in self._graph.nodes(data=True):
            by_type[data['type'].value] += 1
            if data.get('account_id'):
                accounts.add(data['account_id'])
            if data.get('is_admin') is TriState.YES:
                admins += 1

        cross_account_edges = 0
        for source, destination in self._graph.edges():
            source_account = self._graph.nodes[source].get('account_id')
            destination_account = self._graph.nodes[destination].get('account_id')
            if source_account and destination_account and source_account != destination_account:
                cross_account_edges += 1

        return {
            'vertex_count': self._graph.number_of_nodes(),
            'edge_count': self._graph.number_of_edges(),
            'admin_count': admins,
            'by_type': by_type,
            'cross_account_edges': cross_account_edges,
            'account_count': len(accounts),
            'accounts': sorted(accounts),
        }
