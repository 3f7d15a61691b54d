"""
Graph Builder - Assembles the cross-account privilege graph.

Vertices cannot be re-attributed once inserted, so assembly is two-phase:
every node from every account is collected and merged first, then each
merged node is inserted exactly once. Edges come afterwards from PMapper
and from role trust policies; a repeated (source, destination) pair merges
its reasons into the existing edge.

Assembly order:
    1. collect nodes (PMapper, IAM listings, trust policy references)
    2. merge_nodes() once over the full set
    3. insert vertices, registering discovered accounts in the ledger
    4. drop ignore-listed vertices
    5. import PMapper edges
    6. derive trust policy edges for every role
"""

import logging
from typing import Iterable, List, Optional

from cape.errors import EdgeExistsError, VertexNotFoundError
from cape.graph.ledger import AccountLedger
from cape.graph.models import (
    AccountContribution,
    EscalationEdge,
    Node,
    NodeType,
    TriState,
    merge_nodes,
)
from cape.graph.store import PrivescGraph
from cape.iam.trust_policy import TrustPolicyDeriver

logger = logging.getLogger(__name__)

ADMIN_TRUST_REASON = 'sts:AssumeRole (admin)'


class GraphAssembler:
    """Builds one PrivescGraph from the contributions of many accounts."""

    def __init__(
        self,
        ledger: AccountLedger,
        deriver: TrustPolicyDeriver,
        admin_only: bool = False
    ):
        """
        Args:
            ledger: Account ledger, updated with discovered accounts
            deriver: Trust policy parser used for role edges
            admin_only: Query mode, recorded on discovered accounts
        """
        self.ledger = ledger
        self.deriver = deriver
        self.admin_only = admin_only
        self.merged_nodes: List[Node] = []
        self.skipped_edges = 0

    def assemble(
        self,
        contributions: Iterable[AccountContribution],
        ignore_arns: Optional[Iterable[str]] = None
    ) -> PrivescGraph:
        """
        Build the graph.

        Args:
            contributions: Per-account collection results
            ignore_arns: ARNs to remove before any edge is created

        Returns:
            Assembled graph, read-only from here on
        """
        contributions = list(contributions)
        graph = PrivescGraph()

        nodes = self.collect_nodes(contributions)
        self.merged_nodes = merge_nodes(nodes)
        logger.info("Merged %d node records into %d vertices", len(nodes), len(self.merged_nodes))

        self.insert_vertices(graph, self.merged_nodes)
        self.remove_ignored(graph, ignore_arns or [])

        local_edges = [edge for c in contributions for edge in c.edges]
        for edge in local_edges:
            self.insert_edge(graph, edge)
        logger.info("Imported %d local escalation edges", len(local_edges))

        self.add_trust_edges(graph, self.merged_nodes)

        logger.info(
            "Graph assembled: %d vertices, %d edges (%d edges skipped for missing vertices)",
            graph.number_of_vertices(), graph.number_of_edges(), self.skipped_edges
        )
        return graph

    def collect_nodes(self, contributions: List[AccountContribution]) -> List[Node]:
        """Flatten every node from every source into one list."""
        nodes: List[Node] = []
        for contribution in contributions:
            nodes.extend(contribution.nodes)
            nodes.extend(contribution.roles)
            nodes.extend(contribution.users)

        # Principals named in trust policies become vertices too
        trusted = []
        for node in nodes:
            if node.type is NodeType.ROLE and node.trust_policy:
                trusted.extend(self.deriver.find_vertices(node))
        nodes.extend(trusted)
        return nodes

    def insert_vertices(self, graph: PrivescGraph, nodes: List[Node]) -> None:
        """Insert merged nodes, registering new customer accounts first."""
        for node in nodes:
            if node.account_id and not node.vendor_name:
                self.ledger.register_discovered(node.account_id, self.admin_only)
            graph.add_vertex(self.ledger.mask_unknown(node))

    def remove_ignored(self, graph: PrivescGraph, ignore_arns: Iterable[str]) -> int:
        removed = 0
        for arn in ignore_arns:
            if graph.remove_vertex(arn):
                removed += 1
                logger.info("Ignoring %s", arn)
            else:
                logger.debug("Ignore list entry %s is not in the graph", arn)
        return removed

    def insert_edge(self, graph: PrivescGraph, edge: EscalationEdge) -> bool:
        """
        Insert an edge or merge its reason into the existing one.

        Returns:
            False when an end point is not in the graph (e.g. ignored)
        """
        reasons = {edge.short_reason: edge.reason}
        try:
            graph.add_edge(edge.source, edge.destination, reasons)
        except EdgeExistsError:
            graph.update_edge(edge.source, edge.destination, reasons)
        except VertexNotFoundError as e:
            self.skipped_edges += 1
            logger.debug("Skipping edge %s -> %s: %s", edge.source, edge.destination, e)
            return False
        return True

    def add_trust_edges(self, graph: PrivescGraph, nodes: List[Node]) -> int:
        """Derive and insert edges for every role still in the graph."""
        added = 0
        for node in nodes:
            if node.type is not NodeType.ROLE or not graph.has_vertex(node.arn):
                continue
            for reference in self.deriver.references(node):
                if self.insert_edge(graph, reference.to_edge(node.arn)):
                    added += 1
                if reference.account_root and not reference.node.vendor_name:
                    added += self._add_admin_trust_edges(graph, node, reference.node.account_id)
        logger.info("Derived %d trust policy edges", added)
        return added

    def _add_admin_trust_edges(self, graph: PrivescGraph, role: Node, account_id: str) -> int:
        """Admins of a trusted account can always grant themselves sts:AssumeRole."""
        added = 0
        for admin in graph.vertices_in_account(account_id):
            if admin.arn == role.arn or admin.is_admin is not TriState.YES:
                continue
            edge = EscalationEdge(
                source=admin.arn,
                destination=role.arn,
                short_reason=ADMIN_TRUST_REASON,
                reason=f"{admin.name} is an admin in trusted account {account_id} and can assume {role.name}",
            )
            if self.insert_edge(graph, edge):
                added += 1
        return added
