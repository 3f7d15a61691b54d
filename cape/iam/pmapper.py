"""
PMapper Loader - Imports precomputed escalation data for one account.

PMapper stores each account's graph under its storage directory:

    <storage>/<account_id>/graph/nodes.json
    <storage>/<account_id>/graph/edges.json

nodes.json is a list of principals (arn, is_admin, trust_policy, ...) and
edges.json a list of {source, destination, reason, short_reason}. The
storage root comes from PMAPPER_STORAGE or the platform data directory.
"""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import networkx as nx

from cape.errors import LocalDataUnavailable
from cape.graph.models import EscalationEdge, Node, NodeType, TriState
from cape.iam.arn_utils import extract_account_id, principal_name, principal_type

logger = logging.getLogger(__name__)

PMAPPER_STORAGE_ENV = 'PMAPPER_STORAGE'


def default_storage_path() -> Path:
    """Where PMapper keeps its data on this platform."""
    env_path = os.environ.get(PMAPPER_STORAGE_ENV)
    if env_path:
        return Path(env_path)

    if sys.platform == 'win32':
        return Path(os.environ.get('APPDATA', Path.home())) / 'principalmapper'
    if sys.platform == 'darwin':
        return Path.home() / 'Library' / 'Application Support' / 'com.nccgroup.principalmapper'

    xdg_data_home = os.environ.get('XDG_DATA_HOME')
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / '.local' / 'share'
    return base / 'principalmapper'


@dataclass
class LocalEscalationData:
    """Nodes and edges imported for one account."""
    account_id: str
    nodes: List[Node] = field(default_factory=list)
    edges: List[EscalationEdge] = field(default_factory=list)


class PmapperLoader:
    """Reads PMapper graph files from disk."""

    def __init__(self, storage_path: Optional[str] = None):
        self.storage_path = Path(storage_path) if storage_path else default_storage_path()

    def graph_dir(self, account_id: str) -> Path:
        return self.storage_path / account_id / 'graph'

    def load(self, account_id: str) -> LocalEscalationData:
        """
        Load nodes and edges for an account.

        Args:
            account_id: 12-digit AWS account ID

        Returns:
            LocalEscalationData with can_privesc_to_admin computed

        Raises:
            LocalDataUnavailable: If the files are missing or malformed
        """
        graph_dir = self.graph_dir(account_id)
        raw_nodes = self._read_json(account_id, graph_dir / 'nodes.json')
        raw_edges = self._read_json(account_id, graph_dir / 'edges.json')

        try:
            nodes = [self._convert_node(n) for n in raw_nodes]
            edges = [self._convert_edge(e) for e in raw_edges]
        except (KeyError, TypeError, AttributeError) as e:
            raise LocalDataUnavailable(account_id, f"malformed PMapper data in {graph_dir}: {e}")

        self._mark_privesc(nodes, edges)
        logger.info("Loaded %d nodes and %d edges from PMapper for %s", len(nodes), len(edges), account_id)
        return LocalEscalationData(account_id=account_id, nodes=nodes, edges=edges)

    def _read_json(self, account_id: str, path: Path) -> List[Dict[str, Any]]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise LocalDataUnavailable(account_id, f"{path} not found")
        except (OSError, ValueError) as e:
            raise LocalDataUnavailable(account_id, f"cannot read {path}: {e}")
        if not isinstance(data, list):
            raise LocalDataUnavailable(account_id, f"{path} does not contain a list")
        return data

    def _convert_node(self, raw: Dict[str, Any]) -> Node:
        arn = raw['arn']
        node_type = principal_type(arn)
        return Node(
            arn=arn,
            type=node_type,
            name=principal_name(arn),
            account_id=extract_account_id(arn) or '',
            is_admin=TriState.from_bool(bool(raw.get('is_admin', False))),
            can_privesc_to_admin=TriState.NO,
            trust_policy=raw.get('trust_policy') if node_type is NodeType.ROLE else None,
        )

    def _convert_edge(self, raw: Dict[str, Any]) -> EscalationEdge:
        return EscalationEdge(
            source=raw['source'],
            destination=raw['destination'],
            short_reason=raw.get('short_reason') or raw['reason'],
            reason=raw.get('reason', ''),
        )

    def _mark_privesc(self, nodes: List[Node], edges: List[EscalationEdge]) -> None:
        """A non-admin can escalate when some admin is reachable from it."""
        graph = nx.DiGraph()
        graph.add_nodes_from(n.arn for n in nodes)
        graph.add_edges_from(e.pair for e in edges)

        admins = {n.arn for n in nodes if n.is_admin is TriState.YES}
        can_reach_admin = set()
        for admin in admins:
            can_reach_admin.update(nx.ancestors(graph, admin))

        for node in nodes:
            if node.is_admin is TriState.NO and node.arn in can_reach_admin:
                node.can_privesc_to_admin = TriState.YES
