# ᚱᚢᚾᛖᛊ • Runes - Data Models for the Privilege Graph
"""
Node and edge models for the cross-account privilege graph.

A Node may be discovered several times from different sources (PMapper,
IAM listings, trust policy references). merge_nodes() folds those partial
records into one Node per ARN before anything is inserted into the graph.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

ANY_PRINCIPAL_ARN = '*'
ANY_PRINCIPAL_NAME = 'Any principal'


class NodeType(Enum):
    """Kinds of principals that can appear as vertices."""
    USER = "User"
    ROLE = "Role"
    EXTERNAL_ACCOUNT = "ExternalAccount"
    SERVICE = "Service"
    FEDERATED = "Federated"
    UNKNOWN = "Unknown"


class TriState(Enum):
    """Yes/No/Unknown answer for risk questions about a principal."""
    YES = "Yes"
    NO = "No"
    UNKNOWN = "Unknown"

    @classmethod
    def from_bool(cls, value: Optional[bool]) -> 'TriState':
        if value is None:
            return cls.UNKNOWN
        return cls.YES if value else cls.NO


# Higher rank wins during merge: Yes > No > Unknown
_TRISTATE_RANK = {TriState.UNKNOWN: 0, TriState.NO: 1, TriState.YES: 2}


def merge_tristate(values: Iterable[TriState]) -> TriState:
    """Pick the most informative value, preferring the higher-risk one."""
    best = TriState.UNKNOWN
    for value in values:
        if _TRISTATE_RANK[value] > _TRISTATE_RANK[best]:
            best = value
    return best


@dataclass
class Node:
    """One identity or external entity in the graph."""
    arn: str
    type: NodeType = NodeType.UNKNOWN
    name: str = ""
    account_id: str = ""
    vendor_name: str = ""
    is_admin: TriState = TriState.UNKNOWN
    can_privesc_to_admin: TriState = TriState.UNKNOWN
    trust_policy: Optional[Dict[str, Any]] = None

    @property
    def is_any_principal(self) -> bool:
        return self.arn == ANY_PRINCIPAL_ARN

    @property
    def is_vendor(self) -> bool:
        return bool(self.vendor_name)

    def vertex_attributes(self) -> Dict[str, Any]:
        """Attributes stored on the graph vertex."""
        return {
            'type': self.type,
            'name': self.name,
            'account_id': self.account_id,
            'vendor_name': self.vendor_name,
            'is_admin': self.is_admin,
            'can_privesc_to_admin': self.can_privesc_to_admin,
            'trust_policy': self.trust_policy,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'arn': self.arn,
            'type': self.type.value,
            'name': self.name,
            'account_id': self.account_id,
            'vendor_name': self.vendor_name,
            'is_admin': self.is_admin.value,
            'can_privesc_to_admin': self.can_privesc_to_admin.value,
        }


@dataclass
class EscalationEdge:
    """
    A single source -> destination relationship with one reason.

    short_reason is a compact code (e.g. 'sts:AssumeRole') and reason is the
    human-readable explanation. Several EscalationEdges for the same pair
    collapse into one graph edge with a reasons mapping.
    """
    source: str
    destination: str
    short_reason: str
    reason: str = ""

    @property
    def pair(self) -> tuple:
        return (self.source, self.destination)


@dataclass
class AccountContribution:
    """Everything collected for one profile before assembly."""
    profile: str
    account_id: str = ""
    nodes: List[Node] = field(default_factory=list)
    edges: List[EscalationEdge] = field(default_factory=list)
    roles: List[Node] = field(default_factory=list)
    users: List[Node] = field(default_factory=list)
    local_data_loaded: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return bool(self.account_id) and not self.errors

    def add_error(self, error: Any) -> None:
        self.errors.append(str(error))


def _first_non_empty(values: Iterable[Any]) -> Any:
    for value in values:
        if value:
            return value
    return None


def merge_nodes(nodes: Iterable[Node]) -> List[Node]:
    """
    Collapse partial node records into exactly one Node per ARN.

    Conflict policy:
        - name, account_id, trust_policy, vendor_name: first non-empty value
        - type: first value other than NodeType.UNKNOWN
        - is_admin, can_privesc_to_admin: Yes beats No beats Unknown

    Args:
        nodes: Node records from any number of sources

    Returns:
        Merged nodes sorted by ARN
    """
    groups: Dict[str, List[Node]] = {}
    for node in nodes:
        groups.setdefault(node.arn, []).append(node)

    merged = []
    for arn in sorted(groups):
        group = groups[arn]
        node_type = _first_non_empty(
            n.type for n in group if n.type is not NodeType.UNKNOWN
        ) or NodeType.UNKNOWN
        merged.append(replace(
            group[0],
            type=node_type,
            name=_first_non_empty(n.name for n in group) or "",
            account_id=_first_non_empty(n.account_id for n in group) or "",
            vendor_name=_first_non_empty(n.vendor_name for n in group) or "",
            is_admin=merge_tristate(n.is_admin for n in group),
            can_privesc_to_admin=merge_tristate(n.can_privesc_to_admin for n in group),
            trust_policy=_first_non_empty(n.trust_policy for n in group),
        ))

    return merged
