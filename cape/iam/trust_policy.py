# ᛒᛁᚠᚱᛟᛊᛏ • Bifröst - The Rainbow Bridge (Trust Policy Deriver)
"""
Trust policy parsing for cross-account role assumption edges.

A role's trust policy names the principals allowed to assume it. Each
principal reference becomes a Node (so it can be merged and inserted as a
vertex) and an EscalationEdge into the role.

Rules:
    - Only Allow statements granting an assume-type action are considered
    - Principal "*" and NotPrincipal produce the any-principal node
    - Vendor (AWS-owned) accounts keep their vendor label
    - Conditions are described in the reason text, never used to drop edges
    - A malformed statement is skipped; the rest of the policy still counts
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

from cape.errors import MalformedStatementError
from cape.graph.models import (
    ANY_PRINCIPAL_ARN,
    ANY_PRINCIPAL_NAME,
    EscalationEdge,
    Node,
    NodeType,
)
from cape.iam.arn_utils import (
    extract_account_id,
    is_account_root,
    normalize_principal,
    principal_name,
    principal_type,
)
from cape.iam.vendors import VendorMap

logger = logging.getLogger(__name__)

ASSUME_ACTIONS = (
    'sts:assumerole',
    'sts:assumerolewithsaml',
    'sts:assumerolewithwebidentity',
)
WILDCARD_ACTIONS = ('*', 'sts:*', 'sts:assume*', 'sts:assumerole*')
DEFAULT_SHORT_REASON = 'sts:AssumeRole'

_CANONICAL_ACTIONS = {
    'sts:assumerole': 'sts:AssumeRole',
    'sts:assumerolewithsaml': 'sts:AssumeRoleWithSAML',
    'sts:assumerolewithwebidentity': 'sts:AssumeRoleWithWebIdentity',
}


@dataclass
class TrustReference:
    """One principal named in a role's trust policy."""
    node: Node
    short_reason: str
    reason: str
    account_root: bool = False

    def to_edge(self, role_arn: str) -> EscalationEdge:
        return EscalationEdge(
            source=self.node.arn,
            destination=role_arn,
            short_reason=self.short_reason,
            reason=self.reason,
        )


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def decode_policy(policy: Any) -> Dict[str, Any]:
    """
    Return a trust policy as a dict.

    IAM returns policy documents URL-encoded when fetched through some APIs;
    boto3 usually decodes them already.
    """
    if not policy:
        return {}
    if isinstance(policy, dict):
        return policy
    if isinstance(policy, str):
        text = policy.strip()
        if text.startswith('%7B') or text.startswith('%7b'):
            text = unquote(text)
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedStatementError(f"Trust policy is not valid JSON: {e}")
        if isinstance(decoded, dict):
            return decoded
    raise MalformedStatementError(f"Unsupported trust policy type: {type(policy).__name__}")


def describe_conditions(conditions: Any) -> str:
    """
    Render a Condition block as short text.

    {"StringEquals": {"sts:ExternalId": "abc"}} -> "StringEquals sts:ExternalId=abc"
    """
    if not conditions:
        return ''
    if not isinstance(conditions, dict):
        raise MalformedStatementError("Condition must be an object")

    parts = []
    for operator in sorted(conditions):
        checks = conditions[operator]
        if not isinstance(checks, dict):
            raise MalformedStatementError(f"Condition operator {operator} must map keys to values")
        for key in sorted(checks):
            values = ','.join(str(v) for v in _as_list(checks[key]))
            parts.append(f"{operator} {key}={values}")
    return '; '.join(parts)


class TrustPolicyDeriver:
    """Turns a role's trust policy into principal nodes and edges."""

    def __init__(self, vendors: VendorMap):
        self.vendors = vendors

    def references(self, role: Node) -> List[TrustReference]:
        """
        Parse every usable statement of a role's trust policy.

        Args:
            role: Role node carrying its trust_policy document

        Returns:
            One TrustReference per principal reference found
        """
        try:
            policy = decode_policy(role.trust_policy)
        except MalformedStatementError as e:
            logger.warning("Skipping trust policy of %s: %s", role.arn, e)
            return []

        references: List[TrustReference] = []
        for index, statement in enumerate(_as_list(policy.get('Statement'))):
            try:
                references.extend(self._parse_statement(role, statement))
            except MalformedStatementError as e:
                logger.warning("Skipping statement %d in trust policy of %s: %s", index, role.arn, e)
        return references

    def find_vertices(self, role: Node) -> List[Node]:
        """Nodes for every principal the role trusts."""
        return [ref.node for ref in self.references(role)]

    def derive_edges(self, role: Node) -> List[EscalationEdge]:
        """Edges from every trusted principal into the role."""
        return [ref.to_edge(role.arn) for ref in self.references(role)]

    def _parse_statement(self, role: Node, statement: Any) -> List[TrustReference]:
        if not isinstance(statement, dict):
            raise MalformedStatementError("Statement must be an object")

        effect = statement.get('Effect')
        if effect not in ('Allow', 'Deny'):
            raise MalformedStatementError(f"Invalid Effect: {effect!r}")
        if effect != 'Allow':
            return []

        if 'Action' not in statement:
            raise MalformedStatementError("Statement has no Action")
        actions = _as_list(statement['Action'])
        if not all(isinstance(a, str) for a in actions):
            raise MalformedStatementError("Action values must be strings")

        short_reason = self._assume_action(actions)
        if short_reason is None:
            return []

        condition_text = describe_conditions(statement.get('Condition'))

        if 'NotPrincipal' in statement:
            reason = (f"Trust policy of {role.name or role.arn} allows every principal "
                      f"except those named in NotPrincipal to call {short_reason}")
            return [self._any_principal(short_reason, reason, condition_text)]

        if 'Principal' not in statement:
            raise MalformedStatementError("Statement has no Principal")
        principal = statement['Principal']

        if principal == '*':
            return [self._any_principal(short_reason, self._wildcard_reason(role, short_reason), condition_text)]
        if not isinstance(principal, dict):
            raise MalformedStatementError("Principal must be '*' or an object")

        references = []
        for value in _as_list(principal.get('AWS')):
            if not isinstance(value, str):
                raise MalformedStatementError("AWS principal values must be strings")
            if value.strip() == '*':
                references.append(self._any_principal(
                    short_reason, self._wildcard_reason(role, short_reason), condition_text))
            else:
                references.append(self._aws_principal(role, value, short_reason, condition_text))

        for service in _as_list(principal.get('Service')):
            if not isinstance(service, str):
                raise MalformedStatementError("Service principal values must be strings")
            node = Node(arn=service, type=NodeType.SERVICE, name=service, vendor_name='AWS')
            reason = f"AWS service {service} can assume {role.name or role.arn}"
            references.append(TrustReference(node, short_reason, _with_conditions(reason, condition_text)))

        for federated in _as_list(principal.get('Federated')):
            if not isinstance(federated, str):
                raise MalformedStatementError("Federated principal values must be strings")
            node = Node(
                arn=federated,
                type=NodeType.FEDERATED,
                name=federated.split('/')[-1] if '/' in federated else federated,
                account_id=extract_account_id(federated) or '',
            )
            reason = f"Federated identities from {node.name} can assume {role.name or role.arn}"
            references.append(TrustReference(node, short_reason, _with_conditions(reason, condition_text)))

        return references

    def _assume_action(self, actions: List[str]) -> Optional[str]:
        """Canonical name of the first assume-type action, if any."""
        for action in actions:
            lowered = action.lower()
            if lowered in ASSUME_ACTIONS:
                return _CANONICAL_ACTIONS[lowered]
            if lowered in WILDCARD_ACTIONS:
                return DEFAULT_SHORT_REASON
        return None

    def _aws_principal(
        self,
        role: Node,
        value: str,
        short_reason: str,
        condition_text: str
    ) -> TrustReference:
        arn = normalize_principal(value)
        account_id = extract_account_id(arn) or ''
        vendor = self.vendors.lookup(arn) or ''
        target = role.name or role.arn

        if is_account_root(arn):
            node = Node(
                arn=arn,
                type=NodeType.EXTERNAL_ACCOUNT,
                name=vendor or account_id,
                account_id=account_id,
                vendor_name=vendor,
            )
            if vendor:
                reason = f"{vendor} account {account_id} can assume {target}"
            else:
                reason = f"Principals in account {account_id} can assume {target}"
            return TrustReference(node, short_reason, _with_conditions(reason, condition_text), account_root=True)

        node = Node(
            arn=arn,
            type=principal_type(arn),
            name=principal_name(arn),
            account_id=account_id,
            vendor_name=vendor,
        )
        reason = f"{node.name} can assume {target}"
        return TrustReference(node, short_reason, _with_conditions(reason, condition_text))

    def _any_principal(self, short_reason: str, reason: str, condition_text: str) -> TrustReference:
        node = Node(arn=ANY_PRINCIPAL_ARN, type=NodeType.UNKNOWN, name=ANY_PRINCIPAL_NAME)
        return TrustReference(node, short_reason, _with_conditions(reason, condition_text))

    def _wildcard_reason(self, role: Node, short_reason: str) -> str:
        return (f"Trust policy of {role.name or role.arn} allows any principal ('*') "
                f"to call {short_reason}")


def _with_conditions(reason: str, condition_text: str) -> str:
    if condition_text:
        return f"{reason} (Condition: {condition_text})"
    return reason
