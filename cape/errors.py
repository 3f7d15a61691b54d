# ᚺᚨᚷᚨᛚᚨᛉ • Hagalaz - The Rune of Disruption
"""
Exception hierarchy for CAPE.

Nothing inside graph assembly is fatal: collectors record these errors on
the account they belong to, and the CLI turns the rest into exit codes.
"""

from typing import Optional


class CapeError(Exception):
    """Base class for all CAPE errors."""


class OperationError(CapeError):
    """
    A failed remote call, tagged with the service and operation that failed.

    Attributes:
        service: AWS service name (e.g. 'iam', 'sts')
        operation: API operation name (e.g. 'ListRoles')
        cause: The underlying exception
    """

    def __init__(self, service: str, operation: str, cause: Optional[BaseException] = None):
        self.service = service
        self.operation = operation
        self.cause = cause
        message = f"{service}:{operation} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class LocalDataUnavailable(CapeError):
    """PMapper data for an account is missing or unreadable."""

    def __init__(self, account_id: str, reason: str):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"No local escalation data for account {account_id}: {reason}")


class IdentityListingError(OperationError):
    """IAM users/roles could not be listed for an account."""


class MalformedStatementError(CapeError):
    """A trust policy statement could not be interpreted."""


class IgnoreListError(CapeError):
    """The ARN ignore list file could not be read."""


class ResultFileError(CapeError):
    """A result file is missing or does not match the expected format."""


class CollectionAborted(CapeError):
    """Collection stopped because required local data was missing."""


class GraphError(CapeError):
    """Base class for structural graph errors."""


class VertexExistsError(GraphError):
    """Raised when a vertex is inserted twice."""

    def __init__(self, arn: str):
        self.arn = arn
        super().__init__(f"Vertex already exists: {arn}")


class VertexNotFoundError(GraphError):
    """Raised when an operation references a vertex that is not in the graph."""

    def __init__(self, arn: str):
        self.arn = arn
        super().__init__(f"Vertex not found: {arn}")


class EdgeExistsError(GraphError):
    """Raised when an edge for an ordered pair is inserted twice."""

    def __init__(self, source: str, destination: str):
        self.source = source
        self.destination = destination
        super().__init__(f"Edge already exists: {source} -> {destination}")
