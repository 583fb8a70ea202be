"""Transient-failure classification for graph import statements.

The signatures that mark a failure as a dropped connection are data, not
logic: each backend supplies a ``TransientFailurePolicy`` and the classifier
only evaluates it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Optional, Tuple, Type

from neo4j.exceptions import ServiceUnavailable, SessionExpired

from common.config.env import get_env_bool
from graph_import.errors import RetryableImportError, TargetStatementError

logger = logging.getLogger(__name__)

CATEGORY_CONNECTIVITY = "connectivity"
CATEGORY_STATEMENT = "statement"
CATEGORY_UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class TransientFailurePolicy:
    """Signatures identifying a retryable connectivity failure."""

    name: str
    message_signatures: Tuple[str, ...] = ()
    error_codes: FrozenSet[Any] = frozenset()
    exception_types: Tuple[Type[BaseException], ...] = field(default_factory=tuple)


# Broker-style JDBC targets. -21003 and -2003 are matched individually; see
# DESIGN.md for why the legacy combined condition was not kept.
DEFAULT_TRANSIENT_POLICY = TransientFailurePolicy(
    name="default",
    message_signatures=(
        "Connection or Statement might be closed",
        "Cannot communicate with the broker",
    ),
    error_codes=frozenset({-2019, -21003, -2003}),
)

BOLT_TRANSIENT_POLICY = TransientFailurePolicy(
    name="bolt",
    message_signatures=(
        "defunct connection",
        "Unable to retrieve routing information",
        "Connection or Statement might be closed",
    ),
    error_codes=frozenset(
        {
            "Neo.TransientError.General.DatabaseUnavailable",
            "Neo.ClientError.Cluster.NotALeader",
        }
    ),
    exception_types=(ServiceUnavailable, SessionExpired),
)

_PROVIDER_POLICIES = {
    "bolt": BOLT_TRANSIENT_POLICY,
    "neo4j": BOLT_TRANSIENT_POLICY,
    "memgraph": BOLT_TRANSIENT_POLICY,
}


def transient_policy_for_provider(provider: Optional[str]) -> TransientFailurePolicy:
    """Return the transient-failure policy registered for a target provider."""
    normalized = (provider or "").strip().lower()
    return _PROVIDER_POLICIES.get(normalized, DEFAULT_TRANSIENT_POLICY)


@dataclass(frozen=True)
class ImportErrorClassification:
    """Structured classification of a failure raised inside a transaction unit."""

    category: str
    policy: str
    is_retryable: bool
    error_code: Optional[Any] = None


def error_code_of(exc: BaseException) -> Optional[Any]:
    """Return the vendor error code carried by an exception, if any."""
    for attr in ("error_code", "code", "errno"):
        value = getattr(exc, attr, None)
        if value is not None:
            return value
    return None


def is_retryable(exc: BaseException, policy: TransientFailurePolicy = DEFAULT_TRANSIENT_POLICY) -> bool:
    """Return True when the error signals a dropped or unreachable connection."""
    if isinstance(exc, RetryableImportError):
        return True

    message = str(exc).lower()
    if _matches_any(message, tuple(sig.lower() for sig in policy.message_signatures)):
        return True

    code = error_code_of(exc)
    if code is not None and code in policy.error_codes:
        return True

    if policy.exception_types:
        if isinstance(exc, policy.exception_types):
            return True
        cause = exc.__cause__
        if cause is not None and isinstance(cause, policy.exception_types):
            return True

    return False


def classify_import_error(
    exc: BaseException, policy: TransientFailurePolicy = DEFAULT_TRANSIENT_POLICY
) -> ImportErrorClassification:
    """Classify an import failure into connectivity, statement or unexpected."""
    code = error_code_of(exc)
    if is_retryable(exc, policy):
        category = CATEGORY_CONNECTIVITY
    elif isinstance(exc, TargetStatementError):
        category = CATEGORY_STATEMENT
    else:
        category = CATEGORY_UNEXPECTED
    return ImportErrorClassification(
        category=category,
        policy=policy.name,
        is_retryable=category == CATEGORY_CONNECTIVITY,
        error_code=code,
    )


def log_classified_error(operation: str, exc: BaseException, info: ImportErrorClassification) -> None:
    """Emit a structured log line for a classified import failure."""
    if not get_env_bool("GRAPH_IMPORT_CLASSIFIED_ERROR_LOGGING", True):
        return
    logger.warning(
        "graph_import_error_classified",
        extra={
            "event": "graph_import_error_classified",
            "operation": operation,
            "error_category": info.category,
            "error_type": exc.__class__.__name__,
            "error_code": info.error_code,
            "is_retryable": info.is_retryable,
            "policy": info.policy,
        },
    )


def _matches_any(text: str, fragments: tuple[str, ...]) -> bool:
    return any(fragment in text for fragment in fragments)
