"""Query execution, result shaping and transactions."""

from .results import (
    execute,
    execute_maybe_one,
    execute_one,
    many,
    maybe_one,
    one,
)
from .transaction import (
    AccessMode,
    IsolationLevel,
    TransactionOptions,
    is_retryable_error,
    retry_on,
    with_savepoint,
    with_transaction,
    with_transaction_level,
    with_transaction_mode,
)

__all__ = [
    # Results
    "many",
    "one",
    "maybe_one",
    "execute",
    "execute_one",
    "execute_maybe_one",

    # Transactions
    "AccessMode",
    "IsolationLevel",
    "TransactionOptions",
    "is_retryable_error",
    "retry_on",
    "with_savepoint",
    "with_transaction",
    "with_transaction_level",
    "with_transaction_mode",
]
