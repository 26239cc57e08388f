"""
Operations layer -- transport-agnostic entry points for searchmetrics.

- All functions accept ``OperationContext`` as first argument
- All functions return ``OperationResult[T]``; expected failures become
  error codes instead of exceptions
- The API and the CLI call these functions and only render the result

Usage::

    from searchmetrics.ops import OperationContext
    from searchmetrics.ops.requests import ClearMetricsRequest
    from searchmetrics.ops.retention import clear_metrics_data_before

    ctx = OperationContext(conn=my_connection)
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-01"))
    assert result.success
"""

from searchmetrics.ops.context import OperationContext
from searchmetrics.ops.result import OperationError, OperationResult

__all__ = [
    "OperationContext",
    "OperationError",
    "OperationResult",
]
