"""Pagination helpers for the SSO portal API."""

from __future__ import annotations

from typing import Any, Callable

from saws.utils.errors import OperationCancelledError


def paginate(
    fetch_fn: Callable[[str | None], dict[str, Any]],
    results_key: str,
    should_stop: Callable[[], bool] | None = None,
) -> list[dict[str, Any]]:
    """Paginate through all results using nextToken.

    Args:
        fetch_fn: A callable that takes the continuation token (None for the first
                  page) and returns a response dict.
        results_key: The key in the response containing the results list
                     (e.g. "accountList", "roleList").
        should_stop: Checked before every page request; when it returns True the
                     walk is abandoned with OperationCancelledError.

    Returns:
        All results concatenated across pages, in page order.
    """
    all_results: list[dict[str, Any]] = []
    next_token: str | None = None

    while True:
        if should_stop is not None and should_stop():
            raise OperationCancelledError("pagination cancelled")

        response = fetch_fn(next_token)
        all_results.extend(response.get(results_key) or [])

        next_token = response.get("nextToken")
        if not next_token:
            break

    return all_results
