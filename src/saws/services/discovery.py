"""Account and role discovery through the SSO portal API."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable

from pydantic import ValidationError

from saws.client import CatalogTransport
from saws.models.profiles import DiscoveredAccount, DiscoveredRole, RoleBinding
from saws.utils.errors import CatalogError, DiscoveryError, OperationCancelledError
from saws.utils.pagination import paginate

logger = logging.getLogger(__name__)

# Keeps ListAccountRoles calls under the portal API's rate limit
MAX_CONCURRENT_ROLE_LOOKUPS = 5
_CANCEL_CHECK_INTERVAL = 0.1


class AccountRoleDiscoverer:
    """Enumerates every (account, role) pair an SSO access token may assume."""

    def __init__(
        self,
        transport: CatalogTransport,
        *,
        max_concurrency: int = MAX_CONCURRENT_ROLE_LOOKUPS,
        cancel: threading.Event | None = None,
    ) -> None:
        self._transport = transport
        self._max_concurrency = max_concurrency
        self._cancel = cancel or threading.Event()

    def discover(self, access_token: str) -> list[RoleBinding]:
        """List all accounts, then all roles of every account."""
        accounts = self.list_accounts(access_token)
        return self.discover_all(access_token, accounts)

    def list_accounts(self, access_token: str) -> list[DiscoveredAccount]:
        """List every account, following nextToken until the last page.

        Raises:
            DiscoveryError: If any page request fails. No partial list is returned.
        """
        try:
            items = paginate(
                lambda next_token: self._transport.list_accounts(access_token, next_token),
                "accountList",
                should_stop=self._cancel.is_set,
            )
        except CatalogError as e:
            raise DiscoveryError(f"failed to list accounts: {e}") from e

        return [
            DiscoveredAccount(
                account_id=item.get("accountId", ""),
                account_name=item.get("accountName") or "",
                email=item.get("emailAddress") or "",
            )
            for item in items
        ]

    def list_account_roles(self, access_token: str, account_id: str) -> list[DiscoveredRole]:
        """List every role of one account, following nextToken until the last page."""
        return self._list_account_roles(access_token, account_id, self._cancel.is_set)

    def _list_account_roles(
        self,
        access_token: str,
        account_id: str,
        should_stop: Callable[[], bool],
    ) -> list[DiscoveredRole]:
        try:
            items = paginate(
                lambda next_token: self._transport.list_account_roles(access_token, account_id, next_token),
                "roleList",
                should_stop=should_stop,
            )
        except CatalogError as e:
            raise DiscoveryError(f"failed to list account roles: {e}") from e

        return [
            DiscoveredRole(
                account_id=item.get("accountId") or account_id,
                role_name=item.get("roleName", ""),
            )
            for item in items
        ]

    def discover_all(
        self,
        access_token: str,
        accounts: list[DiscoveredAccount],
    ) -> list[RoleBinding]:
        """Fetch the roles of every account with at most ``max_concurrency`` in flight.

        Output follows account order, then role order, whatever order the lookups finish
        in. The first failed lookup abandons the rest and raises DiscoveryError.

        Raises:
            DiscoveryError: If any account's role lookup fails.
            OperationCancelledError: If the cancel event is set.
        """
        if not accounts:
            return []

        abort = threading.Event()

        def should_stop() -> bool:
            return abort.is_set() or self._cancel.is_set()

        slots: list[list[DiscoveredRole] | None] = [None] * len(accounts)
        executor = ThreadPoolExecutor(
            max_workers=self._max_concurrency,
            thread_name_prefix="saws-discovery",
        )
        futures: dict[Future[list[DiscoveredRole]], int] = {
            executor.submit(self._list_account_roles, access_token, account.account_id, should_stop): i
            for i, account in enumerate(accounts)
        }

        try:
            pending = set(futures)
            while pending:
                done, pending = wait(pending, timeout=_CANCEL_CHECK_INTERVAL, return_when=FIRST_COMPLETED)
                if self._cancel.is_set():
                    raise OperationCancelledError("discovery cancelled")
                for future in done:
                    index = futures[future]
                    error = future.exception()
                    if error is not None:
                        account_id = accounts[index].account_id
                        raise DiscoveryError(
                            f"failed to discover roles for account {account_id}: {error}"
                        ) from error
                    slots[index] = future.result()
        except BaseException:
            abort.set()
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        bindings: list[RoleBinding] = []
        for account, roles in zip(accounts, slots):
            for role in roles or []:
                try:
                    bindings.append(RoleBinding(account=account, role=role))
                except ValidationError as e:
                    raise DiscoveryError(f"inconsistent role for account {account.account_id}: {e}") from e

        logger.info(f"Discovered {len(bindings)} role(s) across {len(accounts)} account(s)")
        return bindings
