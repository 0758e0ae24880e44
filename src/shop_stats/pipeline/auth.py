"""Login step: user lookup followed by the credential check."""

from __future__ import annotations

import logging

from shop_stats.concurrency.async_result import AsyncResult
from shop_stats.core.errors import AuthError, BadPassword, UserNotFound
from shop_stats.core.interfaces import IDataAccess
from shop_stats.core.models import Credentials, User
from shop_stats.core.result import Err, Ok

logger = logging.getLogger(__name__)


def check_user_logged_in(user: User | None, credentials: Credentials) -> Ok[User] | Err[AuthError]:
    """Check *credentials* against the looked-up *user*.

    Usernames match exactly (the lookup is case-sensitive); a missing user
    is ``UserNotFound``, a password mismatch ``BadPassword``.
    """
    if user is None:
        return Err(UserNotFound(credentials.username))
    if user.password != credentials.password:
        return Err(BadPassword(credentials.username))
    return Ok(user)


class AuthFlow:
    """Resolves credentials to the canonical (store-cased) username."""

    def __init__(self, data_access: IDataAccess) -> None:
        self._data_access = data_access

    def log_in(self, credentials: Credentials) -> AsyncResult[str]:
        """Complete with ``user.name``, or fail with an :class:`AuthError`.

        Lookup failures are propagated unchanged.
        """
        logged_in: AsyncResult[str] = AsyncResult(f"log in {credentials.username!r}")

        def _check(lookup: AsyncResult[User | None]) -> None:
            failure = lookup.failure()
            if failure is not None:
                logged_in.complete_with_failure(failure)
                return
            outcome = check_user_logged_in(lookup.get(), credentials)
            if isinstance(outcome, Err):
                logger.info("Login rejected: %s", outcome.error)
                logged_in.complete_with_failure(outcome.error)
            else:
                logged_in.complete(outcome.value.name)

        self._data_access.find_user_by_name(credentials.username).attach_continuation(_check)
        return logged_in
