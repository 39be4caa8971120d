"""
Auth business logic: registration, login, password reset.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from accounts.models import Account, AccountFilter, AccountUpdate
from accounts.repository import normalize_email
from core.errors import InvalidCredentials, InvalidToken, NotFound
from core.ids import new_id
from core.mailer import Mailer
from core.tasks import TaskRegistry
from store.unit_of_work import Store

from . import policy, security
from .models import EmailToken, EmailTokenFilter, EmailTokenUpdate, TokenPurpose
from .tokens import TokenManager

logger = logging.getLogger(__name__)

PASSWORD_RESET_TEMPLATE = "password-reset-request"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthResult:
    account: Account
    access_token: str


class AuthService:
    def __init__(
        self,
        store: Store,
        tokens: TokenManager,
        *,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._now = now

    async def register(self, email: str, password: str) -> AuthResult:
        password_hash = security.Password.parse(password).hash()
        now = self._now()
        account = Account(
            id=new_id(),
            email=normalize_email(email),
            password_hash=password_hash,
            role=policy.DEFAULT_ROLE,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        async with self._store.unit_of_work() as tx:
            await tx.create_account(account)

        logger.info("account_registered account_id=%s", account.id)
        return AuthResult(account=account, access_token=self._tokens.issue(account))

    async def login(self, email: str, password: str) -> AuthResult:
        accounts = await self._store.find_accounts(
            AccountFilter(emails=[normalize_email(email)], is_active=True)
        )
        if not accounts:
            raise InvalidCredentials()

        account = accounts[0]
        if not security.match_password(account.password_hash, password):
            raise InvalidCredentials()

        return AuthResult(account=account, access_token=self._tokens.issue(account))


class PasswordResetService:
    """
    Password reset by mailed one-time token.

    `request_reset` returns immediately; lookup, token storage and delivery run
    as a detached task so the response never reveals whether the address exists.
    """

    def __init__(
        self,
        store: Store,
        mailer: Mailer,
        tasks: TaskRegistry,
        *,
        token_ttl: timedelta,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._mailer = mailer
        self._tasks = tasks
        self._token_ttl = token_ttl
        self._now = now

    def request_reset(self, email: str) -> None:
        self._tasks.spawn(self.send_reset, normalize_email(email), name="password_reset")

    async def send_reset(self, email: str) -> None:
        accounts = await self._store.find_accounts(AccountFilter(emails=[email], is_active=True))
        if len(accounts) != 1:
            raise NotFound(f"no active account for {email}")
        account = accounts[0]

        raw_token = security.generate_email_token()
        email_token = EmailToken(
            id=new_id(),
            token_hash=security.hash_email_token(raw_token),
            account_id=account.id,
            email=account.email,
            purpose=TokenPurpose.PASSWORD_RESET,
            created_at=self._now(),
        )

        async with self._store.unit_of_work() as tx:
            await tx.create_email_token(email_token)

        await self._mailer.send(
            PASSWORD_RESET_TEMPLATE,
            account.email,
            {"id": email_token.id, "token": raw_token},
        )
        logger.info("password_reset_sent account_id=%s token_id=%s", account.id, email_token.id)

    async def reset_password(self, token_id: str, raw_token: str, new_password: str) -> None:
        password_hash = security.Password.parse(new_password).hash()
        now = self._now()

        async with self._store.unit_of_work() as tx:
            tokens = await tx.find_email_tokens(EmailTokenFilter(ids=[token_id]))
            if not tokens:
                raise InvalidToken("unknown reset token")

            token = tokens[0]
            if token.purpose is not TokenPurpose.PASSWORD_RESET or token.consumed_at is not None:
                raise InvalidToken("reset token is not usable")
            if token.created_at + self._token_ttl <= now:
                raise InvalidToken("reset token is expired")
            if not security.email_token_matches(token.token_hash, raw_token):
                raise InvalidToken("reset token does not match")

            try:
                await tx.update_email_token(EmailTokenUpdate(id=token.id, consumed_at=now))
            except NotFound as exc:
                raise InvalidToken("reset token is not usable") from exc
            await tx.update_account(
                AccountUpdate(id=token.account_id, updated_at=now, password_hash=password_hash)
            )

        logger.info("password_reset_completed account_id=%s", token.account_id)
