import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from coinshop.config import LoginCodeConfig
from coinshop.domain.events import EventBus
from coinshop.domain.exceptions import (
    InvalidRequest,
    LoginCodeExpired,
    LoginCodeInvalid,
    LoginCodeUsed,
)
from coinshop.domain.login_codes import LoginCodeService
from coinshop.testing import AccountFactory, app_fixture


@pytest.fixture()
def app():
    return app_fixture()


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.mark.asyncio()
async def test_issue_mints_eight_hex_characters(app):
    code = await app.login_codes.issue("player")

    assert len(code.code) == 8
    assert code.code == code.code.upper()
    int(code.code, 16)
    assert code.expires_at - code.created_at == timedelta(seconds=600)
    assert code.used is False


@pytest.mark.asyncio()
async def test_redeem_creates_account_once(app):
    code = await app.login_codes.issue("newcomer")

    account = await app.login_codes.redeem(code.code)

    assert account.username == "newcomer"
    assert account.coins == 0
    with pytest.raises(LoginCodeUsed):
        await app.login_codes.redeem(code.code)


@pytest.mark.asyncio()
async def test_redeem_logs_into_existing_account(app):
    existing = await AccountFactory().create(app.storage, username="veteran", coins=90)
    code = await app.login_codes.issue("veteran")

    account = await app.login_codes.redeem(code.code)

    assert account.id == existing.id
    assert account.coins == 90


@pytest.mark.asyncio()
async def test_unknown_and_blank_codes(app):
    with pytest.raises(LoginCodeInvalid):
        await app.login_codes.redeem("DEADBEEF")
    with pytest.raises(InvalidRequest):
        await app.login_codes.redeem("  ")


@pytest.mark.asyncio()
async def test_expired_code_is_rejected(app):
    clock = Clock()
    service = LoginCodeService(app.storage, LoginCodeConfig(ttl_seconds=600), EventBus(), clock=clock)
    code = await service.issue("sleepy")

    clock.now += timedelta(seconds=601)

    with pytest.raises(LoginCodeExpired):
        await service.redeem(code.code)


@pytest.mark.asyncio()
async def test_concurrent_redemptions_admit_one(app):
    code = await app.login_codes.issue("racer")

    results = await asyncio.gather(
        *(app.login_codes.redeem(code.code) for _ in range(5)), return_exceptions=True
    )

    accounts = [res for res in results if not isinstance(res, Exception)]
    assert len(accounts) == 1
    assert all(isinstance(res, LoginCodeUsed) for res in results if isinstance(res, Exception))
    assert len(await app.accounts.list_accounts()) == 1
