import pytest

from coinshop.app import ShopApp
from coinshop.config import AdminConfig, ShopConfig
from coinshop.domain.exceptions import PermissionDenied
from coinshop.storage.memory import InMemoryAuditStore, InMemoryStorage
from coinshop.testing import AccountFactory


@pytest.fixture()
def admin_app():
    config = ShopConfig(admin=AdminConfig(api_secret="test-secret"))
    return ShopApp(config, storage=InMemoryStorage(), audit_store=InMemoryAuditStore())


@pytest.mark.asyncio()
async def test_admin_adjusts_coins_and_audits(admin_app):
    admin = await AccountFactory().create(admin_app.storage, is_admin=True)
    target = await AccountFactory().create(admin_app.storage, coins=10)

    updated = await admin_app.admin.adjust_coins(admin.id, target.id, 500)

    assert updated.coins == 510
    entries = admin_app.audit_store.dump()
    assert entries[-1][1] == "adjust_coins"
    assert entries[-1][2]["account_id"] == target.id
    assert entries[-1][2]["balance"] == 510


@pytest.mark.asyncio()
async def test_admin_deduction_floors_at_zero(admin_app):
    admin = await AccountFactory().create(admin_app.storage, is_admin=True)
    target = await AccountFactory().create(admin_app.storage, coins=40)

    updated = await admin_app.admin.adjust_coins(admin.id, target.id, -100)

    assert updated.coins == 0


@pytest.mark.asyncio()
async def test_non_admin_cannot_adjust(admin_app):
    shopper = await AccountFactory().create(admin_app.storage)
    target = await AccountFactory().create(admin_app.storage, coins=10)

    with pytest.raises(PermissionDenied):
        await admin_app.admin.adjust_coins(shopper.id, target.id, 500)
    with pytest.raises(PermissionDenied):
        await admin_app.admin.list_accounts(shopper.id)
    with pytest.raises(PermissionDenied):
        await admin_app.admin.list_accounts("missing")
    assert (await admin_app.accounts.get_account(target.id)).coins == 10
    assert admin_app.audit_store.dump() == []


@pytest.mark.asyncio()
async def test_set_admin_promotes(admin_app):
    account = await AccountFactory().create(admin_app.storage)

    await admin_app.admin.set_admin(account.id)

    accounts = await admin_app.admin.list_accounts(account.id)
    assert [item.id for item in accounts] == [account.id]


@pytest.mark.asyncio()
async def test_bot_adjustment_publishes_event(admin_app):
    received = []

    async def listener(payload):
        received.append(payload)

    admin_app.event_bus.subscribe("admin.bot_adjust_coins", listener)
    account = await admin_app.accounts.link_external_identity("777", "Driver")

    await admin_app.admin.adjust_coins_by_discord_id("777", 30)

    assert received[0]["account_id"] == account.id
    assert received[0]["balance"] == 30


@pytest.mark.asyncio()
async def test_audit_failure_does_not_undo_adjustment(admin_app, monkeypatch):
    admin = await AccountFactory().create(admin_app.storage, is_admin=True)
    target = await AccountFactory().create(admin_app.storage, coins=0)

    async def broken_entry(action, payload):
        raise RuntimeError("audit store offline")

    monkeypatch.setattr(admin_app.audit_store, "add_entry", broken_entry)

    updated = await admin_app.admin.adjust_coins(admin.id, target.id, 25)

    assert updated.coins == 25
    assert (await admin_app.accounts.get_account(target.id)).coins == 25
