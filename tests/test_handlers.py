import pytest

from coinshop.gateway import Session, ShopHandlers
from coinshop.testing import AccountFactory, ProductFactory, app_fixture

SECRET = "test-secret"


@pytest.fixture()
def app():
    return app_fixture()


@pytest.fixture()
def handlers(app):
    return ShopHandlers(app)


async def logged_in(app, **kwargs):
    account = await AccountFactory().create(app.storage, **kwargs)
    return account, Session(account_id=account.id)


@pytest.mark.asyncio()
async def test_anonymous_purchase_is_rejected(app, handlers):
    product = await ProductFactory().create(app.storage, price=10)

    response = await handlers.purchase(Session(), {"productId": product.id})

    assert response.status == 401
    assert response.body["code"] == "not_authenticated"


@pytest.mark.asyncio()
async def test_purchase_returns_balance_and_purchase(app, handlers):
    account, session = await logged_in(app, coins=1000)
    product = await ProductFactory().create(app.storage, price=800, stock=1)

    first = await handlers.purchase(session, {"productId": product.id})
    second = await handlers.purchase(session, {"productId": product.id})

    assert first.ok
    assert first.body["account"]["coins"] == 200
    assert first.body["purchase"]["status"] == "pending"
    assert first.body["purchase"]["userId"] == account.id
    assert second.status == 409
    assert second.body == {"code": "product_unavailable", "message": "This product is not available."}


@pytest.mark.asyncio()
async def test_insufficient_funds_response_hides_detail(app, handlers):
    _, session = await logged_in(app, coins=500)
    product = await ProductFactory().create(app.storage, price=600)

    response = await handlers.purchase(session, {"productId": product.id})

    assert response.status == 402
    assert response.body["code"] == "insufficient_funds"
    assert "600" not in response.body["message"]


@pytest.mark.asyncio()
async def test_missing_product_id_is_invalid(app, handlers):
    _, session = await logged_in(app, coins=10)

    response = await handlers.purchase(session, {})

    assert response.status == 400
    assert response.body["code"] == "invalid_request"


@pytest.mark.asyncio()
async def test_unexpected_error_becomes_generic_500(app, handlers, monkeypatch):
    _, session = await logged_in(app, coins=10)

    async def explode(*args, **kwargs):
        raise KeyError("driver internals")

    monkeypatch.setattr(app.engine, "execute_purchase", explode)

    response = await handlers.purchase(session, {"productId": "x"})

    assert response.status == 500
    assert response.body["code"] == "internal_error"
    assert "driver" not in response.body["message"]


@pytest.mark.asyncio()
async def test_login_with_code_sets_session(app, handlers):
    code = await app.login_codes.issue("gamer")
    session = Session()

    response = await handlers.login_with_code(session, {"code": code.code})
    me = await handlers.current_account(session)

    assert response.ok
    assert session.account_id == response.body["id"]
    assert me.body["username"] == "gamer"
    await handlers.logout(session)
    assert (await handlers.current_account(session)).status == 401


@pytest.mark.asyncio()
async def test_login_with_discord_profile(handlers):
    session = Session()
    profile = {"id": "99887766", "username": "rider", "discriminator": "0420", "avatar": "hash"}

    response = await handlers.login_with_discord(session, profile)

    assert response.ok
    assert response.body["discordId"] == "99887766"
    assert response.body["discordUsername"] == "rider#0420"
    assert session.account_id == response.body["id"]


@pytest.mark.asyncio()
async def test_list_products_and_purchases(app, handlers):
    _, session = await logged_in(app, coins=1000)
    product = await ProductFactory().create(app.storage, price=100, category="features")
    await handlers.purchase(session, {"productId": product.id})

    products = await handlers.list_products({"category": "features"})
    history = await handlers.list_purchases(session)
    bad_category = await handlers.list_products({"category": "weapons"})

    assert [item["id"] for item in products.body] == [product.id]
    assert history.body[0]["product"]["name"] == product.name
    assert bad_category.status == 400


@pytest.mark.asyncio()
async def test_shopper_may_only_cancel_own_purchase(app, handlers):
    _, owner_session = await logged_in(app, coins=1000)
    _, other_session = await logged_in(app, coins=0)
    product = await ProductFactory().create(app.storage, price=100)
    bought = await handlers.purchase(owner_session, {"productId": product.id})
    purchase_id = bought.body["purchase"]["id"]

    stranger = await handlers.update_purchase_status(other_session, purchase_id, {"status": "cancelled"})
    deliver = await handlers.update_purchase_status(owner_session, purchase_id, {"status": "delivered"})
    cancel = await handlers.update_purchase_status(owner_session, purchase_id, {"status": "cancelled"})

    assert stranger.status == 403
    assert deliver.status == 403
    assert cancel.ok
    assert cancel.body["purchases"][0]["status"] == "cancelled"


@pytest.mark.asyncio()
async def test_admin_status_and_coin_endpoints(app, handlers):
    _, admin_session = await logged_in(app, is_admin=True)
    shopper, shopper_session = await logged_in(app, coins=1000)
    product = await ProductFactory().create(app.storage, price=100)
    bought = await handlers.purchase(shopper_session, {"productId": product.id})

    delivered = await handlers.update_purchase_status(
        admin_session, bought.body["purchase"]["id"], {"status": "delivered"}
    )
    adjusted = await handlers.adjust_coins(admin_session, {"userId": shopper.id, "amount": -5000})
    listed = await handlers.list_accounts(admin_session)
    denied = await handlers.list_accounts(shopper_session)

    assert delivered.ok
    assert adjusted.body["coins"] == 0
    assert len(listed.body) == 2
    assert denied.status == 403


@pytest.mark.asyncio()
async def test_game_server_endpoints_require_secret(handlers):
    assert (await handlers.generate_code(None, {"username": "x"})).status == 401
    assert (await handlers.generate_code("wrong", {"username": "x"})).status == 401
    assert (await handlers.seed_catalog("wrong")).status == 401
    assert (await handlers.pending_purchases(None, "x")).status == 401
    assert (await handlers.bot_adjust_coins("", {"discordId": "1", "amount": 1})).status == 401


@pytest.mark.asyncio()
async def test_game_server_delivery_flow(app, handlers):
    code = await handlers.generate_code(SECRET, {"username": "driver"})
    session = Session()
    await handlers.login_with_code(session, {"code": code.body["code"]})
    account_id = session.account_id
    await app.accounts.adjust_balance(account_id, 1000)
    product = await ProductFactory().create(app.storage, price=100)
    await handlers.purchase(session, {"productId": product.id})

    pending = await handlers.pending_purchases(SECRET, "driver")
    purchase_id = pending.body[0]["id"]
    first = await handlers.deliver_purchase(SECRET, {"purchaseId": purchase_id})
    again = await handlers.deliver_purchase(SECRET, {"purchaseId": purchase_id})

    assert first.body == {"success": True}
    assert again.ok
    assert (await handlers.pending_purchases(SECRET, "driver")).body == []


@pytest.mark.asyncio()
async def test_bot_adjust_coins(app, handlers):
    await app.accounts.link_external_identity("5555", "botuser")

    response = await handlers.bot_adjust_coins(SECRET, {"discordId": "5555", "amount": 40})
    missing = await handlers.bot_adjust_coins(SECRET, {"discordId": "0000", "amount": 40})

    assert response.body == {"success": True, "username": "botuser", "newBalance": 40}
    assert missing.status == 404


@pytest.mark.asyncio()
async def test_seed_catalog_once(handlers):
    first = await handlers.seed_catalog(SECRET)
    second = await handlers.seed_catalog(SECRET)

    assert first.body["count"] == 8
    assert second.body == {"message": "Products already seeded", "count": 0}
    products = await handlers.list_products()
    limited = [item for item in products.body if item["stock"] is not None]
    assert [item["nameEn"] for item in limited] == ["Moderator Permissions"]


@pytest.mark.asyncio()
async def test_coin_amounts_out_of_range_are_invalid(app, handlers):
    _, admin_session = await logged_in(app, is_admin=True)
    shopper, _ = await logged_in(app, coins=10)

    adjusted = await handlers.adjust_coins(admin_session, {"userId": shopper.id, "amount": 2**63})
    bot = await handlers.bot_adjust_coins(SECRET, {"discordId": "5555", "amount": -(2**63)})

    assert adjusted.status == 400
    assert adjusted.body["code"] == "invalid_request"
    assert bot.status == 400
    assert bot.body["code"] == "invalid_request"
    assert (await app.accounts.get_account(shopper.id)).coins == 10
