"""Walk through a storefront session: seed, log in with a game code, buy, deliver."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from coinshop import ShopApp, ShopConfig
from coinshop.gateway import Session, ShopHandlers
from coinshop.loaders import seed_catalog_from_json


async def announce(payload) -> None:
    print(f"🛒 Purchase {payload['purchase_id']} completed for {payload['price']} coins")


async def run_demo() -> None:
    config = ShopConfig.from_env()
    config.admin.api_secret = config.admin.api_secret or "demo-secret"
    app = ShopApp(config)
    await app.init_backend()
    app.event_bus.subscribe("purchase.completed", announce)
    handlers = ShopHandlers(app)
    secret = config.admin.api_secret

    try:
        await seed_catalog_from_json(app, Path(__file__).with_name("catalog") / "products.json")

        # The game server mints a code, the player types it into the website.
        code = await handlers.generate_code(secret, {"username": "demo_driver"})
        session = Session()
        await handlers.login_with_code(session, {"code": code.body["code"]})
        await app.accounts.adjust_balance(session.account_id, 8000)

        products = (await handlers.list_products({"category": "ownership"})).body
        garage = products[0]
        for _ in range(2):
            response = await handlers.purchase(session, {"productId": garage["id"]})
            if response.ok:
                print(f"Bought {garage['nameEn']}, balance {response.body['account']['coins']}")
            else:
                print(f"Rejected: {response.body['message']}")

        pending = (await handlers.pending_purchases(secret, "demo_driver")).body
        for item in pending:
            await handlers.deliver_purchase(secret, {"purchaseId": item["id"]})
            print(f"Delivered {item['product']['name']} in game")
    finally:
        await app.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_demo())
