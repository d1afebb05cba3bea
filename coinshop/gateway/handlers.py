"""Transport-agnostic request handlers for the storefront, admin and game server."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..app import ShopApp
from ..domain.exceptions import AccountNotFound, InvalidRequest, NotAuthenticated, PermissionDenied
from ..domain.models import PurchaseStatus
from ..loaders import DEFAULT_CATALOG, parse_catalog_dict
from .api_utils import Response, Session, check_secret, require_int, require_str, safe_call
from .serializers import (
    account_to_dict,
    login_code_to_dict,
    product_to_dict,
    purchase_to_dict,
    purchase_view_to_dict,
)

logger = logging.getLogger(__name__)


class ShopHandlers:
    """One coroutine per endpoint; each returns a :class:`Response` and never raises."""

    def __init__(self, app: ShopApp) -> None:
        self._app = app

    # Session ---------------------------------------------------------------

    async def current_account(self, session: Session) -> Response:
        return await safe_call("current_account", self._current_account, session)

    async def _current_account(self, session: Session) -> Response:
        account_id = session.require_account()
        try:
            account = await self._app.accounts.get_account(account_id)
        except AccountNotFound as exc:
            session.clear()
            raise NotAuthenticated() from exc
        return Response(200, account_to_dict(account))

    async def login_with_code(self, session: Session, payload: Any) -> Response:
        return await safe_call("login_with_code", self._login_with_code, session, payload)

    async def _login_with_code(self, session: Session, payload: Any) -> Response:
        code = require_str(payload, "code")
        account = await self._app.login_codes.redeem(code)
        session.account_id = account.id
        return Response(200, account_to_dict(account))

    async def login_with_discord(self, session: Session, profile: Mapping[str, Any]) -> Response:
        """Finish an identity-provider login with the profile the transport fetched."""
        return await safe_call("login_with_discord", self._login_with_discord, session, profile)

    async def _login_with_discord(self, session: Session, profile: Mapping[str, Any]) -> Response:
        provider_id = require_str(profile, "id")
        username = require_str(profile, "username")
        discriminator = profile.get("discriminator")
        handle = f"{username}#{discriminator}" if discriminator else username
        account = await self._app.accounts.link_external_identity(
            provider_id, username, avatar=profile.get("avatar"), handle=handle
        )
        session.account_id = account.id
        return Response(200, account_to_dict(account))

    async def logout(self, session: Session) -> Response:
        session.clear()
        return Response(200, {"message": "Logged out."})

    # Storefront -------------------------------------------------------------

    async def list_products(self, payload: Any = None) -> Response:
        return await safe_call("list_products", self._list_products, payload)

    async def _list_products(self, payload: Any) -> Response:
        category = payload.get("category") if isinstance(payload, dict) else None
        products = await self._app.catalog.list_products(category)
        return Response(200, [product_to_dict(product) for product in products])

    async def purchase(self, session: Session, payload: Any) -> Response:
        return await safe_call("purchase", self._purchase, session, payload)

    async def _purchase(self, session: Session, payload: Any) -> Response:
        account_id = session.require_account()
        product_id = require_str(payload, "productId")
        result = await self._app.engine.execute_purchase(account_id, product_id)
        return Response(
            200,
            {"account": account_to_dict(result.account), "purchase": purchase_to_dict(result.purchase)},
        )

    async def list_purchases(self, session: Session) -> Response:
        return await safe_call("list_purchases", self._list_purchases, session)

    async def _list_purchases(self, session: Session) -> Response:
        account_id = session.require_account()
        views = await self._app.purchases.list_for_account(account_id)
        return Response(200, [purchase_view_to_dict(view) for view in views])

    async def update_purchase_status(self, session: Session, purchase_id: str, payload: Any) -> Response:
        return await safe_call(
            "update_purchase_status", self._update_purchase_status, session, purchase_id, payload
        )

    async def _update_purchase_status(
        self, session: Session, purchase_id: str, payload: Any
    ) -> Response:
        account_id = session.require_account()
        status = require_str(payload, "status")
        if status not in {item.value for item in PurchaseStatus}:
            raise InvalidRequest(f"Unknown purchase status '{status}'")
        actor = await self._app.accounts.get_account(account_id)
        if not actor.is_admin:
            purchase = await self._app.purchases.get_purchase(purchase_id)
            if purchase.account_id != account_id or status != PurchaseStatus.CANCELLED.value:
                raise PermissionDenied()
        await self._app.purchases.update_status(purchase_id, status)
        views = await self._app.purchases.list_for_account(account_id)
        return Response(
            200,
            {"message": "Status updated.", "purchases": [purchase_view_to_dict(view) for view in views]},
        )

    # Admin --------------------------------------------------------------------

    async def list_accounts(self, session: Session) -> Response:
        return await safe_call("list_accounts", self._list_accounts, session)

    async def _list_accounts(self, session: Session) -> Response:
        accounts = await self._app.admin.list_accounts(session.require_account())
        return Response(200, [account_to_dict(account) for account in accounts])

    async def adjust_coins(self, session: Session, payload: Any) -> Response:
        return await safe_call("adjust_coins", self._adjust_coins, session, payload)

    async def _adjust_coins(self, session: Session, payload: Any) -> Response:
        actor_id = session.require_account()
        target_id = require_str(payload, "userId")
        amount = require_int(payload, "amount")
        account = await self._app.admin.adjust_coins(actor_id, target_id, amount)
        return Response(200, account_to_dict(account))

    # Game server and bot --------------------------------------------------------

    async def bot_adjust_coins(self, secret: str | None, payload: Any) -> Response:
        return await safe_call("bot_adjust_coins", self._bot_adjust_coins, secret, payload)

    async def _bot_adjust_coins(self, secret: str | None, payload: Any) -> Response:
        self._require_secret(secret)
        discord_id = require_str(payload, "discordId")
        amount = require_int(payload, "amount")
        account = await self._app.admin.adjust_coins_by_discord_id(discord_id, amount)
        return Response(
            200,
            {"success": True, "username": account.username, "newBalance": account.coins},
        )

    async def generate_code(self, secret: str | None, payload: Any) -> Response:
        return await safe_call("generate_code", self._generate_code, secret, payload)

    async def _generate_code(self, secret: str | None, payload: Any) -> Response:
        self._require_secret(secret)
        username = require_str(payload, "username")
        code = await self._app.login_codes.issue(username)
        return Response(200, login_code_to_dict(code))

    async def pending_purchases(self, secret: str | None, username: str) -> Response:
        return await safe_call("pending_purchases", self._pending_purchases, secret, username)

    async def _pending_purchases(self, secret: str | None, username: str) -> Response:
        self._require_secret(secret)
        views = await self._app.purchases.pending_for_username(username)
        return Response(200, [purchase_view_to_dict(view) for view in views])

    async def deliver_purchase(self, secret: str | None, payload: Any) -> Response:
        return await safe_call("deliver_purchase", self._deliver_purchase, secret, payload)

    async def _deliver_purchase(self, secret: str | None, payload: Any) -> Response:
        self._require_secret(secret)
        purchase_id = require_str(payload, "purchaseId")
        await self._app.purchases.mark_delivered(purchase_id)
        return Response(200, {"success": True})

    async def seed_catalog(self, secret: str | None) -> Response:
        return await safe_call("seed_catalog", self._seed_catalog, secret)

    async def _seed_catalog(self, secret: str | None) -> Response:
        self._require_secret(secret)
        definitions = parse_catalog_dict(DEFAULT_CATALOG, categories=self._app.catalog.categories)
        count = await self._app.catalog.seed(definitions)
        if not count:
            return Response(200, {"message": "Products already seeded", "count": 0})
        return Response(200, {"message": "Products seeded successfully", "count": count})

    def _require_secret(self, secret: str | None) -> None:
        if not check_secret(self._app.config.admin.api_secret, secret):
            logger.warning("Rejected game server call with an invalid secret.")
            raise NotAuthenticated("Invalid secret")
