"""Shared helpers that turn service calls into transport responses safely."""

from __future__ import annotations

import hmac
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, ParamSpec

from ..domain.exceptions import InvalidRequest, NotAuthenticated, ShopError
from ..storage.base import MAX_COINS

P = ParamSpec("P")

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    """Server-side session state resolved by the transport (cookie, token...)."""

    account_id: str | None = None

    def require_account(self) -> str:
        if not self.account_id:
            raise NotAuthenticated()
        return self.account_id

    def clear(self) -> None:
        self.account_id = None


@dataclass(slots=True)
class Response:
    status: int
    body: Any = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def error_response(exc: ShopError) -> Response:
    return Response(exc.status_code, {"code": exc.code, "message": exc.message})


async def safe_call(
    label: str,
    func: Callable[P, Awaitable[Response]],
    *args: P.args,
    **kwargs: P.kwargs,
) -> Response:
    """Run a handler, mapping domain errors to their response and hiding everything else."""
    try:
        return await func(*args, **kwargs)
    except ShopError as exc:
        if exc.status_code >= 500:
            logger.warning("Handler '%s' failed in storage: %r", label, exc.__cause__ or exc)
        else:
            logger.debug("Handler '%s' rejected: %s", label, exc.code)
        return error_response(exc)
    except Exception:
        logger.exception("Unexpected error in handler '%s'.", label)
        return Response(500, {"code": "internal_error", "message": "Something went wrong, please try again later."})


def check_secret(expected: str | None, provided: str | None) -> bool:
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected.encode(), provided.encode())


def require_str(payload: Any, key: str) -> str:
    if not isinstance(payload, dict):
        raise InvalidRequest()
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(f"'{key}' is required")
    return value.strip()


def require_int(payload: Any, key: str) -> int:
    if not isinstance(payload, dict):
        raise InvalidRequest()
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequest(f"'{key}' must be an integer")
    if abs(value) > MAX_COINS:
        raise InvalidRequest(f"'{key}' is out of range")
    return value
