"""SQLAlchemy storage backend for coinshop."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import asdict, fields
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Generic, Sequence, Type, TypeVar

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    event,
    func,
    select,
)
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..domain.exceptions import ShopError, StorageContention, StorageFailure
from .base import (
    AccountRecord,
    AccountRepository,
    AuditStore,
    LoginCodeRecord,
    LoginCodeRepository,
    ProductRecord,
    ProductRepository,
    PurchaseRecord,
    PurchaseRepository,
    ShopStorage,
)

# Serialization failure, deadlock detected, lock not available.
_CONTENTION_SQLSTATES = {"40001", "40P01", "55P03"}

_READ_ONLY_OPTION = "coinshop_read_only"


class Base(DeclarativeBase):
    pass


class AccountTable(Base):
    __tablename__ = "coinshop_accounts"
    __table_args__ = (CheckConstraint("coins >= 0", name="ck_coinshop_accounts_coins"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True)
    coins: Mapped[int] = mapped_column(BigInteger, default=0)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    discord_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    discord_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    discord_avatar: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class ProductTable(Base):
    __tablename__ = "coinshop_products"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_coinshop_products_price"),
        CheckConstraint("stock IS NULL OR stock >= 0", name="ck_coinshop_products_stock"),
        CheckConstraint(
            "stock IS NULL OR in_stock = (stock > 0)", name="ck_coinshop_products_availability"
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    name_en: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(64), index=True)
    price: Mapped[int] = mapped_column(BigInteger)
    image: Mapped[str] = mapped_column(String(512), default="")
    in_stock: Mapped[bool] = mapped_column(Boolean, default=True)
    stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_new: Mapped[bool] = mapped_column(Boolean, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class PurchaseTable(Base):
    __tablename__ = "coinshop_purchases"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'delivered', 'cancelled')", name="ck_coinshop_purchases_status"
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    account_id: Mapped[str] = mapped_column(ForeignKey("coinshop_accounts.id"), index=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("coinshop_products.id"))
    price: Mapped[int] = mapped_column(BigInteger)
    status: Mapped[str] = mapped_column(String(16), default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class LoginCodeTable(Base):
    __tablename__ = "coinshop_login_codes"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True)
    username: Mapped[str] = mapped_column(String(255))
    used: Mapped[bool] = mapped_column(Boolean, default=False)
    account_id: Mapped[str | None] = mapped_column(
        ForeignKey("coinshop_accounts.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AuditTable(Base):
    __tablename__ = "coinshop_audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    action: Mapped[str] = mapped_column(String(128))
    payload: Mapped[dict] = mapped_column(JSON)


def translate_error(exc: SQLAlchemyError) -> ShopError:
    """Map a driver error onto the retriable/non-retriable storage taxonomy."""
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if (
            isinstance(exc, OperationalError)
            or exc.connection_invalidated
            or sqlstate in _CONTENTION_SQLSTATES
        ):
            return StorageContention(type(exc).__name__)
    return StorageFailure(type(exc).__name__)


def _serialize_sqlite_transactions(engine: AsyncEngine) -> None:
    # pysqlite defers BEGIN until the first write and SQLite ignores FOR UPDATE;
    # BEGIN IMMEDIATE takes the write lock before the first read instead.
    # Read-only units use a deferred BEGIN so they run alongside a writer.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn) -> None:
        if conn.get_execution_options().get(_READ_ONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")


class AsyncSQLAlchemyStorage(ShopStorage):
    """Relational storage; each unit of work is one database transaction."""

    def __init__(self, dsn: str, *, echo: bool = False) -> None:
        self._engine = create_async_engine(dsn, echo=echo, future=True)
        if self._engine.dialect.name == "sqlite":
            _serialize_sqlite_transactions(self._engine)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        self._read_session_factory = async_sessionmaker(
            self._engine.execution_options(**{_READ_ONLY_OPTION: True}), expire_on_commit=False
        )

    @asynccontextmanager
    async def unit_of_work(self, *, read_only: bool = False) -> AsyncIterator["SQLAlchemyUnitOfWork"]:
        factory = self._read_session_factory if read_only else self._session_factory
        try:
            async with factory() as session:
                async with session.begin():
                    yield SQLAlchemyUnitOfWork(session, read_only=read_only)
        except SQLAlchemyError as exc:
            raise translate_error(exc) from exc
        except OverflowError as exc:
            # Raised by the driver while binding an integer it cannot store.
            raise StorageFailure(type(exc).__name__) from exc

    async def init_models(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    def audit_store(self) -> "AsyncSQLAlchemyAuditStore":
        return AsyncSQLAlchemyAuditStore(self._session_factory)


class SQLAlchemyUnitOfWork:
    def __init__(self, session: AsyncSession, *, read_only: bool = False) -> None:
        self.accounts = SQLAlchemyAccountRepository(session, read_only)
        self.products = SQLAlchemyProductRepository(session, read_only)
        self.purchases = SQLAlchemyPurchaseRepository(session, read_only)
        self.login_codes = SQLAlchemyLoginCodeRepository(session, read_only)


RecordT = TypeVar("RecordT", AccountRecord, ProductRecord, PurchaseRecord, LoginCodeRecord)


class _SQLAlchemyRepository(Generic[RecordT]):
    table: Type[Base]
    record_type: Type[RecordT]

    def __init__(self, session: AsyncSession, read_only: bool = False) -> None:
        self._session = session
        self._read_only = read_only

    def _check_writable(self) -> None:
        if self._read_only:
            raise StorageFailure("Read-only unit of work cannot lock or write rows")

    def _to_record(self, row: Any) -> RecordT:
        return self.record_type(
            **{column.name: getattr(row, column.name) for column in fields(self.record_type)}
        )

    async def _one(self, *criteria, for_update: bool = False) -> RecordT | None:
        stmt = select(self.table).where(*criteria)
        if for_update:
            self._check_writable()
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return self._to_record(row) if row is not None else None

    async def _all(self, stmt) -> list[RecordT]:
        rows = (await self._session.execute(stmt)).scalars().all()
        return [self._to_record(row) for row in rows]

    async def add(self, record: RecordT) -> RecordT:
        self._check_writable()
        row = self.table(**asdict(record))
        self._session.add(row)
        await self._session.flush()
        return self._to_record(row)

    async def update(self, record: RecordT) -> RecordT:
        self._check_writable()
        row = await self._session.get(self.table, record.id)
        if row is None:
            raise StorageFailure(f"{self.table.__tablename__} row {record.id} vanished")
        for column, value in asdict(record).items():
            setattr(row, column, value)
        await self._session.flush()
        return self._to_record(row)


class SQLAlchemyAccountRepository(_SQLAlchemyRepository[AccountRecord], AccountRepository):
    table = AccountTable
    record_type = AccountRecord

    async def get(self, account_id: str, *, for_update: bool = False) -> AccountRecord | None:
        return await self._one(AccountTable.id == account_id, for_update=for_update)

    async def get_by_username(
        self, username: str, *, for_update: bool = False
    ) -> AccountRecord | None:
        return await self._one(AccountTable.username == username, for_update=for_update)

    async def get_by_discord_id(
        self, discord_id: str, *, for_update: bool = False
    ) -> AccountRecord | None:
        return await self._one(AccountTable.discord_id == discord_id, for_update=for_update)

    async def list(self) -> Sequence[AccountRecord]:
        return await self._all(select(AccountTable).order_by(AccountTable.created_at))


class SQLAlchemyProductRepository(_SQLAlchemyRepository[ProductRecord], ProductRepository):
    table = ProductTable
    record_type = ProductRecord

    async def get(self, product_id: str, *, for_update: bool = False) -> ProductRecord | None:
        return await self._one(ProductTable.id == product_id, for_update=for_update)

    async def add(self, record: ProductRecord) -> ProductRecord:
        record.derive_availability()
        return await super().add(record)

    async def update(self, record: ProductRecord) -> ProductRecord:
        record.derive_availability()
        return await super().update(record)

    async def list(self, category: str | None = None) -> Sequence[ProductRecord]:
        stmt = select(ProductTable).order_by(ProductTable.created_at)
        if category is not None:
            stmt = stmt.where(ProductTable.category == category)
        return await self._all(stmt)

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(ProductTable))
        return int(result.scalar_one())


class SQLAlchemyPurchaseRepository(_SQLAlchemyRepository[PurchaseRecord], PurchaseRepository):
    table = PurchaseTable
    record_type = PurchaseRecord

    async def get(self, purchase_id: str, *, for_update: bool = False) -> PurchaseRecord | None:
        return await self._one(PurchaseTable.id == purchase_id, for_update=for_update)

    async def list_for_account(self, account_id: str) -> Sequence[PurchaseRecord]:
        stmt = (
            select(PurchaseTable)
            .where(PurchaseTable.account_id == account_id)
            .order_by(PurchaseTable.created_at.desc())
        )
        return await self._all(stmt)


class SQLAlchemyLoginCodeRepository(_SQLAlchemyRepository[LoginCodeRecord], LoginCodeRepository):
    table = LoginCodeTable
    record_type = LoginCodeRecord

    async def get_by_code(self, code: str, *, for_update: bool = False) -> LoginCodeRecord | None:
        return await self._one(LoginCodeTable.code == code, for_update=for_update)


class AsyncSQLAlchemyAuditStore(AuditStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_entry(self, action: str, payload: dict) -> None:
        async with self._session_factory() as session:
            session.add(
                AuditTable(
                    created_at=datetime.now(timezone.utc),
                    action=action,
                    payload=dict(payload),
                )
            )
            await session.commit()

    async def recent(self, limit: int = 50) -> Sequence[tuple[datetime, str, dict]]:
        async with self._session_factory() as session:
            stmt = select(AuditTable).order_by(AuditTable.id.desc()).limit(limit)
            rows = (await session.execute(stmt)).scalars().all()
            return [(row.created_at, row.action, dict(row.payload)) for row in rows]
