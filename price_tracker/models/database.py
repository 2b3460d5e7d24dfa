import logging
import threading
from typing import List, Optional

from sqlalchemy import (
    create_engine, event, Column, String, Float, DateTime, ForeignKey, Index,
)
from sqlalchemy.orm import sessionmaker, relationship, declarative_base
from sqlalchemy.pool import StaticPool

from price_tracker.errors import ProductNotFoundError
from price_tracker.models.schemas import PriceObservation, ProductRecord

logger = logging.getLogger('database')

Base = declarative_base()


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True)
    url = Column(String, nullable=False, unique=True)
    title = Column(String, nullable=False)
    current_price = Column(Float, nullable=False)
    image_url = Column(String, nullable=True)
    last_checked = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False)
    highest_price = Column(Float, nullable=True)
    lowest_price = Column(Float, nullable=True)

    price_histories = relationship("PriceHistory", back_populates="product")

    def __repr__(self):
        return f"<Product(id='{self.id}', url='{self.url}', current_price={self.current_price})>"


class PriceHistory(Base):
    __tablename__ = "price_history"
    __table_args__ = (
        Index("ix_price_history_product_timestamp", "product_id", "timestamp"),
    )

    id = Column(String, primary_key=True)
    product_id = Column(String, ForeignKey("products.id"), nullable=False)
    price = Column(Float, nullable=False)
    timestamp = Column(DateTime, nullable=False)

    product = relationship("Product", back_populates="price_histories")

    def __repr__(self):
        return f"<PriceHistory(product_id='{self.product_id}', price={self.price}, timestamp='{self.timestamp}')>"


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def _build_engine(database_url: str):
    if not _is_sqlite(database_url):
        return create_engine(database_url)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if _is_memory_sqlite(database_url):
        # Every new connection to :memory: would be a fresh, empty database
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        if not _is_memory_sqlite(database_url):
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


class Database:
    """Store gateway over the products and price_history tables.

    Every method opens its own short-lived session and returns pydantic
    records, so results stay valid after the session is closed. Access is
    serialized by an internal lock; callers never need their own.
    """

    def __init__(self, database_url: str = "sqlite:///price_tracker.db"):
        self.database_url = database_url
        self.engine = _build_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._lock = threading.RLock()
        logger.info(f"Using database: {database_url}")

    # Products

    def create_product(self, product: ProductRecord) -> ProductRecord:
        with self._lock, self.Session.begin() as session:
            session.add(_product_row(product))
        return product

    def get_product_by_id(self, product_id: str) -> Optional[ProductRecord]:
        with self._lock, self.Session() as session:
            row = session.get(Product, product_id)
            return ProductRecord.model_validate(row) if row else None

    def get_product_by_url(self, url: str) -> Optional[ProductRecord]:
        with self._lock, self.Session() as session:
            row = session.query(Product).filter(Product.url == str(url)).first()
            return ProductRecord.model_validate(row) if row else None

    def get_all_products(self) -> List[ProductRecord]:
        with self._lock, self.Session() as session:
            rows = session.query(Product).order_by(Product.last_checked.desc()).all()
            return [ProductRecord.model_validate(row) for row in rows]

    def update_product(self, product: ProductRecord) -> ProductRecord:
        with self._lock, self.Session.begin() as session:
            _apply_update(session, product)
        return product

    # Price history

    def add_price_history(self, observation: PriceObservation) -> PriceObservation:
        with self._lock, self.Session.begin() as session:
            if session.get(Product, observation.product_id) is None:
                raise ProductNotFoundError(observation.product_id)
            session.add(_history_row(observation))
        return observation

    def get_price_history(self, product_id: str, limit: Optional[int] = None) -> List[PriceObservation]:
        with self._lock, self.Session() as session:
            query = (
                session.query(PriceHistory)
                .filter(PriceHistory.product_id == product_id)
                .order_by(PriceHistory.timestamp.asc())
            )
            if limit:
                query = query.limit(limit)
            return [PriceObservation.model_validate(row) for row in query.all()]

    def get_latest_two_prices(self, product_id: str) -> List[PriceObservation]:
        """Return at most two observations, newest first."""
        with self._lock, self.Session() as session:
            rows = (
                session.query(PriceHistory)
                .filter(PriceHistory.product_id == product_id)
                .order_by(PriceHistory.timestamp.desc())
                .limit(2)
                .all()
            )
            return [PriceObservation.model_validate(row) for row in rows]

    def calculate_price_change(self, product_id: str) -> Optional[float]:
        latest = self.get_latest_two_prices(product_id)
        if len(latest) < 2:
            return None
        return latest[0].price - latest[1].price

    # Reconciliation

    def save_reconciliation(self, result) -> None:
        """Persist a reconcile result in a single transaction.

        A new product is inserted together with its first observation; an
        existing one is updated and gets one appended observation.
        """
        with self._lock, self.Session.begin() as session:
            if result.created:
                session.add(_product_row(result.product))
                # The product row must exist before its history row references it
                session.flush()
            else:
                _apply_update(session, result.product)
            session.add(_history_row(result.observation))

    def close(self):
        self.engine.dispose()
        logger.info("Database connection closed")


def _product_row(product: ProductRecord) -> Product:
    return Product(
        id=product.id,
        url=str(product.url),
        title=product.title,
        current_price=product.current_price,
        image_url=product.image_url,
        last_checked=product.last_checked,
        created_at=product.created_at,
        highest_price=product.highest_price,
        lowest_price=product.lowest_price,
    )


def _history_row(observation: PriceObservation) -> PriceHistory:
    return PriceHistory(
        id=observation.id,
        product_id=observation.product_id,
        price=observation.price,
        timestamp=observation.timestamp,
    )


def _apply_update(session, product: ProductRecord) -> None:
    row = session.get(Product, product.id)
    if row is None:
        raise ProductNotFoundError(product.id)
    row.title = product.title
    row.current_price = product.current_price
    row.image_url = product.image_url
    row.last_checked = product.last_checked
    row.highest_price = product.highest_price
    row.lowest_price = product.lowest_price
