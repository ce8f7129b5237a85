import os
import sqlite3
import uuid
from datetime import UTC, datetime, timedelta

os.environ.setdefault("METRICS_REFRESHER_ENABLED", "false")

import pytest  # noqa: E402
from dotenv import load_dotenv  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from opsdash.db import Base  # noqa: E402
from opsdash.models.orders import (  # noqa: E402
    CollaboratorKpi,
    Order,
    OrderStatus,
    Pendency,
    UserDocumentLimit,
)

load_dotenv(os.path.join(os.getcwd(), ".env"))


@pytest.fixture(scope="session")
def engine():
    database_url = os.getenv("TEST_DATABASE_URL")
    if database_url:
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={
                "check_same_thread": False,
                "detect_types": sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
            },
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(engine)

    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def worker_id():
    return str(uuid.uuid4())


@pytest.fixture()
def order_factory(db_session):
    """Insert an order; datetimes are stored in UTC."""

    def _create(
        *,
        assigned_to: str | None = None,
        document_count: int = 1,
        urgent_document_count: int = 0,
        status: OrderStatus = OrderStatus.pending,
        created_at: datetime | None = None,
        attribution_date: datetime | None = None,
        delivered_at: datetime | None = None,
        deadline: datetime | None = None,
        order_number: str | None = None,
    ) -> Order:
        created_at = created_at or datetime.now(UTC)
        order = Order(
            order_number=order_number,
            assigned_to=uuid.UUID(assigned_to) if assigned_to else None,
            document_count=document_count,
            urgent_document_count=urgent_document_count,
            status=status,
            created_at=created_at.astimezone(UTC),
            attribution_date=attribution_date.astimezone(UTC) if attribution_date else None,
            delivered_at=delivered_at.astimezone(UTC) if delivered_at else None,
            deadline=(deadline or created_at + timedelta(days=3)).astimezone(UTC),
        )
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order

    return _create


@pytest.fixture()
def pendency_factory(db_session):
    def _create(*, error_type: str, created_at: datetime, order: Order | None = None) -> Pendency:
        pendency = Pendency(
            order_id=order.id if order else None,
            error_type=error_type,
            created_at=created_at.astimezone(UTC),
        )
        db_session.add(pendency)
        db_session.commit()
        db_session.refresh(pendency)
        return pendency

    return _create


@pytest.fixture()
def demand_limit_factory(db_session):
    def _create(worker_id: str, *, daily_limit: int | None, concurrent_order_limit: int | None):
        limit = UserDocumentLimit(
            user_id=uuid.UUID(worker_id),
            daily_limit=daily_limit,
            concurrent_order_limit=concurrent_order_limit,
        )
        db_session.add(limit)
        db_session.commit()
        return limit

    return _create


@pytest.fixture()
def kpi_factory(db_session):
    def _create(worker_id: str, **kwargs) -> CollaboratorKpi:
        values = {
            "kpi_name": "error_rate",
            "kpi_label": "Error rate",
            "target_value": 5.0,
            "target_operator": "lte",
            "calculation_type": "error_rate",
            "unit": "%",
            "display_order": 0,
            "is_active": True,
        }
        values.update(kwargs)
        kpi = CollaboratorKpi(user_id=uuid.UUID(worker_id), **values)
        db_session.add(kpi)
        db_session.commit()
        return kpi

    return _create
