from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.pool import StaticPool

from handover.core.config import Settings
from handover.core.database import Base, build_engine, build_session_factory
from handover.main import create_app
from handover.models import Operator, Order, Product, ProductKind, Student
from handover.services.evidence_service import StorageError


class FakeStorage:
    """In-memory object storage recording puts and signed keys."""

    def __init__(self):
        self.objects = {}
        self.signed = []
        self.fail_put = False
        self.fail_sign = False

    def put(self, key, data, content_type):
        if self.fail_put:
            raise StorageError("bucket unavailable")
        self.objects[key] = (data, content_type)
        return key

    def sign_url(self, key, ttl_seconds):
        if self.fail_sign:
            raise StorageError("signing unavailable")
        self.signed.append((key, ttl_seconds))
        return f"https://storage.test/{key}?ttl={ttl_seconds}"


@pytest.fixture
def engine():
    engine = build_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def seed(session_factory):
    """Two operators, three products and five students across two classes."""

    with session_factory() as session:
        owner = Operator(name="Mona Adel", username="mona")
        rival = Operator(name="Karim Fawzy", username="karim")
        session.add_all([owner, rival])
        session.flush()

        book = Product(name="Anatomy Notes Vol. 2", price=150, class_id=2, kind=ProductKind.BOOK, owner_id=owner.operator_id)
        course = Product(name="Physiology Course", price=300, class_id=2, kind=ProductKind.COURSE, owner_id=owner.operator_id)
        foreign = Product(name="Histology Atlas", price=90, class_id=2, kind=ProductKind.BOOK, owner_id=rival.operator_id)
        students = [
            Student(name="Ahmed Samir", seat_id="09-2025-001", class_id=2),
            Student(name="Bassem Nabil", seat_id="09-2025-002", class_id=2),
            Student(name="Cherif Hany", seat_id="09-2025-003", class_id=2),
            Student(name="Dina Magdy", seat_id="09-2025-004", class_id=2),
            Student(name="Emad Tarek", seat_id="10-2025-001", class_id=3),
        ]
        session.add_all([book, course, foreign, *students])
        session.commit()

        return SimpleNamespace(
            operator_id=owner.operator_id,
            rival_id=rival.operator_id,
            product_id=book.product_id,
            course_id=course.product_id,
            foreign_product_id=foreign.product_id,
            student_ids=[s.student_id for s in students],
        )


@pytest.fixture
def db(session_factory, seed):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def client(session_factory, storage, seed):
    settings = Settings(database_url="sqlite://", evidence_url_ttl_seconds=600)
    app = create_app(settings, session_factory=session_factory, storage=storage)
    with TestClient(app) as test_client:
        yield test_client


def count_orders(session, **criteria):
    stmt = select(func.count()).select_from(Order)
    for column, value in criteria.items():
        stmt = stmt.where(getattr(Order, column) == value)
    return session.execute(stmt).scalar_one()
