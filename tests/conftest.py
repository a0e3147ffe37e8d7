"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timedelta, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from agriloan_gateway.api.main import create_app
from agriloan_gateway.infrastructure.database.models import Base
from agriloan_gateway.infrastructure.database.repositories import UserRepository
from agriloan_gateway.infrastructure.database.session import get_db
from agriloan_gateway.domain.models import (
    CropType,
    ListingStatus,
    LoanApplication,
    LoanStatus,
    Negotiation,
    NegotiationStatus,
    ProduceListing,
    QualityGrade,
    User,
    UserRole,
)


# Test database: one shared in-memory connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def _register(db: Session, contact: str, role: UserRole, full_name: str, entity_name: str = None) -> User:
    user = UserRepository(db).add(
        User(id=None, contact=contact, role=role, full_name=full_name, entity_name=entity_name)
    )
    db.commit()
    return user


@pytest.fixture
def farmer(db: Session) -> User:
    return _register(db, "amina@example.com", UserRole.FARMER, "Amina Bello", "Bello Farms")


@pytest.fixture
def admin(db: Session) -> User:
    return _register(db, "admin@example.com", UserRole.ADMIN, "Tunde Admin")


@pytest.fixture
def officer(db: Session) -> User:
    return _register(db, "officer@bank.example", UserRole.BANK_OFFICER, "Ngozi Okafor", "Agro Bank")


@pytest.fixture
def buyer(db: Session) -> User:
    return _register(db, "chidi@example.com", UserRole.BUYER, "Chidi Eze", "Eze Foods")


@pytest.fixture
def second_buyer(db: Session) -> User:
    return _register(db, "+2348012345678", UserRole.BUYER, "Kemi Adeyemi", "Lagos Grains")


# Plain domain objects for unit tests


@pytest.fixture
def farmer_user() -> User:
    return User(id="farmer-1", contact="amina@example.com", role=UserRole.FARMER, full_name="Amina Bello")


@pytest.fixture
def admin_user() -> User:
    return User(id="admin-1", contact="admin@example.com", role=UserRole.ADMIN, full_name="Tunde Admin")


@pytest.fixture
def officer_user() -> User:
    return User(id="officer-1", contact="officer@bank.example", role=UserRole.BANK_OFFICER, full_name="Ngozi Okafor")


@pytest.fixture
def buyer_user() -> User:
    return User(id="buyer-1", contact="chidi@example.com", role=UserRole.BUYER, full_name="Chidi Eze")


@pytest.fixture
def other_buyer_user() -> User:
    return User(id="buyer-2", contact="kemi@example.com", role=UserRole.BUYER, full_name="Kemi Adeyemi")


@pytest.fixture
def approved_loan() -> LoanApplication:
    """₦50,000 approved loan due 31 March 2024, no repayments yet"""
    return LoanApplication(
        id="loan-1",
        farmer_id="farmer-1",
        farmer_name="Amina Bello",
        farm_size_acres=2.5,
        crop_type=CropType.MAIZE,
        input_needs="Seeds and fertilizer",
        requested_amount=60000,
        application_date=NOW - timedelta(days=20),
        expected_harvest_date=date(2024, 7, 15),
        status=LoanStatus.APPROVED,
        pre_approved_amount=55000,
        officer_id="officer-1",
        officer_name="Ngozi Okafor",
        approved_amount=50000,
        repayment_due_date=date(2024, 3, 31),
    )


@pytest.fixture
def listing() -> ProduceListing:
    """500kg of maize at ₦300/kg"""
    return ProduceListing(
        id="listing-1",
        farmer_id="farmer-1",
        farmer_name="Amina Bello",
        crop_type=CropType.MAIZE,
        quantity_kg=500,
        quality_grade=QualityGrade.A,
        price_per_kg=300,
        listing_date=NOW - timedelta(days=2),
        status=ListingStatus.AVAILABLE,
    )


@pytest.fixture
def negotiation(listing: ProduceListing) -> Negotiation:
    """Freshly started negotiation waiting on the farmer"""
    return Negotiation(
        id="neg-1",
        listing_id=listing.id,
        buyer_id="buyer-1",
        buyer_name="Chidi Eze",
        farmer_id="farmer-1",
        farmer_name="Amina Bello",
        crop_type=listing.crop_type,
        status=NegotiationStatus.PENDING_FARMER,
        last_update=NOW,
        current_offer_price_per_kg=listing.price_per_kg,
        current_offer_quantity_kg=listing.quantity_kg,
    )
