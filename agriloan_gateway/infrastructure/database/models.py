"""SQLAlchemy ORM models for the entity store"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, Float, DateTime, Date, Integer, ForeignKey, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class UserRecord(Base):
    """Registered platform user"""

    __tablename__ = "app_user"

    id = Column(String(36), primary_key=True, default=new_id)
    contact = Column(Text, nullable=False, unique=True)
    role = Column(String(32), nullable=False, index=True)
    full_name = Column(Text, nullable=False)
    entity_name = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LoanRecord(Base):
    """Loan application and its review/approval metadata"""

    __tablename__ = "loan_application"

    id = Column(String(36), primary_key=True, default=new_id)
    farmer_id = Column(String(36), ForeignKey("app_user.id"), nullable=False, index=True)
    farmer_name = Column(Text, nullable=False)
    farm_size_acres = Column(Float, nullable=False)
    crop_type = Column(String(32), nullable=False)
    other_crop_type = Column(Text, nullable=True)
    input_needs = Column(Text, nullable=False)
    requested_amount = Column(BigInteger, nullable=False)
    application_date = Column(DateTime(timezone=True), nullable=False)
    expected_harvest_date = Column(Date, nullable=True)
    status = Column(String(32), nullable=False, index=True)

    admin_reviewer_id = Column(String(36), nullable=True)
    admin_reviewer_name = Column(Text, nullable=True)
    admin_review_date = Column(DateTime(timezone=True), nullable=True)
    admin_comments = Column(Text, nullable=True)
    pre_approved_amount = Column(BigInteger, nullable=True)

    officer_id = Column(String(36), nullable=True)
    officer_name = Column(Text, nullable=True)
    officer_comments = Column(Text, nullable=True)
    approved_amount = Column(BigInteger, nullable=True)
    repayment_due_date = Column(Date, nullable=True)
    disbursement_date = Column(Date, nullable=True)

    updated_at = Column(DateTime(timezone=True), nullable=True)  # set on every save; forces a version bump
    version = Column(Integer, nullable=False)

    repayments = relationship(
        "RepaymentRecord",
        back_populates="loan",
        order_by="RepaymentRecord.position",
        cascade="all",
    )

    __mapper_args__ = {"version_id_col": version}


class RepaymentRecord(Base):
    """Append-only repayment ledger entry"""

    __tablename__ = "loan_repayment"

    id = Column(String(36), primary_key=True, default=new_id)
    loan_id = Column(String(36), ForeignKey("loan_application.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    paid_on = Column(Date, nullable=False)
    amount = Column(BigInteger, nullable=False)
    recorded_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("LoanRecord", back_populates="repayments")


class FieldLogRecord(Base):
    """Farmer field activity entry"""

    __tablename__ = "field_log"

    id = Column(String(36), primary_key=True, default=new_id)
    farmer_id = Column(String(36), ForeignKey("app_user.id"), nullable=False, index=True)
    loan_id = Column(String(36), ForeignKey("loan_application.id"), nullable=True)
    crop_plot_id = Column(Text, nullable=False)
    log_date = Column(Date, nullable=False)
    activity = Column(String(32), nullable=False)
    notes = Column(Text, nullable=False)
    photo_file_name = Column(Text, nullable=True)
    estimated_yield_kg = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ListingRecord(Base):
    """Produce offered for sale by a farmer"""

    __tablename__ = "produce_listing"

    id = Column(String(36), primary_key=True, default=new_id)
    farmer_id = Column(String(36), ForeignKey("app_user.id"), nullable=False, index=True)
    farmer_name = Column(Text, nullable=False)
    crop_type = Column(String(32), nullable=False)
    other_crop_type = Column(Text, nullable=True)
    quantity_kg = Column(Float, nullable=False)
    quality_grade = Column(String(32), nullable=False)
    price_per_kg = Column(BigInteger, nullable=False)
    listing_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(16), nullable=False, index=True)
    description = Column(Text, nullable=True)
    photo_file_name = Column(Text, nullable=True)


class NegotiationRecord(Base):
    """Offer exchange between one buyer and one farmer over one listing"""

    __tablename__ = "negotiation"

    id = Column(String(36), primary_key=True, default=new_id)
    listing_id = Column(String(36), ForeignKey("produce_listing.id"), nullable=False, index=True)
    buyer_id = Column(String(36), ForeignKey("app_user.id"), nullable=False, index=True)
    buyer_name = Column(Text, nullable=False)
    farmer_id = Column(String(36), ForeignKey("app_user.id"), nullable=False, index=True)
    farmer_name = Column(Text, nullable=False)
    crop_type = Column(String(32), nullable=False)
    status = Column(String(32), nullable=False)
    current_offer_price_per_kg = Column(BigInteger, nullable=True)
    current_offer_quantity_kg = Column(Float, nullable=True)
    current_offer_by = Column(String(36), nullable=True)
    last_update = Column(DateTime(timezone=True), nullable=False)

    version = Column(Integer, nullable=False)

    messages = relationship(
        "ChatMessageRecord",
        back_populates="negotiation",
        order_by="ChatMessageRecord.position",
        cascade="all",
    )

    __mapper_args__ = {"version_id_col": version}


class ChatMessageRecord(Base):
    """Transcript entry; position preserves insertion order"""

    __tablename__ = "negotiation_message"

    id = Column(String(36), primary_key=True, default=new_id)
    negotiation_id = Column(String(36), ForeignKey("negotiation.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    sender_id = Column(String(36), nullable=False)
    sender_role = Column(String(32), nullable=False)
    text = Column(Text, nullable=False)
    is_system = Column(Boolean, nullable=False, default=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    negotiation = relationship("NegotiationRecord", back_populates="messages")
