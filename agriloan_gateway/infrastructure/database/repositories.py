"""Data access layer - one repository per entity type, mapping rows to domain dataclasses"""

from enum import Enum
from typing import Iterable, List

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from agriloan_gateway.infrastructure.database.models import (
    ChatMessageRecord,
    FieldLogRecord,
    ListingRecord,
    LoanRecord,
    NegotiationRecord,
    RepaymentRecord,
    UserRecord,
)
from agriloan_gateway.domain.exceptions import NotFoundError, ValidationError
from agriloan_gateway.domain.models import (
    ChatMessage,
    CropType,
    FieldLog,
    FieldLogActivity,
    ListingStatus,
    LoanApplication,
    LoanStatus,
    Negotiation,
    NegotiationStatus,
    ProduceListing,
    QualityGrade,
    Repayment,
    User,
    UserRole,
)
from agriloan_gateway.utils.date_utils import utcnow

# Columns copied verbatim between LoanRecord and LoanApplication
_LOAN_COLUMNS = (
    "farmer_id",
    "farmer_name",
    "farm_size_acres",
    "crop_type",
    "other_crop_type",
    "input_needs",
    "requested_amount",
    "application_date",
    "expected_harvest_date",
    "status",
    "admin_reviewer_id",
    "admin_reviewer_name",
    "admin_review_date",
    "admin_comments",
    "pre_approved_amount",
    "officer_id",
    "officer_name",
    "officer_comments",
    "approved_amount",
    "repayment_due_date",
    "disbursement_date",
)

_LISTING_COLUMNS = (
    "farmer_id",
    "farmer_name",
    "crop_type",
    "other_crop_type",
    "quantity_kg",
    "quality_grade",
    "price_per_kg",
    "listing_date",
    "status",
    "description",
    "photo_file_name",
)

_NEGOTIATION_COLUMNS = (
    "listing_id",
    "buyer_id",
    "buyer_name",
    "farmer_id",
    "farmer_name",
    "crop_type",
    "status",
    "current_offer_price_per_kg",
    "current_offer_quantity_kg",
    "current_offer_by",
    "last_update",
)


def _column_value(value):
    return value.value if isinstance(value, Enum) else value


def _copy_columns(source, record, columns: Iterable[str]) -> None:
    for name in columns:
        setattr(record, name, _column_value(getattr(source, name)))


def _check_version(record, snapshot, entity: str) -> None:
    """Refuse to write a snapshot read before someone else's commit"""
    if snapshot.version is not None and snapshot.version != record.version:
        raise StaleDataError(
            f"{entity} {record.id} changed since it was read (version {snapshot.version}, now {record.version})"
        )


class UserRepository:
    """Repository for users"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, user: User) -> User:
        """Persist a new user; contact must be unique"""
        taken = self.db.query(UserRecord).filter(UserRecord.contact == user.contact).first()
        if taken:
            raise ValidationError(f"An account already exists for {user.contact}")
        record = UserRecord(
            contact=user.contact,
            role=user.role.value,
            full_name=user.full_name,
            entity_name=user.entity_name,
            created_at=user.created_at or utcnow(),
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return self._to_domain(record)

    def get(self, user_id: str) -> User:
        record = self.db.query(UserRecord).filter(UserRecord.id == user_id).first()
        if not record:
            raise NotFoundError("User", user_id)
        return self._to_domain(record)

    def save(self, user: User) -> User:
        """Profile fields only; role is never rewritten"""
        record = self.db.query(UserRecord).filter(UserRecord.id == user.id).first()
        if not record:
            raise NotFoundError("User", user.id)
        record.full_name = user.full_name
        record.entity_name = user.entity_name
        self.db.flush()
        return self._to_domain(record)

    def list_by_role(self, role: UserRole) -> List[User]:
        records = self.db.query(UserRecord).filter(UserRecord.role == role.value).order_by(UserRecord.full_name).all()
        return [self._to_domain(r) for r in records]

    @staticmethod
    def _to_domain(record: UserRecord) -> User:
        return User(
            id=record.id,
            contact=record.contact,
            role=UserRole(record.role),
            full_name=record.full_name,
            entity_name=record.entity_name,
            created_at=record.created_at,
        )


class LoanRepository:
    """Repository for loan applications and their repayment ledgers"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, loan: LoanApplication) -> LoanApplication:
        record = LoanRecord()
        _copy_columns(loan, record, _LOAN_COLUMNS)
        self._append_new_repayments(record, loan)
        self.db.add(record)
        self.db.flush()
        return self._to_domain(record)

    def get(self, loan_id: str) -> LoanApplication:
        return self._to_domain(self._record(loan_id))

    def get_for_update(self, loan_id: str) -> LoanApplication:
        """Read under a row lock before a read-modify-write"""
        return self._to_domain(self._record(loan_id, lock=True))

    def save(self, loan: LoanApplication) -> LoanApplication:
        """
        Write back a transitioned loan.

        Scalar columns are overwritten; repayments without an id are appended
        to the ledger, existing entries are never touched.

        Raises:
            StaleDataError: The row moved past the version the loan was read
                at, or another writer commits between this check and the flush
        """
        record = self._record(loan.id, fresh=True)
        _check_version(record, loan, "Loan")
        _copy_columns(loan, record, _LOAN_COLUMNS)
        record.updated_at = utcnow()
        self._append_new_repayments(record, loan)
        self.db.flush()
        return self._to_domain(record)

    def list_all(self) -> List[LoanApplication]:
        records = self.db.query(LoanRecord).order_by(LoanRecord.application_date.desc()).all()
        return [self._to_domain(r) for r in records]

    def list_by_farmer(self, farmer_id: str) -> List[LoanApplication]:
        records = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.farmer_id == farmer_id)
            .order_by(LoanRecord.application_date.desc())
            .all()
        )
        return [self._to_domain(r) for r in records]

    def list_by_status(self, statuses: Iterable[LoanStatus]) -> List[LoanApplication]:
        values = [s.value for s in statuses]
        records = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.status.in_(values))
            .order_by(LoanRecord.application_date)
            .all()
        )
        return [self._to_domain(r) for r in records]

    def _record(self, loan_id: str, lock: bool = False, fresh: bool = False) -> LoanRecord:
        query = self.db.query(LoanRecord).filter(LoanRecord.id == loan_id)
        if lock:
            query = query.with_for_update()
        if lock or fresh:
            query = query.populate_existing()
        record = query.first()
        if not record:
            raise NotFoundError("Loan", loan_id)
        return record

    @staticmethod
    def _append_new_repayments(record: LoanRecord, loan: LoanApplication) -> None:
        for repayment in loan.repayments:
            if repayment.id is None:
                record.repayments.append(
                    RepaymentRecord(
                        position=len(record.repayments),
                        paid_on=repayment.paid_on,
                        amount=repayment.amount,
                        recorded_by=repayment.recorded_by,
                    )
                )

    @staticmethod
    def _to_domain(record: LoanRecord) -> LoanApplication:
        values = {name: getattr(record, name) for name in _LOAN_COLUMNS}
        values["crop_type"] = CropType(record.crop_type)
        values["status"] = LoanStatus(record.status)
        return LoanApplication(
            id=record.id,
            version=record.version,
            repayments=[
                Repayment(id=r.id, paid_on=r.paid_on, amount=r.amount, recorded_by=r.recorded_by)
                for r in record.repayments
            ],
            **values,
        )


class FieldLogRepository:
    """Repository for field activity logs"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, log: FieldLog) -> FieldLog:
        record = FieldLogRecord(
            farmer_id=log.farmer_id,
            loan_id=log.loan_id,
            crop_plot_id=log.crop_plot_id,
            log_date=log.log_date,
            activity=log.activity.value,
            notes=log.notes,
            photo_file_name=log.photo_file_name,
            estimated_yield_kg=log.estimated_yield_kg,
            created_at=log.created_at or utcnow(),
        )
        self.db.add(record)
        self.db.flush()
        return self._to_domain(record)

    def get(self, log_id: str) -> FieldLog:
        record = self.db.query(FieldLogRecord).filter(FieldLogRecord.id == log_id).first()
        if not record:
            raise NotFoundError("Field log", log_id)
        return self._to_domain(record)

    def list_by_farmer(self, farmer_id: str) -> List[FieldLog]:
        """Newest entries first"""
        records = (
            self.db.query(FieldLogRecord)
            .filter(FieldLogRecord.farmer_id == farmer_id)
            .order_by(FieldLogRecord.log_date.desc(), FieldLogRecord.created_at.desc())
            .all()
        )
        return [self._to_domain(r) for r in records]

    @staticmethod
    def _to_domain(record: FieldLogRecord) -> FieldLog:
        return FieldLog(
            id=record.id,
            farmer_id=record.farmer_id,
            loan_id=record.loan_id,
            crop_plot_id=record.crop_plot_id,
            log_date=record.log_date,
            activity=FieldLogActivity(record.activity),
            notes=record.notes,
            photo_file_name=record.photo_file_name,
            estimated_yield_kg=record.estimated_yield_kg,
            created_at=record.created_at,
        )


class ListingRepository:
    """Repository for produce listings"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, listing: ProduceListing) -> ProduceListing:
        record = ListingRecord()
        _copy_columns(listing, record, _LISTING_COLUMNS)
        self.db.add(record)
        self.db.flush()
        return self._to_domain(record)

    def get(self, listing_id: str) -> ProduceListing:
        return self._to_domain(self._record(listing_id))

    def get_for_update(self, listing_id: str) -> ProduceListing:
        return self._to_domain(self._record(listing_id, lock=True))

    def save(self, listing: ProduceListing) -> ProduceListing:
        record = self._record(listing.id)
        _copy_columns(listing, record, _LISTING_COLUMNS)
        self.db.flush()
        return self._to_domain(record)

    def list_by_farmer(self, farmer_id: str) -> List[ProduceListing]:
        records = (
            self.db.query(ListingRecord)
            .filter(ListingRecord.farmer_id == farmer_id)
            .order_by(ListingRecord.listing_date.desc())
            .all()
        )
        return [self._to_domain(r) for r in records]

    def list_by_status(self, statuses: Iterable[ListingStatus]) -> List[ProduceListing]:
        """Newest listings first"""
        values = [s.value for s in statuses]
        records = (
            self.db.query(ListingRecord)
            .filter(ListingRecord.status.in_(values))
            .order_by(ListingRecord.listing_date.desc())
            .all()
        )
        return [self._to_domain(r) for r in records]

    def _record(self, listing_id: str, lock: bool = False) -> ListingRecord:
        query = self.db.query(ListingRecord).filter(ListingRecord.id == listing_id)
        if lock:
            query = query.with_for_update().populate_existing()
        record = query.first()
        if not record:
            raise NotFoundError("Listing", listing_id)
        return record

    @staticmethod
    def _to_domain(record: ListingRecord) -> ProduceListing:
        values = {name: getattr(record, name) for name in _LISTING_COLUMNS}
        values["crop_type"] = CropType(record.crop_type)
        values["quality_grade"] = QualityGrade(record.quality_grade)
        values["status"] = ListingStatus(record.status)
        return ProduceListing(id=record.id, **values)


class NegotiationRepository:
    """Repository for negotiations and their message transcripts"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, negotiation: Negotiation) -> Negotiation:
        record = NegotiationRecord()
        _copy_columns(negotiation, record, _NEGOTIATION_COLUMNS)
        self._append_new_messages(record, negotiation)
        self.db.add(record)
        self.db.flush()
        return self._to_domain(record)

    def get(self, negotiation_id: str) -> Negotiation:
        return self._to_domain(self._record(negotiation_id))

    def get_for_update(self, negotiation_id: str) -> Negotiation:
        return self._to_domain(self._record(negotiation_id, lock=True))

    def save(self, negotiation: Negotiation) -> Negotiation:
        """Overwrite offer/status columns and append unsaved messages"""
        record = self._record(negotiation.id, fresh=True)
        _check_version(record, negotiation, "Negotiation")
        _copy_columns(negotiation, record, _NEGOTIATION_COLUMNS)
        self._append_new_messages(record, negotiation)
        self.db.flush()
        return self._to_domain(record)

    def list_by_listing(self, listing_id: str) -> List[Negotiation]:
        return self._list(NegotiationRecord.listing_id == listing_id)

    def list_by_buyer(self, buyer_id: str) -> List[Negotiation]:
        return self._list(NegotiationRecord.buyer_id == buyer_id)

    def list_by_farmer(self, farmer_id: str) -> List[Negotiation]:
        return self._list(NegotiationRecord.farmer_id == farmer_id)

    def _list(self, criterion) -> List[Negotiation]:
        """Most recently active first"""
        records = (
            self.db.query(NegotiationRecord)
            .filter(criterion)
            .order_by(NegotiationRecord.last_update.desc())
            .all()
        )
        return [self._to_domain(r) for r in records]

    def _record(self, negotiation_id: str, lock: bool = False, fresh: bool = False) -> NegotiationRecord:
        query = self.db.query(NegotiationRecord).filter(NegotiationRecord.id == negotiation_id)
        if lock:
            query = query.with_for_update()
        if lock or fresh:
            query = query.populate_existing()
        record = query.first()
        if not record:
            raise NotFoundError("Negotiation", negotiation_id)
        return record

    @staticmethod
    def _append_new_messages(record: NegotiationRecord, negotiation: Negotiation) -> None:
        for message in negotiation.messages:
            if message.id is None:
                record.messages.append(
                    ChatMessageRecord(
                        position=len(record.messages),
                        sender_id=message.sender_id,
                        sender_role=message.sender_role,
                        text=message.text,
                        is_system=message.is_system,
                        timestamp=message.timestamp,
                    )
                )

    @staticmethod
    def _to_domain(record: NegotiationRecord) -> Negotiation:
        values = {name: getattr(record, name) for name in _NEGOTIATION_COLUMNS}
        values["crop_type"] = CropType(record.crop_type)
        values["status"] = NegotiationStatus(record.status)
        return Negotiation(
            id=record.id,
            version=record.version,
            messages=[
                ChatMessage(
                    id=m.id,
                    sender_id=m.sender_id,
                    sender_role=m.sender_role,
                    text=m.text,
                    timestamp=m.timestamp,
                    is_system=m.is_system,
                )
                for m in record.messages
            ],
            **values,
        )
