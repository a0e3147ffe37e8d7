"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

# Reserved sender for automatically generated chat entries
SYSTEM_SENDER_ID = "system"
SYSTEM_SENDER_ROLE = "SYSTEM"


class UserRole(str, Enum):
    FARMER = "FARMER"
    BANK_OFFICER = "BANK_OFFICER"
    BUYER = "BUYER"
    ADMIN = "ADMIN"


class LoanStatus(str, Enum):
    PENDING_ADMIN_REVIEW = "PENDING_ADMIN_REVIEW"
    PENDING_BANK_APPROVAL = "PENDING_BANK_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ACTIVE = "ACTIVE"  # Disbursed
    REPAID = "REPAID"
    OVERDUE = "OVERDUE"


class AdminAction(str, Enum):
    FORWARD = "FORWARD"
    REJECT = "REJECT"


class OfficerAction(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class CropType(str, Enum):
    MAIZE = "Maize"
    RICE = "Rice"
    CASSAVA = "Cassava"
    YAM = "Yam"
    TOMATOES = "Tomatoes"
    PEPPER = "Pepper"
    GROUNDNUT = "Groundnut"
    SORGHUM = "Sorghum"
    COWPEA = "Cowpea"
    OTHER = "Other"


class FieldLogActivity(str, Enum):
    PLANTING = "Planting"
    WEEDING = "Weeding"
    FERTILIZING = "Fertilizing"
    PEST_CONTROL = "Pest Control"
    WATERING = "Watering"
    OBSERVATION = "Observation"
    HARVEST_PREPARATION = "Harvest Preparation"
    HARVESTING = "Harvesting"


class QualityGrade(str, Enum):
    A = "Grade A (Premium)"
    B = "Grade B (Good)"
    C = "Grade C (Fair)"


class ListingStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    NEGOTIATING = "NEGOTIATING"
    SOLD = "SOLD"
    CANCELLED = "CANCELLED"


class NegotiationStatus(str, Enum):
    PENDING_BUYER = "PENDING_BUYER"  # Buyer acts next
    PENDING_FARMER = "PENDING_FARMER"  # Farmer acts next
    AGREED = "AGREED"
    ORDER_PLACED = "ORDER_PLACED"
    CANCELLED_BY_FARMER = "CANCELLED_BY_FARMER"
    CANCELLED_BY_BUYER = "CANCELLED_BY_BUYER"


@dataclass
class User:
    """Registered actor; role is fixed at registration"""

    id: Optional[str]
    contact: str  # email or phone, used as username
    role: UserRole
    full_name: str
    entity_name: Optional[str] = None  # farm, bank or company name
    created_at: Optional[datetime] = None


@dataclass
class Repayment:
    """Single payment against a loan; never mutated once recorded"""

    id: Optional[str]
    paid_on: date
    amount: int
    recorded_by: Optional[str] = None


@dataclass
class LoanApplication:
    """One farmer's funding request for one planting cycle"""

    id: Optional[str]
    farmer_id: str
    farmer_name: str  # snapshot at submission
    farm_size_acres: float
    crop_type: CropType
    input_needs: str
    requested_amount: int
    application_date: datetime
    status: LoanStatus
    expected_harvest_date: Optional[date] = None
    other_crop_type: Optional[str] = None

    # Admin review
    admin_reviewer_id: Optional[str] = None
    admin_reviewer_name: Optional[str] = None
    admin_review_date: Optional[datetime] = None
    admin_comments: Optional[str] = None
    pre_approved_amount: Optional[int] = None

    # Bank officer decision
    officer_id: Optional[str] = None
    officer_name: Optional[str] = None
    officer_comments: Optional[str] = None
    approved_amount: Optional[int] = None
    repayment_due_date: Optional[date] = None
    disbursement_date: Optional[date] = None

    repayments: List[Repayment] = field(default_factory=list)
    version: Optional[int] = None  # row version this snapshot was read at


@dataclass
class FieldLog:
    """Farmer's record of an activity on a plot"""

    id: Optional[str]
    farmer_id: str
    crop_plot_id: str  # e.g. "Maize Plot 1"
    log_date: date
    activity: FieldLogActivity
    notes: str
    loan_id: Optional[str] = None
    photo_file_name: Optional[str] = None  # reference only, no upload
    estimated_yield_kg: Optional[float] = None
    created_at: Optional[datetime] = None


@dataclass
class ProduceListing:
    """A farmer's sellable lot"""

    id: Optional[str]
    farmer_id: str
    farmer_name: str  # snapshot at listing
    crop_type: CropType
    quantity_kg: float
    quality_grade: QualityGrade
    price_per_kg: int
    listing_date: datetime
    status: ListingStatus = ListingStatus.AVAILABLE
    other_crop_type: Optional[str] = None
    description: Optional[str] = None
    photo_file_name: Optional[str] = None


@dataclass
class ChatMessage:
    """Entry in a negotiation transcript; insertion order is significant"""

    id: Optional[str]
    sender_id: str
    sender_role: str  # UserRole value or SYSTEM_SENDER_ROLE
    text: str
    timestamp: datetime
    is_system: bool = False


@dataclass
class Negotiation:
    """Bilateral offer exchange between one buyer and one farmer over one listing"""

    id: Optional[str]
    listing_id: str
    buyer_id: str
    buyer_name: str
    farmer_id: str
    farmer_name: str
    crop_type: CropType
    status: NegotiationStatus
    last_update: datetime
    current_offer_price_per_kg: Optional[int] = None
    current_offer_quantity_kg: Optional[float] = None
    current_offer_by: Optional[str] = None  # None for seeded listing terms
    messages: List[ChatMessage] = field(default_factory=list)
    version: Optional[int] = None


@dataclass
class PortfolioSummary:
    """Bank dashboard statistics over a set of loans"""

    total_applications: int
    pending_admin_review: int
    pending_bank_approval: int
    approved: int  # APPROVED or ACTIVE
    rejected: int
    repaid: int
    total_disbursed: int
    total_repaid: int
    recovery_rate: float  # percent of disbursed value repaid
    overdue_count: int
    overdue_amount: int
