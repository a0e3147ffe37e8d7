"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from agriloan_gateway.domain.models import (
    AdminAction,
    CropType,
    FieldLogActivity,
    ListingStatus,
    LoanStatus,
    NegotiationStatus,
    OfficerAction,
    QualityGrade,
    UserRole,
)


# Users


class UserCreateRequest(BaseModel):
    """Request body for POST /v1/users"""

    contact: str = Field(..., min_length=1, description="Email or phone number")
    role: UserRole
    full_name: str = Field(..., min_length=1)
    entity_name: Optional[str] = Field(None, description="Farm, bank or company name")


class UserUpdateRequest(BaseModel):
    """Request body for PATCH /v1/users/{user_id}; role cannot be changed"""

    full_name: Optional[str] = None
    entity_name: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    contact: str
    role: UserRole
    full_name: str
    entity_name: Optional[str] = None


class UserListResponse(BaseModel):
    users: List[UserResponse]


# Loans


class LoanApplicationRequest(BaseModel):
    """Request body for POST /v1/loans"""

    farmer_id: str = Field(..., min_length=1)
    farm_size_acres: float
    crop_type: CropType
    other_crop_type: Optional[str] = None
    input_needs: str
    requested_amount: int = Field(..., description="Requested amount in naira")
    expected_harvest_date: Optional[date] = None


class AdminDecisionRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/admin-decision"""

    reviewer_id: str = Field(..., min_length=1)
    action: AdminAction
    pre_approved_amount: Optional[int] = None
    comments: Optional[str] = None


class OfficerDecisionRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/officer-decision"""

    officer_id: str = Field(..., min_length=1)
    action: OfficerAction
    approved_amount: Optional[int] = None
    repayment_due_date: Optional[date] = None
    comments: Optional[str] = None


class DisbursementRequest(BaseModel):
    officer_id: str = Field(..., min_length=1)


class RepaymentRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/repayments"""

    amount: int
    user_id: str = Field(..., min_length=1, description="User recording the payment")
    paid_on: Optional[date] = Field(None, description="Defaults to today")


class RepaymentSchema(BaseModel):
    id: str
    paid_on: date
    amount: int
    recorded_by: Optional[str] = None


class RepaymentResponse(RepaymentSchema):
    """Response for POST /v1/loans/{loan_id}/repayments"""

    loan_id: str
    loan_status: LoanStatus
    remaining_balance: int


class LoanResponse(BaseModel):
    id: str
    farmer_id: str
    farmer_name: str
    farm_size_acres: float
    crop_type: CropType
    other_crop_type: Optional[str] = None
    input_needs: str
    requested_amount: int
    application_date: datetime
    expected_harvest_date: Optional[date] = None
    status: LoanStatus
    effective_status: LoanStatus
    admin_reviewer_id: Optional[str] = None
    admin_reviewer_name: Optional[str] = None
    admin_review_date: Optional[datetime] = None
    admin_comments: Optional[str] = None
    pre_approved_amount: Optional[int] = None
    officer_id: Optional[str] = None
    officer_name: Optional[str] = None
    officer_comments: Optional[str] = None
    approved_amount: Optional[int] = None
    repayment_due_date: Optional[date] = None
    disbursement_date: Optional[date] = None
    total_repaid: int
    remaining_balance: int
    due_soon: bool
    repayments: List[RepaymentSchema]


class LoanListResponse(BaseModel):
    loans: List[LoanResponse]


class PortfolioResponse(BaseModel):
    """Response for GET /v1/loans/portfolio"""

    as_of: date
    total_applications: int
    pending_admin_review: int
    pending_bank_approval: int
    approved: int
    rejected: int
    repaid: int
    total_disbursed: int
    total_repaid: int
    recovery_rate: float
    overdue_count: int
    overdue_amount: int


class SweepResponse(BaseModel):
    """Response for POST /v1/loans/overdue-sweep"""

    as_of: date
    swept_loan_ids: List[str]


# Field logs


class FieldLogRequest(BaseModel):
    """Request body for POST /v1/field-logs"""

    farmer_id: str = Field(..., min_length=1)
    crop_plot_id: str
    log_date: date
    activity: FieldLogActivity
    notes: str
    loan_id: Optional[str] = None
    estimated_yield_kg: Optional[float] = None
    photo_file_name: Optional[str] = Field(None, description="File name reference only")


class FieldLogResponse(BaseModel):
    id: str
    farmer_id: str
    loan_id: Optional[str] = None
    crop_plot_id: str
    log_date: date
    activity: FieldLogActivity
    notes: str
    estimated_yield_kg: Optional[float] = None
    photo_file_name: Optional[str] = None


class FieldLogListResponse(BaseModel):
    farmer_id: str
    field_logs: List[FieldLogResponse]


class AdviceResponse(BaseModel):
    field_log_id: str
    advice: str


# Marketplace


class ListingRequest(BaseModel):
    """Request body for POST /v1/listings"""

    farmer_id: str = Field(..., min_length=1)
    crop_type: CropType
    other_crop_type: Optional[str] = None
    quantity_kg: float
    quality_grade: QualityGrade
    price_per_kg: int
    description: Optional[str] = None
    photo_file_name: Optional[str] = None


class ListingCancelRequest(BaseModel):
    farmer_id: str = Field(..., min_length=1)


class ListingResponse(BaseModel):
    id: str
    farmer_id: str
    farmer_name: str
    crop_type: CropType
    other_crop_type: Optional[str] = None
    quantity_kg: float
    quality_grade: QualityGrade
    price_per_kg: int
    listing_date: datetime
    status: ListingStatus
    description: Optional[str] = None
    photo_file_name: Optional[str] = None


class ListingListResponse(BaseModel):
    listings: List[ListingResponse]


class NegotiationStartRequest(BaseModel):
    """Request body for POST /v1/negotiations"""

    listing_id: str = Field(..., min_length=1)
    buyer_id: str = Field(..., min_length=1)


class OfferRequest(BaseModel):
    actor_id: str = Field(..., min_length=1)
    price_per_kg: int
    quantity_kg: float


class ActorRequest(BaseModel):
    """Body for accept, decline, order and cancel actions"""

    actor_id: str = Field(..., min_length=1)


class MessageRequest(BaseModel):
    sender_id: str = Field(..., min_length=1)
    text: str


class ChatMessageSchema(BaseModel):
    id: str
    sender_id: str
    sender_role: str
    text: str
    timestamp: datetime
    is_system: bool


class NegotiationResponse(BaseModel):
    id: str
    listing_id: str
    buyer_id: str
    buyer_name: str
    farmer_id: str
    farmer_name: str
    crop_type: CropType
    status: NegotiationStatus
    current_offer_price_per_kg: Optional[int] = None
    current_offer_quantity_kg: Optional[float] = None
    current_offer_by: Optional[str] = None
    order_total: Optional[float] = None
    last_update: datetime
    messages: List[ChatMessageSchema]


class NegotiationListResponse(BaseModel):
    negotiations: List[NegotiationResponse]
