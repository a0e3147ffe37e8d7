"""Field log endpoints and on-demand advice for a log entry"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agriloan_gateway.api.v1.schemas import (
    AdviceResponse,
    FieldLogListResponse,
    FieldLogRequest,
    FieldLogResponse,
)
from agriloan_gateway.api.dependencies import get_advice_client
from agriloan_gateway.infrastructure.clients.advice import AdviceClient
from agriloan_gateway.infrastructure.database.session import get_db
from agriloan_gateway.infrastructure.database.repositories import (
    FieldLogRepository,
    LoanRepository,
    UserRepository,
)
from agriloan_gateway.infrastructure.observability.metrics import advice_failure_counter
from agriloan_gateway.domain.exceptions import AdviceServiceError
from agriloan_gateway.domain.field_logs import build_advice_prompt, record_field_log

router = APIRouter()


def _to_response(log) -> FieldLogResponse:
    values = asdict(log)
    values.pop("created_at", None)
    return FieldLogResponse(**values)


@router.post("/field-logs", response_model=FieldLogResponse, status_code=201)
def create_field_log(request_body: FieldLogRequest, db: Session = Depends(get_db)):
    farmer = UserRepository(db).get(request_body.farmer_id)
    loan = LoanRepository(db).get(request_body.loan_id) if request_body.loan_id else None
    log = record_field_log(
        farmer,
        crop_plot_id=request_body.crop_plot_id,
        log_date=request_body.log_date,
        activity=request_body.activity,
        notes=request_body.notes,
        loan=loan,
        estimated_yield_kg=request_body.estimated_yield_kg,
        photo_file_name=request_body.photo_file_name,
    )
    saved = FieldLogRepository(db).add(log)
    db.commit()
    return _to_response(saved)


@router.get("/field-logs", response_model=FieldLogListResponse)
def list_field_logs(farmer_id: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    logs = FieldLogRepository(db).list_by_farmer(farmer_id)
    return FieldLogListResponse(farmer_id=farmer_id, field_logs=[_to_response(l) for l in logs])


@router.post("/field-logs/{log_id}/advice", response_model=AdviceResponse)
async def get_field_log_advice(
    log_id: str,
    db: Session = Depends(get_db),
    advice_client: AdviceClient = Depends(get_advice_client),
):
    """
    Ask the advice service about a field log entry.

    Nothing is persisted; a failing advice service surfaces as 503 and is
    logged once by the app-level handler.
    """
    log = FieldLogRepository(db).get(log_id)
    loan = LoanRepository(db).get(log.loan_id) if log.loan_id else None

    try:
        advice = await advice_client.get_advice(build_advice_prompt(log, loan))
    except AdviceServiceError:
        advice_failure_counter.inc()
        raise

    return AdviceResponse(field_log_id=log_id, advice=advice)
