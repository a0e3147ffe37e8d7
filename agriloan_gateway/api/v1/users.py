"""User registration and profile endpoints"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agriloan_gateway.api.v1.schemas import (
    UserCreateRequest,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
)
from agriloan_gateway.infrastructure.database.session import get_db
from agriloan_gateway.infrastructure.database.repositories import UserRepository
from agriloan_gateway.domain.models import UserRole
from agriloan_gateway.domain.users import register_user, update_profile

router = APIRouter()


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(request_body: UserCreateRequest, db: Session = Depends(get_db)):
    """Register a farmer, bank officer, buyer or admin"""
    user = register_user(
        contact=request_body.contact,
        role=request_body.role,
        full_name=request_body.full_name,
        entity_name=request_body.entity_name,
    )
    saved = UserRepository(db).add(user)
    db.commit()
    return UserResponse(**asdict(saved))


@router.get("/users", response_model=UserListResponse)
def list_users(role: UserRole = Query(..., description="e.g. BANK_OFFICER"), db: Session = Depends(get_db)):
    """Directory of users holding one role, by name"""
    return UserListResponse(users=[UserResponse(**asdict(u)) for u in UserRepository(db).list_by_role(role)])


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    return UserResponse(**asdict(UserRepository(db).get(user_id)))


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(user_id: str, request_body: UserUpdateRequest, db: Session = Depends(get_db)):
    """
    Edit display details.

    Names already copied onto loans, listings and negotiations are not
    rewritten.
    """
    repo = UserRepository(db)
    user = update_profile(repo.get(user_id), request_body.full_name, request_body.entity_name)
    saved = repo.save(user)
    db.commit()
    return UserResponse(**asdict(saved))
