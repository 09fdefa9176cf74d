"""
Staff account endpoints. Thin router over StaffService.
"""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.schemas import StaffCreate, StaffOutput
from rest_api.routers._common import get_user_id, require_management, resolve_restaurant_id
from rest_api.services.domain import StaffService
from rest_api.services.domain.staff_service import staff_output


router = APIRouter(tags=["admin-staff"])


class StaffActiveUpdate(BaseModel):
    is_active: bool


@router.get("/staff", response_model=list[StaffOutput])
def list_staff(
    restaurant_id: int | None = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> list[StaffOutput]:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    users = StaffService(db).list_all(restaurant_id, include_inactive=include_inactive)
    return [staff_output(u) for u in users]


@router.post("/staff", response_model=StaffOutput, status_code=status.HTTP_201_CREATED)
def create_staff(
    body: StaffCreate,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> StaffOutput:
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    return staff_output(StaffService(db).create(restaurant_id, body))


@router.patch("/staff/{user_id}", response_model=StaffOutput)
def set_staff_active(
    user_id: int,
    body: StaffActiveUpdate,
    restaurant_id: int | None = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_management),
) -> StaffOutput:
    """Enable or disable a login. Owners cannot disable themselves."""
    restaurant_id = resolve_restaurant_id(user, restaurant_id)
    staff = StaffService(db).set_active(
        restaurant_id, user_id, body.is_active, requesting_user_id=get_user_id(user)
    )
    return staff_output(staff)
