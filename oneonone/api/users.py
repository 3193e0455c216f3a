"""
User API endpoints - directory scoped by role, account administration for administrators
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import List, Optional
from pydantic import BaseModel, field_validator

from oneonone.database import get_db
from oneonone.models.user import User, UserRole
from oneonone.api.auth import UserResponse, get_current_user, get_password_hash, require_roles
from oneonone.services.access import can_access_record
from oneonone.utils.validators import validate_time_of_day, validate_time_zone

router = APIRouter()
logger = logging.getLogger(__name__)


class UserCreate(BaseModel):
    email: str
    name: str
    password: str
    role: UserRole = UserRole.EMPLOYEE
    reports_to_id: Optional[int] = None
    time_zone: Optional[str] = None
    work_day_start: Optional[str] = None
    work_day_end: Optional[str] = None

    @field_validator("time_zone")
    @classmethod
    def check_zone(cls, v):
        return validate_time_zone(v)

    @field_validator("work_day_start", "work_day_end")
    @classmethod
    def check_hours(cls, v):
        return v if v is None else validate_time_of_day(v)


class UserUpdate(BaseModel):
    """Omitted fields are left alone; null clears the nullable ones"""
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[UserRole] = None
    reports_to_id: Optional[int] = None
    is_active: Optional[bool] = None
    time_zone: Optional[str] = None
    work_day_start: Optional[str] = None
    work_day_end: Optional[str] = None

    @field_validator("time_zone")
    @classmethod
    def check_zone(cls, v):
        return validate_time_zone(v)

    @field_validator("work_day_start", "work_day_end")
    @classmethod
    def check_hours(cls, v):
        return v if v is None else validate_time_of_day(v)


# Columns that cannot be cleared; a null for them is ignored
REQUIRED_FIELDS = {"email", "name", "role", "is_active"}


async def _check_manager(db: AsyncSession, user_id: int, manager_id: int) -> User:
    """The new manager must exist and must not sit below the user in the reporting chain"""
    if manager_id == user_id:
        raise HTTPException(status_code=400, detail="A user cannot report to themselves")

    manager = await db.get(User, manager_id)
    if not manager:
        raise HTTPException(status_code=404, detail="Manager not found")

    seen = set()
    current = manager
    while current is not None and current.reports_to_id is not None and current.id not in seen:
        if current.reports_to_id == user_id:
            raise HTTPException(status_code=400, detail="Cannot assign manager who reports to this user")
        seen.add(current.id)
        current = await db.get(User, current.reports_to_id)
    return manager


@router.get("/", response_model=List[UserResponse])
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Admins see everyone, reporters themselves plus direct reports, employees themselves"""
    query = select(User).order_by(User.name)
    if current_user.role == UserRole.REPORTER:
        query = query.where(or_(User.id == current_user.id, User.reports_to_id == current_user.id))
    elif current_user.role == UserRole.EMPLOYEE:
        query = query.where(User.id == current_user.id)

    result = await db.execute(query)
    return [UserResponse.model_validate(u) for u in result.scalars().all()]


@router.post("/", response_model=UserResponse)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN))
):
    existing = await db.execute(select(User).where(User.email == data.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="A user with this email already exists")

    if data.reports_to_id is not None:
        manager = await db.get(User, data.reports_to_id)
        if not manager:
            raise HTTPException(status_code=404, detail="Manager not found")

    user = User(
        email=data.email,
        name=data.name,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        reports_to_id=data.reports_to_id,
        time_zone=data.time_zone,
        work_day_start=data.work_day_start,
        work_day_end=data.work_day_end,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not can_access_record(current_user.role, current_user.id, user.id, user.reports_to_id):
        raise HTTPException(status_code=403, detail="Unauthorized")
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN))
):
    """Change role, manager, activity, time zone or working hours"""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    updates = {
        key: value for key, value in data.model_dump(exclude_unset=True).items()
        if value is not None or key not in REQUIRED_FIELDS
    }

    if "email" in updates and updates["email"] != user.email:
        existing = await db.execute(select(User).where(User.email == updates["email"]))
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=400, detail="Email already in use")

    if updates.get("reports_to_id") is not None:
        await _check_manager(db, user.id, updates["reports_to_id"])

    if updates.get("is_active") is False and user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    for key, value in updates.items():
        setattr(user, key, value)

    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user.id} updated by {current_user.id}: {sorted(updates)}")
    return UserResponse.model_validate(user)


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN))
):
    """Soft delete; the account keeps its meeting history but can no longer sign in"""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    user.is_active = False
    await db.commit()
    logger.info(f"User {user.id} deactivated by {current_user.id}")
    return {"message": "User deactivated"}
