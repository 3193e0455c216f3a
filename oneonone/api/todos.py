"""
Todo API endpoints - action items assigned during and after one-on-ones
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import List, Optional
from datetime import date, datetime
from pydantic import BaseModel

from oneonone.database import get_db
from oneonone.models.user import User, UserRole
from oneonone.models.todo import TodoItem, TodoPriority, TodoStatus
from oneonone.api.auth import get_current_user
from oneonone.api.deps import get_meeting_or_404
from oneonone.api.meetings import UserSummary
from oneonone.services.access import can_access_record, can_view_meeting, is_admin
from oneonone.services.effects import Effects, get_effects
from oneonone.utils.helpers import utcnow

router = APIRouter()


# --- Pydantic Schemas ---

class TodoResponse(BaseModel):
    id: int
    meeting_id: Optional[int]
    assigned_to_id: int
    created_by_id: int
    assigned_to: Optional[UserSummary]
    created_by: Optional[UserSummary]
    title: str
    description: Optional[str]
    priority: TodoPriority
    status: TodoStatus
    due_date: Optional[date]
    completed_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    is_overdue: bool = False

    class Config:
        from_attributes = True


class TodoCreate(BaseModel):
    title: str
    description: Optional[str] = None
    assigned_to_id: Optional[int] = None
    meeting_id: Optional[int] = None
    priority: TodoPriority = TodoPriority.MEDIUM
    due_date: Optional[date] = None


class TodoUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    assigned_to_id: Optional[int] = None
    priority: Optional[TodoPriority] = None
    status: Optional[TodoStatus] = None
    due_date: Optional[date] = None


# --- Helpers ---

def _build_todo_response(t: TodoItem) -> TodoResponse:
    response = TodoResponse.model_validate(t)
    response.is_overdue = (
        t.due_date is not None
        and t.status != TodoStatus.DONE
        and t.due_date < utcnow().date()
    )
    return response


async def _get_todo_or_404(db: AsyncSession, todo_id: int) -> TodoItem:
    result = await db.execute(
        select(TodoItem).where(TodoItem.id == todo_id).execution_options(populate_existing=True)
    )
    todo = result.unique().scalar_one_or_none()
    if not todo:
        raise HTTPException(status_code=404, detail="Todo not found")
    return todo


async def _resolve_assignee(db: AsyncSession, current_user: User, assignee_id: int) -> User:
    """Self, anyone whose records the caller may access, or the caller's own manager"""
    if assignee_id == current_user.id:
        return current_user
    assignee = await db.get(User, assignee_id)
    if not assignee or not assignee.is_active:
        raise HTTPException(status_code=404, detail="Assignee not found")
    allowed = (
        can_access_record(current_user.role, current_user.id, assignee.id, assignee.reports_to_id)
        or assignee.id == current_user.reports_to_id
    )
    if not allowed:
        raise HTTPException(status_code=403, detail="You cannot assign tasks to this user")
    return assignee


def _can_see(user: User, todo: TodoItem) -> bool:
    return is_admin(user) or user.id in (todo.assigned_to_id, todo.created_by_id)


# --- Endpoints ---

@router.get("/", response_model=List[TodoResponse])
async def list_todos(
    status: Optional[TodoStatus] = None,
    priority: Optional[TodoPriority] = None,
    meeting_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Employees see todos assigned to them, reporters the ones they created or
    were assigned, administrators everything
    """
    query = select(TodoItem).order_by(TodoItem.status, TodoItem.due_date.asc().nullslast())

    if current_user.role == UserRole.EMPLOYEE:
        query = query.where(TodoItem.assigned_to_id == current_user.id)
    elif current_user.role == UserRole.REPORTER:
        query = query.where(or_(
            TodoItem.created_by_id == current_user.id,
            TodoItem.assigned_to_id == current_user.id
        ))

    if status:
        query = query.where(TodoItem.status == status)
    if priority:
        query = query.where(TodoItem.priority == priority)
    if meeting_id is not None:
        query = query.where(TodoItem.meeting_id == meeting_id)

    result = await db.execute(query)
    todos = result.unique().scalars().all()
    return [_build_todo_response(t) for t in todos]


@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(
    todo_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    todo = await _get_todo_or_404(db, todo_id)
    if not _can_see(current_user, todo):
        raise HTTPException(status_code=404, detail="Todo not found")
    return _build_todo_response(todo)


@router.post("/", response_model=TodoResponse)
async def create_todo(
    data: TodoCreate,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Create a todo; defaults to the caller as assignee"""
    if not data.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")

    assignee = await _resolve_assignee(db, current_user, data.assigned_to_id or current_user.id)

    if data.meeting_id is not None:
        meeting = await get_meeting_or_404(db, data.meeting_id)
        if not can_view_meeting(current_user, meeting):
            raise HTTPException(status_code=403, detail="Unauthorized")

    todo = TodoItem(
        title=data.title.strip(),
        description=data.description,
        meeting_id=data.meeting_id,
        assigned_to_id=assignee.id,
        created_by_id=current_user.id,
        priority=data.priority,
        status=TodoStatus.NOT_STARTED,
        due_date=data.due_date,
    )
    db.add(todo)
    await db.commit()
    todo = await _get_todo_or_404(db, todo.id)

    if assignee.id != current_user.id:
        await effects.todo_assigned(todo, current_user, assignee)

    return _build_todo_response(todo)


@router.patch("/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: int,
    data: TodoUpdate,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Creator or administrator edits anything; the assignee may only move the status"""
    todo = await _get_todo_or_404(db, todo_id)
    if not _can_see(current_user, todo):
        raise HTTPException(status_code=404, detail="Todo not found")

    updates = data.model_dump(exclude_unset=True)
    is_owner = is_admin(current_user) or todo.created_by_id == current_user.id
    if not is_owner and set(updates) - {"status"}:
        raise HTTPException(status_code=403, detail="Only the creator can edit this todo")

    new_assignee = None
    if updates.get("assigned_to_id") and updates["assigned_to_id"] != todo.assigned_to_id:
        new_assignee = await _resolve_assignee(db, current_user, updates["assigned_to_id"])
    elif "assigned_to_id" in updates:
        updates.pop("assigned_to_id")

    if "title" in updates:
        if not (updates["title"] or "").strip():
            raise HTTPException(status_code=400, detail="Title is required")
        updates["title"] = updates["title"].strip()

    # Auto-set completed_at when marking done
    new_status = updates.get("status")
    if new_status == TodoStatus.DONE and todo.status != TodoStatus.DONE:
        updates["completed_at"] = utcnow()
    elif new_status and new_status != TodoStatus.DONE:
        updates["completed_at"] = None
    elif "status" in updates and new_status is None:
        updates.pop("status")

    # priority is NOT NULL; an explicit null leaves it unchanged
    if "priority" in updates and updates["priority"] is None:
        updates.pop("priority")

    for key, value in updates.items():
        setattr(todo, key, value)

    await db.commit()
    todo = await _get_todo_or_404(db, todo.id)

    if new_assignee and new_assignee.id != current_user.id:
        await effects.todo_assigned(todo, current_user, new_assignee)

    return _build_todo_response(todo)


@router.delete("/{todo_id}")
async def delete_todo(
    todo_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Creator or administrator only"""
    todo = await _get_todo_or_404(db, todo_id)
    if not _can_see(current_user, todo):
        raise HTTPException(status_code=404, detail="Todo not found")
    if not is_admin(current_user) and todo.created_by_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only the creator can delete this todo")

    await db.delete(todo)
    await db.commit()
    return {"message": "Todo deleted"}
