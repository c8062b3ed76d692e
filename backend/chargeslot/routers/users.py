# backend/chargeslot/routers/users.py

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import Users as DBUsers
from ..schemas.users import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    x_user_id: Optional[int] = Header(None),
    db: Session = Depends(get_db),
):
    """
    Register a user.

    Admins can only be created by another admin, except for the very first
    one (bootstrap).
    """
    if data.role == "admin":
        has_admin = db.query(DBUsers.id).filter(DBUsers.role == "admin").first() is not None
        caller = db.get(DBUsers, x_user_id) if x_user_id is not None else None
        if has_admin and (caller is None or caller.role != "admin"):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin access required",
            )

    if data.email and db.query(DBUsers.id).filter(DBUsers.email == data.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    obj = DBUsers(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.get("/me", response_model=UserRead)
def get_me(user: DBUsers = Depends(get_current_user)):
    return user


@router.put("/me", response_model=UserRead)
def update_me(
    data: UserUpdate,
    user: DBUsers = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)

    email = changes.get("email")
    if email and email != user.email:
        taken = (
            db.query(DBUsers.id)
            .filter(DBUsers.email == email, DBUsers.id != user.id)
            .first()
        )
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered",
            )

    if "name" in changes and not changes["name"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name cannot be empty",
        )

    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user
