"""User record endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rate_insights.crud import create_user, get_user_by_email, get_users
from rate_insights.database import get_db
from rate_insights.errors import StorageError
from rate_insights.models import UserCreate, UserData, UserListMessage, UserMessage
from rate_insights.routing import TemplatedRoute

router = APIRouter(tags=["users"], route_class=TemplatedRoute)


@router.get("/auth/{email}", response_model=UserMessage, response_model_exclude_none=True)
def user_info(email: str, db: Session = Depends(get_db)) -> UserMessage:
    """
    Look up a user by email.

    Path parameters:
    - **email**: Email address of the user

    Returns:
        The user's name and email; an unknown email answers 200 with
        status "fail"
    """
    try:
        user = get_user_by_email(db, email)
    except SQLAlchemyError as e:
        raise StorageError(f"Retrieval error: failed to retrieve user: {e}") from e

    if user is None:
        return UserMessage(status="fail", message="User not found")

    return UserMessage(status="success", data=UserData.model_validate(user))


@router.get("/users", response_model=UserListMessage, response_model_exclude_none=True)
def list_users(db: Session = Depends(get_db)) -> UserListMessage:
    """List all users."""
    try:
        users = get_users(db)
    except SQLAlchemyError as e:
        raise StorageError(f"Retrieval error: failed to retrieve users: {e}") from e

    return UserListMessage(
        status="success",
        data=[UserData.model_validate(user) for user in users],
    )


@router.post(
    "/create",
    response_model=UserMessage,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def create_user_record(payload: UserCreate, db: Session = Depends(get_db)) -> UserMessage:
    """
    Create a user.

    Body:
    - **name**: Display name
    - **email**: Unique email address

    Returns:
        The created user (201)

    Raises:
        400: Validation failure or duplicate email
    """
    try:
        user = create_user(db, name=payload.name, email=payload.email)
    except SQLAlchemyError as e:
        raise StorageError(f"Creation error: failed to create user: {e}") from e

    return UserMessage(status="success", data=UserData.model_validate(user))
