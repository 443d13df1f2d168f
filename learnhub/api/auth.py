"""JSON auth endpoints for the SPA client.

register and login both return ``{token, user}``; the client keeps the
token and sends it as a bearer credential on every other call.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from learnhub.api.dependencies import get_user_repo, require_user
from learnhub.models.principal import Principal
from learnhub.models.user import User
from learnhub.repos.user_repo import UserRepo
from learnhub.services import auth_service, token_service
from learnhub.services.errors import (
    InvalidCredentialsError,
    InvalidRequestError,
    UserAlreadyExistsError,
    UserLookupError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str = ""
    password: str = ""


class RegisterIn(BaseModel):
    email: str = ""
    password: str = ""
    name: str = ""
    mobile: str | None = None


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    picture: str | None = None
    isAdmin: bool
    mobile: str | None = None


class AuthResponse(BaseModel):
    token: str
    user: UserOut


def _user_out(user: User) -> UserOut:
    return UserOut(
        id=str(user.id),
        email=user.email,
        name=user.name,
        picture=user.picture,
        isAdmin=user.is_admin,
        mobile=user.mobile,
    )


def _auth_response(user: User) -> AuthResponse:
    token = token_service.create_access_token(sub=str(user.id), is_admin=user.is_admin)
    return AuthResponse(token=token, user=_user_out(user))


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterIn,
    users: Annotated[UserRepo, Depends(get_user_repo)],
) -> AuthResponse:
    try:
        user = await auth_service.register_user(
            users,
            email=payload.email,
            password=payload.password,
            name=payload.name,
            mobile=payload.mobile,
        )
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except UserAlreadyExistsError:
        raise HTTPException(status_code=400, detail="User already exists") from None

    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginIn,
    users: Annotated[UserRepo, Depends(get_user_repo)],
) -> AuthResponse:
    try:
        user = await auth_service.authenticate_user(
            users, payload.email, payload.password
        )
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except InvalidCredentialsError:
        logger.warning("Login failed  email=%s", payload.email.strip().lower())
        raise HTTPException(status_code=400, detail="Invalid credentials") from None
    except UserLookupError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        ) from None

    logger.info("Login succeeded  user_id=%s", user.id)
    return _auth_response(user)


@router.get("/me", response_model=UserOut)
async def me(
    principal: Annotated[Principal, Depends(require_user)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
) -> UserOut:
    user = await users.get_by_id(principal.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _user_out(user)
