"""
Authentication API Routes

Registration with admin approval, login, profile details, password change
and password reset.
"""

from datetime import datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from mentemerecedora.api.dependencies import (
    Settings,
    get_app_settings,
    get_current_user,
    get_user_repository,
)
from mentemerecedora.api.middleware import (
    DuplicateError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from mentemerecedora.api.schemas import (
    AuthResponse,
    DataResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UpdateDetailsRequest,
    UpdatePasswordRequest,
    UserResponse,
)
from mentemerecedora.security import (
    RESET_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    generate_reset_token,
    get_password_hash,
    hash_reset_token,
    verify_password,
)
from mentemerecedora.storage.models import UserStatus
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/auth", tags=["auth"])


def issue_token(user: StoredUser, settings: Settings) -> str:
    """Signed access token for a user."""
    return create_access_token(
        data={"sub": user.id},
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=settings.jwt_expire_minutes),
    )


def authenticate(email: str, password: str, repo) -> StoredUser:
    """
    Check credentials and account status.

    Raises:
        UnauthorizedError: Unknown email or wrong password
        ForbiddenError: Account pending or deactivated
    """
    user = repo.get_by_email(email)
    if not user or not verify_password(password, user.hashed_password):
        logger.warning(f"Failed login for {email}")
        raise UnauthorizedError("Credenciais inválidas")

    if user.status == UserStatus.PENDING.value:
        raise ForbiddenError("Sua conta está aguardando aprovação do administrador")
    if user.status != UserStatus.APPROVED.value:
        raise ForbiddenError("Sua conta está desativada. Entre em contato com o administrador")

    return user


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    repo=Depends(get_user_repository),
):
    """Create a pending account; an admin must approve it before login."""
    if repo.email_exists(payload.email):
        raise DuplicateError("Este email já está cadastrado")

    user = repo.create(
        name=payload.name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
    )
    logger.info(f"Registration pending approval: {user.email}")

    return MessageResponse(
        message="Cadastro realizado com sucesso! Aguarde a aprovação do administrador para acessar o portal.",
        data={"id": user.id, "email": user.email, "status": user.status},
    )


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    repo=Depends(get_user_repository),
    settings: Settings = Depends(get_app_settings),
):
    user = authenticate(payload.email, payload.password, repo)
    logger.info(f"User logged in: {user.email}")
    return AuthResponse(token=issue_token(user, settings), user=UserResponse.model_validate(user))


@router.post("/token", response_model=TokenResponse)
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    repo=Depends(get_user_repository),
    settings: Settings = Depends(get_app_settings),
):
    """OAuth2 password flow (the username field carries the email)."""
    user = authenticate(form_data.username, form_data.password, repo)
    return TokenResponse(access_token=issue_token(user, settings))


@router.get("/logout", response_model=MessageResponse)
def logout(current_user: StoredUser = Depends(get_current_user)):
    # Tokens are stateless; the client discards its copy
    logger.info(f"User logged out: {current_user.email}")
    return MessageResponse(message="Logout realizado com sucesso")


@router.get("/me", response_model=DataResponse[UserResponse])
def read_users_me(current_user: StoredUser = Depends(get_current_user)):
    return {"data": current_user}


@router.put("/updatedetails", response_model=DataResponse[UserResponse])
def update_details(
    payload: UpdateDetailsRequest,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_user_repository),
):
    if payload.email and repo.email_exists(payload.email, exclude_id=current_user.id):
        raise DuplicateError("Este email já está em uso")

    user = repo.update(current_user.id, **payload.model_dump(exclude_unset=True))
    logger.info(f"User details updated: {user.id}")
    return {"data": user}


@router.put("/updatepassword", response_model=AuthResponse)
def update_password(
    payload: UpdatePasswordRequest,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_user_repository),
    settings: Settings = Depends(get_app_settings),
):
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise UnauthorizedError("Senha atual incorreta")

    user = repo.update(current_user.id, hashed_password=get_password_hash(payload.new_password))
    logger.info(f"Password changed for user {user.id}")
    return AuthResponse(token=issue_token(user, settings), user=UserResponse.model_validate(user))


@router.post("/forgotpassword", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    repo=Depends(get_user_repository),
    settings: Settings = Depends(get_app_settings),
):
    """
    Issue a password reset token valid for a few minutes.

    Mail delivery is not wired; the token is logged and, outside production,
    returned to the caller.
    """
    user = repo.get_by_email(payload.email)
    if not user:
        raise NotFoundError("Usuário", payload.email)

    raw_token, token_hash = generate_reset_token()
    repo.set_reset_token(
        user.id,
        token_hash,
        datetime.utcnow() + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES),
    )
    logger.info(f"Password reset requested for {user.email}: token={raw_token}")

    return MessageResponse(
        message="Instruções de recuperação de senha enviadas",
        data=None if settings.is_production else {"reset_token": raw_token},
    )


@router.put("/resetpassword/{token}", response_model=AuthResponse)
def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    repo=Depends(get_user_repository),
    settings: Settings = Depends(get_app_settings),
):
    user = repo.get_by_reset_token(hash_reset_token(token))
    if not user:
        raise ValidationError("Token inválido ou expirado")

    user = repo.reset_password(user.id, get_password_hash(payload.password))
    logger.info(f"Password reset completed for {user.email}")
    return AuthResponse(token=issue_token(user, settings), user=UserResponse.model_validate(user))
