"""Auth API — registration, sign-in, token refresh, current user.

Learn: Routes for the session lifecycle:
- POST /auth/register → email/password account → token pair (201)
- POST /auth/login → email/password → token pair
- POST /auth/google, /auth/apple → provider identity token → token pair
- POST /auth/refresh → refresh token → new token pair (old one dies)
- POST /auth/logout → revoke a refresh token
- GET/PATCH /auth/me → current user's profile

Routes only parse input and map the service's errors to status codes:
409 for an existing email, 401 for credentials or tokens. Anything else
is left to the app-level handler, which answers a bare 500.
"""

from fastapi import APIRouter, Depends, HTTPException, Response

from bday.auth.dependencies import (
    CurrentIdentity,
    get_auth_service,
    get_current_user,
    get_user_service,
)
from bday.auth.errors import (
    AuthError,
    EmailAlreadyExistsError,
)
from bday.schemas.auth import (
    CurrentUserRead,
    LoginRequest,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    SocialLoginRequest,
    TokenPair,
    UserRead,
)
from bday.services.auth_service import AuthService
from bday.services.user_service import UserNotFoundError, UserService

router = APIRouter(prefix="/auth")


def _auth_error(e: AuthError) -> HTTPException:
    if isinstance(e, EmailAlreadyExistsError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(
        status_code=401,
        detail=str(e),
        headers={"WWW-Authenticate": "Bearer"},
    )


# ─── Register / login ───────────────────────────────────


@router.post("/register", response_model=TokenPair, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(get_auth_service)):
    """Create a new account and sign it in."""
    try:
        return await svc.register(body.email, body.password, body.name)
    except AuthError as e:
        raise _auth_error(e)


@router.post("/login", response_model=TokenPair)
async def login(body: LoginRequest, svc: AuthService = Depends(get_auth_service)):
    """Login with email and password → token pair."""
    try:
        return await svc.login(body.email, body.password)
    except AuthError as e:
        raise _auth_error(e)


# ─── Social ─────────────────────────────────────────────


@router.post("/google", response_model=TokenPair)
async def google_login(
    body: SocialLoginRequest, svc: AuthService = Depends(get_auth_service)
):
    try:
        return await svc.google_login(body.id_token)
    except AuthError as e:
        raise _auth_error(e)


@router.post("/apple", response_model=TokenPair)
async def apple_login(
    body: SocialLoginRequest, svc: AuthService = Depends(get_auth_service)
):
    try:
        return await svc.apple_login(body.id_token)
    except AuthError as e:
        raise _auth_error(e)


# ─── Refresh / logout ───────────────────────────────────


@router.post("/refresh", response_model=TokenPair)
async def refresh(body: RefreshRequest, svc: AuthService = Depends(get_auth_service)):
    """Exchange a refresh token for a new pair. The old token stops working."""
    try:
        return await svc.refresh_token(body.refresh_token)
    except AuthError as e:
        raise _auth_error(e)


@router.post("/logout", status_code=204)
async def logout(body: RefreshRequest, svc: AuthService = Depends(get_auth_service)):
    await svc.logout(body.refresh_token)
    return Response(status_code=204)


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=CurrentUserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
):
    """Get the current authenticated user's profile."""
    try:
        user = await svc.get_user(identity.user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    providers = await svc.get_providers(user.id)
    return CurrentUserRead(
        **UserRead.model_validate(user).model_dump(),
        providers=providers,
    )


@router.patch("/me", response_model=UserRead)
async def update_me(
    body: ProfileUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
):
    try:
        return await svc.update_profile(
            identity.user_id, name=body.name, avatar_url=body.avatar_url
        )
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
