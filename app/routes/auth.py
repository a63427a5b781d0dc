import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RefreshResponse,
    UserEnvelope,
    UserResponse,
)
from app.services.auth import (
    REFRESH_COOKIE_NAME,
    cleanup_refresh_tokens,
    clear_refresh_cookie,
    create_access_token,
    find_active_refresh_token,
    get_current_user,
    hash_password,
    is_well_formed_refresh_token,
    issue_refresh_token,
    require_admin,
    revoke_user_tokens,
    set_refresh_cookie,
    verify_password,
)
from app.services.storage import StorageError, StorageService, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 6


def _store_profile_photo(photo: UploadFile, storage: StorageService) -> tuple[str, str]:
    """Upload a profile photo and return (file_path, public_url)."""
    error = storage.validate_image(photo)
    if error:
        raise HTTPException(status_code=400, detail=error)
    key = storage.build_key(settings.S3_PHOTO_PREFIX, photo.filename or "photo")
    file_path = storage.upload_bytes(photo.file.read(), key, photo.content_type)
    return file_path, storage.public_url(file_path)


# ── Registration / login ─────────────────────────────────────────────────────

@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(
    request: Request,
    response: Response,
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    first_name: Optional[str] = Form(None, alias="firstName"),
    last_name: Optional[str] = Form(None, alias="lastName"),
    profile_photo: Optional[UploadFile] = File(None, alias="profilePhoto"),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Register a new user, log them in and set the refresh-token cookie."""
    if not all([username, email, password, first_name, last_name]):
        raise HTTPException(status_code=400, detail="All fields are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    email = email.strip().lower()
    existing = db.query(User).filter(or_(User.email == email, User.username == username)).first()
    if existing:
        detail = "Email already registered" if existing.email == email else "Username already taken"
        raise HTTPException(status_code=409, detail=detail)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
    )

    if profile_photo is not None and profile_photo.filename:
        # A failed photo upload should not block registration
        try:
            user.profile_photo_key, user.profile_photo_url = _store_profile_photo(profile_photo, storage)
        except (HTTPException, StorageError) as e:
            logger.warning("Profile photo upload failed during signup for %s: %s", username, e)

    db.add(user)
    db.commit()
    db.refresh(user)

    token = issue_refresh_token(db, user, request)
    set_refresh_cookie(response, token)
    logger.info("Registered user %s (id=%s)", user.username, user.id)

    return AuthResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
        access_token=create_access_token(user.id),
    )


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    identifier = payload.email_or_username.strip()
    user = (
        db.query(User)
        .filter(or_(User.email == identifier.lower(), User.username == identifier))
        .first()
    )
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info("Failed login attempt for %s", identifier)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.last_login = datetime.utcnow()
    db.commit()
    db.refresh(user)

    token = issue_refresh_token(db, user, request, keep_logged_in=payload.keep_logged_in)
    set_refresh_cookie(response, token)

    return AuthResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        access_token=create_access_token(user.id),
    )


# ── Token lifecycle ──────────────────────────────────────────────────────────

@router.post("/refresh", response_model=RefreshResponse)
def refresh(request: Request, db: Session = Depends(get_db)):
    """Exchange the refresh-token cookie for a new access token."""
    raw_token = request.cookies.get(REFRESH_COOKIE_NAME)
    if not is_well_formed_refresh_token(raw_token):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    token = find_active_refresh_token(db, raw_token)
    if not token or not token.user or not token.user.is_active:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    return RefreshResponse(access_token=create_access_token(token.user.id), user=UserResponse.model_validate(token.user))


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    raw_token = request.cookies.get(REFRESH_COOKIE_NAME)
    if raw_token:
        token = find_active_refresh_token(db, raw_token)
        if token:
            token.is_revoked = True
            db.commit()

    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=MessageResponse)
def logout_all(
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Revoke every refresh token of the current user."""
    revoke_user_tokens(db, current_user.id)
    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out from all devices")


@router.post("/tokens/cleanup", response_model=MessageResponse)
def cleanup_tokens(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    removed = cleanup_refresh_tokens(db)
    return MessageResponse(message=f"Removed {removed} refresh tokens")


# ── Profile ──────────────────────────────────────────────────────────────────

@router.get("/me", response_model=UserEnvelope)
def me(current_user: User = Depends(get_current_user)):
    return UserEnvelope(user=UserResponse.model_validate(current_user))


@router.put("/profile", response_model=UserEnvelope)
def update_profile(
    first_name: Optional[str] = Form(None, alias="firstName"),
    last_name: Optional[str] = Form(None, alias="lastName"),
    profile_photo: Optional[UploadFile] = File(None, alias="profilePhoto"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
):
    if first_name:
        current_user.first_name = first_name
    if last_name:
        current_user.last_name = last_name

    if profile_photo is not None and profile_photo.filename:
        try:
            file_path, url = _store_profile_photo(profile_photo, storage)
        except StorageError:
            raise HTTPException(status_code=400, detail="Failed to upload profile photo")
        if current_user.profile_photo_key:
            storage.delete_file(current_user.profile_photo_key)
        current_user.profile_photo_key, current_user.profile_photo_url = file_path, url

    db.commit()
    db.refresh(current_user)
    return UserEnvelope(message="Profile updated successfully", user=UserResponse.model_validate(current_user))


@router.delete("/profile-photo", response_model=UserEnvelope)
def delete_profile_photo(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
):
    if not current_user.profile_photo_key:
        raise HTTPException(status_code=404, detail="No profile photo to delete")

    storage.delete_file(current_user.profile_photo_key)
    current_user.profile_photo_key = None
    current_user.profile_photo_url = None
    db.commit()
    db.refresh(current_user)
    return UserEnvelope(message="Profile photo deleted", user=UserResponse.model_validate(current_user))
