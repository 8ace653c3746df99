import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, status, Depends
from pymongo.errors import DuplicateKeyError

from stocksage.models.user import User
from stocksage.schemas.user import (
    UserRegister,
    LoginRequest,
    ProfileUpdate,
    UserResponse,
    AuthResponse,
    ProfileResponse,
)
from stocksage.core.security import get_password_hash, verify_password, create_access_token
from stocksage.dependencies.auth import get_current_active_user

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------
# 1. REGISTER (Public)
# ---------------------------------------------------------
@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: UserRegister):
    email = data.email.lower()

    if await User.find_one(User.email == email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists with this email"
        )

    user = User(
        name=data.name,
        email=email,
        hashed_password=get_password_hash(data.password),
        shop_name=data.shop_name,
        phone=data.phone,
        address=data.address,
    )
    try:
        await user.insert()
    except DuplicateKeyError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already exists"
        )

    logger.info("Registered shop '%s' (%s)", user.shop_name, user.email)

    return {
        "message": "User registered successfully",
        "access_token": create_access_token(data={"sub": str(user.id)}),
        "token_type": "bearer",
        "user": UserResponse.model_validate(user),
    }


# ---------------------------------------------------------
# 2. LOGIN (Public)
# ---------------------------------------------------------
@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest):
    user = await User.find_one(User.email == data.email.lower(), User.is_active == True)  # noqa: E712

    if not user or not verify_password(data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user.last_login = datetime.utcnow()
    await user.save()

    return {
        "message": "Login successful",
        "access_token": create_access_token(data={"sub": str(user.id)}),
        "token_type": "bearer",
        "user": UserResponse.model_validate(user),
    }


# ---------------------------------------------------------
# 3. CURRENT USER
# ---------------------------------------------------------
@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_current_active_user)):
    return UserResponse.model_validate(current_user)


# ---------------------------------------------------------
# 4. UPDATE PROFILE
# ---------------------------------------------------------
@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_active_user)
):
    """
    Updates shop details. A password change needs the current password.
    """
    if data.password:
        if not data.old_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Old password is required to change password"
            )
        if not verify_password(data.old_password, current_user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Old password is incorrect"
            )
        current_user.hashed_password = get_password_hash(data.password)

    for field in ("name", "shop_name", "phone", "address"):
        value = getattr(data, field)
        if value:
            setattr(current_user, field, value)

    current_user.updated_at = datetime.utcnow()
    await current_user.save()

    return {
        "message": "Password and profile updated successfully" if data.password else "Profile updated successfully",
        "user": UserResponse.model_validate(current_user),
    }
