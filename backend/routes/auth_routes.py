"""
Auth Routes - Users and Authentication
"""
from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, ConfigDict, EmailStr
from typing import Optional
from datetime import datetime, timezone, timedelta
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
import uuid
import os
import logging

from database import get_postgres_session, User
from database.models import UserRole, UserStatus
from app.procurement.domain.models import UserSummary

logger = logging.getLogger(__name__)

# JWT Settings
SECRET_KEY = os.environ.get('SECRET_KEY', 'your-secret-key-change-in-production')
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours

DEFAULT_USER_PASSWORD = os.environ.get('DEFAULT_USER_PASSWORD', '123456')

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Security
security = HTTPBearer()

# Create router
auth_router = APIRouter(prefix="/api", tags=["Auth"])

# Users created on first start when the users table is empty
DEFAULT_USERS = [
    {"email": "head@example.com", "name": "Head User", "role": UserRole.HEAD,
     "department": "Management", "position": "Department Head"},
    {"email": "manager@example.com", "name": "Manager User", "role": UserRole.MANAGER,
     "department": "IT", "position": "IT Manager"},
    {"email": "normal@example.com", "name": "Normal User", "role": UserRole.NORMAL,
     "department": "Support", "position": "Support Specialist"},
    {"email": "view@example.com", "name": "View User", "role": UserRole.VIEW,
     "department": "Operations", "position": "Operations Analyst"},
]


# ==================== PYDANTIC MODELS ====================

class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    department: Optional[str] = None
    position: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ==================== HELPER FUNCTIONS ====================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def to_user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        name=user.name,
        role=user.role,
        department=user.department,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_postgres_session)
) -> User:
    """Resolve the bearer token to an active user"""
    try:
        token = credentials.credentials
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            raise HTTPException(status_code=401, detail="Invalid access token")

        result = await session.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

        if user is None:
            raise HTTPException(status_code=401, detail="User not found")
        if not user.is_active:
            raise HTTPException(status_code=403, detail="Your account is disabled")

        return user
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid access token")


async def get_current_user_summary(
    current_user: User = Depends(get_current_user)
) -> UserSummary:
    return to_user_summary(current_user)


async def seed_default_users(session: AsyncSession) -> int:
    """Create the default users if no user exists yet"""
    result = await session.execute(select(func.count()).select_from(User))
    if result.scalar():
        return 0

    hashed_password = get_password_hash(DEFAULT_USER_PASSWORD)
    for data in DEFAULT_USERS:
        session.add(User(
            id=str(uuid.uuid4()),
            name=data["name"],
            email=data["email"],
            password=hashed_password,
            role=data["role"].value,
            department=data["department"],
            position=data["position"],
            status=UserStatus.ACTIVE.value,
            is_active=True,
        ))
    await session.commit()
    logger.info(f"Seeded {len(DEFAULT_USERS)} default users")
    return len(DEFAULT_USERS)


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        department=user.department,
        position=user.position,
        is_active=user.is_active,
    )


# ==================== AUTH ROUTES ====================

@auth_router.post("/auth/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    session: AsyncSession = Depends(get_postgres_session)
):
    """Login user"""
    result = await session.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password):
        raise HTTPException(status_code=401, detail="Incorrect email or password")

    if not user.is_active or user.status != UserStatus.ACTIVE.value:
        raise HTTPException(status_code=403, detail="Your account is disabled")

    user.last_login = datetime.now(timezone.utc).replace(tzinfo=None)
    await session.commit()

    access_token = create_access_token({"sub": user.id})
    return TokenResponse(access_token=access_token, user=_user_response(user))


@auth_router.get("/auth/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Current user profile"""
    return _user_response(current_user)
