import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Header, HTTPException
from jose import JWTError, jwt

from storefront import config
from storefront.database import SessionLocal
from storefront.models import User, UserRole

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_access_token(user_id: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=config.JWT_EXPIRE_MINUTES)
    return jwt.encode({"sub": str(user_id), "exp": expire}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def authenticate_user(db, email: str, password: str):
    user = db.query(User).filter_by(email=email.lower()).first()
    if user is None or not check_password(password, user.password_hash):
        return None
    return user


def is_admin(db, user_id: int) -> bool:
    role = db.query(UserRole).filter_by(user_id=user_id).first()
    return role is not None and role.role == ADMIN_ROLE


def ensure_admin(db, email: str, password: str) -> bool:
    """Create the admin account; returns False when it already existed.

    The admin role is upserted either way.
    """
    email = email.lower()
    user = db.query(User).filter_by(email=email).first()
    created = user is None
    if created:
        user = User(email=email, password_hash=hash_password(password))
        db.add(user)
        db.flush()

    role = db.query(UserRole).filter_by(user_id=user.id).first()
    if role is None:
        db.add(UserRole(user_id=user.id, role=ADMIN_ROLE))
    else:
        role.role = ADMIN_ROLE
    db.commit()

    if created:
        logger.info("Admin user %s created", email)
    else:
        logger.info("Admin user %s already exists", email)
    return created


def verify_token(authorization: str = Header(...)) -> int:
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError(scheme)
        claims = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
        user_id = int(claims["sub"])
    except (ValueError, KeyError, JWTError):
        raise HTTPException(status_code=401, detail="Invalid or missing token")

    db = SessionLocal()
    try:
        allowed = is_admin(db, user_id)
    finally:
        db.close()

    if not allowed:
        logger.warning("User %s denied admin access", user_id)
        raise HTTPException(status_code=403, detail="Admin role required")
    return user_id
