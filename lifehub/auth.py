import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import AUTH_JWT_ALGORITHM, AUTH_JWT_AUDIENCE, AUTH_JWT_SECRET
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()


def verify_access_token(token: str) -> dict:
    """
    Verify an access token issued by the auth backend.
    Checks the HS256 signature, expiry and audience.
    """
    try:
        payload = jose_jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    logger.debug(f"✅ Token verified for user: {payload.get('email')}")
    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token"""

    if not credentials:
        logger.error("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials

    # Basic token format validation before processing
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    payload = verify_access_token(token)

    user_id = payload.get("sub")
    email = payload.get("email")
    name = (payload.get("user_metadata") or {}).get("full_name", "")

    if not user_id:
        logger.error(f"❌ Token missing subject claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    # Find or create user in our database
    user = db.query(User).filter(User.id == user_id).first()
    if user:
        logger.debug(f"✅ User authenticated: {user.email}")
        return user

    logger.info(f"🆕 Creating new user: {email}")
    user = User(id=user_id, email=email or f"{user_id}@users.invalid", full_name=name)
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
        logger.info(f"✅ New user created: {user.email}")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to create user {email}: {str(e)}")
        raise HTTPException(
            status_code=409,
            detail="This email is already registered with another account.",
        ) from e

    return user
