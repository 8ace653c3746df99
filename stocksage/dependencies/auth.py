from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from beanie import PydanticObjectId
from bson.errors import InvalidId
from stocksage.core.security import decode_access_token
from stocksage.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user_id = decode_access_token(token).get("sub")
        if user_id is None:
            raise credentials_exception
        user_oid = PydanticObjectId(user_id)
    except (JWTError, InvalidId, TypeError):
        raise credentials_exception

    user = await User.get(user_oid)
    if user is None:
        raise credentials_exception

    return user


# Every shop route depends on this one
async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user
