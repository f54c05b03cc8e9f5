"""
认证中间件

- JWT Access Token（python-jose），bcrypt 密码哈希
- get_current_user: 解析 Bearer Token 得到当前用户
- 角色依赖: 管理员 / 管理员或司机 / 司机
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from fleet_notify.config import settings
from fleet_notify.database import get_db
from fleet_notify.models.user import User, UserRole
from fleet_notify.services.access import Identity


def utc_now() -> datetime:
    """获取当前 UTC 时间（naive datetime，兼容 SQLite 和 jose）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """获取密码哈希"""
    # bcrypt 只接受 72 字节以内
    password_bytes = password.encode('utf-8')[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """创建访问令牌"""
    to_encode = data.copy()
    expire = utc_now() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """获取当前用户（只接受 type="access" 的 token）"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        if payload.get("type", "access") != "access":
            raise credentials_exception
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise credentials_exception
    return user


async def get_current_identity(
    current_user: User = Depends(get_current_user)
) -> Identity:
    """当前操作者身份（id + 角色）"""
    return Identity.from_user(current_user)


async def get_current_admin(
    identity: Identity = Depends(get_current_identity)
) -> Identity:
    """仅管理员"""
    if identity.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return identity


async def get_current_admin_or_driver(
    identity: Identity = Depends(get_current_identity)
) -> Identity:
    """管理员或司机"""
    if identity.role not in (UserRole.ADMIN.value, UserRole.DRIVER.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin or driver access required"
        )
    return identity
