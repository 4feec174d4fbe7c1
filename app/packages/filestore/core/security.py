"""安全模块：为本地存储签发与校验短期有效的对象访问令牌。"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from .config import get_settings
from .logger import logger


def create_temporary_token(subject: Dict[str, Any], *, expires_seconds: int = 600) -> str:
    """创建一个短期有效的 JWT，用于签名直链等场景。

    注意：该令牌不绑定任何用户，仅用于对象级别的临时授权。
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(seconds=max(int(expires_seconds or 0), 1))
    payload = subject.copy()
    payload.update({"exp": expire})
    return jwt.encode(payload, settings.signing_secret_key, algorithm=settings.signing_algorithm)


def decode_and_verify_token(token: str, *, verify_exp: bool = True) -> Optional[Dict[str, Any]]:
    """解码并校验 JWT，默认校验过期时间；非法时返回 ``None``。"""
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.signing_secret_key,
            algorithms=[settings.signing_algorithm],
            options={"verify_exp": verify_exp},
        )
    except JWTError as exc:  # pragma: no cover - logging side effect
        logger.warning("Failed to verify object token: %s", exc)
        return None
