"""凭据存储服务。"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
import hashlib
import hmac
import logging
import secrets

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from clubhours_api.core.config import get_settings
from clubhours_api.core.errors import InvalidCredential, WeakSecret
from clubhours_api.models.credential import Credential
from clubhours_api.services import reset_tokens

logger = logging.getLogger(__name__)

# 未知邮箱时仍计算一次哈希所用的固定盐。
_DUMMY_SALT = b"clubhours-dummy-salt"


@dataclass(frozen=True)
class VerifiedCredential:
    """凭据校验通过的结果，email 即目录查找键。"""

    email: str


def normalize_email(value: str) -> str:
    """标准化邮箱字段（去空格 + 小写）。"""
    return value.strip().lower()


def hash_password(password: str) -> str:
    """使用 PBKDF2-SHA256 生成口令哈希。"""
    settings = get_settings()
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        settings.auth_password_hash_iterations,
    )
    salt_b64 = base64.b64encode(salt).decode("ascii")
    digest_b64 = base64.b64encode(digest).decode("ascii")
    return f"pbkdf2_sha256${settings.auth_password_hash_iterations}${salt_b64}${digest_b64}"


def verify_password(password: str, password_hash: str) -> bool:
    """校验口令是否匹配（常量时间比较）。"""
    try:
        algorithm, iterations_text, salt_b64, expected_digest_b64 = password_hash.split("$", 3)
        if algorithm != "pbkdf2_sha256":
            return False
        iterations = int(iterations_text)
        salt = base64.b64decode(salt_b64.encode("ascii"))
        expected_digest = base64.b64decode(expected_digest_b64.encode("ascii"))
    except (ValueError, TypeError, binascii.Error):
        return False

    actual_digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations,
    )
    return hmac.compare_digest(actual_digest, expected_digest)


def _burn_dummy_hash(password: str) -> None:
    hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        _DUMMY_SALT,
        get_settings().auth_password_hash_iterations,
    )


def get_credential(db: Session, email: str) -> Credential | None:
    """按邮箱（大小写不敏感）查询凭据。"""
    normalized = normalize_email(email)
    stmt = select(Credential).where(func.lower(Credential.email) == normalized)
    return db.execute(stmt).scalar_one_or_none()


def verify(db: Session, email: str, secret: str) -> VerifiedCredential:
    """校验登录口令。

    邮箱不存在与口令错误统一抛出 `InvalidCredential`，且两条路径都完整计算一次哈希。
    """
    credential = get_credential(db, email)
    if credential is None:
        _burn_dummy_hash(secret)
        raise InvalidCredential()
    if not verify_password(secret, credential.password_hash):
        raise InvalidCredential()
    return VerifiedCredential(email=credential.email)


def check_password_policy(secret: str) -> None:
    """最小口令策略：非空且达到最小长度。"""
    min_length = get_settings().auth_password_min_length
    if not secret or not secret.strip():
        raise WeakSecret("Das Passwort darf nicht leer sein.", reason="empty")
    if len(secret) < min_length:
        raise WeakSecret(
            f"Das Passwort muss mindestens {min_length} Zeichen lang sein.",
            reason="too_short",
            min_length=min_length,
        )


def set_password(db: Session, email: str, new_secret: str) -> Credential:
    """设置口令；凭据不存在时创建（首次设置即注册）。

    成功后作废该邮箱所有未使用的重置令牌。调用方负责提交事务。
    """
    check_password_policy(new_secret)
    normalized = normalize_email(email)

    credential = get_credential(db, normalized)
    if credential is None:
        credential = Credential(email=normalized, password_hash=hash_password(new_secret))
        db.add(credential)
        logger.info("credential created")
    else:
        credential.password_hash = hash_password(new_secret)
        logger.info("credential password updated id=%s", credential.id)

    reset_tokens.invalidate_for_email(db, normalized)
    db.flush()
    return credential
