"""
File: app/utils/masking.py
Description: PII 数据脱敏工具 (Data Masking)

日志中禁止出现明文邮箱、手机号、第三方用户标识与任何令牌/验证码。

1. mask_email / mask_phone / mask_subject: 针对性脱敏
2. mask_sensitive_data: 递归遍历字典/列表，按 Key 黑名单整体掩盖

Created: 2026-03-04
"""

from typing import Any

# 敏感字段黑名单 (大小写不敏感)
SENSITIVE_KEYS = {
    "password",
    "new_password",
    "current_password",
    "hashed_password",
    "secret",
    "client_secret",
    "token",
    "access_token",
    "refresh_token",
    "id_token",
    "reset_token",
    "code",
    "code_verifier",
}


def mask_phone(phone: str | None) -> str:
    """
    手机号脱敏: 保留前3位和后4位。
    示例: +8613800138000 -> +86****8000
    """
    if not phone or len(phone) < 7:
        return "******"
    return f"{phone[:3]}****{phone[-4:]}"


def mask_email(email: str | None) -> str:
    """
    邮箱脱敏: 保留用户名首位和域名。
    示例: alice@example.com -> a***@example.com
    """
    if not email or "@" not in email:
        return "******"

    user_part, domain_part = email.split("@", 1)
    masked_user = "****" if len(user_part) <= 1 else f"{user_part[0]}***"
    return f"{masked_user}@{domain_part}"


def mask_subject(subject: str | None) -> str:
    """
    第三方用户标识 (openid / unionid / Google sub) 脱敏: 仅保留后4位。
    """
    if not subject:
        return ""
    if len(subject) <= 4:
        return "****"
    return f"****{subject[-4:]}"


def mask_secret(value: Any) -> str:
    """密码、Token 等完全掩盖"""
    if value is None:
        return ""
    return "******"


def mask_sensitive_data(data: Any) -> Any:
    """
    递归遍历数据结构（字典、列表），对敏感字段进行脱敏。
    返回副本，不修改原数据。
    """
    if isinstance(data, dict):
        return {
            k: mask_secret(v)
            if isinstance(k, str) and k.lower() in SENSITIVE_KEYS
            else mask_sensitive_data(v)
            for k, v in data.items()
        }

    if isinstance(data, list):
        return [mask_sensitive_data(item) for item in data]

    return data
