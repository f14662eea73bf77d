"""
File: app/domains/verification/schemas.py
Description: 邮箱验证 / 密码找回请求参数
"""

from pydantic import BaseModel, EmailStr, Field

from app.domains.users.schemas import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH


class EmailRequest(BaseModel):
    email: EmailStr


class EmailVerifyRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$", description="6 位数字验证码")


class PasswordResetConfirm(BaseModel):
    email: EmailStr
    reset_token: str = Field(..., min_length=8, max_length=8)
    new_password: str = Field(
        ..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH
    )
