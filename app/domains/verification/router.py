"""
File: app/domains/verification/router.py
Description: 邮箱验证与密码找回路由 (挂载在 /auth 下)

1. POST /email/send-verification: 发送邮箱验证码 (限流)
2. POST /email/verify: 提交验证码完成邮箱验证
3. POST /password/reset-request: 发送密码重置码 (限流)
4. POST /password/reset: 凭重置码设置新密码

Created: 2026-03-06
"""

from fastapi import APIRouter, Request

from app.core.response import ResponseModel
from app.domains.verification.constants import VerificationMsg
from app.domains.verification.dependencies import RecoveryServiceDep
from app.domains.verification.schemas import (
    EmailRequest,
    EmailVerifyRequest,
    PasswordResetConfirm,
)

router = APIRouter()


@router.post(
    "/email/send-verification",
    response_model=ResponseModel[None],
    summary="发送邮箱验证码",
)
async def send_email_verification(
    request: Request,
    body: EmailRequest,
    service: RecoveryServiceDep,
) -> ResponseModel[None]:
    await service.send_email_verification(body.email)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(
        message=VerificationMsg.VERIFICATION_SENT, request_id=req_id
    )


@router.post(
    "/email/verify",
    response_model=ResponseModel[None],
    summary="验证邮箱",
)
async def verify_email(
    request: Request,
    body: EmailVerifyRequest,
    service: RecoveryServiceDep,
) -> ResponseModel[None]:
    await service.verify_email(body.email, body.code)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(message=VerificationMsg.EMAIL_VERIFIED, request_id=req_id)


@router.post(
    "/password/reset-request",
    response_model=ResponseModel[None],
    summary="申请密码重置",
)
async def request_password_reset(
    request: Request,
    body: EmailRequest,
    service: RecoveryServiceDep,
) -> ResponseModel[None]:
    await service.send_password_reset(body.email)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(message=VerificationMsg.RESET_SENT, request_id=req_id)


@router.post(
    "/password/reset",
    response_model=ResponseModel[None],
    summary="重置密码",
)
async def reset_password(
    request: Request,
    body: PasswordResetConfirm,
    service: RecoveryServiceDep,
) -> ResponseModel[None]:
    await service.reset_password(body.email, body.reset_token, body.new_password)
    req_id = getattr(request.state, "request_id", None)
    return ResponseModel.ok(message=VerificationMsg.PASSWORD_RESET, request_id=req_id)
