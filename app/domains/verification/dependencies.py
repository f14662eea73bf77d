"""
File: app/domains/verification/dependencies.py
Description: 验证码与账号找回依赖注入

依赖链：
get_redis -> RedisCodeStore -> VerificationService ─┐
DBSession -> UserRepository ─────────────────────────┼-> RecoveryService -> RecoveryServiceDep
get_email_sender ────────────────────────────────────┘

Created: 2026-03-06
"""

from typing import Annotated

from fastapi import Depends
from redis.asyncio import Redis

from app.core.email import EmailSender, get_email_sender
from app.core.redis import get_redis
from app.domains.users.dependencies import UserRepoDep
from app.domains.verification.recovery import RecoveryService
from app.domains.verification.service import VerificationService
from app.domains.verification.store import RedisCodeStore

RedisDep = Annotated[Redis, Depends(get_redis)]
EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender)]


async def get_verification_service(redis: RedisDep) -> VerificationService:
    return VerificationService(store=RedisCodeStore(redis))


VerificationServiceDep = Annotated[
    VerificationService, Depends(get_verification_service)
]


async def get_recovery_service(
    user_repo: UserRepoDep,
    codes: VerificationServiceDep,
    email_sender: EmailSenderDep,
) -> RecoveryService:
    return RecoveryService(user_repo=user_repo, codes=codes, email_sender=email_sender)


RecoveryServiceDep = Annotated[RecoveryService, Depends(get_recovery_service)]
