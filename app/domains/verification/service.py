"""
File: app/domains/verification/service.py
Description: 一次性验证码服务 (Ephemeral Code Service)

1. generate_code: 生成验证码并以 <purpose>:<subject> 为键写入存储 (带 TTL)
   - 邮箱验证: 6 位数字，10 分钟
   - 密码重置: 8 位 [A-Z0-9]，30 分钟
2. verify_code: 不存在/过期/不匹配返回 False (不是错误)；匹配则原子消费并返回 True
3. enforce_rate_limit: 按 subject 的固定窗口限流，超限抛出 429

Created: 2026-03-04
"""

import secrets
import string
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum

from app.core.config import Settings, settings
from app.core.error_code import BaseErrorCode
from app.core.exceptions import AppException
from app.core.logging import logger
from app.domains.verification.constants import VerificationError
from app.domains.verification.store import CodeStore
from app.utils.masking import mask_email


class CodePurpose(StrEnum):
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True, slots=True)
class CodePolicy:
    alphabet: str
    length: int
    ttl: timedelta
    max_requests: int
    window: timedelta
    rate_limit_error: BaseErrorCode


def build_policies(config: Settings) -> dict[CodePurpose, CodePolicy]:
    return {
        CodePurpose.EMAIL_VERIFICATION: CodePolicy(
            alphabet=string.digits,
            length=6,
            ttl=timedelta(minutes=config.EMAIL_VERIFICATION_CODE_TTL_MINUTES),
            max_requests=config.EMAIL_VERIFICATION_MAX_REQUESTS,
            window=timedelta(minutes=config.EMAIL_VERIFICATION_WINDOW_MINUTES),
            rate_limit_error=VerificationError.TOO_MANY_VERIFICATION_REQUESTS,
        ),
        CodePurpose.PASSWORD_RESET: CodePolicy(
            alphabet=string.ascii_uppercase + string.digits,
            length=8,
            ttl=timedelta(minutes=config.PASSWORD_RESET_TOKEN_TTL_MINUTES),
            max_requests=config.PASSWORD_RESET_MAX_REQUESTS,
            window=timedelta(minutes=config.PASSWORD_RESET_WINDOW_MINUTES),
            rate_limit_error=VerificationError.TOO_MANY_RESET_REQUESTS,
        ),
    }


class VerificationService:
    def __init__(
        self,
        store: CodeStore,
        policies: dict[CodePurpose, CodePolicy] | None = None,
    ):
        self.store = store
        self.policies = policies or build_policies(settings)

    def policy(self, purpose: CodePurpose) -> CodePolicy:
        return self.policies[purpose]

    @staticmethod
    def _key(purpose: CodePurpose, subject: str) -> str:
        return f"{purpose.value}:{subject}"

    async def generate_code(self, purpose: CodePurpose, subject: str) -> str:
        """生成并保存新码，覆盖该 subject 之前未使用的码"""
        policy = self.policy(purpose)
        code = "".join(secrets.choice(policy.alphabet) for _ in range(policy.length))
        await self.store.set(self._key(purpose, subject), code, policy.ttl)

        logger.bind(purpose=purpose.value, subject=mask_email(subject)).info(
            "Ephemeral code generated"
        )
        return code

    async def verify_code(
        self, purpose: CodePurpose, subject: str, candidate: str
    ) -> bool:
        if not candidate:
            return False
        return await self.store.consume(self._key(purpose, subject), candidate)

    async def enforce_rate_limit(self, purpose: CodePurpose, subject: str) -> None:
        policy = self.policy(purpose)
        count = await self.store.increment(
            f"rate_limit:{purpose.value}:{subject}", policy.window
        )
        if count > policy.max_requests:
            logger.bind(purpose=purpose.value, subject=mask_email(subject)).warning(
                "Ephemeral code rate limit exceeded"
            )
            raise AppException(policy.rate_limit_error)
