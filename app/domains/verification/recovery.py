"""
File: app/domains/verification/recovery.py
Description: 账号找回流程 (邮箱验证 + 密码重置)

1. send_email_verification: 限流 -> 查用户 -> 已验证拒绝 -> 生成验证码 -> 发邮件
2. verify_email: 查用户 -> 已验证拒绝 -> 校验验证码 -> 标记已验证
3. send_password_reset: 限流 -> 查用户 -> 生成重置码 -> 发邮件
4. reset_password: 查用户 -> 校验重置码 -> 写入新密码哈希

验证码不匹配在验证码服务中只是 False，到本层才转换为 invalid_verification_code。

Created: 2026-03-05
"""

from app.core.config import settings
from app.core.email import EmailKind, EmailSender
from app.core.exceptions import AppException
from app.core.logging import logger
from app.core.security import get_password_hash_async
from app.db.models.user import User
from app.domains.users.constants import UserError
from app.domains.users.repository import UserRepository
from app.domains.verification.constants import VerificationError
from app.domains.verification.service import CodePurpose, VerificationService


class RecoveryService:
    def __init__(
        self,
        user_repo: UserRepository,
        codes: VerificationService,
        email_sender: EmailSender,
    ):
        self.user_repo = user_repo
        self.codes = codes
        self.email_sender = email_sender

    async def _require_user(self, email: str) -> User:
        user = await self.user_repo.get_by_email(email)
        if user is None:
            raise AppException(UserError.USER_NOT_FOUND)
        return user

    async def _deliver(
        self, user: User, email: str, purpose: CodePurpose, kind: EmailKind
    ) -> None:
        code = await self.codes.generate_code(purpose, email)
        ttl_minutes = int(self.codes.policy(purpose).ttl.total_seconds() // 60)
        await self.email_sender.send(
            email,
            kind,
            {
                "app_name": settings.PROJECT_NAME,
                "name": user.name,
                "code": code,
                "expires_minutes": str(ttl_minutes),
            },
            user.locale,
        )

    # --------------------------------------------------------------------------
    # 邮箱验证
    # --------------------------------------------------------------------------

    async def send_email_verification(self, email: str) -> None:
        await self.codes.enforce_rate_limit(CodePurpose.EMAIL_VERIFICATION, email)

        user = await self._require_user(email)
        if user.is_email_verified:
            raise AppException(VerificationError.EMAIL_ALREADY_VERIFIED)

        await self._deliver(
            user, email, CodePurpose.EMAIL_VERIFICATION, EmailKind.EMAIL_VERIFICATION
        )

    async def verify_email(self, email: str, code: str) -> User:
        user = await self._require_user(email)
        if user.is_email_verified:
            raise AppException(VerificationError.EMAIL_ALREADY_VERIFIED)

        if not await self.codes.verify_code(
            CodePurpose.EMAIL_VERIFICATION, email, code
        ):
            raise AppException(VerificationError.INVALID_VERIFICATION_CODE)

        user.is_email_verified = True
        await self.user_repo.session.commit()

        logger.bind(user_id=user.id).info("Email verified")
        return user

    # --------------------------------------------------------------------------
    # 密码重置
    # --------------------------------------------------------------------------

    async def send_password_reset(self, email: str) -> None:
        await self.codes.enforce_rate_limit(CodePurpose.PASSWORD_RESET, email)

        user = await self._require_user(email)
        await self._deliver(
            user, email, CodePurpose.PASSWORD_RESET, EmailKind.PASSWORD_RESET
        )

    async def reset_password(
        self, email: str, reset_token: str, new_password: str
    ) -> None:
        user = await self._require_user(email)

        if not await self.codes.verify_code(
            CodePurpose.PASSWORD_RESET, email, reset_token
        ):
            raise AppException(VerificationError.INVALID_VERIFICATION_CODE)

        user.hashed_password = await get_password_hash_async(new_password)
        await self.user_repo.session.commit()

        logger.bind(user_id=user.id).info("Password reset completed")
