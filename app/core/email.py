"""
File: app/core/email.py
Description: 邮件投递能力 (Email Transport)

本模块负责：
1. 定义邮件类型 (EmailKind) 与多语言模板配置对象 (EmailTemplates)
2. 定义发送接口 EmailSender.send(to, kind, variables, locale)
3. 提供两种实现：
   - LogEmailSender: 仅写日志 (本地开发)
   - SmtpEmailSender: SMTP 投递 (smtplib，在线程池中执行)
4. 提供依赖注入入口 get_email_sender (测试中可 override)

模板对象在启动时构造并注入，不使用模块级可变字典。

Created: 2026-03-04
"""

import smtplib
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import StrEnum
from typing import Protocol

from starlette.concurrency import run_in_threadpool

from app.core.config import Settings, settings
from app.core.error_code import SystemErrorCode
from app.core.exceptions import AppException
from app.core.logging import logger
from app.utils.masking import mask_email


class EmailKind(StrEnum):
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True, slots=True)
class EmailTemplate:
    subject: str
    body: str

    def render(self, variables: dict[str, str]) -> tuple[str, str]:
        return self.subject.format(**variables), self.body.format(**variables)


_BUILTIN_TEMPLATES: dict[str, dict[EmailKind, EmailTemplate]] = {
    "en": {
        EmailKind.EMAIL_VERIFICATION: EmailTemplate(
            subject="[{app_name}] Verify your email",
            body=(
                "Hello {name},\n\n"
                "Your verification code is: {code}\n\n"
                "The code expires in {expires_minutes} minutes. "
                "If you did not request it, please ignore this email."
            ),
        ),
        EmailKind.PASSWORD_RESET: EmailTemplate(
            subject="[{app_name}] Reset your password",
            body=(
                "Hello {name},\n\n"
                "Your password reset token is: {code}\n\n"
                "The token expires in {expires_minutes} minutes. "
                "If you did not request a reset, please secure your account."
            ),
        ),
    },
    "zh": {
        EmailKind.EMAIL_VERIFICATION: EmailTemplate(
            subject="【{app_name}】邮箱验证码",
            body=(
                "{name}，您好！\n\n"
                "您的验证码是：{code}\n\n"
                "此验证码 {expires_minutes} 分钟内有效，请勿泄露给他人。"
                "如果这不是您的操作，请忽略此邮件。"
            ),
        ),
        EmailKind.PASSWORD_RESET: EmailTemplate(
            subject="【{app_name}】密码重置",
            body=(
                "{name}，您好！\n\n"
                "您正在重置密码，重置码是：{code}\n\n"
                "此重置码 {expires_minutes} 分钟内有效。"
                "如果这不是您的操作，请立即检查账号安全。"
            ),
        ),
    },
    "de": {
        EmailKind.EMAIL_VERIFICATION: EmailTemplate(
            subject="[{app_name}] E-Mail-Adresse bestätigen",
            body=(
                "Hallo {name},\n\n"
                "Ihr Bestätigungscode lautet: {code}\n\n"
                "Der Code ist {expires_minutes} Minuten gültig. "
                "Falls Sie ihn nicht angefordert haben, ignorieren Sie diese E-Mail."
            ),
        ),
        EmailKind.PASSWORD_RESET: EmailTemplate(
            subject="[{app_name}] Passwort zurücksetzen",
            body=(
                "Hallo {name},\n\n"
                "Ihr Code zum Zurücksetzen des Passworts lautet: {code}\n\n"
                "Der Code ist {expires_minutes} Minuten gültig."
            ),
        ),
    },
}


@dataclass(frozen=True)
class EmailTemplates:
    """
    多语言模板集合。
    未支持的 locale 回退到 default_locale。
    """

    default_locale: str
    templates: dict[str, dict[EmailKind, EmailTemplate]] = field(
        default_factory=dict
    )

    @classmethod
    def from_settings(cls, config: Settings) -> "EmailTemplates":
        return cls(
            default_locale=config.DEFAULT_LOCALE,
            templates={
                locale: _BUILTIN_TEMPLATES[locale]
                for locale in config.SUPPORTED_LOCALES
                if locale in _BUILTIN_TEMPLATES
            },
        )

    def get(self, kind: EmailKind, locale: str | None) -> EmailTemplate:
        by_locale = self.templates.get(locale or "") or self.templates[
            self.default_locale
        ]
        return by_locale[kind]


# ------------------------------------------------------------------------------
# Sender 实现
# ------------------------------------------------------------------------------


class EmailSender(Protocol):
    async def send(
        self,
        to: str,
        kind: EmailKind,
        variables: dict[str, str],
        locale: str | None = None,
    ) -> None:
        """投递失败时抛出 AppException(email_delivery_failed)"""
        ...


class LogEmailSender:
    """开发环境发送器：只渲染模板并写日志，不真正投递"""

    def __init__(self, templates: EmailTemplates):
        self.templates = templates

    async def send(
        self,
        to: str,
        kind: EmailKind,
        variables: dict[str, str],
        locale: str | None = None,
    ) -> None:
        subject, _ = self.templates.get(kind, locale).render(variables)
        logger.bind(to=mask_email(to), kind=kind.value, locale=locale).info(
            f"Email rendered (log transport): {subject}"
        )


class SmtpEmailSender:
    """SMTP 发送器 (STARTTLS + 登录)，同步 smtplib 调用放入线程池"""

    def __init__(self, templates: EmailTemplates, config: Settings):
        self.templates = templates
        self.config = config

    def _send_sync(self, to: str, subject: str, body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.config.EMAIL_FROM_NAME} <{self.config.EMAIL_FROM}>"
        msg["To"] = to
        msg.attach(MIMEText(body, "plain", "utf-8"))

        with smtplib.SMTP(
            self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=10
        ) as server:
            if self.config.SMTP_USE_TLS:
                server.starttls()
            if self.config.SMTP_USERNAME and self.config.SMTP_PASSWORD:
                server.login(self.config.SMTP_USERNAME, self.config.SMTP_PASSWORD)
            server.sendmail(self.config.EMAIL_FROM, [to], msg.as_string())

    async def send(
        self,
        to: str,
        kind: EmailKind,
        variables: dict[str, str],
        locale: str | None = None,
    ) -> None:
        subject, body = self.templates.get(kind, locale).render(variables)
        try:
            await run_in_threadpool(self._send_sync, to, subject, body)
        except (smtplib.SMTPException, OSError) as exc:
            logger.bind(to=mask_email(to), kind=kind.value).opt(
                exception=exc
            ).error("SMTP delivery failed")
            raise AppException(SystemErrorCode.EMAIL_DELIVERY_FAILED, cause=exc) from exc

        logger.bind(to=mask_email(to), kind=kind.value).info("Email sent")


def build_email_sender(config: Settings) -> EmailSender:
    templates = EmailTemplates.from_settings(config)
    if config.EMAIL_PROVIDER == "smtp":
        return SmtpEmailSender(templates, config)
    return LogEmailSender(templates)


email_sender: EmailSender = build_email_sender(settings)


async def get_email_sender() -> EmailSender:
    """邮件发送器依赖 (测试中 override 为记录型发送器)"""
    return email_sender
