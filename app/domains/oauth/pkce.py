"""
File: app/domains/oauth/pkce.py
Description: PKCE (RFC 7636) S256 校验

code_challenge = BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))，不带 '=' 填充。
"""

import base64
import hashlib
import hmac


def compute_code_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def validate_code_verifier(code_verifier: str, code_challenge: str) -> bool:
    """
    重新计算 challenge 并与客户端提交值做精确比对。
    任一参数为空直接拒绝。
    """
    if not code_verifier or not code_challenge:
        return False
    return hmac.compare_digest(
        compute_code_challenge(code_verifier).encode(), code_challenge.encode()
    )
