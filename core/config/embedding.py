"""向量服务配置：api_key（明文/加密/环境变量）、base_url、model；加解密与脱敏。"""

from __future__ import annotations

import base64
import logging
import os

from models.schemas import EmbeddingConfigResult, EmbeddingSection

logger = logging.getLogger(__name__)

_FERNET_SALT = b"catalog_mapper_embedding_salt_v1"
_KEY_PASSPHRASE = "catalog_mapper_embedding_key_v1"
API_KEY_ENV = "OPENAI_API_KEY"


def build_embedding_config_result(section: EmbeddingSection) -> EmbeddingConfigResult:
    """
    从 app_config.yaml 的 embedding 节解析出 EmbeddingConfigResult。
    优先 api_key 明文，否则 api_key_encrypted 解密，否则环境变量 OPENAI_API_KEY。
    """
    api_key: str | None = None
    if section.api_key:
        api_key = section.api_key
        logger.info("向量服务配置已加载（api_key 明文），base_url=%s, model=%s", section.base_url, section.model)
    elif section.api_key_encrypted:
        dec = decrypt_key(section.api_key_encrypted)
        if dec:
            api_key = dec
            logger.info("向量服务配置已加载（api_key_encrypted 解密成功），base_url=%s, model=%s", section.base_url, section.model)
        else:
            logger.warning("api_key_encrypted 解密失败，请确认使用 python -m core.config encrypt <明文key> 生成")
    if api_key is None:
        api_key = os.environ.get(API_KEY_ENV, "").strip() or None
        if api_key:
            logger.info("向量服务 API Key 来自环境变量 %s", API_KEY_ENV)
    if api_key is None:
        logger.info("未配置向量服务 API Key，语义重排将不调用")
    return EmbeddingConfigResult(
        api_key=api_key,
        base_url=section.base_url,
        model=section.model,
        timeout=section.timeout,
    )


def mask_key(key: str | None) -> str:
    """脱敏展示：不可直接展示明文 key。"""
    if not key or not key.strip():
        return ""
    k = key.strip()
    if len(k) <= 8:
        return "***"
    if k.startswith("sk-"):
        return f"{k[:6]}***{k[-4:]}" if len(k) > 10 else "sk-***"
    return f"{k[:2]}***{k[-2:]}"


def _fernet_key_from_passphrase(passphrase: str) -> bytes:
    from cryptography.hazmat.primitives.hashes import SHA256
    from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

    kdf = PBKDF2HMAC(
        algorithm=SHA256(),
        length=32,
        salt=_FERNET_SALT,
        iterations=100000,
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8")))


def encrypt_key(plain_key: str, passphrase: str = _KEY_PASSPHRASE) -> str:
    """将明文 API Key 加密为 base64 字符串，可写入 app_config.yaml。"""
    from cryptography.fernet import Fernet

    f = Fernet(_fernet_key_from_passphrase(passphrase))
    return f.encrypt(plain_key.encode("utf-8")).decode("ascii")


def decrypt_key(encrypted_b64: str, passphrase: str = _KEY_PASSPHRASE) -> str | None:
    """从配置文件中的加密字符串解密出明文 API Key；失败返回 None。"""
    from cryptography.fernet import Fernet, InvalidToken

    try:
        f = Fernet(_fernet_key_from_passphrase(passphrase))
        return f.decrypt(encrypted_b64.encode("ascii")).decode("utf-8")
    except (InvalidToken, ValueError):
        return None
