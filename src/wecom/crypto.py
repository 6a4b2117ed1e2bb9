"""WeCom callback signature verification and AES decryption.

The cipher and signature math come from wechatpy; this module only maps
its failures onto the relay's error taxonomy.
"""

from __future__ import annotations

import struct

from wechatpy.enterprise.crypto import WeChatCrypto
from wechatpy.exceptions import InvalidSignatureException, WeChatException


class CryptoError(Exception):
    """Base class for inbound envelope failures."""


class AuthenticationError(CryptoError):
    """Signature mismatch or missing signature material."""


class DecodeError(CryptoError):
    """Ciphertext, padding or corp id did not decode."""


class WeComCryptor:
    """Verifies and decrypts WeCom callback payloads.

    The same token / EncodingAESKey / corp id triple serves both the URL
    handshake and message decryption.
    """

    def __init__(self, token: str, encoding_aes_key: str, corp_id: str) -> None:
        self._crypto = WeChatCrypto(token, encoding_aes_key, corp_id)

    def verify_url(
        self,
        signature: str | None,
        timestamp: str | None,
        nonce: str | None,
        echostr: str | None,
    ) -> str:
        """Verify the callback URL handshake and return the decrypted echostr."""
        _require(signature, timestamp, nonce, echostr)
        try:
            return self._crypto.check_signature(signature, timestamp, nonce, echostr)
        except InvalidSignatureException as exc:
            raise AuthenticationError("Invalid handshake signature") from exc
        except (WeChatException, ValueError, IndexError, struct.error) as exc:
            raise DecodeError(f"Malformed echostr: {exc}") from exc

    def decrypt(
        self,
        signature: str | None,
        timestamp: str | None,
        nonce: str | None,
        encrypted: str | None,
    ) -> str:
        """Verify and decrypt an ``Encrypt`` field, returning the inner XML."""
        _require(signature, timestamp, nonce, encrypted)
        try:
            return self._crypto.decrypt_message(
                {"Encrypt": encrypted}, signature, timestamp, nonce,
            )
        except InvalidSignatureException as exc:
            raise AuthenticationError("Invalid message signature") from exc
        except (WeChatException, ValueError, IndexError, struct.error) as exc:
            raise DecodeError(f"Malformed ciphertext: {exc}") from exc


def _require(*values: str | None) -> None:
    if not all(values):
        raise AuthenticationError("Missing signature parameters")
