"""Tests for WeCom callback verification and decryption."""

from __future__ import annotations

import pytest

from src.wecom.crypto import AuthenticationError, DecodeError, WeComCryptor
from tests.conftest import TEST_AES_KEY, TEST_CORP_ID, TEST_TOKEN, make_inner_xml, wecom_encrypt, wecom_signature


def _cryptor(corp_id: str = TEST_CORP_ID) -> WeComCryptor:
    return WeComCryptor(TEST_TOKEN, TEST_AES_KEY, corp_id)


class TestVerifyUrl:
    def test_returns_decrypted_echostr(self) -> None:
        env = wecom_encrypt("1234567890123456789")
        echo = _cryptor().verify_url(
            env["MsgSignature"], env["TimeStamp"], env["Nonce"], env["Encrypt"],
        )
        assert echo == "1234567890123456789"

    def test_invalid_signature_rejected(self) -> None:
        env = wecom_encrypt("challenge")
        with pytest.raises(AuthenticationError):
            _cryptor().verify_url("0" * 40, env["TimeStamp"], env["Nonce"], env["Encrypt"])

    def test_signature_from_other_token_rejected(self) -> None:
        env = wecom_encrypt("challenge", token="someone-else")
        with pytest.raises(AuthenticationError):
            _cryptor().verify_url(
                env["MsgSignature"], env["TimeStamp"], env["Nonce"], env["Encrypt"],
            )

    @pytest.mark.parametrize("missing", ["signature", "timestamp", "nonce", "echostr"])
    def test_missing_parameter_rejected(self, missing: str) -> None:
        env = wecom_encrypt("challenge")
        args = {
            "signature": env["MsgSignature"],
            "timestamp": env["TimeStamp"],
            "nonce": env["Nonce"],
            "echostr": env["Encrypt"],
        }
        args[missing] = None
        with pytest.raises(AuthenticationError):
            _cryptor().verify_url(**args)

    def test_wrong_corp_id_is_decode_error(self) -> None:
        env = wecom_encrypt("challenge")
        with pytest.raises(DecodeError):
            _cryptor(corp_id="ww-other-corp").verify_url(
                env["MsgSignature"], env["TimeStamp"], env["Nonce"], env["Encrypt"],
            )

    def test_signed_empty_ciphertext_is_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            _cryptor().verify_url(wecom_signature("=="), "1767268800", "nonce123", "==")


class TestDecrypt:
    def test_decrypts_message(self) -> None:
        inner = make_inner_xml("Hello")
        env = wecom_encrypt(inner)
        plaintext = _cryptor().decrypt(
            env["MsgSignature"], env["TimeStamp"], env["Nonce"], env["Encrypt"],
        )
        assert plaintext == inner

    def test_tampered_ciphertext_fails_signature(self) -> None:
        env = wecom_encrypt(make_inner_xml())
        with pytest.raises(AuthenticationError):
            _cryptor().decrypt(
                env["MsgSignature"], env["TimeStamp"], env["Nonce"], env["Encrypt"][:-4] + "AAAA",
            )
