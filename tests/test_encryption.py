import pytest

from app.services.encryption import EncryptionError, decrypt_value, encrypt_value, is_encrypted

HEX_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"


def test_round_trip_with_configured_key():
    stored = encrypt_value("1234567890")
    assert is_encrypted(stored)
    assert "1234567890" not in stored
    assert decrypt_value(stored) == "1234567890"


def test_each_value_gets_its_own_nonce():
    assert encrypt_value("GB82WEST12345698765432") != encrypt_value("GB82WEST12345698765432")


def test_hex_key_is_used_directly():
    stored = encrypt_value("hunter22", HEX_KEY)
    assert decrypt_value(stored, HEX_KEY) == "hunter22"
    with pytest.raises(EncryptionError):
        decrypt_value(stored, "another passphrase")


def test_tampered_value_is_rejected():
    stored = encrypt_value("hunter22")
    tampered = stored[:-4] + ("AAAA" if not stored.endswith("AAAA") else "BBBB")
    with pytest.raises(EncryptionError):
        decrypt_value(tampered)


def test_plaintext_rows_are_returned_as_is():
    assert decrypt_value("1234567890") == "1234567890"
    assert not is_encrypted("1234567890")


def test_missing_key(monkeypatch):
    from app.config import get_settings

    monkeypatch.setattr(get_settings(), "encryption_key", "")
    with pytest.raises(EncryptionError):
        encrypt_value("1234567890")
