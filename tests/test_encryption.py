"""Tests for purpose-scoped encryption."""
import pytest

from app.security.encryption import DecryptionError, EncryptionService, get_protector

SECRET = "deployment-secret"


def test_encrypt_decrypt_roundtrip():
    """EncryptionService should round-trip plaintext without loss."""
    service = EncryptionService(SECRET, "JiraApiToken")
    token = service.encrypt_text("sensitive-secret")

    assert token != "sensitive-secret"
    assert isinstance(token, str)
    assert service.decrypt_text(token) == "sensitive-secret"


def test_other_purpose_cannot_decrypt():
    jira = EncryptionService(SECRET, "JiraApiToken")
    other = EncryptionService(SECRET, "GitHubToken")

    token = jira.encrypt_text("sensitive-secret")

    with pytest.raises(DecryptionError):
        other.decrypt_text(token)


def test_other_deployment_cannot_decrypt():
    token = EncryptionService(SECRET, "JiraApiToken").encrypt_text("sensitive-secret")

    with pytest.raises(DecryptionError):
        EncryptionService("another-secret", "JiraApiToken").decrypt_text(token)


def test_empty_values():
    service = get_protector("JiraApiToken")

    with pytest.raises(ValueError):
        service.encrypt_text("")
    assert service.decrypt_text(None) is None


def test_protector_is_keyed_per_deployment():
    first = get_protector("JiraApiToken")
    second = get_protector("JiraApiToken")

    assert second.decrypt_text(first.encrypt_text("abc")) == "abc"
