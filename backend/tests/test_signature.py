"""Signature engine tests."""
import re

from qr_attendance.services.signature_service import SignatureService

SESSION_ID = 'SESSION_1741600800000_abc123xyz'
EXPIRY = '2025-03-10T17:00:00.000Z'


def test_sign_is_sha256_hex(app):
    signature = SignatureService.sign(SESSION_ID, EXPIRY)
    assert re.fullmatch(r'[0-9a-f]{64}', signature)
    assert signature == SignatureService.sign(SESSION_ID, EXPIRY)


def test_sign_matches_known_digest():
    # sha256("a|b|c")
    assert SignatureService.sign('a', 'b', secret='c') == (
        'a52dd81bfd5e4e66d96b9f598382f6cbf8c5c3897654e6ae9055e03620fcf38e'
    )


def test_verify_round_trip(app):
    signature = SignatureService.sign(SESSION_ID, EXPIRY)
    assert SignatureService.verify(SESSION_ID, EXPIRY, signature)


def test_verify_rejects_tampered_fields(app):
    signature = SignatureService.sign(SESSION_ID, EXPIRY)
    assert not SignatureService.verify(SESSION_ID, '2025-03-10T18:00:00.000Z', signature)
    assert not SignatureService.verify('SESSION_1_other', EXPIRY, signature)

    flipped = ('0' if signature[0] != '0' else '1') + signature[1:]
    assert not SignatureService.verify(SESSION_ID, EXPIRY, flipped)


def test_verify_rejects_wrong_length_and_types(app):
    signature = SignatureService.sign(SESSION_ID, EXPIRY)
    assert not SignatureService.verify(SESSION_ID, EXPIRY, signature[:-1])
    assert not SignatureService.verify(SESSION_ID, EXPIRY, signature + '0')
    assert not SignatureService.verify(SESSION_ID, EXPIRY, None)
    assert not SignatureService.verify(SESSION_ID, None, signature)


def test_secret_changes_signature(app):
    assert SignatureService.sign(SESSION_ID, EXPIRY) != SignatureService.sign(
        SESSION_ID, EXPIRY, secret='another-secret'
    )
    assert app.config['QR_SECRET_KEY'] == 'test-qr-secret'
