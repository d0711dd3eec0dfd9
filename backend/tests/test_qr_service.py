"""Test QR token signing and verification."""
import json
from datetime import datetime, timedelta

from attendance_engine.services.qr_service import SignedToken, TokenService

SECRET = 'unit-test-secret'
ISSUED = datetime(2024, 3, 1, 9, 0, 0, 123456)


def _token(validity=15):
    return TokenService.issue('c1', validity, SECRET, now=ISSUED)


def test_issue_truncates_to_seconds():
    """Issue instant is truncated and expiry follows the validity window."""
    token = _token()
    assert token.issued_at == datetime(2024, 3, 1, 9, 0, 0)
    assert token.expires_at == datetime(2024, 3, 1, 9, 15, 0)
    assert token.to_dict()['issued_at'] == '2024-03-01T09:00:00Z'
    assert len(token.signature) == 64


def test_signature_is_deterministic():
    assert _token().signature == _token().signature
    assert _token().signature == TokenService.sign('c1', '2024-03-01T09:00:00Z', SECRET)


def test_verify_valid_token():
    token = _token()
    assert TokenService.verify(token, 'c1', SECRET, now=token.issued_at) is True


def test_verify_payload_and_dict_forms():
    token = _token()
    now = token.issued_at + timedelta(minutes=5)
    assert TokenService.verify(token.to_payload(), 'c1', SECRET, now=now) is True
    assert TokenService.verify(token.to_dict(), 'c1', SECRET, now=now) is True


def test_verify_expiry_boundary():
    """Valid one second before expiry, invalid one second after."""
    token = _token()
    assert TokenService.verify(token, 'c1', SECRET, now=token.expires_at - timedelta(seconds=1))
    assert TokenService.verify(token, 'c1', SECRET, now=token.expires_at)
    assert not TokenService.verify(token, 'c1', SECRET, now=token.expires_at + timedelta(seconds=1))


def test_verify_rejects_other_class():
    token = _token()
    assert TokenService.verify(token, 'c2', SECRET, now=token.issued_at) is False


def test_verify_rejects_wrong_secret():
    token = _token()
    assert TokenService.verify(token, 'c1', 'other-secret', now=token.issued_at) is False


def test_verify_rejects_tampered_issue_time():
    token = _token()
    data = token.to_dict()
    data['issued_at'] = '2024-03-01T09:01:00Z'
    assert TokenService.verify(data, 'c1', SECRET, now=token.issued_at) is False


def test_verify_rejects_tampered_signature():
    token = _token()
    data = token.to_dict()
    data['signature'] = '0' * 64
    assert TokenService.verify(json.dumps(data), 'c1', SECRET, now=token.issued_at) is False


def test_verify_rejects_stretched_expiry():
    """Expiry is not signed, so the validity window is capped separately."""
    token = _token()
    data = token.to_dict()
    data['expires_at'] = '2024-03-02T09:00:00Z'
    now = token.issued_at + timedelta(hours=2)

    assert TokenService.verify(data, 'c1', SECRET, now=now) is True
    assert TokenService.verify(data, 'c1', SECRET, now=now,
                               max_validity=timedelta(minutes=15)) is False


def test_verify_malformed_input_never_raises():
    now = ISSUED
    assert TokenService.verify('not json', 'c1', SECRET, now=now) is False
    assert TokenService.verify('[]', 'c1', SECRET, now=now) is False
    assert TokenService.verify('{"class_id": "c1"}', 'c1', SECRET, now=now) is False
    assert TokenService.verify({'class_id': 'c1', 'issued_at': 'yesterday',
                                'expires_at': 'tomorrow', 'signature': 'x'},
                               'c1', SECRET, now=now) is False
    assert TokenService.verify(42, 'c1', SECRET, now=now) is False

    data = _token().to_dict()
    data['signature'] = '\u00e9' * 64
    assert TokenService.verify(json.dumps(data), 'c1', SECRET, now=now) is False
    assert TokenService.verify(data, 'c1', SECRET, now=now) is False


def test_render_qr_returns_png_data_url():
    url = TokenService.render_qr(_token())
    assert url.startswith('data:image/png;base64,')


def test_payload_round_trips_fields():
    token = _token()
    data = json.loads(token.to_payload())
    assert set(data) == {'class_id', 'issued_at', 'expires_at', 'signature'}
    assert isinstance(token, SignedToken)
