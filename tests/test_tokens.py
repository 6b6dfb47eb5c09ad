from datetime import datetime, timedelta, timezone

import jwt
import pytest

from auth_guard import authenticate, bearer_token
from errors import AuthError
from services.tokens import TokenIssuer

SECRET = "unit-test-signing-secret-32-bytes!!"


@pytest.fixture
def issuer():
    return TokenIssuer(SECRET, ttl_seconds=3600)


def test_issue_and_decode_round_trip(issuer):
    token = issuer.issue(42)
    assert issuer.decode(token) == {"id": 42, "role": "user"}


def test_token_expires_after_one_hour(issuer):
    issued = datetime.now(timezone.utc) - timedelta(hours=1, seconds=5)
    token = issuer.issue(42, now=issued)
    with pytest.raises(jwt.ExpiredSignatureError):
        issuer.decode(token)


def test_exp_claim_is_one_hour_after_iat(issuer):
    token = issuer.issue(7)
    claims = jwt.decode(token, SECRET, algorithms=["HS256"])
    assert claims["exp"] - claims["iat"] == 3600


def test_foreign_signature_rejected(issuer):
    forged = TokenIssuer("another-signing-secret-of-32-bytes!").issue(42)
    with pytest.raises(jwt.InvalidSignatureError):
        issuer.decode(forged)


def test_missing_claims_rejected(issuer):
    token = jwt.encode(
        {"id": 1, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(jwt.MissingRequiredClaimError):
        issuer.decode(token)


def test_empty_secret_refused():
    with pytest.raises(ValueError):
        TokenIssuer("")


@pytest.mark.parametrize("header, expected", [
    (None, None),
    ("", None),
    ("Bearer", None),
    ("Bearer ", None),
    ("Basic abc", None),
    ("Bearer abc.def.ghi", "abc.def.ghi"),
    ("bearer abc", "abc"),
])
def test_bearer_token_parsing(header, expected):
    assert bearer_token(header) == expected


def test_authenticate_without_header(issuer):
    with pytest.raises(AuthError) as exc:
        authenticate(None, issuer)
    assert exc.value.code == "NO_TOKEN"
    assert exc.value.status == 403


def test_authenticate_with_garbage(issuer):
    with pytest.raises(AuthError) as exc:
        authenticate("Bearer definitelynotatoken", issuer)
    assert exc.value.code == "INVALID_TOKEN"
    assert exc.value.status == 403


def test_authenticate_valid(issuer):
    token = issuer.issue(5)
    assert authenticate(f"Bearer {token}", issuer) == {"id": 5, "role": "user"}
