from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
import uuid

import pytest
from jose import jwt

from cinema_api.core.config import JwtSettings
from cinema_api.core.errors import (
    BadClaimError,
    ConfigurationError,
    InvalidTokenError,
    MissingClaimError,
    StoreUnavailableError,
    TokenExpiredError,
    TokenRevokedError,
)
from cinema_api.core.revocation import InMemoryRevocationStore, RevocationStore
from cinema_api.core.security import get_password_hash, verify_password
from cinema_api.core.tokens import (
    AuthenticationGate,
    TokenIssuer,
    revocation_key,
    revoke_token,
)

JWT = JwtSettings(key="unit-test-key", issuer="issuer", audience="audience")
ALICE = SimpleNamespace(id=7, username="alice", email="alice@x.com", role="User")


class DownStore(RevocationStore):
    async def put(self, key, value, ttl):
        raise StoreUnavailableError("down")

    async def get(self, key):
        raise StoreUnavailableError("down")


def test_hash_is_salted_and_verifies():
    first = get_password_hash("secret")
    second = get_password_hash("secret")
    assert first != second
    assert verify_password("secret", first)
    assert verify_password("secret", second)
    assert not verify_password("Secret", first)


@pytest.mark.parametrize("bad_hash", ["", None, "not-a-hash", "$2b$12$short"])
def test_verify_malformed_hash_is_false(bad_hash):
    assert verify_password("secret", bad_hash) is False


@pytest.mark.parametrize("missing", ["key", "issuer", "audience"])
def test_issuer_requires_configuration(missing):
    values = {"key": "k", "issuer": "i", "audience": "a", missing: None}
    with pytest.raises(ConfigurationError):
        TokenIssuer(JwtSettings(**values))


def test_gate_requires_configuration():
    with pytest.raises(ConfigurationError):
        AuthenticationGate(JwtSettings(key="k"), InMemoryRevocationStore())


def test_issue_claims():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    token = TokenIssuer(JWT).issue(ALICE, now=now)
    claims = jwt.get_unverified_claims(token)
    assert jwt.get_unverified_header(token)["alg"] == "HS256"
    assert claims["sub"] == "7"
    assert claims["username"] == "alice"
    assert claims["email"] == "alice@x.com"
    assert claims["role"] == "User"
    assert claims["iss"] == "issuer"
    assert claims["aud"] == "audience"
    assert claims["iat"] == int(now.timestamp())
    assert claims["exp"] == int((now + timedelta(hours=1)).timestamp())


def test_issue_never_repeats_jti():
    issuer = TokenIssuer(JWT)
    jtis = {jwt.get_unverified_claims(issuer.issue(ALICE))["jti"] for _ in range(20)}
    assert len(jtis) == 20


async def test_gate_accepts_fresh_token():
    gate = AuthenticationGate(JWT, InMemoryRevocationStore())
    claims = await gate.authenticate(TokenIssuer(JWT).issue(ALICE))
    assert claims["username"] == "alice"


@pytest.mark.parametrize("other", [
    JwtSettings(key="another-key", issuer="issuer", audience="audience"),
    JwtSettings(key="unit-test-key", issuer="someone-else", audience="audience"),
    JwtSettings(key="unit-test-key", issuer="issuer", audience="someone-else"),
])
async def test_gate_rejects_foreign_tokens(other):
    gate = AuthenticationGate(JWT, InMemoryRevocationStore())
    with pytest.raises(InvalidTokenError):
        await gate.authenticate(TokenIssuer(other).issue(ALICE))


async def test_gate_rejects_garbage():
    gate = AuthenticationGate(JWT, InMemoryRevocationStore())
    with pytest.raises(InvalidTokenError):
        await gate.authenticate("a.b.c")


async def test_gate_rejects_expired_token_regardless_of_store():
    store = InMemoryRevocationStore()
    gate = AuthenticationGate(JWT, store)
    token = TokenIssuer(JWT).issue(ALICE, now=datetime.now(timezone.utc) - timedelta(hours=2))
    with pytest.raises(TokenExpiredError):
        await gate.authenticate(token)
    assert len(store) == 0


async def test_gate_rejects_token_without_jti():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "7", "iat": now, "exp": now + timedelta(hours=1), "iss": "issuer", "aud": "audience"},
        JWT.key,
        algorithm="HS256",
    )
    gate = AuthenticationGate(JWT, InMemoryRevocationStore())
    with pytest.raises(MissingClaimError) as exc:
        await gate.authenticate(token)
    assert exc.value.claim == "jti"


async def test_gate_rejects_future_iat():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "7", "jti": uuid.uuid4().hex, "iat": now + timedelta(minutes=10),
         "exp": now + timedelta(hours=1), "iss": "issuer", "aud": "audience"},
        JWT.key,
        algorithm="HS256",
    )
    gate = AuthenticationGate(JWT, InMemoryRevocationStore())
    with pytest.raises(InvalidTokenError):
        await gate.authenticate(token)


async def test_logout_then_gate_rejects():
    store = InMemoryRevocationStore()
    gate = AuthenticationGate(JWT, store)
    token = TokenIssuer(JWT).issue(ALICE)

    claims = await gate.authenticate(token)
    ttl = await revoke_token(claims, store)
    assert timedelta(minutes=59) < ttl <= timedelta(hours=1)

    with pytest.raises(TokenRevokedError):
        await gate.authenticate(token)


async def test_gate_fails_closed_when_store_down():
    gate = AuthenticationGate(JWT, DownStore())
    with pytest.raises(StoreUnavailableError):
        await gate.authenticate(TokenIssuer(JWT).issue(ALICE))


@pytest.mark.parametrize("claims, message", [
    ({"exp": 2_000_000_000}, "JTI"),
    ({"jti": "", "exp": 2_000_000_000}, "JTI"),
    ({"jti": "abc"}, "expiration"),
    ({"jti": "abc", "exp": "soon"}, "expiration"),
    ({"jti": "abc", "exp": 0}, "positive"),
    ({"jti": "abc", "exp": -5}, "positive"),
])
async def test_revoke_rejects_bad_claims(claims, message):
    store = InMemoryRevocationStore()
    with pytest.raises(BadClaimError) as exc:
        await revoke_token(claims, store)
    assert message in str(exc.value)
    assert len(store) == 0


async def test_revoke_expired_token_is_noop():
    store = InMemoryRevocationStore()
    past = int((datetime.now(timezone.utc) - timedelta(seconds=5)).timestamp())
    assert await revoke_token({"jti": "abc", "exp": past}, store) is None
    assert len(store) == 0


async def test_revoke_ttl_matches_remaining_lifetime():
    store = InMemoryRevocationStore()
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    exp = int((now + timedelta(minutes=10)).timestamp())
    ttl = await revoke_token({"jti": "abc", "exp": exp}, store, now=now)
    assert ttl == timedelta(minutes=10)
    assert await store.get(revocation_key("abc")) == "revoked"


async def test_revoke_accepts_numeric_string_exp():
    store = InMemoryRevocationStore()
    exp = str(int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp()))
    assert await revoke_token({"jti": "abc", "exp": exp}, store) is not None


async def test_revoke_surfaces_store_failure():
    exp = int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp())
    with pytest.raises(StoreUnavailableError):
        await revoke_token({"jti": "abc", "exp": exp}, DownStore())


def _signed(claims):
    return jwt.encode(claims, JWT.key, algorithm="HS256")


@pytest.mark.parametrize("dropped", ["aud", "iss", "iat"])
async def test_gate_requires_registered_claims(dropped):
    now = datetime.now(timezone.utc)
    claims = {"sub": "7", "role": "Admin", "jti": uuid.uuid4().hex, "iat": now,
              "exp": now + timedelta(hours=1), "iss": "issuer", "aud": "audience"}
    del claims[dropped]
    gate = AuthenticationGate(JWT, InMemoryRevocationStore())
    with pytest.raises(InvalidTokenError):
        await gate.authenticate(_signed(claims))


async def test_gate_coerces_string_iat():
    now = datetime.now(timezone.utc)
    base = {"sub": "7", "jti": uuid.uuid4().hex, "exp": now + timedelta(hours=1),
            "iss": "issuer", "aud": "audience"}
    gate = AuthenticationGate(JWT, InMemoryRevocationStore())

    claims = await gate.authenticate(_signed({**base, "iat": "123"}))
    assert claims["sub"] == "7"

    future = str(int((now + timedelta(minutes=10)).timestamp()))
    with pytest.raises(InvalidTokenError):
        await gate.authenticate(_signed({**base, "iat": future}))
