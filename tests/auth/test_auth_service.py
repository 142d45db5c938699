import pytest
from werkzeug.security import generate_password_hash

from opsdesk.auth.tokens import TokenService
from opsdesk.core.enums import Role
from opsdesk.core.exceptions import AuthenticationError, ValidationError
from opsdesk.users.service import AuthService


@pytest.fixture
def tokens():
    return TokenService("test-secret", ttl_minutes=5)


@pytest.fixture
def auth(profiles, make_profile, tokens):
    profiles.add(
        make_profile(
            7,
            role=Role.ADMIN,
            position="HR",
            permissions={"manage_leave_requests"},
            password_hash=generate_password_hash("s3cret"),
        )
    )
    return AuthService(profiles, tokens)


def test_login_issues_token_that_resolves_to_context(auth):
    result = auth.login("user7@example.com", "s3cret")
    ctx = auth.resolve(result.access_token)

    assert ctx.user_id == 7
    assert ctx.role == Role.ADMIN
    assert ctx.position == "HR"
    assert ctx.has_permission("manage_leave_requests")


def test_wrong_password_and_unknown_email_look_the_same(auth):
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        auth.login("user7@example.com", "nope")
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        auth.login("ghost@example.com", "s3cret")


def test_login_requires_both_fields(auth):
    with pytest.raises(ValidationError):
        auth.login("", "s3cret")


def test_token_signed_with_other_key_is_rejected(auth):
    forged = TokenService("other-secret").issue(user_id=7, email="user7@example.com")
    with pytest.raises(AuthenticationError):
        auth.resolve(forged)


def test_token_for_missing_profile_is_rejected(auth, tokens):
    with pytest.raises(AuthenticationError):
        auth.resolve(tokens.issue(user_id=99, email="ghost@example.com"))


def test_expired_token_is_rejected(profiles, make_profile):
    profiles.add(make_profile(1))
    expired = TokenService("test-secret", ttl_minutes=-1)
    service = AuthService(profiles, expired)
    with pytest.raises(AuthenticationError):
        service.resolve(expired.issue(user_id=1, email="user1@example.com"))
