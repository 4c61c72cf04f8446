"""Tests for the local security collaborator."""

import asyncio
import uuid

import httpx
import jwt
import pytest
import pytest_asyncio

from accountkit import messages
from accountkit.errors import ErrorKind, ServiceError
from accountkit.services import MailType
from accountkit.services.notifications import wait_for_pending_sends
from accountkit.services.security import LocalSecurityService
from accountkit.storage.repository import AccountRepository

PASSWORD = "secret123"


@pytest_asyncio.fixture
async def user(identity) -> dict:
    created = await identity.sign_up_user("alice@example.com", PASSWORD)
    code = await identity.get_verification_code_by_email("alice@example.com")
    await identity.verify_user("alice@example.com", code["code"])
    return created


def captcha_service(notifier, settings, session_scope, handler, monkeypatch):
    """Security service whose reCAPTCHA calls are answered by ``handler``."""
    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)
    configured = settings.model_copy(update={"captcha_secret": "captcha-secret"})
    return LocalSecurityService(notifier, configured, session_scope=session_scope)


class TestCaptcha:
    """Tests for reCAPTCHA verification."""

    @pytest.mark.asyncio
    async def test_disabled_without_secret(self, security):
        assert await security.check_captcha(None) is None

    @pytest.mark.asyncio
    async def test_missing_captcha(self, notifier, settings, session_scope, monkeypatch):
        service = captcha_service(
            notifier, settings, session_scope, lambda request: httpx.Response(200), monkeypatch
        )

        with pytest.raises(ServiceError) as exc:
            await service.check_captcha(None)

        assert exc.value.message == messages.INVALID_CAPTCHA

    @pytest.mark.asyncio
    async def test_accepted(self, notifier, settings, session_scope, monkeypatch):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content.decode()
            return httpx.Response(200, json={"success": True})

        service = captcha_service(notifier, settings, session_scope, handler, monkeypatch)

        await service.check_captcha("token-from-browser", "10.0.0.1")

        assert "response=token-from-browser" in seen["body"]
        assert "remoteip=10.0.0.1" in seen["body"]

    @pytest.mark.asyncio
    async def test_rejected(self, notifier, settings, session_scope, monkeypatch):
        service = captcha_service(
            notifier,
            settings,
            session_scope,
            lambda request: httpx.Response(200, json={"success": False}),
            monkeypatch,
        )

        with pytest.raises(ServiceError) as exc:
            await service.check_captcha("bad")

        assert exc.value.kind == ErrorKind.REJECTED

    @pytest.mark.asyncio
    async def test_provider_unavailable(self, notifier, settings, session_scope, monkeypatch):
        service = captcha_service(
            notifier, settings, session_scope, lambda request: httpx.Response(502), monkeypatch
        )

        with pytest.raises(ServiceError) as exc:
            await service.check_captcha("token")

        assert exc.value.kind == ErrorKind.INTERNAL
        assert exc.value.status == 503


class TestSessionTokens:
    """Tests for issuing and verifying session tokens."""

    @pytest.mark.asyncio
    async def test_round_trip(self, security, user):
        token = security.issue_token(user, "10.0.0.1")

        claim = await security.verify_token(token)

        assert claim.id == user["id"]
        assert claim.email == "alice@example.com"
        assert claim.scopes == ["user"]

    @pytest.mark.asyncio
    async def test_payload(self, security, settings, user):
        token = security.issue_token({**user, "is_admin": True}, "10.0.0.1")

        payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"], issuer="testex")

        assert payload["sub"] == str(user["id"])
        assert payload["email"] == "alice@example.com"
        assert payload["scopes"] == ["user", "admin"]
        assert payload["ip"] == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_wrong_secret(self, security, user):
        token = jwt.encode({"sub": str(user["id"]), "iss": "testex"}, "other", algorithm="HS256")

        with pytest.raises(ServiceError) as exc:
            await security.verify_token(token)

        assert exc.value.status == 401
        assert exc.value.message == messages.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_expired(self, notifier, settings, session_scope, user):
        expired = LocalSecurityService(
            notifier,
            settings.model_copy(update={"token_expiry_hours": -1}),
            session_scope=session_scope,
        )

        with pytest.raises(ServiceError) as exc:
            await expired.verify_token(expired.issue_token(user))

        assert exc.value.message == messages.TOKEN_EXPIRED

    @pytest.mark.asyncio
    async def test_frozen_user(self, security, identity, user):
        token = security.issue_token(user)
        await identity.freeze_user(user["id"])

        with pytest.raises(ServiceError) as exc:
            await security.verify_token(token)

        assert exc.value.status == 403


class TestPasswordReset:
    """Tests for reset codes."""

    async def request_code(self, security, notifier) -> str:
        await wait_for_pending_sends()
        notifier.send_email.reset_mock()
        await security.send_reset_password_code("alice@example.com", ip="10.0.0.1")
        await wait_for_pending_sends()
        args = notifier.send_email.await_args.args
        assert args[0] == MailType.RESET_PASSWORD
        assert args[2]["ip"] == "10.0.0.1"
        return args[2]["code"]

    @pytest.mark.asyncio
    async def test_reset(self, security, identity, notifier, user):
        code = await self.request_code(security, notifier)

        await security.reset_user_password(code, "newpass123")

        assert (await identity.login_user("alice@example.com", "newpass123"))["id"] == user["id"]

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, security, notifier, user):
        code = await self.request_code(security, notifier)
        await security.reset_user_password(code, "newpass123")

        with pytest.raises(ServiceError) as exc:
            await security.reset_user_password(code, "another123")

        assert exc.value.message == messages.INVALID_CODE

    @pytest.mark.asyncio
    async def test_unknown_code(self, security, user):
        with pytest.raises(ServiceError) as exc:
            await security.reset_user_password(str(uuid.uuid4()), "newpass123")

        assert exc.value.message == messages.INVALID_CODE

    @pytest.mark.asyncio
    async def test_expired_code(self, notifier, settings, session_scope, user):
        short = LocalSecurityService(
            notifier,
            settings.model_copy(update={"reset_code_ttl_minutes": -1}),
            session_scope=session_scope,
        )
        code = await self.request_code(short, notifier)

        with pytest.raises(ServiceError) as exc:
            await short.reset_user_password(code, "newpass123")

        assert exc.value.message == messages.INVALID_CODE

    @pytest.mark.asyncio
    async def test_weak_new_password(self, security, notifier, user):
        code = await self.request_code(security, notifier)

        with pytest.raises(ServiceError) as exc:
            await security.reset_user_password(code, "weak")

        assert exc.value.kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_unknown_email(self, security, notifier):
        with pytest.raises(ServiceError) as exc:
            await security.send_reset_password_code("ghost@example.com")

        assert exc.value.kind == ErrorKind.NOT_FOUND
        assert exc.value.message == messages.USER_NOT_FOUND
        notifier.send_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_request_does_not_wait_for_email(
        self, held_notifier, settings, session_scope, user
    ):
        service = LocalSecurityService(held_notifier, settings, session_scope=session_scope)

        await asyncio.wait_for(service.send_reset_password_code("alice@example.com"), timeout=5)

        held_notifier.send_email.assert_called_once()
        assert held_notifier.send_email.call_args.args[0] == MailType.RESET_PASSWORD
        held_notifier.release.set()
        await wait_for_pending_sends()
        held_notifier.send_email.assert_awaited_once()


class TestChangePassword:
    """Tests for changing the password of a signed-in user."""

    @pytest.mark.asyncio
    async def test_change(self, security, identity, user):
        await security.change_user_password("alice@example.com", PASSWORD, "newpass123")

        assert await identity.login_user("alice@example.com", "newpass123")

    @pytest.mark.asyncio
    async def test_wrong_old_password(self, security, user):
        with pytest.raises(ServiceError) as exc:
            await security.change_user_password("alice@example.com", "wrongpass1", "newpass123")

        assert exc.value.kind == ErrorKind.AUTHENTICATION
        assert exc.value.status is None

    @pytest.mark.asyncio
    async def test_same_password(self, security, user):
        with pytest.raises(ServiceError) as exc:
            await security.change_user_password("alice@example.com", PASSWORD, PASSWORD)

        assert exc.value.message == messages.SAME_PASSWORD


class TestHmacTokens:
    """Tests for HMAC API tokens."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, security, user):
        created = await security.create_hmac_token(user["id"], None, "10.0.0.1", "bot")

        listed = await security.get_hmac_tokens(user["id"])

        assert len(created["secret"]) == 64
        assert listed[0]["id"] == created["id"]
        assert listed[0]["apiKey"] == created["apiKey"]
        assert listed[0]["secret"] != created["secret"]
        assert listed[0]["secret"].startswith(created["secret"][:5])

    @pytest.mark.asyncio
    async def test_limit(self, security, user):
        await security.create_hmac_token(user["id"], None, None, "one")
        await security.create_hmac_token(user["id"], None, None, "two")

        with pytest.raises(ServiceError) as exc:
            await security.create_hmac_token(user["id"], None, None, "three")

        assert exc.value.message == messages.TOKEN_LIMIT_REACHED

    @pytest.mark.asyncio
    async def test_delete(self, security, session_scope, user):
        created = await security.create_hmac_token(user["id"], None, None, "bot")

        await security.delete_hmac_token(user["id"], None, created["id"])

        assert await security.get_hmac_tokens(user["id"]) == []
        async with session_scope() as session:
            token = await AccountRepository(session).get_hmac_token(user["id"], created["id"])
            assert token.revoked is True
            assert token.revoked_at is not None

    @pytest.mark.asyncio
    async def test_delete_twice(self, security, user):
        created = await security.create_hmac_token(user["id"], None, None, "bot")
        await security.delete_hmac_token(user["id"], None, created["id"])

        with pytest.raises(ServiceError) as exc:
            await security.delete_hmac_token(user["id"], None, created["id"])

        assert exc.value.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_other_users_token(self, security, identity, user):
        created = await security.create_hmac_token(user["id"], None, None, "bot")
        other = await identity.sign_up_user("bob@example.com", PASSWORD)

        with pytest.raises(ServiceError) as exc:
            await security.delete_hmac_token(other["id"], None, created["id"])

        assert exc.value.message == messages.TOKEN_NOT_FOUND
