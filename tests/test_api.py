"""Tests for the application factory and error mapping."""

import logging

import pytest
from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from accountkit import messages
from accountkit.errors import ErrorKind, ServiceError
from accountkit.storage import database
from accountkit.web.dependencies import OperationLogger
from accountkit.web.responses import error_response, failure_status, is_user_not_found


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.fixture
    def database_up(self, monkeypatch):
        state = {"reachable": True}

        async def ping_db():
            return state["reachable"]

        monkeypatch.setattr(database, "ping_db", ping_db)
        return state

    @pytest.mark.asyncio
    async def test_health_check(self, client, database_up):
        response = await client.get("http://test/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "testex", "database": "ok"}

    @pytest.mark.asyncio
    async def test_detailed_health(self, client, database_up):
        response = await client.get("http://test/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["database"] == "ok"
        assert data["config"]["coins"] == ["btc", "eth"]
        assert data["config"]["environment"] == "test"

    @pytest.mark.asyncio
    async def test_database_down(self, client, database_up):
        database_up["reachable"] = False

        response = await client.get("http://test/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
        assert response.json()["database"] == "unavailable"

    @pytest.mark.asyncio
    async def test_ping_against_live_engine(self, db_engine, monkeypatch):
        monkeypatch.setattr(database, "get_engine", lambda: db_engine)

        assert await database.ping_db() is True


class TestServiceError:
    """Tests for the tagged error type."""

    def test_validation_message_is_first_field_message(self):
        err = ServiceError.validation(["first", "second"])

        assert err.kind == ErrorKind.VALIDATION
        assert err.message == "first"
        assert str(err) == "first"

    def test_from_pydantic(self):
        class Named(BaseModel):
            name: str

            @field_validator("name")
            @classmethod
            def check(cls, value):
                raise PydanticCustomError("bad_name", "Name is wrong")

        with pytest.raises(ValidationError) as exc:
            Named(name="x")

        err = ServiceError.from_validation_error(exc.value)

        assert err.message == "Name is wrong"

    def test_default_statuses(self):
        assert ServiceError.rejected("x").status is None
        assert ServiceError.not_found("x").status is None
        assert ServiceError.unauthorized("x").status == 401
        assert ServiceError.internal("x").status == 500


class TestErrorMapping:
    """Tests for the failure status and masking rules."""

    def test_status_defaults_to_400(self):
        assert failure_status(ServiceError.rejected("x")) == 400
        assert failure_status(ServiceError.rejected("x", status=409)) == 409

    def test_user_not_found_predicate(self):
        assert is_user_not_found(ServiceError.not_found(messages.USER_NOT_FOUND))
        assert is_user_not_found(ServiceError.rejected(messages.USER_NOT_FOUND))
        assert is_user_not_found(ServiceError(messages.USER_NOT_FOUND))
        assert not is_user_not_found(ServiceError.not_found(messages.TOKEN_NOT_FOUND))

    def test_error_response_logs_with_correlation_id(self, caplog):
        log = OperationLogger(logging.getLogger("accountkit.web"), "req-1")

        with caplog.at_level(logging.ERROR, logger="accountkit.web"):
            response = error_response(ServiceError.rejected("nope"), log, "lookup")

        assert response.status_code == 400
        assert "[req-1] lookup nope" in caplog.text

    def test_error_response_overrides(self):
        log = OperationLogger(logging.getLogger("accountkit.web"), "req-2")

        response = error_response(
            ServiceError.rejected("nope", status=404), log, "lookup", status_code=403, message="x"
        )

        assert response.status_code == 403
        assert response.body == b'{"message":"x"}'

    @pytest.mark.asyncio
    async def test_correlation_id_header_is_used(self, client, fake_services, caplog):
        fake_services.identity.verify_user.side_effect = ServiceError.rejected("bad code")

        with caplog.at_level(logging.ERROR, logger="accountkit.web"):
            await client.post(
                "/verify",
                json={"email": "alice@example.com", "verification_code": "x"},
                headers={"x-request-id": "abc-123"},
            )

        assert "[abc-123] verify_user bad code" in caplog.text

    def test_verbose_level(self, caplog):
        log = OperationLogger(logging.getLogger("accountkit.web"), "req-3")

        with caplog.at_level(logging.INFO, logger="accountkit.web"):
            log.verbose("hello %s", "there")

        assert "[req-3] hello there" in caplog.text
