"""Tests for HMAC token and wallet endpoints."""

import pytest

from accountkit import messages
from accountkit.errors import ServiceError


class TestHmacTokens:
    """Tests for /user/tokens and /user/token."""

    @pytest.mark.asyncio
    async def test_list_tokens(self, client, fake_services, auth_headers):
        tokens = [{"id": 1, "name": "bot", "apiKey": "k", "secret": "abcde***"}]
        fake_services.security.get_hmac_tokens.return_value = tokens

        response = await client.get("/user/tokens", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == tokens
        fake_services.security.get_hmac_tokens.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_create_token(self, client, fake_services, auth_headers):
        token = {"id": 2, "name": "bot", "apiKey": "k", "secret": "full-secret"}
        fake_services.security.create_hmac_token.return_value = token

        response = await client.post(
            "/user/token",
            json={"name": "bot", "otp_code": "123456"},
            headers={**auth_headers, "x-real-ip": "10.0.0.1"},
        )

        assert response.status_code == 200
        assert response.json() == token
        fake_services.security.create_hmac_token.assert_awaited_once_with(
            7, "123456", "10.0.0.1", "bot"
        )

    @pytest.mark.asyncio
    async def test_create_token_limit(self, client, fake_services, auth_headers):
        fake_services.security.create_hmac_token.side_effect = ServiceError.rejected(
            messages.TOKEN_LIMIT_REACHED
        )

        response = await client.post("/user/token", json={"name": "bot"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"message": messages.TOKEN_LIMIT_REACHED}

    @pytest.mark.asyncio
    async def test_delete_token(self, client, fake_services, auth_headers):
        response = await client.request(
            "DELETE",
            "/user/token",
            json={"token_id": 2, "otp_code": "123456"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"message": messages.TOKEN_REMOVED}
        fake_services.security.delete_hmac_token.assert_awaited_once_with(7, "123456", 2)

    @pytest.mark.asyncio
    async def test_delete_unknown_token(self, client, fake_services, auth_headers):
        fake_services.security.delete_hmac_token.side_effect = ServiceError.not_found(
            messages.TOKEN_NOT_FOUND, status=404
        )

        response = await client.request(
            "DELETE", "/user/token", json={"token_id": 99}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json() == {"message": messages.TOKEN_NOT_FOUND}

    @pytest.mark.asyncio
    async def test_delete_requires_token_id(self, client, fake_services, auth_headers):
        response = await client.request("DELETE", "/user/token", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"].startswith("token_id:")
        fake_services.security.delete_hmac_token.assert_not_awaited()


class TestBalance:
    """Tests for GET /user/balance."""

    @pytest.mark.asyncio
    async def test_balance(self, client, fake_services, auth_headers):
        balance = {"user_id": 7, "btc_balance": "1.5", "btc_available": "1", "updated_at": None}
        fake_services.wallet.get_user_balance.return_value = balance

        response = await client.get("/user/balance", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == balance
        fake_services.wallet.get_user_balance.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_balance_failure(self, client, fake_services, auth_headers):
        fake_services.wallet.get_user_balance.side_effect = ServiceError.internal(
            "Ledger unavailable", status=503
        )

        response = await client.get("/user/balance", headers=auth_headers)

        assert response.status_code == 503
        assert response.json() == {"message": "Ledger unavailable"}


class TestCreateAddress:
    """Tests for GET /user/create-address."""

    @pytest.mark.asyncio
    async def test_create_address(self, client, fake_services, auth_headers):
        fake_services.wallet.is_supported_coin.return_value = True
        address = {"crypto": "btc", "address": "bc1qxyz", "created_at": None}
        fake_services.wallet.create_crypto_address.return_value = address

        response = await client.get(
            "/user/create-address", params={"crypto": "btc"}, headers=auth_headers
        )

        assert response.status_code == 201
        assert response.json() == address
        fake_services.wallet.is_supported_coin.assert_called_once_with("btc")
        fake_services.wallet.create_crypto_address.assert_awaited_once_with(7, "btc")

    @pytest.mark.asyncio
    async def test_unsupported_coin(self, client, fake_services, auth_headers):
        fake_services.wallet.is_supported_coin.return_value = False

        response = await client.get(
            "/user/create-address", params={"crypto": "doge"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json() == {"message": 'Invalid crypto: "doge"'}
        fake_services.wallet.create_crypto_address.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_coin(self, client, fake_services, auth_headers):
        fake_services.wallet.is_supported_coin.return_value = False

        response = await client.get("/user/create-address", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"message": 'Invalid crypto: ""'}

    @pytest.mark.asyncio
    async def test_address_exists(self, client, fake_services, auth_headers):
        fake_services.wallet.is_supported_coin.return_value = True
        fake_services.wallet.create_crypto_address.side_effect = ServiceError.rejected(
            messages.ADDRESS_EXISTS
        )

        response = await client.get(
            "/user/create-address", params={"crypto": "btc"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json() == {"message": messages.ADDRESS_EXISTS}


class TestCancelWithdrawal:
    """Tests for DELETE /user/withdrawal."""

    @pytest.mark.asyncio
    async def test_cancel(self, client, fake_services, auth_headers):
        withdrawal = {"transaction_id": "tx-1", "status": "cancelled", "dismissed": True}
        fake_services.wallet.cancel_withdrawal.return_value = withdrawal

        response = await client.request(
            "DELETE", "/user/withdrawal", json={"transaction_id": "tx-1"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json() == withdrawal
        fake_services.wallet.cancel_withdrawal.assert_awaited_once_with(7, "tx-1")

    @pytest.mark.asyncio
    async def test_cancel_unknown(self, client, fake_services, auth_headers):
        fake_services.wallet.cancel_withdrawal.side_effect = ServiceError.not_found(
            messages.WITHDRAWAL_NOT_FOUND, status=404
        )

        response = await client.request(
            "DELETE", "/user/withdrawal", json={"transaction_id": "tx-x"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json() == {"message": messages.WITHDRAWAL_NOT_FOUND}
