"""Balance, deposit address and withdrawal endpoints."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from accountkit import messages
from accountkit.errors import ServiceError
from accountkit.services import Services, SessionClaim, get_services
from accountkit.web.contracts.wallet import CancelWithdrawalRequest
from accountkit.web.dependencies import (
    OperationLogger,
    get_operation_logger,
    require_session,
)
from accountkit.web.responses import error_response, json_response, message_response

router = APIRouter(prefix="/user", tags=["wallet"])


@router.get("/balance")
async def get_user_balance(
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("get_user_balance %s", auth.id)

    try:
        balance = await services.wallet.get_user_balance(auth.id)
    except ServiceError as err:
        return error_response(err, log, "get_user_balance")

    return json_response(balance)


@router.get("/create-address")
async def create_crypto_address(
    crypto: str = Query(""),
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Generate a deposit address for ``crypto``.

    Unsupported coins are refused with 404 before the wallet is asked.
    """
    log.debug("create_crypto_address %s %s", auth.id, crypto)

    if not services.wallet.is_supported_coin(crypto):
        log.error("create_crypto_address unsupported coin %s", crypto)
        return message_response(messages.invalid_crypto(crypto), 404)

    try:
        address = await services.wallet.create_crypto_address(auth.id, crypto)
    except ServiceError as err:
        return error_response(err, log, "create_crypto_address")

    return json_response(address, 201)


@router.delete("/withdrawal")
async def cancel_withdrawal(
    request: CancelWithdrawalRequest,
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.verbose("cancel_withdrawal %s %s", auth.id, request.transaction_id)

    try:
        withdrawal = await services.wallet.cancel_withdrawal(auth.id, request.transaction_id)
    except ServiceError as err:
        return error_response(err, log, "cancel_withdrawal")

    return json_response(withdrawal)
