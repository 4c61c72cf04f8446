"""Signup, verification, login and password reset endpoints.

None of these require a session except ``/verify-token``. Failures from the
collaborators are mapped through ``accountkit.web.responses``; login always
answers 403, and two lookups mask "user not found" so account existence is
not revealed.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import JSONResponse

from accountkit import messages
from accountkit.errors import ServiceError
from accountkit.services import MailType, Services, SessionClaim, get_services
from accountkit.validators import is_email, is_uuid
from accountkit.web.background import schedule_email
from accountkit.web.contracts.auth import (
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    ServiceCallbackResponse,
    SignupRequest,
    TokenResponse,
    VerificationResponse,
    VerifyUserRequest,
)
from accountkit.web.dependencies import (
    OperationLogger,
    RequestContext,
    get_operation_logger,
    get_request_context,
    require_session,
)
from accountkit.web.responses import (
    error_response,
    is_user_not_found,
    json_response,
    message_response,
)

router = APIRouter(tags=["auth"])

LOGIN_FAILURE_STATUS = 403


@router.post("/signup", status_code=201, response_model=MessageResponse)
async def sign_up_user(
    request: SignupRequest,
    context: RequestContext = Depends(get_request_context),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Register a new account.

    The captcha is checked first; the user is only created when it passes.
    """
    log.debug(
        "sign_up_user %s %s",
        request.model_dump(exclude={"password", "captcha"}),
        context.ip,
    )

    try:
        await services.security.check_captcha(request.captcha, context.ip)
        await services.identity.sign_up_user(request.email, request.password, request.referral)
    except ServiceError as err:
        return error_response(err, log, "sign_up_user")

    return message_response(messages.USER_REGISTERED, 201)


@router.get("/verify", response_model=VerificationResponse)
async def get_verify_user(
    background: BackgroundTasks,
    email: Optional[str] = Query(None),
    verification_code: Optional[str] = Query(None),
    resend: bool = Query(False),
    context: RequestContext = Depends(get_request_context),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Look up a pending verification by email or by code.

    With ``resend`` on an email lookup the signup email is sent again. An
    unknown user answers with the same message a real send produces.
    """
    log.debug("get_verify_user email=%s code=%s resend=%s", email, verification_code, resend)

    try:
        if email and is_email(email):
            code = await services.identity.get_verification_code_by_email(email)
            if resend:
                schedule_email(
                    background,
                    services.notifier,
                    log,
                    MailType.SIGNUP,
                    email,
                    code["code"],
                    domain=context.domain,
                )
            found_email, found_code = email, code["code"]
        elif verification_code and is_uuid(verification_code):
            found_email = await services.identity.get_email_by_verification_code(verification_code)
            found_code = verification_code
        else:
            return message_response(messages.PROVIDE_VALID_EMAIL_CODE, 400)
    except ServiceError as err:
        if is_user_not_found(err):
            log.error("get_verify_user %s", err.message)
            return message_response(messages.VERIFICATION_EMAIL_MESSAGE)
        return error_response(err, log, "get_verify_user")

    return json_response(
        VerificationResponse(
            email=found_email,
            verification_code=found_code,
            message=messages.VERIFICATION_EMAIL_MESSAGE,
        ).model_dump()
    )


@router.post("/verify", response_model=MessageResponse)
async def verify_user(
    request: VerifyUserRequest,
    context: RequestContext = Depends(get_request_context),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("verify_user %s", request.email)

    try:
        await services.identity.verify_user(request.email, request.verification_code, context.domain)
    except ServiceError as err:
        return error_response(err, log, "verify_user")

    return message_response(messages.USER_VERIFIED)


@router.post("/login", status_code=201, response_model=TokenResponse)
async def login_post(
    request: LoginRequest,
    background: BackgroundTasks,
    context: RequestContext = Depends(get_request_context),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Authenticate and issue a session token.

    When ``service`` names a supported helpdesk the response carries a
    signed callback URL instead of a token, and no login email is sent.
    Every failure answers 403 so a bad password looks like any other error.
    """
    log.verbose("login_post %s %s service=%s", request.email, context.ip, request.service)

    try:
        user = await services.identity.login_user(
            request.email,
            request.password,
            request.otp_code,
            request.captcha,
            context.ip,
            context.user_agent,
            context.domain,
            context.origin,
            context.referer,
        )

        if request.service:
            signers = {
                "freshdesk": services.sso.sign_freshdesk,
                "zendesk": services.sso.sign_zendesk,
            }
            sign = signers.get(request.service)
            if sign is None:
                raise ServiceError.rejected(messages.SERVICE_NOT_SUPPORTED)
            callback = ServiceCallbackResponse(service=request.service, callbackUrl=sign(user))
            return json_response(callback.model_dump(), 201)

        token = services.security.issue_token(user, context.ip)
    except ServiceError as err:
        return error_response(err, log, "login_post", status_code=LOGIN_FAILURE_STATUS)

    schedule_email(
        background,
        services.notifier,
        log,
        MailType.LOGIN,
        request.email,
        {
            "ip": context.ip,
            "time": datetime.now(timezone.utc).isoformat(),
            "device": context.user_agent,
        },
        user.get("settings"),
        context.domain,
    )
    return json_response(TokenResponse(token=token).model_dump(), 201)


@router.get("/verify-token", response_model=MessageResponse)
async def verify_token(
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
) -> JSONResponse:
    log.debug("verify_token %s", auth.id)
    return message_response(messages.VALID_TOKEN)


@router.get("/reset-password", response_model=MessageResponse)
async def request_reset_password(
    email: str = Query(..., min_length=1),
    captcha: Optional[str] = Query(None),
    context: RequestContext = Depends(get_request_context),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Send a reset code. Answers the same whether or not the email exists."""
    log.verbose("request_reset_password %s %s", email, context.ip)

    try:
        await services.security.send_reset_password_code(email, captcha, context.ip, context.domain)
    except ServiceError as err:
        if is_user_not_found(err):
            return message_response(messages.password_request_sent(email))
        return error_response(err, log, "request_reset_password")

    return message_response(messages.password_request_sent(email))


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest,
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.verbose("reset_password")

    try:
        await services.security.reset_user_password(request.code, request.new_password)
    except ServiceError as err:
        return error_response(err, log, "reset_password", message=messages.INVALID_CODE)

    return message_response(messages.PASSWORD_UPDATED)
