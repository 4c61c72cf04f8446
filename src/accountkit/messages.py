"""User-facing response messages."""

USER_REGISTERED = "User has been registered"
USER_VERIFIED = "User successfully verified"
USER_NOT_FOUND = "User not found"
USER_EXISTS = "User already exists"
USER_IS_VERIFIED = "User is already verified"
USER_NOT_VERIFIED = "User is not verified"
USER_NOT_ACTIVATED = "User account is deactivated"
INVALID_CREDENTIALS = "Credentials incorrect"
INVALID_CAPTCHA = "Invalid captcha"
INVALID_VERIFICATION_CODE = "Invalid verification code"
INVALID_CODE = "Invalid code"
INVALID_PASSWORD = (
    "Invalid password. It has to contain at least 8 characters, "
    "at least one digit and one character."
)
INVALID_EMAIL = "Invalid email"
INVALID_USERNAME = (
    "Invalid username. Username must be 3 to 15 characters long "
    "and can only contain lowercase letters, numbers and underscores."
)
USERNAME_TAKEN = "Username already exists"
SAME_PASSWORD = "New password must differ from the current one"
PROVIDE_VALID_EMAIL_CODE = "Provide a valid email or verification code"
VERIFICATION_EMAIL_MESSAGE = "Verification email sent. Please check your inbox."
SERVICE_NOT_SUPPORTED = "Service not supported"
SERVICE_NOT_CONFIGURED = "Service is not configured"
TOKEN_REMOVED = "Token removed"
TOKEN_NOT_FOUND = "Token not found"
TOKEN_LIMIT_REACHED = "Maximum number of active tokens reached"
VALID_TOKEN = "Valid Token"
MISSING_TOKEN = "Missing authorization token"
INVALID_TOKEN = "Invalid token"
TOKEN_EXPIRED = "Token expired"
PASSWORD_UPDATED = "Password updated."
PASSWORD_CHANGED = "Success"
USERNAME_CHANGED = "Username successfully changed"
WITHDRAWAL_NOT_FOUND = "Withdrawal not found"
WITHDRAWAL_NOT_CANCELLABLE = "Withdrawal can no longer be cancelled"
ADDRESS_EXISTS = "Address already created"


def password_request_sent(email: str) -> str:
    return f"Password request sent to: {email}"


def account_deactivated(email: str) -> str:
    return f"Account {email} deactivated"


def invalid_crypto(crypto) -> str:
    return f'Invalid crypto: "{crypto}"'
