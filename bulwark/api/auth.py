"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from bulwark.api.deps import (
    auth_rate_limit,
    get_csrf,
    get_rate_limiters,
    get_token_authenticator,
    get_user_repository,
    require_user,
)
from bulwark.core.errors import AuthenticationError, RateLimitError
from bulwark.middleware.csrf import (
    CSRF_COOKIE_NAME,
    CsrfProtection,
    clear_csrf_cookie_header,
    csrf_cookie_header,
)
from bulwark.middleware.rate_limit import RateLimiters
from bulwark.models.user import User
from bulwark.repositories.base import DuplicateEmailError, UserRepository
from bulwark.schemas.auth import AuthResponse, LoginRequest, MessageResponse, RegisterRequest
from bulwark.schemas.user import UserSummary
from bulwark.services.auth import (
    AuthContext,
    TokenAuthenticator,
    hash_password_async,
    verify_password_async,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid credentials"


def _session_response(
    user: User,
    response: Response,
    authenticator: TokenAuthenticator,
    csrf: CsrfProtection,
) -> AuthResponse:
    """Issue a bearer token and a fresh CSRF pair for a signed-in user."""
    token = authenticator.issue_for_user(user.id, user.email, user.name, user.role or "user")
    pair = csrf.issue()
    response.headers.append("Set-Cookie", csrf_cookie_header(pair.cookie, csrf.ttl_seconds))
    return AuthResponse(
        token=token,
        user=UserSummary.model_validate(user),
        csrf_token=pair.token,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    _identifier: str = Depends(auth_rate_limit),
    users: UserRepository = Depends(get_user_repository),
    authenticator: TokenAuthenticator = Depends(get_token_authenticator),
    csrf: CsrfProtection = Depends(get_csrf),
) -> AuthResponse:
    """Create a regular user account and sign it in.

    Self-registration never grants the admin role.
    """
    if await users.get_by_email(body.email) is not None:
        raise DuplicateEmailError()

    user = await users.create(
        name=body.name,
        email=body.email,
        password=await hash_password_async(body.password),
        role="user",
    )
    logger.info(f"Registered user {user.id}")
    return _session_response(user, response, authenticator, csrf)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    identifier: str = Depends(auth_rate_limit),
    limiters: RateLimiters = Depends(get_rate_limiters),
    users: UserRepository = Depends(get_user_repository),
    authenticator: TokenAuthenticator = Depends(get_token_authenticator),
    csrf: CsrfProtection = Depends(get_csrf),
) -> AuthResponse:
    """Authenticate with email and password.

    Failed attempts are counted separately per client; once that budget is
    spent, further logins are refused with 429 until the window rolls over,
    even with correct credentials.
    """
    blocked = limiters.failed_login.blocked(identifier)
    if not blocked.allowed:
        logger.warning(f"Login refused for {identifier}: failed-login limit reached")
        raise RateLimitError(limiters.failed_login.config.message, headers=blocked.headers)

    user = await users.get_by_email(body.email)
    valid = user is not None and await verify_password_async(body.password, user.password)
    if not valid or user is None:
        decision = limiters.failed_login.check(identifier)
        if not decision.allowed:
            logger.warning(f"Failed-login limit exceeded for {identifier}")
            raise RateLimitError(limiters.failed_login.config.message, headers=decision.headers)
        raise AuthenticationError(INVALID_CREDENTIALS)

    logger.info(f"User {user.id} logged in")
    return _session_response(user, response, authenticator, csrf)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    context: AuthContext = Depends(require_user),
    csrf: CsrfProtection = Depends(get_csrf),
) -> MessageResponse:
    """Revoke the CSRF entry behind the cookie and clear it.

    Bearer tokens are stateless and stay valid until they expire.
    """
    cookie = request.cookies.get(CSRF_COOKIE_NAME)
    if cookie:
        csrf.revoke(cookie)

    response.headers.append("Set-Cookie", clear_csrf_cookie_header())
    logger.info(f"User {context.user_id} logged out")
    return MessageResponse(message="Logged out successfully")
