"""Auth service: registration, credential checks and session tokens.

The HTTP layer resolves the caller once per request through Flask-Login's
request loader; every operation below takes its inputs explicitly.
"""

import logging

from sqlalchemy.exc import IntegrityError

from errors import AuthenticationError, ValidationError
from extensions import bcrypt, db, login_manager, tokens
from models import User
from responses import error
from validation import validate_login, validate_registration

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def register(data):
    """Create a user and return it. The password is stored only as a hash."""
    cleaned = validate_registration(data)

    errors = {}
    if User.query.filter_by(username=cleaned["username"]).first():
        errors["username"] = ["The username has already been taken."]
    if User.query.filter_by(email=cleaned["email"]).first():
        errors["email"] = ["The email has already been taken."]
    if errors:
        raise ValidationError(errors)

    user = User(
        name=cleaned["name"],
        username=cleaned["username"],
        email=cleaned["email"],
        password=bcrypt.generate_password_hash(cleaned["password"]).decode("utf-8"),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration.
        db.session.rollback()
        raise ValidationError({"email": ["The email or username has already been taken."]}) from exc

    logger.info("Registered user %s (%s)", user.id, user.username)
    return user


def login(data):
    """Check credentials and return a fresh token bundle.

    A missing account and a wrong password fail identically.
    """
    cleaned = validate_login(data)
    user = User.query.filter_by(email=cleaned["email"]).first()
    if user is None or not bcrypt.check_password_hash(user.password, cleaned["password"]):
        logger.info("Failed login for %s", cleaned["email"])
        raise AuthenticationError(INVALID_CREDENTIALS)

    logger.info("User %s logged in", user.id)
    return tokens.issue(user.id)


def refresh(token):
    user_id, bundle = tokens.refresh(token)
    if _load_user(user_id) is None:
        raise AuthenticationError("Token is invalid")
    logger.info("Refreshed token for user %s", user_id)
    return bundle


def identity_from_token(token):
    claims = tokens.decode(token)
    user = _load_user(claims["sub"])
    if user is None:
        raise AuthenticationError("Token is invalid")
    return user


def list_users():
    # Any authenticated caller may enumerate every account.
    return User.query.order_by(User.id).all()


def bearer_token(request):
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.request_loader
def load_user_from_request(request):
    token = bearer_token(request)
    if token is None:
        return None
    try:
        return identity_from_token(token)
    except AuthenticationError as exc:
        logger.debug("Bearer token rejected: %s", exc.message)
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return error(AuthenticationError.message, 401)
