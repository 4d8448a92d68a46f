"""Stateless JWT session tokens.

A token carries the user id (``sub``), its issue and expiry times and
``orig_iat``, the time of the login that started the session. Refreshing
keeps ``orig_iat`` so the refresh window is bounded by the first login.
Nothing is stored server-side: a token stays valid until its own ``exp``
even after it has been refreshed or the client has logged out.
"""

import logging
import time
import uuid

import jwt

from errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_TYPE = "bearer"


class TokenManager:
    def __init__(self, app=None):
        self.secret = None
        self.algorithm = "HS256"
        self.ttl = 60 * 60
        self.refresh_ttl = 14 * 24 * 60 * 60
        self.clock = time.time
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.secret = app.config.get("JWT_SECRET") or app.config["SECRET_KEY"]
        self.algorithm = app.config.get("JWT_ALGORITHM", "HS256")
        self.ttl = int(app.config.get("JWT_TTL", 60)) * 60
        self.refresh_ttl = int(app.config.get("JWT_REFRESH_TTL", 20160)) * 60
        app.extensions["tokens"] = self

    def issue(self, user_id, orig_iat=None):
        """Return a token bundle ``{token, token_type, expires_in}``."""
        now = int(self.clock())
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.ttl,
            "orig_iat": now if orig_iat is None else orig_iat,
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self.secret, algorithm=self.algorithm)
        return {
            "token": token,
            "token_type": TOKEN_TYPE,
            "expires_in": self.ttl,
        }

    def _decode(self, token):
        if not token:
            raise AuthenticationError("Token not provided")
        try:
            # Expiry is checked against self.clock below, not by PyJWT.
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "iat", "exp"],
                },
            )
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected malformed token: %s", exc)
            raise AuthenticationError("Token is invalid") from exc

    def decode(self, token):
        claims = self._decode(token)
        if claims["exp"] <= self.clock():
            raise AuthenticationError("Token has expired")
        return claims

    def refresh(self, token):
        """Exchange ``token`` for a new one with a renewed expiry.

        An unexpired token is always accepted; an expired one only while
        the refresh window opened by the original login is still running.
        """
        claims = self._decode(token)
        now = self.clock()
        if claims["exp"] <= now:
            orig_iat = claims.get("orig_iat", claims["iat"])
            if orig_iat + self.refresh_ttl <= now:
                raise AuthenticationError("Token has expired and can no longer be refreshed")
        bundle = self.issue(claims["sub"], orig_iat=claims.get("orig_iat", claims["iat"]))
        return claims["sub"], bundle
