# storefront/identity.py
import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import Mapping, Optional, Protocol

import httpx
import jwt

from .errors import AuthenticationRequired, NotFound, UpstreamFailure

logger = logging.getLogger(__name__)

SELLER_ROLE = "seller"


class IdentityProvider(Protocol):
    def verify_token(self, token: str) -> str: ...
    def is_seller(self, user_id: str) -> bool: ...


class ClerkIdentity:
    """
    Resolves bearer session tokens to user ids and reads seller flags
    (public_metadata.role) from the Clerk backend API.
    """

    def __init__(self, secret_key: str, jwks_url: str,
                 api_url: str = "https://api.clerk.com/v1", timeout: float = 10.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._jwks = jwt.PyJWKClient(jwks_url, timeout=int(timeout))

    def verify_token(self, token: str) -> str:
        try:
            signing_key = self._jwks.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token, signing_key.key, algorithms=["RS256"],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWKClientConnectionError as exc:
            logger.error("JWKS endpoint unreachable: %s", exc)
            raise UpstreamFailure(f"Identity provider unreachable: {exc}") from exc
        except jwt.PyJWTError as exc:
            logger.info("Rejected session token: %s", exc)
            raise AuthenticationRequired("Invalid session token") from exc
        return claims["sub"]

    def get_user(self, user_id: str) -> dict:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        with httpx.Client(base_url=self.api_url, headers=headers, timeout=self.timeout,
                          transport=self.transport) as client:
            try:
                r = client.get(f"/users/{user_id}")
            except httpx.HTTPError as exc:
                raise UpstreamFailure(f"Identity provider unreachable: {exc}") from exc
        if r.status_code == 404:
            raise NotFound("User not found")
        if r.status_code >= 400:
            raise UpstreamFailure(f"Identity provider error: HTTP {r.status_code}")
        return r.json()

    def is_seller(self, user_id: str) -> bool:
        try:
            user = self.get_user(user_id)
        except NotFound:
            return False
        metadata = user.get("public_metadata") or {}
        return metadata.get("role") == SELLER_ROLE


# ---------------------------
# Webhook signatures (Svix)
# ---------------------------
def webhook_key(secret: str) -> bytes:
    """Decode a `whsec_` signing secret; raises ValueError when it is not base64."""
    raw = secret.split("_", 1)[1] if secret.startswith("whsec_") else secret
    try:
        return base64.b64decode(raw, validate=True)
    except binascii.Error as exc:
        raise ValueError("Webhook secret is not valid base64") from exc


def verify_webhook(secret: str, headers: Mapping[str, str], body: bytes,
                   tolerance: int = 300, now: Optional[float] = None) -> None:
    msg_id = headers.get("svix-id")
    timestamp = headers.get("svix-timestamp")
    signatures = headers.get("svix-signature")
    if not (msg_id and timestamp and signatures):
        raise AuthenticationRequired("Missing webhook signature headers")

    try:
        sent_at = int(timestamp)
    except ValueError:
        raise AuthenticationRequired("Invalid webhook timestamp")
    now = time.time() if now is None else now
    if abs(now - sent_at) > tolerance:
        raise AuthenticationRequired("Webhook timestamp outside tolerance")

    key = webhook_key(secret)
    signed = f"{msg_id}.{timestamp}.".encode("utf-8") + body
    expected = base64.b64encode(hmac.new(key, signed, hashlib.sha256).digest()).decode()

    for candidate in signatures.split():
        version, _, value = candidate.partition(",")
        if version == "v1" and hmac.compare_digest(value, expected):
            return
    raise AuthenticationRequired("Invalid webhook signature")
