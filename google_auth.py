"""
google_auth.py — Service-account OAuth2 access tokens for Firestore.

Implements Google's "JWT bearer" grant by hand:

  1. Build a JWT header {alg: RS256, typ: JWT} and claim set
     {iss, scope, aud, iat, exp = iat + 3600}.
  2. base64url (no padding) both parts and join them with '.'.
  3. Sign the UTF-8 bytes with RSASSA-PKCS1-v1_5 / SHA-256 using the
     service account's PEM private key.
  4. Append the base64url signature as the third segment.
  5. POST the compact JWT to the token endpoint as a form-encoded
     grant_type=urn:ietf:params:oauth:grant-type:jwt-bearer request.
  6. Return the access_token from the JSON response.

Tokens are NOT cached: every store interaction mints a new one.  There is
no retry here either; any failure surfaces as AuthError.

Signing is behind the Signer protocol (sign(bytes) -> bytes) so tests can
swap RsaSigner for a fake without touching the exchange logic.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from jwt.utils import base64url_encode

from errors import AuthError

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

TOKEN_URL       = 'https://oauth2.googleapis.com/token'
DATASTORE_SCOPE = 'https://www.googleapis.com/auth/datastore'
JWT_BEARER      = 'urn:ietf:params:oauth:grant-type:jwt-bearer'
TOKEN_LIFETIME  = 3600   # seconds, Google's maximum for self-signed assertions


# ── Signing capability ───────────────────────────────────────────────────────

class Signer(Protocol):
    def sign(self, data: bytes) -> bytes: ...


class RsaSigner:
    """RS256 signer backed by a PEM-encoded RSA private key."""

    def __init__(self, private_key_pem: str):
        if not private_key_pem:
            raise AuthError('Service-account private key is not configured')
        try:
            key = serialization.load_pem_private_key(
                private_key_pem.encode('utf-8'),
                password=None,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise AuthError(f'Could not parse service-account private key: {exc}') from exc
        if not isinstance(key, rsa.RSAPrivateKey):
            raise AuthError('Service-account private key is not an RSA key')
        self._key = key

    def sign(self, data: bytes) -> bytes:
        return self._key.sign(data, padding.PKCS1v15(), hashes.SHA256())


# ── JWT assertion ─────────────────────────────────────────────────────────────

def _segment(obj: dict) -> str:
    raw = json.dumps(obj, separators=(',', ':')).encode('utf-8')
    return base64url_encode(raw).decode('ascii')


def build_assertion(client_email: str, signer: Signer, now: int,
                    scope: str = DATASTORE_SCOPE, audience: str = TOKEN_URL) -> str:
    """Return the signed compact JWT used as the grant assertion."""
    header = {'alg': 'RS256', 'typ': 'JWT'}
    claims = {
        'iss':   client_email,
        'scope': scope,
        'aud':   audience,
        'iat':   now,
        'exp':   now + TOKEN_LIFETIME,
    }
    unsigned  = f'{_segment(header)}.{_segment(claims)}'
    signature = signer.sign(unsigned.encode('utf-8'))
    return f'{unsigned}.{base64url_encode(signature).decode("ascii")}'


# ── Token exchange ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AccessToken:
    token:      str
    expires_at: int

    def __repr__(self):
        return f'AccessToken(expires_at={self.expires_at})'


class TokenProvider:
    """
    Mints a fresh Firestore access token on every call to mint().

    Either pass a ready Signer, or a PEM private key which is parsed on each
    mint (so a bad key fails the operation that needed it, not startup).
    """

    def __init__(self, client_email: str, http_client: httpx.AsyncClient,
                 private_key_pem: str = '', signer: Signer | None = None,
                 token_url: str = TOKEN_URL, scope: str = DATASTORE_SCOPE,
                 clock: Callable[[], float] = time.time):
        self._client_email = client_email
        self._http         = http_client
        self._private_key  = private_key_pem
        self._signer       = signer
        self._token_url    = token_url
        self._scope        = scope
        self._clock        = clock

    @classmethod
    def from_settings(cls, settings, http_client: httpx.AsyncClient) -> 'TokenProvider':
        return cls(settings.client_email, http_client, private_key_pem=settings.private_key)

    async def mint(self) -> AccessToken:
        if not self._client_email:
            raise AuthError('Service-account client email is not configured')

        signer    = self._signer or RsaSigner(self._private_key)
        now       = int(self._clock())
        assertion = build_assertion(self._client_email, signer, now,
                                    scope=self._scope, audience=self._token_url)

        try:
            resp = await self._http.post(
                self._token_url,
                data={'grant_type': JWT_BEARER, 'assertion': assertion},
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
            )
        except httpx.HTTPError as exc:
            raise AuthError(f'Token exchange request failed: {exc}') from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}

        token = data.get('access_token') if isinstance(data, dict) else None
        if not token:
            reason = ''
            if isinstance(data, dict):
                reason = data.get('error_description') or data.get('error') or ''
            logger.error('Token exchange failed: HTTP %d %s', resp.status_code, reason)
            raise AuthError('Failed to get Firestore access token'
                            + (f': {reason}' if reason else ''))

        expires_in = data.get('expires_in', TOKEN_LIFETIME)
        if not isinstance(expires_in, int):
            expires_in = TOKEN_LIFETIME
        logger.info('Firestore access token minted (expires in %ds)', expires_in)
        return AccessToken(token=token, expires_at=now + expires_in)
