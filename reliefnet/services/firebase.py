"""Firebase Authentication token verification.

The browser signs users in with Firebase Auth (email/password or Google) and
sends the resulting ID token here once. It is checked against Google's
signing certificates and exchanged for a ReliefNet session token.
"""

import os
import re
import time
import logging

import jwt
import requests
from cryptography import x509
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

logger = logging.getLogger(__name__)

FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID', 'reliefnet')

GOOGLE_CERTS_URL = 'https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com'
DEFAULT_CERTS_MAX_AGE = 3600
CERTS_TIMEOUT = 10
CLOCK_SKEW_SECONDS = 60

_MAX_AGE_RE = re.compile(r'max-age=(\d+)')


class SigningKeys:
    """Google's token signing keys by key id, refetched when they go stale.

    Google says how long the certificates stay valid in the Cache-Control
    header; an hour is assumed when it does not.
    """

    def __init__(self, url=GOOGLE_CERTS_URL, clock=time.time):
        self.url = url
        self._clock = clock
        self._keys = {}
        self._expires_at = 0.0

    def get(self, kid):
        """Public key for kid, or None. Unknown ids trigger one refetch (key rotation)."""
        if self._clock() >= self._expires_at:
            self.refresh()
        elif kid not in self._keys:
            logger.info(f"Unknown signing key {kid}, refetching certificates")
            self.refresh()
        return self._keys.get(kid)

    def refresh(self):
        try:
            response = requests.get(self.url, timeout=CERTS_TIMEOUT)
            response.raise_for_status()
            certificates = response.json()
        except (requests.RequestException, ValueError) as e:
            # Stale keys still verify tokens signed before the rotation
            if self._keys:
                logger.warning(f"Could not refresh Firebase certificates, keeping old ones: {e}")
                return
            raise ValueError(f"Could not fetch Firebase certificates: {e}")

        keys = {}
        for kid, pem in certificates.items():
            try:
                keys[kid] = x509.load_pem_x509_certificate(pem.encode('utf-8')).public_key()
            except ValueError as e:
                logger.warning(f"Skipping unreadable certificate {kid}: {e}")
        if not keys:
            raise ValueError("No usable Firebase certificates")

        match = _MAX_AGE_RE.search(response.headers.get('Cache-Control', ''))
        max_age = int(match.group(1)) if match else DEFAULT_CERTS_MAX_AGE
        self._keys = keys
        self._expires_at = self._clock() + max_age


signing_keys = SigningKeys()


def _identity(claims):
    if not claims.get('sub'):
        raise ValueError("Token has no subject")
    if not claims.get('email'):
        raise ValueError("Token has no email")
    auth_time = claims.get('auth_time')
    if auth_time is not None and auth_time > time.time() + CLOCK_SKEW_SECONDS:
        raise ValueError("Token auth_time is in the future")

    return {
        'uid': claims['sub'],
        'email': claims['email'].strip().lower(),
        'name': claims.get('name'),
        'email_verified': bool(claims.get('email_verified', False)),
    }


def verify_firebase_token(id_token, keys=None):
    """Check a Firebase ID token and return the identity it carries.

    Returns:
        dict with uid, email, name and email_verified

    Raises:
        ValueError: token missing, malformed, expired, or not signed by Google
            for this project
    """
    if not id_token:
        raise ValueError("ID token is required")
    keys = keys or signing_keys

    try:
        header = jwt.get_unverified_header(id_token)
    except InvalidTokenError as e:
        raise ValueError(f"Invalid token: {e}")

    if header.get('alg') != 'RS256':
        raise ValueError(f"Unexpected algorithm: {header.get('alg')}")
    kid = header.get('kid')
    if not kid:
        raise ValueError("Token has no key id")

    public_key = keys.get(kid)
    if public_key is None:
        raise ValueError(f"Token signed with unknown key: {kid}")

    try:
        claims = jwt.decode(
            id_token,
            public_key,
            algorithms=['RS256'],
            audience=FIREBASE_PROJECT_ID,
            issuer=f'https://securetoken.google.com/{FIREBASE_PROJECT_ID}',
            leeway=CLOCK_SKEW_SECONDS,
        )
    except ExpiredSignatureError:
        raise ValueError("Token has expired")
    except InvalidTokenError as e:
        raise ValueError(f"Invalid token: {e}")

    return _identity(claims)
