import base64
import binascii
import logging

from cryptography.hazmat.primitives import constant_time

from qvote_common.errors import AuthFailure

logger = logging.getLogger("qvote_server.auth")


def to_base64(value):
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class SharedSecretVerifier:
    """
    Checks the bearer token sent with the signing callback.

    The token must be the base64 form of the shared secret. Tokens of the
    wrong length, headers that are not "Bearer <token>" and tokens that are
    not valid base64 all fail before any comparison is made.
    """

    def __init__(self, secret):
        self.expected = to_base64(secret)

    def verify(self, authorization):
        if not self.expected or not authorization:
            return False
        parts = str(authorization).split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return False
        given = parts[1]
        if len(given) != len(self.expected):
            return False
        try:
            given_bytes = base64.b64decode(given, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Callback token is not valid base64.")
            return False
        expected_bytes = base64.b64decode(self.expected)
        if len(given_bytes) != len(expected_bytes):
            return False
        return constant_time.bytes_eq(given_bytes, expected_bytes)

    def check(self, authorization):
        if not self.verify(authorization):
            raise AuthFailure("Unauthorized")
