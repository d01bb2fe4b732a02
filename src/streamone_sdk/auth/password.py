"""Password challenge-response for starting a session.

The password never leaves the client.  ``session/initialize`` hands out a
bcrypt salt and a one-time challenge, and ``session/create`` expects::

    H        = bcrypt(md5hex(password), salt)
    response = base64(sha256hex(sha256hex(H) + challenge) XOR H)

where XOR works character by character and stops at the shorter string.
"""

from __future__ import annotations

import base64
import hashlib
import logging

import bcrypt

logger = logging.getLogger(__name__)

_BCRYPT_ALPHABET = "./ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
_SALT_LENGTH = 22


def _md5_hex(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def _sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _xor(left: str, right: str) -> str:
    return "".join(chr(ord(a) ^ ord(b)) for a, b in zip(left, right))


def canonical_salt(salt: str) -> str:
    """Clear the unused low bits of the last salt character.

    Twenty-two salt characters carry 132 bits, of which bcrypt uses 128.  The
    platform does not zero the remaining four bits, and pyca bcrypt rejects
    such salts.  Anything that does not look like a bcrypt salt is returned
    unchanged for ``hashpw`` to reject.
    """
    prefix, sep, encoded = salt.rpartition("$")
    if not sep or len(encoded) != _SALT_LENGTH or encoded[-1] not in _BCRYPT_ALPHABET:
        return salt
    last = _BCRYPT_ALPHABET[_BCRYPT_ALPHABET.index(encoded[-1]) & 0x30]
    return f"{prefix}${encoded[:-1]}{last}"


def password_response(password: str, salt: str, challenge: str) -> str | None:
    """Compute the response to *challenge*, or ``None`` if *salt* is not a bcrypt salt."""
    try:
        hashed = bcrypt.hashpw(
            _md5_hex(password).encode("utf-8"), canonical_salt(salt).encode("utf-8")
        )
    except ValueError:
        logger.warning("Server returned an invalid password salt")
        return None

    password_hash = hashed.decode("utf-8")
    with_challenge = _sha256_hex(_sha256_hex(password_hash) + challenge)
    return base64.b64encode(_xor(with_challenge, password_hash).encode("utf-8")).decode("ascii")


def v2_password_hash(password: str) -> str:
    """Hash for accounts still on the legacy password scheme.

    Sent once alongside the challenge response; the platform then converts
    the stored password to the current scheme.
    """
    return _md5_hex(password)
