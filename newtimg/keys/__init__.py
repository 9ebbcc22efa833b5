# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Key loading for newtimg.
"""

import base64
import binascii
import logging

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ec import (
    EllipticCurvePrivateKey, SECP256R1, SECP384R1)
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey)
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey, RSAPublicKey)

from ..util import KeyLoadError
from .aeskw import AESKW
from .ecdsa import ECDSA256P1, ECDSA384P1
from .ed25519 import Ed25519, Ed25519Public
from .rsa import RSA, RSAPublic, RSA_KEY_SIZES

log = logging.getLogger(__name__)


def _read(path):
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise KeyLoadError("Error reading key file {}: {}".format(
            path, e.strerror or e))


def load(path, passwd=None):
    """Try loading a private signing key from the given path.

    Returns None if the key is encrypted and no password was given.
    """
    raw_pem = _read(path)
    try:
        pk = serialization.load_pem_private_key(
                raw_pem,
                password=passwd,
                backend=default_backend())
    # This is a bit nonsensical of an exception, but it is what
    # cryptography seems to currently raise if the password is needed.
    except TypeError:
        return None
    except ValueError as e:
        raise KeyLoadError("Error parsing private key file {}: {}".format(
            path, e))

    if isinstance(pk, RSAPrivateKey):
        if pk.key_size not in RSA_KEY_SIZES:
            raise KeyLoadError("Unsupported RSA key size: {}".format(
                pk.key_size))
        return RSA(pk)
    elif isinstance(pk, EllipticCurvePrivateKey):
        if isinstance(pk.curve, SECP256R1):
            return ECDSA256P1(pk)
        elif isinstance(pk.curve, SECP384R1):
            return ECDSA384P1(pk)
        raise KeyLoadError("Unsupported EC curve: {}".format(pk.curve.name))
    elif isinstance(pk, Ed25519PrivateKey):
        return Ed25519(pk)
    raise KeyLoadError("Unknown key type: {}".format(type(pk).__name__))


def load_sign_keys(paths, get_passwd=None):
    """Load every private signing key in paths, in order.

    get_passwd(path) is called for password protected keys. Any failure
    aborts the whole load.
    """
    keys = []
    for path in paths:
        key = load(path)
        if key is None:
            if get_passwd is None:
                raise KeyLoadError("Key file {} is password protected"
                                   .format(path))
            key = load(path, get_passwd(path))
            if key is None:
                raise KeyLoadError("Invalid passphrase for key file {}"
                                   .format(path))
        log.debug("Loaded %s signing key from %s", key.shortname(), path)
        keys.append(key)
    return keys


def load_enc_key(path):
    """Load an image encryption key.

    The file holds either a PEM encoded RSA public key or a base64 encoded
    AES-128/AES-256 key.
    """
    data = _read(path)
    if data.lstrip().startswith(b'-----BEGIN'):
        try:
            pub = serialization.load_pem_public_key(
                    data, backend=default_backend())
        except ValueError as e:
            raise KeyLoadError("Error parsing public key file {}: {}".format(
                path, e))
        if not isinstance(pub, RSAPublicKey):
            raise KeyLoadError("Unsupported encryption key type: {}".format(
                type(pub).__name__))
        return RSAPublic(pub)

    try:
        raw = base64.b64decode(data.strip(), validate=True)
        return AESKW(raw)
    except (binascii.Error, ValueError) as e:
        raise KeyLoadError("Error parsing encryption key file {}: {}".format(
            path, e))


__all__ = [
    'AESKW', 'ECDSA256P1', 'ECDSA384P1', 'Ed25519', 'Ed25519Public', 'RSA',
    'RSAPublic', 'load', 'load_enc_key', 'load_sign_keys',
]
