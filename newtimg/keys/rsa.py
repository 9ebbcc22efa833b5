"""
RSA Key management
"""

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

from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.hashes import SHA256

from .general import KeyClass


# Sizes that bootloader can handle.
RSA_KEY_SIZES = [2048, 3072]


class RSAPublic(KeyClass):
    """The public key can only do a few operations"""
    def __init__(self, key):
        self.key = key

    def key_size(self):
        return self.key.key_size

    def shortname(self):
        return "rsa"

    def sig_tlv(self):
        return "RSA{}".format(self.key_size())

    def sig_len(self):
        return self.key_size() // 8

    def encrypt(self, plainkey):
        """Wrap an image encryption key with RSA-OAEP"""
        return self._get_public().encrypt(
            plainkey, padding.OAEP(
                mgf=padding.MGF1(algorithm=SHA256()),
                algorithm=SHA256(),
                label=None))


class RSA(RSAPublic):
    """
    Wrapper around an RSA private key.
    """

    def __init__(self, key):
        """The key should be a private key from cryptography"""
        self.key = key
        # Selects PSS over PKCS#1 v1.5; only the legacy format offers a choice.
        self.use_pss = True

    def _get_public(self):
        return self.key.public_key()

    def sign(self, payload):
        if self.use_pss:
            # The salt length is fixed at the digest size, which the
            # bootloader expects.
            pad = padding.PSS(mgf=padding.MGF1(SHA256()), salt_length=32)
        else:
            pad = padding.PKCS1v15()
        return self.key.sign(data=payload, padding=pad, algorithm=SHA256())
