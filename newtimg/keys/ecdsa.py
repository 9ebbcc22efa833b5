"""
ECDSA key management
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

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.hashes import SHA256, SHA384

from .general import KeyClass


class ECDSAPrivateKey(KeyClass):
    """
    Wrapper around an ECDSA private key.
    """
    _HASH = SHA256

    def __init__(self, key):
        self.key = key

    def _get_public(self):
        return self.key.public_key()

    def sign(self, payload):
        """Return the DER encoded signature over payload"""
        return self.key.sign(
                data=payload,
                signature_algorithm=ec.ECDSA(self._HASH()))


class ECDSA256P1(ECDSAPrivateKey):
    """
    Wrapper around an ECDSA (p256) private key.
    """

    def shortname(self):
        return "ecdsa"

    def sig_tlv(self):
        return "ECDSASIG"

    def sig_len(self):
        # The DER encoding depends on the high bit, and can be
        # anywhere from 70 to 72 bytes.
        return 72


class ECDSA384P1(ECDSAPrivateKey):
    """
    Wrapper around an ECDSA (p384) private key.
    """
    _HASH = SHA384

    def shortname(self):
        return "ecdsap384"

    def sig_tlv(self):
        return "ECDSASIG"

    def sig_len(self):
        return 103
