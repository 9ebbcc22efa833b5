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

"""General key class."""

import hashlib

from cryptography.hazmat.primitives import serialization


class KeyClass(object):
    def _get_public(self):
        return self.key

    def get_public_bytes(self):
        # Keys are identified in the image by their SubjectPublicKeyInfo DER
        return self._get_public().public_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PublicFormat.SubjectPublicKeyInfo)

    def get_public_hash(self):
        """SHA256 of the public key, as carried in the KEYHASH TLV"""
        return hashlib.sha256(self.get_public_bytes()).digest()

    def shortname(self):
        raise NotImplementedError()

    def sig_tlv(self):
        raise NotImplementedError()
