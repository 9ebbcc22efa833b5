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

from .general import KeyClass


class AESKW(KeyClass):
    """Symmetric AES key, used either to wrap the image key or, when the
    key lives in device hardware, to encrypt the image directly."""
    def __init__(self, key):
        if len(key) not in (16, 32):
            raise ValueError("Invalid AES key length: must be 16 or 32 "
                             "bytes.")
        self.key = key

    def shortname(self):
        return "aes"

    def get_key(self):
        return self.key
