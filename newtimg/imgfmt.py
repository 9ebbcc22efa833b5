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
Image format versions, and how each one reads signing key arguments.

Version 1 images carry a single signature plus a numeric key id in the
header. Version 2 images can carry several signatures and have no key id.
"""

import logging
import re
from collections import namedtuple
from enum import Enum

from . import imgprod
from . import keys as keysmod
from .util import ArgumentError

log = logging.getLogger(__name__)

SigningKeySet = namedtuple('SigningKeySet', ['keys', 'key_id'])

key_id_re = re.compile(r"^[0-9]+$")


def parse_key_id(text):
    """Parse an unsigned 8 bit decimal key id."""
    if not key_id_re.match(text) or int(text, 10) > 0xff:
        raise ArgumentError("Key ID must be between 0-255")
    return int(text, 10)


class ImageFormat(Enum):
    V1 = 1
    V2 = 2

    @classmethod
    def from_flags(cls, use_v1, use_v2):
        if use_v1 and use_v2:
            raise ArgumentError("Either -1, or -2, but not both")
        return cls.V1 if use_v1 else cls.V2

    def parse_key_args(self, args):
        """Split trailing arguments into key filenames and a key id.

        @return                 (filenames, key id)
        """
        if len(args) == 0:
            return [], 0
        if len(args) == 1:
            return [args[0]], 0
        if self is ImageFormat.V1:
            key_id = parse_key_id(args[1])
            if len(args) > 2:
                # Only one key and one key id are read; the rest is dropped.
                log.debug("Ignoring extra key arguments: %s",
                          " ".join(args[2:]))
            return [args[0]], key_id
        return list(args), 0

    def produce(self, builder, ver, key_set, cfg):
        if self is ImageFormat.V1:
            return imgprod.produce_all_v1(
                builder, ver, key_set.keys, key_set.key_id,
                cfg.enc_key_filename, cfg.enc_key_index, cfg.hdr_pad,
                cfg.image_pad, cfg.sections, cfg.use_legacy_tlv,
                rsa_pss=cfg.rsa_pss, force=cfg.force)
        return imgprod.produce_all(
            builder, ver, key_set.keys, cfg.enc_key_filename,
            cfg.enc_key_index, cfg.hdr_pad, cfg.image_pad, cfg.sections,
            cfg.use_legacy_tlv, ow_src_filename=cfg.ow_src_filename,
            force=cfg.force)


def resolve_sign_keys(fmt, args, get_passwd=None):
    """Load the signing keys named by the trailing arguments."""
    filenames, key_id = fmt.parse_key_args(args)
    keys = keysmod.load_sign_keys(filenames, get_passwd) if filenames else []
    return SigningKeySet(keys, key_id)
