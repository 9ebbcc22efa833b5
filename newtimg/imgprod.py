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
Produce the flashable image, its Intel HEX copy and the build manifest from
a built target.
"""

import datetime
import json
import logging
import os

from . import keys as keysmod
from .elf import read_sections
from .image import Image, ImageV1
from .util import ImageError
from .version import format_version

log = logging.getLogger(__name__)


def parse_sections(sections):
    """Split a comma delimited list of section names."""
    if not sections:
        return []
    return [s.strip() for s in sections.split(',') if s.strip()]


def write_manifest(builder, img, img_path, fmt_version, keys, encrypted):
    manifest = {
        'name': builder.target.name,
        'build_time': datetime.datetime.now().isoformat(timespec='seconds'),
        'build_version': format_version(img.version),
        'format': fmt_version,
        'id': img.image_hash.hex(),
        'image': os.path.basename(img_path),
        'image_hash': img.image_hash.hex(),
        'image_size': len(img.payload),
        'signing_keys': [k.get_public_hash().hex() for k in keys],
        'encrypted': encrypted,
        'target': builder.target.vals,
    }
    with open(builder.manifest_path(), 'w') as f:
        json.dump(manifest, f, indent=2, sort_keys=True)
        f.write("\n")


def _produce(img, builder, keys, key_id, src_filename, enc_key_filename,
             enc_key_index, sections, use_legacy_tlv, force):
    img.load(src_filename)

    enckey = None
    if enc_key_filename:
        enckey = keysmod.load_enc_key(enc_key_filename)

    names = parse_sections(sections)
    section_data = read_sections(builder.app_elf_path(), names) \
        if names else []

    img.create(keys, enckey=enckey, hw_key_index=enc_key_index,
               sections=section_data, legacy_tlvs=use_legacy_tlv,
               key_id=key_id)

    slot_size = builder.image_slot_size()
    if slot_size is not None and len(img.payload) > slot_size:
        msg = "Image size (0x{:x}) exceeds image slot size (0x{:x})".format(
            len(img.payload), slot_size)
        if not force:
            raise ImageError(msg)
        log.warning("%s; ignoring", msg)

    img_path = builder.app_img_path()
    try:
        img.save(img_path)
        img.save_hex(builder.app_hex_path(), builder.image_slot_offset())
        write_manifest(builder, img, img_path,
                       2 if type(img) is Image else 1, keys,
                       enckey is not None)
    except OSError as e:
        raise ImageError("Error writing image: {}".format(e))

    log.info("App image successfully generated: %s", img_path)
    return img


def produce_all(builder, ver, keys, enc_key_filename, enc_key_index,
                hdr_pad, image_pad, sections, use_legacy_tlv,
                ow_src_filename="", force=False):
    """Produce a version 2 image, optionally from an overriding binary."""
    img = Image(version=ver, header_pad=hdr_pad, image_pad=image_pad)
    src = ow_src_filename or builder.app_bin_path()
    return _produce(img, builder, keys, 0, src, enc_key_filename,
                    enc_key_index, sections, use_legacy_tlv, force)


def produce_all_v1(builder, ver, keys, key_id, enc_key_filename,
                   enc_key_index, hdr_pad, image_pad, sections,
                   use_legacy_tlv, rsa_pss=False, force=False):
    """Produce a legacy version 1 image."""
    for key in keys or []:
        if isinstance(key, keysmod.RSA):
            key.use_pss = rsa_pss
    img = ImageV1(version=ver, header_pad=hdr_pad, image_pad=image_pad)
    return _produce(img, builder, keys, key_id, builder.app_bin_path(),
                    enc_key_filename, enc_key_index, sections,
                    use_legacy_tlv, force)
