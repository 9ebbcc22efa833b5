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

import json
import os
import struct

from newtimg import image


def make_elf(sections):
    """Build a little endian ELF32 file holding the given sections.

    sections maps section names to their contents.
    """
    names = [''] + list(sections) + ['.shstrtab']
    strtab = b''
    name_off = {}
    for name in names:
        name_off[name] = len(strtab)
        strtab += name.encode('ascii') + b'\0'

    ehdr_size = 52
    body = b''
    offsets = {}
    for name, data in sections.items():
        offsets[name] = ehdr_size + len(body)
        body += data
    offsets['.shstrtab'] = ehdr_size + len(body)
    body += strtab
    shoff = ehdr_size + len(body)

    ident = b'\x7fELF' + bytes([1, 1, 1]) + bytes(9)
    ehdr = ident + struct.pack('<HHIIIIIHHHHHH', 2, 40, 1, 0, 0, shoff, 0,
                               ehdr_size, 0, 0, 40, len(names),
                               len(names) - 1)
    shdrs = struct.pack('<10I', *([0] * 10))
    for name, data in sections.items():
        shdrs += struct.pack('<10I', name_off[name], 1, 0, 0, offsets[name],
                             len(data), 0, 0, 4, 0)
    shdrs += struct.pack('<10I', name_off['.shstrtab'], 3, 0, 0,
                         offsets['.shstrtab'], len(strtab), 0, 0, 1, 0)
    return ehdr + body + shdrs


def parse_tlvs(buf, values):
    names = {v: k for k, v in values.items()}
    tlvs = []
    off = 0
    while off < len(buf):
        kind, _, length = struct.unpack_from('<BBH', buf, off)
        off += 4
        tlvs.append((names.get(kind, kind), bytes(buf[off:off + length])))
        off += length
    return tlvs


def parse_image(data):
    """Split a version 2 image into header fields and TLV records."""
    (magic, load_addr, hdr_size, prot_size, img_size, flags, major, minor,
     rev, build) = struct.unpack_from('<IIHHIIBBHI', data, 0)
    hdr = dict(magic=magic, hdr_size=hdr_size, prot_size=prot_size,
               img_size=img_size, flags=flags,
               version=(major, minor, rev, build))
    off = hdr_size + img_size
    prot = []
    if prot_size:
        prot_magic, prot_len = struct.unpack_from('<HH', data, off)
        assert prot_magic == image.TLV_PROT_INFO_MAGIC
        prot = parse_tlvs(data[off + 4:off + prot_len], image.TLV_VALUES)
        off += prot_len
    info_magic, tlv_len = struct.unpack_from('<HH', data, off)
    assert info_magic == image.TLV_INFO_MAGIC
    tlvs = parse_tlvs(data[off + 4:off + tlv_len], image.TLV_VALUES)
    assert off + tlv_len == len(data)
    return hdr, prot, tlvs


def parse_image_v1(data):
    (magic, tlv_size, key_id, hdr_size, img_size, flags, major, minor, rev,
     build) = struct.unpack_from('<IHBxHxxIIBBHI', data, 0)
    hdr = dict(magic=magic, tlv_size=tlv_size, key_id=key_id,
               hdr_size=hdr_size, img_size=img_size, flags=flags,
               version=(major, minor, rev, build))
    off = hdr_size + img_size
    assert off + tlv_size == len(data)
    return hdr, parse_tlvs(data[off:], image.TLV_VALUES_V1)


def read_calls(root):
    """Steps recorded by the build, download and debug scripts."""
    path = os.path.join(str(root), 'calls.log')
    if not os.path.exists(path):
        return []
    with open(path) as f:
        return [json.loads(line) for line in f if line.strip()]
