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
Minimal ELF reader, used to copy named sections into image TLVs.
"""

import struct

from .util import ImageError

ELF_MAGIC = b'\x7fELF'
ELFCLASS32 = 1
ELFCLASS64 = 2
ELFDATA2LSB = 1
ELFDATA2MSB = 2
SHT_NOBITS = 8


def _section_headers(data):
    if data[:4] != ELF_MAGIC:
        raise ImageError("Not an ELF file")
    elf_class, elf_data = data[4], data[5]
    if elf_data == ELFDATA2LSB:
        e = '<'
    elif elf_data == ELFDATA2MSB:
        e = '>'
    else:
        raise ImageError("Unknown ELF byte order {}".format(elf_data))

    if elf_class == ELFCLASS32:
        shoff, = struct.unpack_from(e + 'I', data, 0x20)
        shentsize, shnum, shstrndx = struct.unpack_from(e + 'HHH', data, 0x2e)
        shdr = e + 'IIIIIIIIII'
    elif elf_class == ELFCLASS64:
        shoff, = struct.unpack_from(e + 'Q', data, 0x28)
        shentsize, shnum, shstrndx = struct.unpack_from(e + 'HHH', data, 0x3a)
        shdr = e + 'IIQQQQIIQQ'
    else:
        raise ImageError("Unknown ELF class {}".format(elf_class))

    headers = []
    for i in range(shnum):
        # (name, type, flags, addr, offset, size, ...)
        headers.append(struct.unpack_from(shdr, data, shoff + i * shentsize))
    if shstrndx >= len(headers):
        raise ImageError("ELF file has no section name table")
    return headers, headers[shstrndx]


def _name_at(strtab, offset):
    end = strtab.find(b'\0', offset)
    if end < 0:
        raise ImageError("Corrupt ELF section name table")
    return strtab[offset:end].decode('ascii', 'replace')


def read_sections(path, names):
    """Return [(name, contents)] for each requested section, in order."""
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise ImageError("Error reading {}: {}".format(path, e))

    try:
        headers, strhdr = _section_headers(data)
    except struct.error:
        raise ImageError("Truncated ELF file {}".format(path))
    strtab = data[strhdr[4]:strhdr[4] + strhdr[5]]

    by_name = {}
    for hdr in headers:
        by_name[_name_at(strtab, hdr[0])] = hdr

    sections = []
    for name in names:
        hdr = by_name.get(name)
        if hdr is None:
            raise ImageError("Section {} not found in {}".format(name, path))
        if hdr[1] == SHT_NOBITS:
            contents = bytes(hdr[5])
        else:
            contents = data[hdr[4]:hdr[4] + hdr[5]]
        sections.append((name, contents))
    return sections
