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
Image encoding and signing.

Image is the current (version 2) layout; ImageV1 is the legacy layout,
which carries a key id in the header and stores TLVs without an info
header.
"""

import copy
import hashlib
import logging
import os.path
import struct

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import keywrap
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from intelhex import IntelHex, IntelHexError

from . import version as versmod
from .keys import aeskw, ecdsa, ed25519, rsa
from .util import ImageError

log = logging.getLogger(__name__)

IMAGE_MAGIC = 0x96f3b83d
IMAGE_MAGIC_V1 = 0x96f3b83c
IMAGE_HEADER_SIZE = 32
INTEL_HEX_EXT = "hex"
ERASED_VAL = 0xff
AES_BLOCK_SIZE = 16

# Image header flags.
IMAGE_F = {
        'PIC':                   0x0000001,
        'ENCRYPTED_AES128':      0x0000004,
        'ENCRYPTED_AES256':      0x0000008,
        'NON_BOOTABLE':          0x0000010,
}

IMAGE_F_V1 = {
        'PIC':                       0x00000001,
        'SHA256':                    0x00000002,
        'PKCS15_RSA2048_SHA256':     0x00000004,
        'ECDSA224_SHA256':           0x00000008,
        'NON_BOOTABLE':              0x00000010,
        'ECDSA256_SHA256':           0x00000020,
        'PKCS1_PSS_RSA2048_SHA256':  0x00000040,
        'ENCRYPTED':                 0x00000080,
}

# TLV types shared by both layouts.
_COMMON_TLVS = {
        'ENCRSA2048': 0x30,
        'ENCKW': 0x31,
        'AES_NONCE_LEGACY': 0x35,
        'SECRET_ID_LEGACY': 0x36,
        'AES_NONCE': 0xa1,
        'SECRET_ID': 0xa2,
        'SECTION': 0xa3,
}

TLV_VALUES = dict({
        'KEYHASH': 0x01,
        'SHA256': 0x10,
        'RSA2048': 0x20,
        'ECDSASIG': 0x22,
        'RSA3072': 0x23,
        'ED25519': 0x24,
}, **_COMMON_TLVS)

TLV_VALUES_V1 = dict({
        'SHA256': 0x01,
        'RSA2048': 0x02,
        'ECDSA224': 0x03,
        'ECDSA256': 0x04,
}, **_COMMON_TLVS)

TLV_SIZE = 4
TLV_INFO_SIZE = 4
TLV_INFO_MAGIC = 0x6907
TLV_PROT_INFO_MAGIC = 0x6908

STRUCT_ENDIAN_DICT = {
        'little': '<',
        'big':    '>'
}


class TLV():
    def __init__(self, endian, magic=TLV_INFO_MAGIC, values=TLV_VALUES):
        self.magic = magic
        self.buf = bytearray()
        self.endian = endian
        self.values = values

    def __len__(self):
        return TLV_INFO_SIZE + len(self.buf)

    def add(self, kind, payload):
        """
        Add a TLV record.  Kind should be a string found in the values table.
        """
        if kind not in self.values:
            raise ImageError("Unknown TLV type string: {}".format(kind))
        e = STRUCT_ENDIAN_DICT[self.endian]
        self.buf += struct.pack(e + 'BBH', self.values[kind], 0, len(payload))
        self.buf += payload

    def get(self):
        if len(self.buf) == 0:
            return bytes()
        e = STRUCT_ENDIAN_DICT[self.endian]
        header = struct.pack(e + 'HH', self.magic, len(self))
        return header + bytes(self.buf)


class TLVv1(TLV):
    """Legacy TLV area: bare records, no info header."""
    def __init__(self, endian):
        super().__init__(endian, values=TLV_VALUES_V1)

    def __len__(self):
        return len(self.buf)

    def get(self):
        return bytes(self.buf)


def section_payload(name, data):
    """SECTION TLV body: NUL terminated section name, then its contents"""
    return name.encode('utf-8') + b'\0' + bytes(data)


class Image:

    def __init__(self, version=None, header_pad=0, image_pad=0,
                 endian="little"):
        if header_pad < 0 or image_pad < 0:
            raise ImageError("Padding lengths must not be negative")
        self.version = version or versmod.decode_version("0")
        self.header_size = IMAGE_HEADER_SIZE + header_pad
        self.image_pad = image_pad
        self.endian = endian
        self.base_addr = None
        self.payload = bytearray()
        self.infile_data = b''
        self.image_hash = None
        self.signatures = []

    def __repr__(self):
        return "<{} version={}, header_size={}, image_pad={}, endian={}, " \
               "payloadlen=0x{:x}>".format(
                    self.__class__.__name__,
                    versmod.format_version(self.version),
                    self.header_size,
                    self.image_pad,
                    self.endian,
                    len(self.payload))

    def load(self, path):
        """Load the image body from a binary or Intel HEX file"""
        ext = os.path.splitext(path)[1][1:].lower()
        try:
            if ext == INTEL_HEX_EXT:
                ih = IntelHex(path)
                self.infile_data = bytes(ih.tobinarray())
                self.base_addr = ih.minaddr()
            else:
                with open(path, 'rb') as f:
                    self.infile_data = f.read()
        except FileNotFoundError:
            raise ImageError("Input file not found: {}".format(path))
        except OSError as e:
            raise ImageError("Error reading {}: {}".format(
                path, e.strerror or e))
        except IntelHexError as e:
            raise ImageError("Invalid Intel HEX file {}: {}".format(path, e))

        # The header is prepended, zero filled until create() installs it.
        self.payload = bytearray(self.header_size) + \
            bytearray(copy.copy(self.infile_data))
        if self.image_pad > len(self.payload):
            self.payload += bytes([ERASED_VAL] *
                                  (self.image_pad - len(self.payload)))

    def save(self, path):
        with open(path, 'wb') as f:
            f.write(self.payload)

    def save_hex(self, path, base_addr):
        h = IntelHex()
        h.frombytes(bytes(self.payload), offset=base_addr)
        h.tofile(path, 'hex')

    def get_struct_endian(self):
        return STRUCT_ENDIAN_DICT[self.endian]

    def body_size(self):
        return len(self.payload) - self.header_size

    def _prepare_encryption(self, enckey, hw_key_index, legacy_tlvs):
        """Pick the AES key and nonce used for the image body.

        Returns (aes_key, nonce, tlvs) where tlvs are the records telling
        the device how to recover the key.
        """
        if enckey is None:
            if hw_key_index >= 0:
                raise ImageError("A hardware stored key index requires an "
                                 "encryption key")
            return None, None, []

        e = self.get_struct_endian()
        suffix = '_LEGACY' if legacy_tlvs else ''
        if hw_key_index >= 0:
            if not isinstance(enckey, aeskw.AESKW):
                raise ImageError("A hardware stored key index requires a "
                                 "symmetric encryption key")
            nonce = os.urandom(AES_BLOCK_SIZE)
            tlvs = [
                ('AES_NONCE' + suffix, nonce),
                ('SECRET_ID' + suffix, struct.pack(e + 'I', hw_key_index)),
            ]
            return enckey.get_key(), nonce, tlvs

        plainkey = os.urandom(16)
        nonce = bytes(AES_BLOCK_SIZE)
        if isinstance(enckey, rsa.RSAPublic):
            if enckey.key_size() != 2048:
                raise ImageError("Only RSA-2048 keys can wrap the image key")
            return plainkey, nonce, [('ENCRSA2048', enckey.encrypt(plainkey))]
        elif isinstance(enckey, aeskw.AESKW):
            cipherkey = keywrap.aes_key_wrap(enckey.get_key(), plainkey,
                                             backend=default_backend())
            return plainkey, nonce, [('ENCKW', cipherkey)]
        raise ImageError("Unsupported encryption key: {}".format(
            type(enckey).__name__))

    def _encrypt_body(self, aes_key, nonce, body_end):
        cipher = Cipher(algorithms.AES(aes_key), modes.CTR(nonce),
                        backend=default_backend())
        encryptor = cipher.encryptor()
        img = bytes(self.payload[self.header_size:body_end])
        self.payload[self.header_size:body_end] = \
            encryptor.update(img) + encryptor.finalize()

    def _pad_for_encryption(self):
        pad_len = len(self.payload) % AES_BLOCK_SIZE
        if pad_len > 0:
            self.payload += bytes(AES_BLOCK_SIZE - pad_len)

    def create(self, keys, enckey=None, hw_key_index=-1, sections=None,
               legacy_tlvs=False, key_id=0):
        """Add the header and TLV trailer, signing with every key in keys.

        key_id only has meaning for the legacy layout and is ignored here.
        """
        keys = keys or []
        for key in keys:
            if not hasattr(key, 'sign') and not hasattr(key, 'sign_digest'):
                raise ImageError("Key {} can not sign".format(
                    key.shortname()))

        aes_key, nonce, enc_tlvs = self._prepare_encryption(
            enckey, hw_key_index, legacy_tlvs)

        prot_tlv = TLV(self.endian, TLV_PROT_INFO_MAGIC)
        for name, data in sections or []:
            prot_tlv.add('SECTION', section_payload(name, data))
        protected_tlv_size = len(prot_tlv) if prot_tlv.buf else 0

        if aes_key is not None:
            self._pad_for_encryption()

        flags = 0
        if aes_key is not None:
            if len(aes_key) == 32:
                flags |= IMAGE_F['ENCRYPTED_AES256']
            else:
                flags |= IMAGE_F['ENCRYPTED_AES128']
        self.add_header(protected_tlv_size, flags)

        body_end = len(self.payload)
        self.payload += prot_tlv.get()

        tlv = TLV(self.endian)
        sha = hashlib.sha256()
        sha.update(self.payload)
        digest = sha.digest()
        tlv.add('SHA256', digest)
        self.image_hash = digest

        self.signatures = []
        for key in keys:
            tlv.add('KEYHASH', key.get_public_hash())
            # `sign` expects the full image payload (hashing done
            # internally), while `sign_digest` expects only the digest
            # of the payload
            if hasattr(key, 'sign'):
                sig = key.sign(bytes(self.payload))
            else:
                sig = key.sign_digest(digest)
            log.debug("Signed image with %s key", key.shortname())
            tlv.add(key.sig_tlv(), sig)
            self.signatures.append(sig)

        for kind, data in enc_tlvs:
            tlv.add(kind, data)

        if aes_key is not None:
            self._encrypt_body(aes_key, nonce, body_end)

        self.payload += tlv.get()

    def add_header(self, protected_tlv_size, flags):
        """Install the image header."""

        e = STRUCT_ENDIAN_DICT[self.endian]
        fmt = (e +
               # type ImageHdr struct {
               'I' +     # Magic    uint32
               'I' +     # LoadAddr uint32
               'H' +     # HdrSz    uint16
               'H' +     # PTLVSz   uint16
               'I' +     # ImgSz    uint32
               'I' +     # Flags    uint32
               'BBHI' +  # Vers     ImageVersion
               'I'       # Pad1     uint32
               )  # }
        assert struct.calcsize(fmt) == IMAGE_HEADER_SIZE
        header = struct.pack(fmt,
                             IMAGE_MAGIC,
                             0,
                             self.header_size,
                             protected_tlv_size,
                             self.body_size(),
                             flags,
                             self.version.major,
                             self.version.minor,
                             self.version.revision,
                             self.version.build,
                             0)  # Pad1
        self.payload[:len(header)] = header


class ImageV1(Image):
    """Legacy image layout: one signature, key id in the header."""

    def _sig_kind_and_flag(self, key):
        if isinstance(key, rsa.RSA):
            if key.key_size() != 2048:
                raise ImageError("Version 1 images only support RSA-2048 "
                                 "keys")
            if key.use_pss:
                return 'RSA2048', IMAGE_F_V1['PKCS1_PSS_RSA2048_SHA256']
            return 'RSA2048', IMAGE_F_V1['PKCS15_RSA2048_SHA256']
        elif isinstance(key, ecdsa.ECDSA256P1):
            return 'ECDSA256', IMAGE_F_V1['ECDSA256_SHA256']
        elif isinstance(key, (ecdsa.ECDSA384P1, ed25519.Ed25519Public)):
            raise ImageError("Version 1 images do not support {} keys".format(
                key.shortname()))
        raise ImageError("Unsupported signing key: {}".format(
            type(key).__name__))

    def create(self, keys, enckey=None, hw_key_index=-1, sections=None,
               legacy_tlvs=False, key_id=0):
        keys = keys or []
        if len(keys) > 1:
            raise ImageError("Version 1 images support a single signing key")
        if not 0 <= key_id <= 0xff:
            raise ImageError("Key ID must be between 0-255")
        key = keys[0] if keys else None

        flags = IMAGE_F_V1['SHA256']
        sig_kind = None
        if key is not None:
            sig_kind, sig_flag = self._sig_kind_and_flag(key)
            flags |= sig_flag

        aes_key, nonce, enc_tlvs = self._prepare_encryption(
            enckey, hw_key_index, legacy_tlvs)
        if aes_key is not None:
            flags |= IMAGE_F_V1['ENCRYPTED']
            self._pad_for_encryption()

        extra = TLVv1(self.endian)
        for name, data in sections or []:
            extra.add('SECTION', section_payload(name, data))
        for kind, data in enc_tlvs:
            extra.add(kind, data)

        # The header records the TLV size, so the signature size is
        # reserved before the hash is taken.
        tlv_size = TLV_SIZE + hashlib.sha256().digest_size + len(extra)
        if key is not None:
            tlv_size += TLV_SIZE + key.sig_len()
        self.add_header_v1(tlv_size, flags, key_id)

        body_end = len(self.payload)
        tlv = TLVv1(self.endian)
        digest = hashlib.sha256(self.payload).digest()
        tlv.add('SHA256', digest)
        self.image_hash = digest

        self.signatures = []
        if key is not None:
            sig = key.sign(bytes(self.payload))
            # Legacy bootloaders expect fixed length signatures.
            sig += b'\000' * (key.sig_len() - len(sig))
            tlv.add(sig_kind, sig)
            self.signatures.append(sig)
            log.debug("Signed version 1 image with %s key, key id %d",
                      key.shortname(), key_id)

        tlv.buf += extra.buf
        assert len(tlv) == tlv_size

        if aes_key is not None:
            self._encrypt_body(aes_key, nonce, body_end)

        self.payload += tlv.get()

    def add_header_v1(self, tlv_size, flags, key_id):
        e = STRUCT_ENDIAN_DICT[self.endian]
        fmt = (e +
               'I' +     # ih_magic      uint32
               'H' +     # ih_tlv_size   uint16
               'B' +     # ih_key_id     uint8
               'x' +     # _pad1
               'H' +     # ih_hdr_size   uint16
               'xx' +    # _pad2
               'I' +     # ih_img_size   uint32
               'I' +     # ih_flags      uint32
               'BBHI' +  # ih_ver        image_version
               '4x'      # _pad3
               )
        assert struct.calcsize(fmt) == IMAGE_HEADER_SIZE
        header = struct.pack(fmt,
                             IMAGE_MAGIC_V1,
                             tlv_size,
                             key_id,
                             self.header_size,
                             self.body_size(),
                             flags,
                             self.version.major,
                             self.version.minor,
                             self.version.revision,
                             self.version.build)
        self.payload[:len(header)] = header
