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

import datetime
import os

import pytest

from newtimg.version import (
    ImageVersion, decode_version, format_version, version_from_mtime,
    version_from_timestamp)


@pytest.mark.parametrize("text, expected", [
    ("0", (0, 0, 0, 0)),
    ("1.3", (1, 3, 0, 0)),
    ("1.3.0", (1, 3, 0, 0)),
    ("1.3.0.3", (1, 3, 0, 3)),
    ("255.255.65535.4294967295", (255, 255, 65535, 4294967295)),
    ("01.02", (1, 2, 0, 0)),
])
def test_decode_version(text, expected):
    assert decode_version(text) == ImageVersion(*expected)


@pytest.mark.parametrize("text", [
    "",
    "1.",
    "a.b",
    "1.2.3.4.5",
    "256",
    "1.256",
    "1.1.65536",
    "1.1.1.4294967296",
    "-1",
    "+1",
    "1.2.3+4",
    " 1",
])
def test_decode_version_invalid(text):
    with pytest.raises(ValueError):
        decode_version(text)


def test_version_from_timestamp():
    ver = version_from_timestamp(datetime.datetime(2024, 3, 7, 14, 5, 9))
    assert ver == ImageVersion(24, 3, 7, 140509)


def test_version_from_timestamp_year_wraps():
    """Only year % 1000 is kept, then truncated to 8 bits"""
    ver = version_from_timestamp(datetime.datetime(1256, 12, 31, 23, 59, 59))
    assert ver == ImageVersion(0, 12, 31, 235959)
    ver = version_from_timestamp(datetime.datetime(2255, 1, 1))
    assert ver == ImageVersion(255, 1, 1, 0)


def test_version_from_mtime(tmp_path):
    elf = tmp_path / "app.elf"
    elf.write_bytes(b"\x7fELF")
    when = datetime.datetime(2024, 3, 7, 14, 5, 9).timestamp()
    os.utime(str(elf), (when, when))
    assert version_from_mtime(str(elf)) == ImageVersion(24, 3, 7, 140509)


def test_format_version():
    assert format_version(ImageVersion(1, 2, 3, 4)) == "1.2.3.4"
