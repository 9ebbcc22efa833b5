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
Image versions

An image version is maj.min.rev.build, the same four fields the image
header stores. Versions are either parsed from the command line or derived
from the modification time of the build output.
"""

import datetime
import os
import re
import sys
from collections import namedtuple

ImageVersion = namedtuple('ImageVersion', ['major', 'minor', 'revision',
                                           'build'])

TIMESTAMP_TOKEN = "timestamp"

# Field widths, in bits, in header order.
_FIELD_BITS = (8, 8, 16, 32)

component_re = re.compile(r"^[0-9]+$")


def decode_version(text):
    """Decode a version string of the form maj.min.rev.build

    Trailing components are optional and default to zero.
    """
    parts = text.split('.')
    if not text or len(parts) > len(_FIELD_BITS):
        raise ValueError("Invalid version string {}; should be "
                         "maj.min.rev.build with later parts optional"
                         .format(text))

    values = []
    for part, bits in zip(parts, _FIELD_BITS):
        if not component_re.match(part):
            raise ValueError("Invalid version string {}".format(text))
        value = int(part, 10)
        if value >= (1 << bits):
            raise ValueError("Invalid version string {}; {} does not fit in "
                             "{} bits".format(text, part, bits))
        values.append(value)
    values += [0] * (len(_FIELD_BITS) - len(values))
    return ImageVersion(*values)


def version_from_timestamp(when):
    """Derive a version from a calendar moment.

    The year wraps above 1255 because only year % 1000 is kept, truncated
    to the 8 bit major field.
    """
    return ImageVersion(
        (when.year % 1000) & 0xff,
        when.month,
        when.day & 0xffff,
        (when.hour * 10000 + when.minute * 100 + when.second) & 0xffffffff)


def version_from_mtime(path):
    """Derive a version from the local modification time of path."""
    mtime = os.stat(path).st_mtime
    return version_from_timestamp(datetime.datetime.fromtimestamp(mtime))


def format_version(ver):
    return "{}.{}.{}.{}".format(*ver)


if __name__ == '__main__':
    if len(sys.argv) > 1:
        print(decode_version(sys.argv[1]))
    else:
        print("Requires an argument, e.g. '1.0.0.0'")
