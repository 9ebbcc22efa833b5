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
Settings shared by every stage of one command invocation.
"""

from collections import namedtuple

from .imgfmt import ImageFormat

PipelineConfig = namedtuple('PipelineConfig', [
    'image_format',
    'rsa_pss',
    'enc_key_filename',
    'enc_key_index',
    'hdr_pad',
    'image_pad',
    'sections',
    'use_legacy_tlv',
    'ow_src_filename',
    'force',
    'extra_jtag_cmd',
    'no_gdb',
], defaults=[
    ImageFormat.V2, False, None, -1, 0, 0, "", False, None, False, "", False,
])


def make_config(use_v1=False, use_v2=False, **kwargs):
    """Build the configuration from parsed command line flags.

    The format flags are mutually exclusive; version 2 is the default.
    """
    return PipelineConfig(
        image_format=ImageFormat.from_flags(use_v1, use_v2), **kwargs)
