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
Errors shared by the pipeline stages, and small setting helpers.

Every stage reports failure by raising one of the NewtError subclasses
below. Only the command line front end turns them into an exit status.
"""


class NewtError(Exception):
    """Base class of every fatal condition of a command invocation."""
    stage = "error"


class ArgumentError(NewtError):
    """Missing or malformed command line argument."""
    stage = "arguments"


class TargetError(NewtError):
    """A target or unit test name could not be resolved."""
    stage = "target"


class BuildError(NewtError):
    """Builder construction, configuration resolution or build failed."""
    stage = "build"


class KeyLoadError(NewtError):
    """A signing or encryption key could not be read."""
    stage = "keys"


class ImageError(NewtError):
    """Image encoding, signing or encryption failed."""
    stage = "image"


class DeployError(NewtError):
    """Loading the image or attaching the debugger failed."""
    stage = "deploy"


def value_is_true(value):
    """Interpret a configuration setting value as a boolean.

    Integers are true when non-zero; strings are true when they hold a
    non-zero integer or the word "true".
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip()
    try:
        return int(text, 0) != 0
    except ValueError:
        return text.lower() == "true"
