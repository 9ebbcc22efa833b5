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
Stage sequencing for the create-image and run commands.

Stages run strictly in order and every failure is raised as a NewtError;
nothing here exits the process. Argument problems (version strings, key
ids) are detected before the first stage that does real work.
"""

import logging

import click

from .builder import TargetBuilder
from .imgfmt import resolve_sign_keys
from .util import ArgumentError, TargetError, value_is_true
from .version import (
    TIMESTAMP_TOKEN, decode_version, format_version, version_from_mtime)

log = logging.getLogger(__name__)

DEFAULT_VERSION = "0"
TEST_ASSERT_SETTING = "TESTUTIL_SYSTEM_ASSERT"


def resolve_target(project, name):
    """Build target called name; unit tests are not accepted."""
    t = project.resolve_target(name)
    if t is None:
        raise TargetError("Invalid target name: " + name)
    return t


def target_builder_for_target_or_unittest(project, name):
    t = project.resolve_target(name)
    if t is not None:
        return TargetBuilder(t)
    pkg = project.resolve_unittest(name)
    if pkg is not None:
        return TargetBuilder(project.unittest_target(), test_pkg=pkg)
    raise TargetError("Invalid target name: " + name)


def parse_version_token(token):
    """Return (version, from_timestamp) for a non-empty version token.

    For the timestamp token the version is None; it is derived once the
    build output exists.
    """
    if token == TIMESTAMP_TOKEN:
        return None, True
    try:
        return decode_version(token), False
    except ValueError as e:
        raise ArgumentError(str(e))


def prompt_for_version(builder):
    """Ask for a version unless the target is a bootloader or simulated.

    An empty answer, or end of input, selects the default version.
    Returns "" when no image should be created.
    """
    settings = builder.resolve()
    if value_is_true(settings.get("BOOT_LOADER")) or \
            value_is_true(settings.get("BSP_SIMULATED")):
        log.debug("Not prompting for a version; bootloader or simulated "
                  "target")
        return ""
    click.echo("Enter image version [{}]: ".format(DEFAULT_VERSION),
               nl=False)
    line = click.get_text_stream('stdin').readline()
    if not line.endswith("\n"):
        click.echo()
    return line.strip() or DEFAULT_VERSION


def _build_and_create_image(builder, ver, from_timestamp, key_args, cfg,
                            get_passwd):
    builder.build()

    if from_timestamp:
        ver = version_from_mtime(builder.app_elf_path())
        log.info("Using timestamp version %s", format_version(ver))

    if ver is None:
        return None

    key_set = resolve_sign_keys(cfg.image_format, key_args, get_passwd)
    cfg.image_format.produce(builder, ver, key_set, cfg)
    return ver


def create_image(project, args, cfg, get_passwd=None):
    """Build a target and produce its image.

    args are the positional arguments: target, version, keys...
    Returns the version written into the image.
    """
    if len(args) < 2:
        raise ArgumentError("Must specify target and version")

    t = resolve_target(project, args[0])
    ver, from_timestamp = parse_version_token(args[1])
    key_args = args[2:]
    # Catch a malformed key id before building.
    cfg.image_format.parse_key_args(key_args)

    builder = TargetBuilder(t)
    return _build_and_create_image(builder, ver, from_timestamp, key_args,
                                   cfg, get_passwd)


def _parse_image_args(args, cfg):
    """Return (key_args, version, from_timestamp) for version and key
    arguments."""
    ver, from_timestamp = parse_version_token(args[0])
    key_args = args[1:]
    cfg.image_format.parse_key_args(key_args)
    return key_args, ver, from_timestamp


def run(project, args, cfg, get_passwd=None):
    """Build, create the image, load and debug a target.

    A unit test package is built and run under the debugger instead.
    Without a version the image is only created after prompting, and not
    at all for bootloader or simulated targets.
    Returns the version written into the image, or None.
    """
    if len(args) < 1:
        raise ArgumentError("Must specify target")

    # A version given on the command line is checked before any stage.
    image_args = None
    if len(args) > 1:
        image_args = _parse_image_args(args[1:], cfg)

    builder = target_builder_for_target_or_unittest(project, args[0])

    if builder.get_test_pkg() is not None:
        builder.inject_setting(TEST_ASSERT_SETTING, "1")
        builder.self_test_create_exe()
        builder.self_test_debug()
        return None

    if image_args is None:
        ver_str = prompt_for_version(builder)
        if ver_str:
            image_args = _parse_image_args([ver_str], cfg)
        else:
            log.info("No version given; skipping image creation")
            image_args = ([], None, False)
    key_args, ver, from_timestamp = image_args

    ver = _build_and_create_image(builder, ver, from_timestamp, key_args,
                                  cfg, get_passwd)

    builder.load(cfg.extra_jtag_cmd)
    builder.debug(cfg.extra_jtag_cmd, True, cfg.no_gdb)
    return ver
