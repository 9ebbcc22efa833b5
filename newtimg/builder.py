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
Target builder.

Compiling, downloading and debugging are delegated to external commands:
the project (or target) build command, and the download and debug scripts
of the target's BSP. Each runs to completion in the foreground; the
builder only prepares their environment and checks their results.
"""

import logging
import os
import shlex
import subprocess

from .util import BuildError, DeployError

log = logging.getLogger(__name__)


def _run(cmd, cwd, env, error_cls, what):
    log.debug("Running %s: %s", what, " ".join(cmd))
    full_env = dict(os.environ)
    full_env.update(env)
    try:
        proc = subprocess.run(cmd, cwd=cwd, env=full_env)
    except OSError as e:
        raise error_cls("Error running {} {}: {}".format(what, cmd[0], e))
    if proc.returncode != 0:
        raise error_cls("{} failed with exit status {}".format(
            what.capitalize(), proc.returncode))


class TargetBuilder:

    def __init__(self, target, test_pkg=None):
        if not target.bsp:
            raise BuildError("Target {} does not specify a BSP "
                             "(target.bsp)".format(target.name))
        if test_pkg is None and not target.app:
            raise BuildError("Target {} does not specify an app "
                             "(target.app)".format(target.name))
        self.target = target
        self.test_pkg = test_pkg
        self.project = target.project
        self.bsp = self.project.load_bsp(target.bsp)
        self.injected_settings = {}

    def __repr__(self):
        return "<TargetBuilder target={}, test_pkg={}>".format(
            self.target.name, self.test_pkg.name if self.test_pkg else None)

    def get_test_pkg(self):
        return self.test_pkg

    def inject_setting(self, key, value):
        self.injected_settings[key] = value

    def resolve(self):
        """Return the effective configuration settings.

        BSP values are overridden by target values, which are overridden by
        injected settings.
        """
        settings = {}
        settings.update(self.bsp.syscfg)
        settings.update(self.target.syscfg)
        settings.update(self.injected_settings)
        return settings

    def _pkg_name(self):
        if self.test_pkg is not None:
            return self.test_pkg.name
        return self.target.app

    def bin_dir(self):
        kind = "test" if self.test_pkg is not None else "app"
        return os.path.join(self.project.bin_dir(), "targets",
                            self.target.short_name, kind, self._pkg_name())

    def bin_basename(self):
        return os.path.join(self.bin_dir(),
                            os.path.basename(self._pkg_name()))

    def app_elf_path(self):
        return self.bin_basename() + ".elf"

    def app_bin_path(self):
        return self.app_elf_path() + ".bin"

    def app_img_path(self):
        return self.bin_basename() + ".img"

    def app_hex_path(self):
        return self.bin_basename() + ".hex"

    def manifest_path(self):
        return os.path.join(self.bin_dir(), "manifest.json")

    def image_slot_offset(self):
        return self.bsp.image_slot_offset()

    def image_slot_size(self):
        return self.bsp.image_slot_size()

    def _build_env(self):
        settings = self.resolve()
        return {
            'MYNEWT_PROJECT_ROOT': self.project.root,
            'NEWT_TARGET': self.target.name,
            'NEWT_APP': self._pkg_name(),
            'NEWT_BSP': self.target.bsp,
            'NEWT_BUILD_PROFILE': self.target.build_profile,
            'BIN_ROOT': self.bin_dir(),
            'BIN_BASENAME': self.bin_basename(),
            'SYSCFG': ",".join("{}={}".format(k, settings[k])
                               for k in sorted(settings)),
        }

    def build(self):
        """Compile and link the target, leaving the ELF and its binary in
        bin_dir()."""
        cmd = self.target.build_cmd or self.project.build_cmd
        if not cmd:
            raise BuildError("No build command configured; set "
                             "project.build_cmd or target.build_cmd")
        os.makedirs(self.bin_dir(), exist_ok=True)
        log.info("Building target %s", self.target.name)
        _run(shlex.split(cmd), self.project.root, self._build_env(),
             BuildError, "build")

        for path in (self.app_elf_path(), self.app_bin_path()):
            if not os.path.isfile(path):
                raise BuildError("Build did not produce {}".format(path))
        log.info("Target successfully built: %s", self.target.name)

    def self_test_create_exe(self):
        if self.test_pkg is None:
            raise BuildError("Target {} is not a unit test".format(
                self.target.name))
        log.info("Building unit test %s", self.test_pkg.name)
        self.build()

    def self_test_debug(self):
        self._run_script(self.bsp.debug_script, "debug", {
            'RESET': "true",
            'NO_GDB': "",
        })

    def _run_script(self, script, what, env):
        if script is None:
            raise DeployError("BSP {} has no {} script".format(
                self.bsp.name, what))
        full_env = {
            'MYNEWT_PROJECT_ROOT': self.project.root,
            'BSP_PATH': self.bsp.path,
            'BIN_ROOT': self.bin_dir(),
            'BIN_BASENAME': self.bin_basename(),
            'FLASH_OFFSET': "0x{:x}".format(self.image_slot_offset()),
        }
        full_env.update(env)
        _run([script, self.bsp.path, self.bin_basename()],
             self.project.root, full_env, DeployError, what)

    def load(self, extra_jtag_cmd, img_path=""):
        """Download the image to the device."""
        img_path = img_path or self.app_img_path()
        if not os.path.isfile(img_path):
            # No image was created; download the raw binary.
            img_path = self.app_bin_path()
        log.info("Loading %s image %s", self.target.name, img_path)
        self._run_script(self.bsp.download_script, "download", {
            'EXTRA_JTAG_CMD': extra_jtag_cmd or "",
            'IMAGE': img_path,
        })
        log.info("Successfully loaded image.")

    def debug(self, extra_jtag_cmd, reset, no_gdb, elf_path=""):
        log.info("Debugging %s", elf_path or self.app_elf_path())
        self._run_script(self.bsp.debug_script, "debug", {
            'EXTRA_JTAG_CMD': extra_jtag_cmd or "",
            'RESET': "true" if reset else "",
            'NO_GDB': "1" if no_gdb else "",
            'ELF': elf_path or self.app_elf_path(),
        })
