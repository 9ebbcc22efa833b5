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
Project and target registry.

A project is a directory holding project.yml. Targets live in
targets/<name>/target.yml, with optional settings overrides in
targets/<name>/syscfg.yml. Board support packages and unit test packages
are directories with bsp.yml and pkg.yml respectively.
"""

import logging
import os
import re

import yaml

from .util import BuildError, TargetError

log = logging.getLogger(__name__)

PROJECT_FILE = "project.yml"
TARGET_FILE = "target.yml"
SYSCFG_FILE = "syscfg.yml"
BSP_FILE = "bsp.yml"
PKG_FILE = "pkg.yml"
TARGETS_DIR = "targets"
DEFAULT_UNITTEST_TARGET = "targets/unittest"

size_re = re.compile(r"^\s*(\d+)\s*([kKmM]?)[bB]?\s*$")


def load_yaml(path):
    """Load a YAML mapping; a missing or empty file yields {}."""
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise BuildError("Error reading {}: {}".format(path, e.strerror or e))
    except yaml.YAMLError as e:
        raise BuildError("Error parsing {}: {}".format(path, e))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BuildError("{} must contain a mapping".format(path))
    return data


def parse_size(value):
    """Parse a flash size such as 0x8000, 32768 or 32kB."""
    if isinstance(value, int):
        return value
    text = str(value)
    m = size_re.match(text)
    if m:
        mult = {'': 1, 'k': 1024, 'm': 1024 * 1024}[m.group(2).lower()]
        return int(m.group(1)) * mult
    try:
        return int(text, 0)
    except ValueError:
        raise BuildError("Invalid size: {}".format(text))


class Target:
    """A named application + board pairing."""

    def __init__(self, project, name, path, vals, syscfg):
        self.project = project
        self.name = name
        self.path = path
        self.vals = vals
        self.syscfg = syscfg

    def __repr__(self):
        return "<Target {}>".format(self.name)

    @property
    def short_name(self):
        return os.path.basename(self.name)

    @property
    def app(self):
        return self.vals.get('target.app')

    @property
    def bsp(self):
        return self.vals.get('target.bsp')

    @property
    def build_profile(self):
        return self.vals.get('target.build_profile', 'default')

    @property
    def build_cmd(self):
        return self.vals.get('target.build_cmd')


class Package:
    """A project package; only unit test packages are looked up by name."""

    def __init__(self, project, name, path, vals):
        self.project = project
        self.name = name
        self.path = path
        self.vals = vals

    def __repr__(self):
        return "<Package {}>".format(self.name)

    @property
    def pkg_type(self):
        return self.vals.get('pkg.type', 'lib')


class Project:

    def __init__(self, root):
        self.root = os.path.abspath(root)
        self.vals = load_yaml(os.path.join(self.root, PROJECT_FILE))

    def __repr__(self):
        return "<Project {}>".format(self.root)

    @staticmethod
    def find(start=None):
        """Walk up from start until a directory holding project.yml."""
        start = os.path.abspath(start or os.getcwd())
        path = start
        while True:
            if os.path.isfile(os.path.join(path, PROJECT_FILE)):
                log.debug("Using project at %s", path)
                return Project(path)
            parent = os.path.dirname(path)
            if parent == path:
                raise TargetError("No {} found in {} or any parent "
                                  "directory".format(PROJECT_FILE, start))
            path = parent

    @property
    def name(self):
        return self.vals.get('project.name', os.path.basename(self.root))

    @property
    def build_cmd(self):
        return self.vals.get('project.build_cmd')

    def path_of(self, name):
        return os.path.join(self.root, name)

    def bin_dir(self):
        return os.path.join(self.root, "bin")

    def resolve_target(self, name):
        """Return the Target called name or targets/name, or None."""
        candidates = [name]
        if not name.startswith(TARGETS_DIR + "/"):
            candidates.append(TARGETS_DIR + "/" + name)
        for full in candidates:
            path = self.path_of(full)
            if os.path.isfile(os.path.join(path, TARGET_FILE)):
                vals = load_yaml(os.path.join(path, TARGET_FILE))
                syscfg = load_yaml(os.path.join(path, SYSCFG_FILE))
                return Target(self, full, path, vals,
                              syscfg.get('syscfg.vals') or {})
        return None

    def resolve_unittest(self, name):
        """Return the unit test Package called name, or None."""
        path = self.path_of(name)
        pkg_file = os.path.join(path, PKG_FILE)
        if not os.path.isfile(pkg_file):
            return None
        pkg = Package(self, name, path, load_yaml(pkg_file))
        if pkg.pkg_type != 'unittest':
            return None
        return pkg

    def unittest_target(self):
        name = self.vals.get('project.unittest_target',
                             DEFAULT_UNITTEST_TARGET)
        t = self.resolve_target(name)
        if t is None:
            raise TargetError("Unit test target {} does not exist".format(
                name))
        return t

    def load_bsp(self, name):
        path = self.path_of(name)
        bsp_file = os.path.join(path, BSP_FILE)
        if not os.path.isfile(bsp_file):
            raise BuildError("BSP {} has no {}".format(name, BSP_FILE))
        vals = load_yaml(bsp_file)
        syscfg = load_yaml(os.path.join(path, SYSCFG_FILE))
        return Bsp(name, path, vals, syscfg.get('syscfg.vals') or {})


class Bsp:

    IMAGE_AREA = "FLASH_AREA_IMAGE_0"

    def __init__(self, name, path, vals, syscfg):
        self.name = name
        self.path = path
        self.vals = vals
        self.syscfg = syscfg

    def script(self, key):
        script = self.vals.get(key)
        if script is None:
            return None
        return os.path.join(self.path, script)

    @property
    def download_script(self):
        return self.script('bsp.downloadscript')

    @property
    def debug_script(self):
        return self.script('bsp.debugscript')

    def _image_area(self):
        areas = (self.vals.get('bsp.flash_map') or {}).get('areas') or {}
        return areas.get(self.IMAGE_AREA) or {}

    def image_slot_offset(self):
        return parse_size(self._image_area().get('offset', 0))

    def image_slot_size(self):
        """Size of the image slot, or None when the BSP does not say."""
        size = self._image_area().get('size')
        return None if size is None else parse_size(size)
