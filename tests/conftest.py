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

import base64
import os
import shlex
import sys

import pytest
import yaml
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from tests.constants import APP_BODY, APP_SECTIONS
from tests.helpers import make_elf

BUILD_SCRIPT = '''\
import json, os, shutil, sys
root = os.environ['MYNEWT_PROJECT_ROOT']
with open(os.path.join(root, 'calls.log'), 'a') as f:
    f.write(json.dumps({
        'step': 'build',
        'target': os.environ['NEWT_TARGET'],
        'app': os.environ['NEWT_APP'],
        'syscfg': os.environ['SYSCFG'],
    }) + '\\n')
if os.environ.get('FAIL_BUILD'):
    sys.exit(1)
base = os.environ['BIN_BASENAME']
shutil.copy(os.path.join(root, 'fixture.elf'), base + '.elf')
shutil.copy(os.path.join(root, 'fixture.bin'), base + '.elf.bin')
mtime = os.environ.get('FAKE_MTIME')
if mtime:
    os.utime(base + '.elf', (float(mtime), float(mtime)))
'''

DEPLOY_SCRIPT = '''\
#!{python}
import json, os, sys
root = os.environ['MYNEWT_PROJECT_ROOT']
step = os.path.splitext(os.path.basename(sys.argv[0]))[0]
env = {{k: os.environ.get(k, '') for k in
       ('IMAGE', 'EXTRA_JTAG_CMD', 'RESET', 'NO_GDB', 'ELF', 'FLASH_OFFSET')}}
with open(os.path.join(root, 'calls.log'), 'a') as f:
    f.write(json.dumps({{'step': step, 'args': sys.argv[1:],
                        'env': env}}) + '\\n')
if os.environ.get('FAIL_' + step.upper()):
    sys.exit(1)
'''


def write_yaml(path, data):
    os.makedirs(os.path.dirname(str(path)), exist_ok=True)
    with open(str(path), 'w') as f:
        yaml.safe_dump(data, f)


def write_bsp(root, name, slot_size=0x10000, syscfg=None):
    bsp_dir = root / name
    write_yaml(bsp_dir / 'bsp.yml', {
        'bsp.name': os.path.basename(name),
        'bsp.downloadscript': 'download.py',
        'bsp.debugscript': 'debug.py',
        'bsp.flash_map': {
            'areas': {
                'FLASH_AREA_IMAGE_0': {
                    'device': 0,
                    'offset': 0x8000,
                    'size': slot_size,
                },
            },
        },
    })
    if syscfg:
        write_yaml(bsp_dir / 'syscfg.yml', {'syscfg.vals': syscfg})
    for script in ('download.py', 'debug.py'):
        path = bsp_dir / script
        path.write_text(DEPLOY_SCRIPT.format(python=sys.executable))
        os.chmod(str(path), 0o755)


def write_target(root, name, syscfg=None, **vals):
    target_dir = root / 'targets' / name
    write_yaml(target_dir / 'target.yml',
               {'target.' + k: v for k, v in vals.items()})
    if syscfg:
        write_yaml(target_dir / 'syscfg.yml', {'syscfg.vals': syscfg})


def write_private_key(path, key, passwd=None):
    if passwd is None:
        enc = serialization.NoEncryption()
    else:
        enc = serialization.BestAvailableEncryption(passwd)
    path.write_bytes(key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=enc))


@pytest.fixture
def project(tmp_path):
    """A project with ordinary, bootloader, simulated and unit test
    targets."""
    root = tmp_path / 'proj'
    root.mkdir()
    (root / 'build.py').write_text(BUILD_SCRIPT)
    write_yaml(root / 'project.yml', {
        'project.name': 'proj',
        'project.build_cmd': '{} build.py'.format(shlex.quote(sys.executable)),
    })
    (root / 'fixture.elf').write_bytes(make_elf(APP_SECTIONS))
    (root / 'fixture.bin').write_bytes(APP_BODY)

    write_bsp(root, 'hw/bsp/testbsp')
    write_bsp(root, 'hw/bsp/simbsp', syscfg={'BSP_SIMULATED': 1})
    write_bsp(root, 'hw/bsp/smallbsp', slot_size=0x100)

    write_target(root, 't1', app='apps/blinky', bsp='hw/bsp/testbsp',
                 build_profile='optimized')
    write_target(root, 'boot', app='boot/mcuboot', bsp='hw/bsp/testbsp',
                 syscfg={'BOOT_LOADER': 1})
    write_target(root, 'sim', app='apps/blinky', bsp='hw/bsp/simbsp')
    write_target(root, 'small', app='apps/blinky', bsp='hw/bsp/smallbsp')
    write_target(root, 'noapp', bsp='hw/bsp/testbsp')
    write_target(root, 'unittest', bsp='hw/bsp/simbsp')
    write_yaml(root / 'sys/log/test/pkg.yml', {
        'pkg.name': 'sys/log/test',
        'pkg.type': 'unittest',
    })
    write_yaml(root / 'sys/log/pkg.yml', {'pkg.name': 'sys/log'})
    return root


@pytest.fixture(scope='session')
def key_files(tmp_path_factory):
    """PEM files for every supported key type, plus encryption keys."""
    d = tmp_path_factory.mktemp('keys')
    files = {}

    generated = {
        'ecdsa-p256': ec.generate_private_key(ec.SECP256R1()),
        'ecdsa-p256-2': ec.generate_private_key(ec.SECP256R1()),
        'ecdsa-p384': ec.generate_private_key(ec.SECP384R1()),
        'rsa-2048': rsa.generate_private_key(public_exponent=65537,
                                             key_size=2048),
        'ed25519': ed25519.Ed25519PrivateKey.generate(),
    }
    for name, key in generated.items():
        path = d / (name + '.pem')
        write_private_key(path, key)
        files[name] = str(path)

    path = d / 'ecdsa-p256-passwd.pem'
    write_private_key(path, ec.generate_private_key(ec.SECP256R1()),
                      passwd=b'secret')
    files['ecdsa-p256-passwd'] = str(path)

    rsa_pub = generated['rsa-2048'].public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo)
    path = d / 'rsa-2048.pub.pem'
    path.write_bytes(rsa_pub)
    files['rsa-2048-pub'] = str(path)

    ec_pub = generated['ecdsa-p256'].public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo)
    path = d / 'ecdsa-p256.pub.pem'
    path.write_bytes(ec_pub)
    files['ecdsa-p256-pub'] = str(path)

    path = d / 'aes128.b64'
    path.write_bytes(base64.b64encode(bytes(range(16))))
    files['aes128'] = str(path)

    path = d / 'garbage.pem'
    path.write_text('not a key\n')
    files['garbage'] = str(path)
    return files
