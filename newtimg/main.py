#! /usr/bin/env python3
#
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

import getpass
import logging
import sys

import click

from newtimg import newtimg_version, pipeline
from newtimg.config import make_config
from newtimg.project import Project
from newtimg.util import ArgumentError, NewtError, TargetError

MIN_PYTHON_VERSION = (3, 8)
if sys.version_info < MIN_PYTHON_VERSION:
    sys.exit("Python %s.%s or newer is required by newtimg."
             % MIN_PYTHON_VERSION)


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return int(value, 0)
        except ValueError:
            self.fail('%s is not a valid integer. Please use code literals '
                      'prefixed with 0b/0B, 0o/0O, or 0x/0X as necessary.'
                      % value, param, ctx)


class StageError(click.ClickException):
    """A fatal error raised by one of the pipeline stages."""
    exit_code = 1

    def __init__(self, err):
        super().__init__("{}: {}".format(err.stage, err))


def get_key_password(path):
    passwd = getpass.getpass("Enter passphrase for {}: ".format(path))
    # Password must be bytes, always use UTF-8 for consistent
    # encoding.
    return passwd.encode('utf-8')


def run_stages(ctx, fn, *args, **kwargs):
    """Single place where stage errors become an exit status."""
    try:
        return fn(*args, **kwargs)
    except (ArgumentError, TargetError) as e:
        raise click.UsageError(str(e), ctx=ctx)
    except NewtError as e:
        raise StageError(e)


def find_project(ctx):
    return Project.find(ctx.obj.get('project_dir'))


def image_options(f):
    """Flags shared by create-image and run."""
    options = [
        click.option('-f', '--force', is_flag=True, default=False,
                     help='Ignore flash overflow errors during image '
                          'creation'),
        click.option('--rsa-pss', is_flag=True, default=False,
                     help='Use RSA-PSS instead of PKCS#1 v1.5 for RSA sig. '
                          'Meaningful for version 1 image format.'),
        click.option('-1', '--v1', 'use_v1', is_flag=True, default=False,
                     help='Use old image header format'),
        click.option('-2', '--v2', 'use_v2', is_flag=True, default=False,
                     help='Use new image header format (default)'),
        click.option('-e', '--encrypt', 'enc_key_filename',
                     metavar='filename',
                     help='Encrypt image using this key'),
        click.option('-H', '--hw-stored-key', 'enc_key_index',
                     type=BasedIntParamType(), default=-1,
                     help='Hardware stored key index'),
        click.option('-p', '--pad-header', 'hdr_pad',
                     type=BasedIntParamType(), default=0,
                     help='Pad header to this length'),
        click.option('-i', '--pad-image', 'image_pad',
                     type=BasedIntParamType(), default=0,
                     help='Pad image to this length'),
        click.option('-S', '--sections', default='',
                     help='Section names for TLVs, comma delimited'),
        click.option('-L', '--legacy-tlvs', 'use_legacy_tlv', is_flag=True,
                     default=False,
                     help='Use legacy TLV values for NONCE and SECRET_ID'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


CREATE_IMAGE_HELP = '''Create an image by adding an image header to the
binary file created for <target-name>. Version number in the header is set
to be <version>, or derived from the build time when <version> is
"timestamp".

\b
To use version 1 of image format, specify -1 on command line.
To sign version 1 of the image format give private key as <signing-key>
and an optional key-id.

\b
To use version 2 of image format, specify -2 on command line.
To sign version 2 of the image format give private key as <signing-key>
(no key-id needed); several keys may be given.

Default image format is version 2.

To encrypt the image, specify -e passing it a public or AES key.

\b
Examples:
  newtimg create-image my_target1 1.3.0
  newtimg create-image my_target1 1.3.0.3
  newtimg create-image my_target1 1.3.0.3 private.pem
  newtimg create-image -1 my_target1 1.3.0.3 private.pem 5
  newtimg create-image -2 my_target1 1.3.0.3 private-1.pem private-2.pem
  newtimg create-image my_target1 timestamp -H 3 -e aes_key
'''


@click.argument('args', nargs=-1,
                metavar='<target-name> <version> [signing-key-1] '
                        '[signing-key-2] [...]')
@click.option('-W', '--overwrite-src', 'ow_src_filename', metavar='filename',
              help='Overwrite binary image source')
@image_options
@click.command('create-image', help=CREATE_IMAGE_HELP,
               short_help='Add image header to target binary')
@click.pass_context
def create_image(ctx, args, use_v1, use_v2, **options):
    cfg = run_stages(ctx, make_config, use_v1, use_v2, **options)
    project = run_stages(ctx, find_project, ctx)
    run_stages(ctx, pipeline.create_image, project, list(args), cfg,
               get_passwd=get_key_password)


RUN_HELP = '''Same as running

\b
 - build <target>
 - create-image <target> <version>
 - load <target>
 - debug <target>

Note if version number is omitted, the version is asked for, unless the
target is a bootloader or runs in the simulator, in which case the
create-image step is skipped.

\b
Examples:
  newtimg run <target-name> [<version>]
  newtimg run -2 my_target1 1.3.0.3 private-1.pem private-2.pem
'''


@click.argument('args', nargs=-1,
                metavar='<target-name> [<version>] [signing-key] [...]')
@click.option('-n', '--noGDB', 'no_gdb', is_flag=True, default=False,
              help='Do not start GDB from command line')
@click.option('--extrajtagcmd', 'extra_jtag_cmd', default='',
              help='Extra commands to send to JTAG software')
@image_options
@click.command('run', help=RUN_HELP,
               short_help='build/create-image/download/debug <target>')
@click.pass_context
def run(ctx, args, use_v1, use_v2, **options):
    cfg = run_stages(ctx, make_config, use_v1, use_v2, **options)
    project = run_stages(ctx, find_project, ctx)
    run_stages(ctx, pipeline.run, project, list(args), cfg,
               get_passwd=get_key_password)


@click.command('resign-image', short_help='Obsolete',
               help='This command is obsolete; use the `larva` tool to '
                    'resign images.',
               context_settings=dict(ignore_unknown_options=True,
                                     allow_extra_args=True))
@click.pass_context
def resign_image(ctx):
    click.echo(ctx.get_help())


@click.command(help='Print newtimg version information')
def version():
    print(newtimg_version)


@click.option('-C', '--project-dir', envvar='NEWTIMG_PROJECT',
              type=click.Path(file_okay=False),
              help='Project directory; defaults to the nearest directory '
                   'holding project.yml')
@click.option('-q', '--quiet', is_flag=True, default=False,
              help='Only print warnings and errors')
@click.option('-v', '--verbose', is_flag=True, default=False,
              help='Enable debug output')
@click.group(context_settings=dict(help_option_names=['-h', '--help']))
@click.pass_context
def newtimg(ctx, verbose, quiet, project_dir):
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(format='%(levelname)5s: %(message)s', level=level,
                        stream=sys.stderr, force=True)
    ctx.ensure_object(dict)
    ctx.obj['project_dir'] = project_dir


newtimg.add_command(create_image)
newtimg.add_command(run)
newtimg.add_command(resign_image)
newtimg.add_command(version)


if __name__ == '__main__':
    newtimg()
