#
# Copyright 2024 rtcbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.
import pytest

from rtcbuild.utils.cmd.cmd_util import CommandFailedError
from rtcbuild.utils.config.build_config import BuildConfig


class CommandRecorder:
    """Stands in for run_command and remembers what would have run."""

    def __init__(self):
        self.calls = []
        self.failing = {}
        self.side_effects = {}

    def __call__(self, args, cwd=None, env=None, check=True):
        args = [str(a) for a in args]
        self.calls.append((args, cwd))
        if args[0] in self.side_effects:
            self.side_effects[args[0]](args, cwd)
        returncode = self.failing.get(args[0], 0)
        if check and returncode:
            raise CommandFailedError(args, returncode)
        return returncode

    @property
    def commands(self):
        return [args for args, _ in self.calls]


@pytest.fixture
def config(tmp_path):
    return BuildConfig({}, tmp_path)


@pytest.fixture
def recorder():
    return CommandRecorder()
