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

import shlex
import subprocess
import time
from threading import Timer

from rtcbuild.utils.errors import RtcBuildError

DEFAULT_TIMEOUT_SECOND = 10


class CommandFailedError(RtcBuildError):
    """Raised when a delegated tool exits with a non-zero status"""

    def __init__(self, args, returncode):
        self.cmd = [str(a) for a in args]
        self.returncode = returncode
        super().__init__(
            f"command failed with exit code {returncode}: {format_command(self.cmd)}"
        )


def format_command(args) -> str:
    if isinstance(args, str):
        return args
    return " ".join(shlex.quote(str(a)) for a in args)


def exec_command_with_timeout_second(
    command,
    timeout_second=DEFAULT_TIMEOUT_SECOND,
    stdout=subprocess.PIPE,
    stderr=subprocess.STDOUT,
    cwd=None,
):
    start_mills = int(time.time() * 1000)
    # default timeout is 10 second
    compile_popen = subprocess.Popen(
        command,
        shell=isinstance(command, str),
        stdout=stdout,
        stderr=stderr,
        cwd=cwd,
    )
    timer = Timer(timeout_second, lambda process: process.kill(), [compile_popen])
    try:
        timer.start()
        stdout, stderr = compile_popen.communicate()
    finally:
        timer.cancel()
    err_code = compile_popen.returncode
    err_msg = bytes.decode(stdout, "UTF-8") if stdout else ""
    if err_code == -9:
        if not err_msg:
            if stderr:
                err_msg = bytes.decode(stderr, "UTF-8")
            if not err_msg:
                use_time = int(time.time() * 1000) - start_mills
                err_msg = f"Failed for timeout({err_code}), use_time: {use_time}ms"
    return err_code, err_msg


def run_command(args, cwd=None, env=None, check=True) -> int:
    """
    Echo a list-form command and run it with output streamed to the console.

    Args:
        args: Program and arguments
        cwd: Working directory, the current one if None
        env: Full environment for the child, inherited if None
        check: Raise CommandFailedError on a non-zero exit status

    Returns:
        The exit status of the command
    """
    args = [str(a) for a in args]
    if cwd:
        print(f"+ {format_command(args)}    (in {cwd})")
    else:
        print(f"+ {format_command(args)}")
    result = subprocess.run(args, cwd=cwd, env=env)
    if check and result.returncode != 0:
        raise CommandFailedError(args, result.returncode)
    return result.returncode
