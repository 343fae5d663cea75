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

import os
import sys
import importlib
import argparse

from rtcbuild.utils.context.namespace import CliNameSpace
from rtcbuild.utils.context.context import CliContext
from rtcbuild.utils.context.command import CliCommand

SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]


# Root Class for Command Line Interface
class Cli(CliCommand):
    def description(self) -> str:
        return """rtcbuild - pinned WebRTC static library builder

Fetches WebRTC at a pinned commit with depot_tools, builds it with gn and
ninja for a target OS/CPU, and harvests the headers and a single static
library into include/ and lib/ of the current project.

USAGE:
    rtcbuild <command> [options]

COMMANDS:
    build       Sync, build and harvest one or more targets
    sync        Fetch depot_tools and WebRTC at the pinned commit
    clean       Remove build output (and optionally include/ and lib/)
    check       Check the tools a target needs
    init        Create RTCBUILD.toml in the current directory

EXAMPLES:
    rtcbuild build                       # Build for the host (go env GOOS/GOARCH)
    rtcbuild build linux arm             # Cross-compile for linux/arm
    rtcbuild build --targets linux/amd64,android/arm
    rtcbuild clean --all -y

For more information on a specific command:
    rtcbuild <command> --help
        """

    def get_command_list(self) -> list:
        arr = []
        for command in os.listdir(os.path.join(SCRIPT_PATH, "commands")):
            if not command.startswith("_") and command.endswith(".py"):
                arr.append(os.path.splitext(os.path.basename(command))[0])
        return sorted(arr)

    def _parser(self, add_help=True) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="rtcbuild",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
            add_help=add_help,
        )
        parser.add_argument(
            "subcommand",
            metavar=f"{self.get_command_list()}",
            type=str,
            nargs="?",
            choices=self.get_command_list(),
        )
        return parser

    def cli(self, argv=None) -> CliNameSpace:
        if argv is None:
            argv = sys.argv[1:]
        # rtcbuild --help, but not rtcbuild build --help
        if len(argv) == 1 and argv[0] in ["--help", "-h"]:
            self._parser().print_help()
            sys.exit(0)

        # parse only known args - the rest belongs to the subcommand
        args, unknown = self._parser(add_help=False).parse_known_args(
            argv[:1], namespace=CliNameSpace()
        )
        args.subcommand_argv = argv[1:]
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        if not args.subcommand:
            print("ERROR: No command specified\n")
            self._parser().print_help()
            sys.exit(1)

        # get module name
        module_name = f"rtcbuild.commands.{args.subcommand}"
        # get class name
        class_name = args.subcommand.capitalize()
        # import module
        module = importlib.import_module(module_name)
        # get class of module
        klass = getattr(module, class_name)
        # instance class
        sub_cmd = klass()
        # now execute the subcommand
        sub_cmd.exec(context, sub_cmd.cli(args.subcommand_argv))


def main():
    cmd = Cli()
    cmd.exec(CliContext(), cmd.cli())


if __name__ == "__main__":
    main()
