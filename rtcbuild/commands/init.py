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
import argparse
from copier import run_copy

from rtcbuild.utils.config.build_config import CONFIG_FILE_NAME
from rtcbuild.utils.context.command import CliCommand
from rtcbuild.utils.context.context import CliContext
from rtcbuild.utils.context.namespace import CliNameSpace

TEMPLATE_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.realpath(__file__))), "templates", "project"
)


def parse_data_items(items) -> dict:
    """Turn KEY=VALUE strings into template data, with true/false as booleans."""
    data = {}
    for item in items or []:
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        # Convert string boolean values to actual booleans
        if value.lower() == "true":
            value = True
        elif value.lower() == "false":
            value = False
        data[key.strip()] = value
    return data


class Init(CliCommand):
    def description(self) -> str:
        return f"""
        Create {CONFIG_FILE_NAME} in the current directory.

        The file pins the WebRTC revision and the output layout used by
        `rtcbuild build`. Without it the built-in defaults apply.

        By default, the command runs in non-interactive mode using default values.
        Use --interact to enable interactive mode with prompts.

        Examples:
            rtcbuild init
            rtcbuild init --interact
            rtcbuild init --data webrtc_commit=<sha> --data lib_suffix=custom
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="rtcbuild init",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "--data",
            action="append",
            help="Template data in KEY=VALUE format (can be used multiple times)",
        )
        parser.add_argument(
            "--interact",
            action="store_true",
            help="Enable interactive mode with prompts (default is non-interactive)",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help=f"Overwrite an existing {CONFIG_FILE_NAME} without asking",
        )
        if argv is None:
            argv = sys.argv[2:]
        args, unknown = parser.parse_known_args(argv, namespace=CliNameSpace())
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        project_dir = context.project_dir
        config_file = os.path.join(project_dir, CONFIG_FILE_NAME)

        print(f"Initializing rtcbuild project in: '{project_dir}'")

        if os.path.isfile(config_file) and not args.force:
            print(f"\n⚠️  WARNING: {CONFIG_FILE_NAME} already exists!")
            response = input("\nDo you want to overwrite it? (y/N): ")
            if response.lower() != "y":
                print("Aborted.")
                sys.exit(0)

        data = {"project_name": os.path.basename(os.path.abspath(project_dir))}
        data.update(parse_data_items(args.data))

        run_copy(
            TEMPLATE_PATH,
            project_dir,
            data=data,
            defaults=not args.interact,
            overwrite=True,
            quiet=True,
        )

        print(f"\n✅ Created {config_file}")
        print(f"\nNext steps:")
        print(f"  rtcbuild check")
        print(f"  rtcbuild build")
