# src/keyscope/__main__.py

import sys
import argparse
import traceback

# --- Import Handling ---
try:
    from keyscope.keychain import cli as keychain_cli
except ImportError as e:
    print("--- Debug Information ---", file=sys.stderr)
    traceback.print_exc()
    print("-------------------------", file=sys.stderr)

    print(
        f"Fatal Error: Could not import a required submodule.\n"
        f"Please ensure the project structure is correct and dependencies are installed.\n"
        f"Details: {e}",
        file=sys.stderr
    )
    sys.exit(1)


def main():
    # 1. Initialize the primary ArgumentParser
    parser = argparse.ArgumentParser(
        prog="keyscope",
        description="Inspect and edit keychain items of one access group.",
        epilog="Use 'keyscope <command> --help' for more information on a specific command."
    )

    # 2. One subcommand per keychain operation
    subparsers = parser.add_subparsers(
        title="Available Commands",
        dest="command",
        required=True,
        metavar="<command>"
    )
    for name, (_, help_text) in keychain_cli.COMMANDS.items():
        subparsers.add_parser(name, help=help_text, add_help=False)

    # Only the command name is parsed here; the command parses the rest itself
    args = parser.parse_args(sys.argv[1:2])

    handler, _ = keychain_cli.COMMANDS[args.command]
    handler()


if __name__ == "__main__":
    main()
