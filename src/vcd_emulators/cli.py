#!/usr/bin/env python3
"""
Command line entry point for the Cloud Director extension emulators.

Commands:
    serve          Register UI plugins in the ui-emulator host app and start ng serve
    dependencies   Write the dependency provenance report of a repository
    auth use       Pick the current Cloud Director profile
    auth login     Log in to Cloud Director and store the session as a profile

Examples:
    vcd-emulators serve --host-root . --plugins-root ../plugins --plugin subscribe
    vcd-emulators serve --host-root . --plugins-root ../plugins --plugin a --plugin b -- --port 4300
    vcd-emulators dependencies --root ~/src/cloud-director-ext-emulators
    vcd-emulators auth login dev --host https://vcd.example.com --user admin --org System
    vcd-emulators auth use
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .auth import AuthConfigSelector
from .common.config import load_config, load_emulator_layout
from .common.exceptions import EmulatorError
from .common.logging_setup import setup_logging
from .emulator import UiEmulatorConfigurator, VcdConfig
from .provenance import generate_dependencies_file

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vcd-emulators",
        description="Cloud Director extension emulators",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:")[1] if "Examples:" in __doc__ else None
    )
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level (default: VCD_EMULATORS_LOG_LEVEL or INFO)")
    parser.add_argument("--log-format", choices=["pretty", "json"],
                        help="Log output format (default: VCD_EMULATORS_LOG_FORMAT or pretty)")
    parser.add_argument("--config", type=Path, action="append",
                        help="Configuration file (.env, .yaml or .json) loaded into the environment")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Configure the ui-emulator and start the dev server")
    serve.add_argument("--host-root", type=Path, default=Path.cwd(),
                       help="Root of the ui-emulator host application (default: current directory)")
    serve.add_argument("--plugins-root", required=True,
                       help="Path of the folder holding the plugins, relative to the host root")
    serve.add_argument("--plugin", dest="plugins", action="append", required=True,
                       help="Plugin folder name; repeat to register several, in order")
    serve.add_argument("--token", help="Cloud Director access token")
    serve.add_argument("--cell-url", help="Cloud Director cell URL the dev proxy forwards to")
    serve.add_argument("--profile-file", help="Profile file used when --token/--cell-url are omitted")
    serve.add_argument("--layout", type=Path, help="YAML file overriding the host application layout")
    serve.add_argument("--no-launch-on-partial", dest="launch_on_partial", action="store_false",
                       help="Do not start the dev server when the configuration could not be completed")
    serve.add_argument("ng_args", nargs=argparse.REMAINDER,
                       help="Extra arguments passed to the dev server after --")

    deps = subparsers.add_parser("dependencies", help="Generate the dependency provenance report")
    deps.add_argument("--root", type=Path, default=Path.cwd(), help="Repository root to scan")
    deps.add_argument("--output", type=Path,
                      help="Report path (default: <root>/.github/workflows/dependencies.json)")

    auth = subparsers.add_parser("auth", help="Manage Cloud Director profiles")
    auth_commands = auth.add_subparsers(dest="auth_command", required=True)

    auth_use = auth_commands.add_parser("use", help="Select the current profile")
    auth_use.add_argument("--file", help="Profile file")

    auth_login = auth_commands.add_parser("login", help="Log in and store a profile")
    auth_login.add_argument("alias", help="Name of the profile")
    auth_login.add_argument("--host", required=True, help="Cloud Director base URL")
    auth_login.add_argument("--user", required=True, help="User name")
    auth_login.add_argument("--org", required=True, help="Organization")
    auth_login.add_argument("--password", help="Password (prompted for when omitted)")
    auth_login.add_argument("--file", help="Profile file")

    return parser


def _vcd_config(args: argparse.Namespace, selector: AuthConfigSelector) -> Optional[VcdConfig]:
    if args.token and args.cell_url:
        return VcdConfig(token=args.token, cell_url=args.cell_url)

    profile = selector.get_cloud_director_config(args.profile_file)
    if profile is None or not profile.authorized or not profile.session_token:
        logger.error("No authorized Cloud Director profile, run 'vcd-emulators auth login' first")
        return None
    return VcdConfig(token=args.token or profile.session_token, cell_url=args.cell_url or profile.base_path)


def run_serve(args: argparse.Namespace, selector: Optional[AuthConfigSelector] = None) -> int:
    vcd_config = _vcd_config(args, selector or AuthConfigSelector())
    if vcd_config is None:
        return 1

    ng_args = list(args.ng_args)
    if ng_args and ng_args[0] == "--":
        ng_args = ng_args[1:]

    configurator = UiEmulatorConfigurator(layout=load_emulator_layout(args.layout))
    result, handle = configurator.serve(
        args.host_root, args.plugins_root, args.plugins, vcd_config,
        extra_args=ng_args, launch_on_partial=args.launch_on_partial
    )
    if handle is None:
        return 1
    try:
        return handle.wait()
    except KeyboardInterrupt:
        handle.terminate()
        return 130


def run_dependencies(args: argparse.Namespace) -> int:
    generate_dependencies_file(args.root, args.output)
    return 0


def run_auth(args: argparse.Namespace, selector: Optional[AuthConfigSelector] = None) -> int:
    selector = selector or AuthConfigSelector()
    if args.auth_command == "use":
        profile = selector.use(args.file)
        return 0 if profile is not None else 1

    password = args.password or getpass.getpass(f"Password for {args.user}@{args.org}: ")
    profile = selector.login_and_store(args.alias, args.host, args.user, args.org, password, args.file)
    return 0 if profile.authorized else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        load_config(search_paths=args.config)
        setup_logging(args.log_level, args.log_format)

        if args.command == "serve":
            return run_serve(args)
        if args.command == "dependencies":
            return run_dependencies(args)
        return run_auth(args)
    except EmulatorError as e:
        logger.error(e.message, extra={"error_code": e.error_code, **e.context})
        return 1


if __name__ == "__main__":
    sys.exit(main())
