#!/usr/bin/env python3
"""controller-coder - generate a Go resource controller from an SQL schema.

Usage:
    python main.py generate --sql-schema schema.sql --state-machine states.mmd
    python main.py generate --sql-schema schema.sql --state-machine states.mmd --create-branch
    python main.py resource-type --sql-schema schema.sql --state-machine states.mmd
    python main.py storage-interface --resource-name role
    python main.py storage-impl --resource-name role
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from config.settings import load_settings
from core.committer import BranchCommitter
from core.errors import CoderError, CommitStepFailed
from core.orchestrator import Orchestrator
from utils.codebase import build_request, read_storage_impl, read_storage_interface


def _read_input(path):
    if path == "-":
        return sys.stdin.read()
    with open(path) as f:
        return f.read()


def _print_file(entry):
    print(f"=== {entry.path} ===")
    print(entry.content)


async def cmd_generate(args, settings):
    """Run the full pipeline, optionally committing to a new branch."""
    code_base = args.code_base or settings.code_base
    request = build_request(
        code_base, _read_input(args.sql_schema), _read_input(args.state_machine),
    )
    orchestrator = Orchestrator.from_settings(settings)
    try:
        state = await orchestrator.run_state(request)
    finally:
        await orchestrator.aclose()

    if args.verbose:
        print(f"Resource: {state.resource_name}")
        print(f"Status:   {state.status}")

    if not args.create_branch:
        for entry in state.files:
            _print_file(entry)
        return

    committer = BranchCommitter(code_base)
    branch = await committer.commit(state.resource_name, state.files)
    print(f"The code has been generated and committed to branch {branch}.")
    print(f"\nCommitted {len(state.files)} file(s):")
    for entry in state.files:
        print(f"  {entry.path}")


async def cmd_resource_type(args, settings):
    orchestrator = Orchestrator.from_settings(settings)
    try:
        resource_name, entry = await orchestrator.generate_resource_type(
            _read_input(args.sql_schema), _read_input(args.state_machine),
        )
    finally:
        await orchestrator.aclose()
    if args.verbose:
        print(f"Resource: {resource_name}")
    _print_file(entry)


async def cmd_storage_interface(args, settings):
    code_base = args.code_base or settings.code_base
    current = read_storage_interface(code_base)
    orchestrator = Orchestrator.from_settings(settings)
    try:
        entry = await orchestrator.generate_storage_interface(args.resource_name, current)
    finally:
        await orchestrator.aclose()
    _print_file(entry)


async def cmd_storage_impl(args, settings):
    code_base = args.code_base or settings.code_base
    current = read_storage_impl(code_base)
    orchestrator = Orchestrator.from_settings(settings)
    try:
        entry = await orchestrator.generate_storage_impl(args.resource_name, current)
    finally:
        await orchestrator.aclose()
    _print_file(entry)


COMMANDS = {
    "generate": cmd_generate,
    "resource-type": cmd_resource_type,
    "storage-interface": cmd_storage_interface,
    "storage-impl": cmd_storage_impl,
}


def build_parser():
    parser = argparse.ArgumentParser(
        prog="controller-coder",
        description="Generate resource types, storage and controllers for a Go code base",
    )
    parser.add_argument("--code-base", help="Go project checkout (default: $CODE_BASE)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging and extra output")
    subparsers = parser.add_subparsers(dest="command")

    generate = subparsers.add_parser("generate", help="Run the full four-stage pipeline")
    generate.add_argument("--sql-schema", required=True, help="File with the SQL schema ('-' for stdin)")
    generate.add_argument("--state-machine", required=True, help="File with the mermaid state diagram")
    generate.add_argument("--create-branch", action="store_true",
                          help="Commit the result to a new ai-impl-* branch and push it")

    resource_type = subparsers.add_parser("resource-type", help="Generate the type definition file only")
    resource_type.add_argument("--sql-schema", required=True, help="File with the SQL schema ('-' for stdin)")
    resource_type.add_argument("--state-machine", required=True, help="File with the mermaid state diagram")

    for name, help_text in (
        ("storage-interface", "Regenerate pkg/storage/storage.go for a resource"),
        ("storage-impl", "Regenerate pkg/storage/postgrest.go for a resource"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--resource-name", required=True,
                         help="Singular resource name, e.g. 'role' for 'roles'")

    return parser


def main(argv=None):
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()

    try:
        asyncio.run(COMMANDS[args.command](args, settings))
    except CommitStepFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.stdout:
            print(e.stdout, file=sys.stderr)
        sys.exit(1)
    except (CoderError, ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
