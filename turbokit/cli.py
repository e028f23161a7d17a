"""Command-line interface for turbokit.

Commands:
    init         Create a new workspace from the embedded templates.
    instantiate  Clone the canonical client template into a new member
                 (alias: create-client).
    list         Show the members of a workspace and their ports.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.prompt import Confirm

from turbokit import __version__
from turbokit.config import Config
from turbokit.installer import InstallerError, check_prerequisites, install_dependencies
from turbokit.scaffolder import (
    MemberInstantiator,
    ScaffoldError,
    TemplateStore,
    Workspace,
    WorkspaceBuilder,
    WorkspaceNotEmpty,
)
from turbokit.utils import (
    console,
    print_error,
    print_panel,
    print_success,
    print_summary_table,
    print_warning,
    sanitize_name,
)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _init(args: argparse.Namespace) -> int:
    target = Path(args.target) if args.target else None
    name = args.name or (sanitize_name(target.resolve().name) if target else None) or None
    config = Config.from_env(
        workspace_name=name, base_port=args.base_port, api_url=args.api_url
    )
    target = target or Path(config.workspace_name)

    if args.install:
        versions = await check_prerequisites(config.node_min_version)
        console.print(f"[dim]node {versions['node']}, pnpm {versions['pnpm']}[/dim]")

    console.print(f"[blue]Creating workspace[/blue] [bold]{config.workspace_name}[/bold] in {target}")
    builder = WorkspaceBuilder(TemplateStore.default(), config)
    try:
        workspace = await builder.build(target, overwrite=args.force)
    except WorkspaceNotEmpty:
        if not (sys.stdin.isatty() and Confirm.ask(
            f"{target} is not empty. Remove it and create a new workspace?", default=False
        )):
            raise
        workspace = await builder.build(target, overwrite=True)

    if args.install:
        await install_dependencies(workspace.root, timeout=config.install_timeout)

    print_success(f"Workspace '{config.workspace_name}' created.")
    next_steps = [f"cd {workspace.root}"]
    if not args.install:
        next_steps.append("pnpm install")
    next_steps += [
        "pnpm dev                        # start the template client",
        "pnpm create-client client-blue  # add a client",
        "pnpm mock-api                   # mock theme API",
    ]
    print_panel("\n".join(next_steps), title="Next steps")
    return 0


async def _instantiate(args: argparse.Namespace) -> int:
    config = Config.from_env()
    workspace = Workspace.open(args.workspace)

    console.print(f"[yellow]Creating new client:[/yellow] [bold]{args.member_name}[/bold]")
    member = await MemberInstantiator(config).instantiate(workspace, args.member_name)

    print_success(f"Client '{member.name}' created successfully!")
    print_panel(
        f"Path:          {member.path}\n"
        f"Display name:  {member.display_name}\n"
        f"Client ID:     {member.client_identifier}\n"
        f"Port:          {member.port}\n\n"
        f"1. Edit {member.path / '.env'} to customize settings\n"
        f"2. Start development: pnpm turbo run dev --filter={member.name}\n"
        "3. Or start all clients: pnpm dev",
        title="Member Ready",
    )
    return 0


async def _list(args: argparse.Namespace) -> int:
    workspace = Workspace.open(args.workspace)
    await asyncio.to_thread(workspace.ensure_valid)

    rows: list[tuple[str, ...]] = []
    template = workspace.template_member()
    if template is not None:
        rows.append((template.name, template.display_name, template.client_identifier,
                     str(template.port)))

    members = workspace.members()
    for member in members:
        rows.append((member.name, member.display_name, member.client_identifier, str(member.port)))

    print_summary_table(rows, ("Member", "Display name", "Client ID", "Port"), title="Members")

    unreadable = sorted(set(workspace.member_names()) - {m.name for m in members})
    if unreadable:
        print_warning(f"No port found in the env file of: {', '.join(unreadable)}")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="turbokit",
        description="turbokit -- pnpm/turbo multi-client workspace scaffolder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  turbokit init sms-turbo\n"
            "  turbokit instantiate client-blue --workspace sms-turbo\n"
            "  turbokit list --workspace sms-turbo\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Create a new workspace")
    init.add_argument("target", nargs="?", default=None,
                      help="Workspace directory (default: the workspace name)")
    init.add_argument("--name", default=None, help="Root package name")
    init.add_argument("--base-port", type=int, default=None,
                      help="Dev-server port of the template client (default: 5173)")
    init.add_argument("--api-url", default=None, help="Theme API base URL")
    init.add_argument("--force", action="store_true",
                      help="Replace the target directory if it is not empty")
    init.add_argument("--install", action="store_true",
                      help="Run pnpm install after creating the workspace")
    init.set_defaults(handler=_init)

    instantiate = subparsers.add_parser(
        "instantiate", aliases=["create-client"], help="Create a new client member"
    )
    instantiate.add_argument("member_name", help="Member name, e.g. client-blue")
    instantiate.add_argument("--workspace", "-w", default=".",
                             help="Workspace root (default: current directory)")
    instantiate.set_defaults(handler=_instantiate)

    list_cmd = subparsers.add_parser("list", help="List workspace members")
    list_cmd.add_argument("--workspace", "-w", default=".",
                          help="Workspace root (default: current directory)")
    list_cmd.set_defaults(handler=_list)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``turbokit`` / ``python -m turbokit``."""
    args = build_parser().parse_args(argv)

    try:
        return asyncio.run(args.handler(args))
    except (ScaffoldError, InstallerError) as exc:
        print_error(str(exc))
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        print_error(f"Invalid configuration for {field}: {first.get('msg')}")
    except OSError as exc:
        location = f": {exc.filename}" if exc.filename else ""
        print_error(f"{exc.strerror or exc}{location}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
