#!/usr/bin/env python3
"""CLI tool for operating the subway network.

Usage:
    # Members
    python -m subway.cli create-member [--external-id auth0|abc123]
    python -m subway.cli list-members

    # Network
    python -m subway.cli create-station "Gangnam"
    python -m subway.cli create-line "Line 2" green --up <station-id> --down <station-id> --distance 10
    python -m subway.cli add-section <line-id> <up-station-id> <down-station-id> <distance>
    python -m subway.cli remove-station <line-id> <station-id>
    python -m subway.cli list-lines
    python -m subway.cli show-line <line-id>
"""

import argparse
import asyncio
import sys
import uuid

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_session_factory
from subway.schemas.lines import CreateLineRequest, CreateSectionRequest
from subway.schemas.stations import CreateStationRequest
from subway.services.line_service import LineService
from subway.services.member_service import MemberService
from subway.services.station_service import StationService


def _parse_uuid(value: str) -> uuid.UUID:
    """argparse type for UUID arguments."""
    try:
        return uuid.UUID(value)
    except ValueError:
        msg = f"Invalid UUID: {value}"
        raise argparse.ArgumentTypeError(msg) from None


async def cmd_create_member(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Create a member.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    external_id = args.external_id or f"cli|{uuid.uuid4().hex[:12]}"
    provider = "auth0" if args.external_id else "cli"

    member = await MemberService(session).get_or_create_member(external_id, auth_provider=provider)

    print("✅ Member ready")
    print(f"   Member ID:   {member.id}")
    print(f"   External ID: {member.external_id}")
    print(f"   Provider:    {member.auth_provider}")
    return 0


async def cmd_list_members(args: argparse.Namespace, session: AsyncSession) -> int:
    """List all members."""
    members = await MemberService(session).list_members()

    if not members:
        print("No members found.")
        return 0

    print(f"{'Member ID':<38} {'Provider':<10} External ID")
    for member in members:
        print(f"{member.id!s:<38} {member.auth_provider:<10} {member.external_id}")
    return 0


async def cmd_create_station(args: argparse.Namespace, session: AsyncSession) -> int:
    """Create a station."""
    try:
        station = await StationService(session).create_station(CreateStationRequest(name=args.name))
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print(f"✅ Created station {station.name} ({station.id})")
    return 0


async def cmd_create_line(args: argparse.Namespace, session: AsyncSession) -> int:
    """Create a line, optionally with its first section."""
    try:
        request = CreateLineRequest(
            name=args.name,
            color=args.color,
            up_station_id=args.up,
            down_station_id=args.down,
            distance=args.distance,
        )
    except ValueError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    try:
        line = await LineService(session).create_line(request)
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print(f"✅ Created line {line.name} ({line.id})")
    return 0


async def cmd_add_section(args: argparse.Namespace, session: AsyncSession) -> int:
    """Add a section to a line."""
    try:
        request = CreateSectionRequest(
            up_station_id=args.up_station_id,
            down_station_id=args.down_station_id,
            distance=args.distance,
        )
        await LineService(session).add_section(args.line_id, request)
    except ValueError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    return await cmd_show_line(args, session)


async def cmd_remove_station(args: argparse.Namespace, session: AsyncSession) -> int:
    """Remove a station from a line."""
    try:
        await LineService(session).remove_station(args.line_id, args.station_id)
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    return await cmd_show_line(args, session)


async def cmd_list_lines(args: argparse.Namespace, session: AsyncSession) -> int:
    """List all lines."""
    lines = await LineService(session).list_lines()

    if not lines:
        print("No lines found.")
        return 0

    for line in lines:
        print(f"{line.id}  {line.name:<20} {line.color:<12} {len(line.stations())} stations, {line.total_distance} km")
    return 0


async def cmd_show_line(args: argparse.Namespace, session: AsyncSession) -> int:
    """Print a line's stations in path order with the distance of each section."""
    try:
        line = await LineService(session).get_line_by_id(args.line_id)
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print(f"{line.name} ({line.color})")
    sections = line.ordered_sections()
    if not sections:
        print("   (no sections)")
        return 0

    print(f"   {sections[0].up_station.name}")
    for section in sections:
        print(f"   --{section.distance}--> {section.down_station.name}")
    print(f"   total: {line.total_distance}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="python -m subway.cli",
        description="Subway network CLI",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_member_parser = subparsers.add_parser("create-member", help="Create a member")
    create_member_parser.add_argument(
        "--external-id",
        type=str,
        help="Identity-provider subject (e.g., 'auth0|abc123'). If not provided, generates 'cli|<random>'",
    )

    subparsers.add_parser("list-members", help="List all members")

    create_station_parser = subparsers.add_parser("create-station", help="Create a station")
    create_station_parser.add_argument("name", type=str, help="Station name")

    create_line_parser = subparsers.add_parser("create-line", help="Create a line")
    create_line_parser.add_argument("name", type=str, help="Line name")
    create_line_parser.add_argument("color", type=str, help="Line color")
    create_line_parser.add_argument("--up", type=_parse_uuid, help="Up station of the first section")
    create_line_parser.add_argument("--down", type=_parse_uuid, help="Down station of the first section")
    create_line_parser.add_argument("--distance", type=int, help="Distance of the first section")

    add_section_parser = subparsers.add_parser("add-section", help="Add a section to a line")
    add_section_parser.add_argument("line_id", type=_parse_uuid)
    add_section_parser.add_argument("up_station_id", type=_parse_uuid)
    add_section_parser.add_argument("down_station_id", type=_parse_uuid)
    add_section_parser.add_argument("distance", type=int)

    remove_station_parser = subparsers.add_parser("remove-station", help="Remove a station from a line")
    remove_station_parser.add_argument("line_id", type=_parse_uuid)
    remove_station_parser.add_argument("station_id", type=_parse_uuid)

    subparsers.add_parser("list-lines", help="List all lines")

    show_line_parser = subparsers.add_parser("show-line", help="Show a line's stations in order")
    show_line_parser.add_argument("line_id", type=_parse_uuid)

    return parser


COMMAND_HANDLERS = {
    "create-member": cmd_create_member,
    "list-members": cmd_list_members,
    "create-station": cmd_create_station,
    "create-line": cmd_create_line,
    "add-section": cmd_add_section,
    "remove-station": cmd_remove_station,
    "list-lines": cmd_list_lines,
    "show-line": cmd_show_line,
}


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if handler := COMMAND_HANDLERS.get(args.command):

        async def run_with_session() -> int:
            async with get_session_factory()() as session:
                try:
                    return await handler(args, session)
                except Exception as e:
                    print(f"❌ Unexpected error: {e}", file=sys.stderr)
                    return 1

        return asyncio.run(run_with_session())

    print(f"❌ Unknown command: {args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
