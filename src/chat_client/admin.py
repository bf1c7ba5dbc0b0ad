#!/usr/bin/env python3
"""
Chat Admin Tool

Command line tool for the admin operations of the chat server.

Usage:
    chat-admin list
    chat-admin info ABC123
    chat-admin rename ABC123 "Study group"
    chat-admin suspend ABC123
    chat-admin resume ABC123
    chat-admin clear ABC123
    chat-admin delete ABC123

The admin secret is read from --secret or the ADMIN_SECRET variable.
"""

import argparse
import asyncio
import logging
import os
import sys

from .service import ClientService, RequestError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chat-admin", description="Administer chat rooms"
    )
    parser.add_argument(
        "--server",
        default=os.environ.get("CHAT_SERVER", "ws://localhost:8080"),
        help="Server URL (default: %(default)s)",
    )
    parser.add_argument(
        "--secret",
        default=os.environ.get("ADMIN_SECRET", ""),
        help="Admin secret (default: $ADMIN_SECRET)",
    )
    parser.add_argument("-v", "--verbose", action="store_true")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="List rooms")
    for name, help_text in (
        ("info", "Show a room"),
        ("suspend", "Reject new messages in a room"),
        ("resume", "Accept messages in a suspended room again"),
        ("clear", "Delete every message in a room"),
        ("delete", "Delete a room and its messages"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("room_code")
    rename = commands.add_parser("rename", help="Rename a room")
    rename.add_argument("room_code")
    rename.add_argument("name")
    return parser


def format_room(room) -> str:
    if not room.exists:
        return f"{room.code}: not found"
    state = "suspended" if room.suspended else "open"
    return (
        f"{room.code}  {room.name or '-'}  {room.message_count} messages  "
        f"{state}  last activity {room.last_message_at or room.created_at}"
    )


async def run_command(args, service: ClientService) -> str:
    """Execute one admin command and return the text to print."""
    if args.command == "list":
        response = await service.list_rooms()
        lines = [format_room(room) for room in response.rooms]
        lines.append(f"{response.total_count} room(s)")
        return "\n".join(lines)
    if args.command == "info":
        return format_room(await service.room_info(args.room_code))
    if args.command == "rename":
        room = await service.rename_room(args.room_code, args.name, args.secret)
        return format_room(room)
    if args.command in ("suspend", "resume"):
        room = await service.set_suspended(
            args.room_code, args.command == "suspend", args.secret
        )
        return format_room(room)
    if args.command == "clear":
        removed = await service.clear_room(args.room_code, args.secret)
        return f"Removed {removed} message(s) from {args.room_code.upper()}"
    if args.command == "delete":
        await service.delete_room(args.room_code, args.secret)
        return f"Deleted room {args.room_code.upper()}"
    raise ValueError(f"Unknown command: {args.command}")


async def _run(args) -> str:
    service = ClientService(args.server)
    await service.connect()
    try:
        return await run_command(args, service)
    finally:
        await service.disconnect()


def main(argv=None):
    """Main entry point for the admin tool."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        print(asyncio.run(_run(args)))
    except RequestError as e:
        print(f"Error ({e.status} {e.error_code}): {e.message}", file=sys.stderr)
        sys.exit(1)
    except ConnectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
