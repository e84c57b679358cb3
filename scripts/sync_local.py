#!/usr/bin/env python3
"""
Interactive local harness for the booking sync engine.

Usage:
  python3 scripts/sync_local.py

What it does:
- Builds the engine through booking_sync.wiring (mock authority by default,
  AUTHORITY_PROVIDER=http to talk to a real backend)
- Lets you sign in as a client or an administrator and drive every command
- Prints the projected view and each booking event as it is published
"""

from __future__ import annotations

import asyncio
import shlex
import sys
from datetime import date, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from booking_sync.application.exceptions import BookingSyncError  # noqa: E402
from booking_sync.core.logging import configure_logging  # noqa: E402
from booking_sync.domain.entities.actor import Actor, Scope  # noqa: E402
from booking_sync.domain.entities.booking_event import BookingEvent  # noqa: E402
from booking_sync.domain.entities.filter_set import FilterSet  # noqa: E402
from booking_sync.infrastructure.authority.mock_authority import InMemoryAuthority  # noqa: E402
from booking_sync.wiring.dependencies import get_container  # noqa: E402

HELP = """Commands:
  login user|admin <user_id> [token]  sign in
  logout                         sign out (clears the store)
  scope mine|all|archived        switch view scope
  load | refresh                 fetch bookings for the current scope
  create <package_id> <guests> [days_ahead]
  status <id> <pending|confirmed|cancelled>
  archive <id> [reason] | restore <id> | destroy <id>
  notes <id> <text...> | resend <id>
  cancel <id> | delete <id>      client commands
  view [search]                  show the projected list
  stats | actions <id> | help | quit"""


def _print_event(event: BookingEvent) -> None:
    suffix = f" ({event.error})" if event.error else ""
    print(f"  [event] {event.kind} {event.booking_id or ''}{suffix}")


def _print_view(engine, search: str = "") -> None:
    rows = engine.view(FilterSet(search=search, view="archived" if engine.archived_view else "active"))
    if not rows:
        print("(no bookings)")
        return
    for b in rows:
        print(
            f"{b.id:10} {b.status.value:10} {b.client.name:20} "
            f"{b.booking_date.date().isoformat()} guests={b.guests} total={b.total_amount:,.2f}"
            f"{' [archived]' if b.archived else ''}"
        )


async def _dispatch(engine, authority, user_id_holder: dict, parts: list[str]) -> None:
    cmd, args = parts[0].lower(), parts[1:]

    if cmd == "login":
        kind, user_id = args[0], args[1]
        actor = Actor.admin(user_id) if kind == "admin" else Actor.user(user_id)
        if isinstance(authority, InMemoryAuthority):
            authority.acting_as = actor
        engine.set_actor(actor, access_token=args[2] if len(args) > 2 else None)
        user_id_holder["actor"] = actor
        print(f"signed in as {actor.kind.value} {user_id}")
    elif cmd == "logout":
        engine.sign_out()
        print("signed out")
    elif cmd == "scope":
        target = args[0]
        await engine.switch_scope(Scope.mine if target == "mine" else Scope.all, archived=target == "archived")
        _print_view(engine)
    elif cmd in ("load", "refresh"):
        await (engine.load() if cmd == "load" else engine.refresh())
        _print_view(engine)
    elif cmd == "create":
        days_ahead = int(args[2]) if len(args) > 2 else 7
        actor = user_id_holder.get("actor")
        record = await engine.create(
            {
                "packageIds": [args[0]],
                "clientName": f"Local {actor.user_id if actor else 'guest'}",
                "clientEmail": "local.user@example.com",
                "clientPhone": "0917-000-0000",
                "bookingDate": (date.today() + timedelta(days=days_ahead)).isoformat(),
                "guests": int(args[1]),
            }
        )
        print(f"created {record.id} total={record.total_amount:,.2f}")
    elif cmd == "status":
        await engine.set_status(args[0], args[1])
    elif cmd == "archive":
        await engine.archive(args[0], " ".join(args[1:]) or None)
    elif cmd == "restore":
        await engine.restore(args[0])
    elif cmd == "destroy":
        answer = await asyncio.to_thread(input, f"Permanently delete {args[0]}? type 'yes': ")
        await engine.destroy_permanent(args[0], confirmed=answer.strip().lower() == "yes")
    elif cmd == "notes":
        await engine.save_notes(args[0], " ".join(args[1:]))
    elif cmd == "resend":
        await engine.resend_confirmation(args[0])
    elif cmd == "cancel":
        await engine.request_cancellation(args[0])
    elif cmd == "delete":
        await engine.delete_booking(args[0])
    elif cmd == "view":
        _print_view(engine, " ".join(args))
    elif cmd == "stats":
        print(engine.stats())
    elif cmd == "actions":
        print(", ".join(engine.actions_for(args[0])) or "(none)")
    else:
        print(HELP)


async def main() -> None:
    configure_logging()
    container = get_container()
    engine = container["engine"]
    authority = container["authority"]
    container["events"].subscribe(_print_event)
    user_id_holder: dict = {}

    print("\nBooking Sync Harness")
    print("-" * 60)
    print(HELP)
    print("-" * 60)

    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, "\n> ")).strip()
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                return
            if not line:
                continue
            parts = shlex.split(line)
            if parts[0].lower() in ("quit", "exit", "/quit"):
                print("Bye!")
                return
            try:
                await _dispatch(engine, authority, user_id_holder, parts)
            except BookingSyncError as e:
                print(f"ERROR ({type(e).__name__}): {e}")
            except (IndexError, ValueError) as e:
                print(f"Bad command: {e}")
    finally:
        await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
