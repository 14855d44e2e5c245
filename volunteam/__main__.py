"""
Command line front end for the volunteam client.

Usage:
    python -m volunteam login EMAIL [--password PASSWORD]
    python -m volunteam status
    python -m volunteam events [--fit]
    python -m volunteam event EVENT_ID
    python -m volunteam volunteer EVENT_ID
    python -m volunteam logout

Settings come from VOLUNTEAM_* environment variables or a .env file.
"""
import argparse
import asyncio
import getpass
import logging
import sys

from volunteam import VolunteamClient, load_config
from volunteam.const import DOMAIN, VERSION
from volunteam.errors import LoginFormInvalid, VolunteamError
from volunteam.event_details import PLATFORM_ANDROID, call_url, directions_url
from volunteam.event_status import volunteer_count_text
from volunteam.viewport import Region

_LOGGER = logging.getLogger(DOMAIN)


class ConsoleMapSurface:
    """Headless map surface that prints the regions it is asked to show."""

    async def fit_to_region(self, region: Region, animated: bool = True) -> None:
        print(
            f"Map region: center=({region.latitude:.5f}, {region.longitude:.5f}) "
            f"span=({region.latitude_delta:.5f}, {region.longitude_delta:.5f})"
        )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog=DOMAIN,
        description="Volunteer events client",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--api-url", default=None, help="Override VOLUNTEAM_API_BASE_URL")
    parser.add_argument("--cache", default=None, help="Override VOLUNTEAM_CACHE_PATH")

    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in and cache the session")
    login.add_argument("email")
    login.add_argument("-p", "--password", default=None, help="Prompted for when omitted")

    sub.add_parser("logout", help="Clear the cached session")
    sub.add_parser("status", help="Show the restored session state")

    events = sub.add_parser("events", help="List upcoming events")
    events.add_argument("--fit", action="store_true", help="Print the fitted map region")

    event = sub.add_parser("event", help="Show one event")
    event.add_argument("event_id")

    volunteer = sub.add_parser("volunteer", help="Volunteer for an event")
    volunteer.add_argument("event_id")

    return parser.parse_args(argv)


async def run(args) -> int:
    # No real map to settle in the console
    config = load_config(
        api_base_url=args.api_url,
        cache_path=args.cache,
        fit_initial_delay=0,
        fit_settle_delay=0,
    )
    client = VolunteamClient(config, ConsoleMapSurface())
    try:
        state = await client.async_setup()

        if args.command == "login":
            password = args.password or getpass.getpass("Password: ")
            user = await client.session.async_login(args.email, password)
            print(f"Signed in as {user.display_name}")
            return 0

        if args.command == "logout":
            await client.session.async_logout()
            print("Signed out")
            return 0

        if args.command == "status":
            print(f"Session: {state.value}")
            if client.session.current_user is not None:
                print(f"User: {client.session.current_user.display_name}")
            return 0

        if not client.session.can_navigate_to_map:
            print("Not signed in. Run: python -m volunteam login EMAIL", file=sys.stderr)
            return 2

        if args.command == "events":
            await client.events.async_refresh()
            for pin in client.events.pins():
                print(
                    f"{pin.event.id:>6}  {pin.event.date_time:%Y-%m-%d %H:%M}  "
                    f"{pin.resolved.status.value:<11} {pin.resolved.display_spots_left:>3} left  "
                    f"{pin.event.name}"
                )
            print(client.events.count_text())
            if args.fit:
                # flushes the fit deferred by the refresh above
                task = client.viewport.on_map_ready()
                if task is not None:
                    await task
            return 0

        if args.command in ("event", "volunteer"):
            details = await client.details.async_load(args.event_id)
            if args.command == "volunteer":
                details = await client.details.async_volunteer(details)
            event = details.event
            print(event.name)
            print(f"When: {event.date_time:%Y-%m-%d %H:%M}")
            print(f"Status: {details.resolved.status.value} ({volunteer_count_text(event)})")
            print(f"Organizer: {details.organizer_name}")
            if details.actions.show_contact:
                print(f"Call: {call_url(details.contact, PLATFORM_ANDROID)}")
            print(f"Directions: {directions_url(event.position, PLATFORM_ANDROID)}")
            print(event.description)
            return 0
    finally:
        await client.async_shutdown()
    return 1


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except LoginFormInvalid as e:
        print(f"Invalid login form: {', '.join(e.errors.values())}", file=sys.stderr)
        return 2
    except VolunteamError as e:
        _LOGGER.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
