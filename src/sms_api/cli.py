from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable
from itertools import islice

from .client import Client, get_client
from .config import get_settings
from .errors import ApiError
from .messages import Message
from .phonenumbers import IncomingPhoneNumber


def _format_time(msg: Message) -> str:
    stamp = msg.date_sent or msg.date_created
    return stamp.isoformat() if stamp else "-"


def print_messages(messages: Iterable[Message]) -> None:
    """Print messages in a human-readable form."""
    for msg in messages:
        print("-" * 80)
        print(
            f"{msg.sid} | {msg.direction.friendly()} | {msg.status.friendly()} | "
            f"at={_format_time(msg)}"
        )
        print(f"from {msg.from_.local()} to {msg.to.local()}")
        if msg.body:
            print()
            print(msg.body)
        if msg.has_error:
            print(f"error {msg.error_code}: {msg.error_message}")
        price = msg.friendly_price()
        if price:
            print(f"price: {price}")


def print_numbers(numbers: Iterable[IncomingPhoneNumber]) -> None:
    for number in numbers:
        caps = [name for name, on in number.capabilities.model_dump().items() if on]
        print(
            f"{number.sid} | {number.phone_number.friendly()} | "
            f"{number.friendly_name or '-'} | {', '.join(caps) or '-'}"
        )


def _list_messages(client: Client, args: argparse.Namespace) -> None:
    params = {"PageSize": str(args.page_size)}
    if args.to:
        params["To"] = args.to
    if args.from_:
        params["From"] = args.from_
    print_messages(islice(client.messages.iterate(params), args.limit))


def _show_message(client: Client, args: argparse.Namespace) -> None:
    print_messages([client.messages.get(args.sid)])


def _send_message(client: Client, args: argparse.Namespace) -> None:
    from_number = args.from_ or get_settings().from_number
    if not from_number:
        raise SystemExit("--from is required when TWILIO_FROM_NUMBER is not configured")
    msg = client.messages.send_message(
        from_=from_number,
        to=args.to,
        body=args.body,
        media_urls=args.media_url,
    )
    print(f"{msg.sid} {msg.status.friendly()}")


def _list_numbers(client: Client, args: argparse.Namespace) -> None:
    pages = client.incoming_numbers.get_page_iterator({"PageSize": str(args.page_size)})
    for page in pages:
        print_numbers(page.incoming_phone_numbers)


def build_parser() -> argparse.ArgumentParser:
    default_page_size = get_settings().page_size

    parser = argparse.ArgumentParser(
        prog="sms-api",
        description="Inspect and send messages through the REST API.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log HTTP requests.")
    sub = parser.add_subparsers(dest="resource", required=True)

    messages = sub.add_parser("messages", help="Messages resource")
    msg_sub = messages.add_subparsers(dest="command", required=True)

    list_cmd = msg_sub.add_parser("list", help="List recent messages")
    list_cmd.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of messages to show (default: 20).",
    )
    list_cmd.add_argument("--page-size", type=int, default=default_page_size)
    list_cmd.add_argument("--to", default="")
    list_cmd.add_argument("--from", dest="from_", default="")
    list_cmd.set_defaults(handler=_list_messages)

    show_cmd = msg_sub.add_parser("show", help="Show a single message")
    show_cmd.add_argument("sid")
    show_cmd.set_defaults(handler=_show_message)

    send_cmd = msg_sub.add_parser("send", help="Send a message")
    send_cmd.add_argument("--to", required=True)
    send_cmd.add_argument("--body", required=True)
    send_cmd.add_argument("--from", dest="from_", default="")
    send_cmd.add_argument("--media-url", action="append", default=None)
    send_cmd.set_defaults(handler=_send_message)

    numbers = sub.add_parser("numbers", help="Incoming phone numbers")
    num_sub = numbers.add_subparsers(dest="command", required=True)
    num_list = num_sub.add_parser("list", help="List the account's phone numbers")
    num_list.add_argument("--page-size", type=int, default=default_page_size)
    num_list.set_defaults(handler=_list_numbers)

    return parser


def main(argv: list[str] | None = None, client: Client | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if client is None:
        try:
            client = get_client()
        except RuntimeError as exc:
            print(str(exc), file=sys.stderr)
            return 2

    with client:
        try:
            args.handler(client, args)
        except ApiError as exc:
            print(f"error ({exc.kind.value}): {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
