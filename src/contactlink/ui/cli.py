# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from pydantic import ValidationError

from contactlink.app import identify_contact, show_identity
from contactlink.config import configure_logging
from contactlink.domain.errors import ContactNotFoundError, InvalidRequestError
from contactlink.ui.schema import IdentifyRequestPayload, IdentifyResponsePayload

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from contactlink.domain.identity import IdentityView

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve contact identities")
    subparsers = parser.add_subparsers(dest="command", required=True)

    identify = subparsers.add_parser(
        "identify",
        help="Attach an email and/or phone number to its identity",
    )
    identify.add_argument("--email", type=str, help="Email address of the contact")
    identify.add_argument(
        "--phone-number",
        type=str,
        help="Phone number of the contact (non-digits are ignored)",
    )
    identify.add_argument(
        "--payload",
        type=str,
        help='JSON request body such as {"email": ..., "phoneNumber": ...}; "-" reads stdin',
    )

    show = subparsers.add_parser("show", help="Show the identity a contact belongs to")
    show.add_argument(
        "--contact-id",
        type=int,
        required=True,
        help="Id of any contact in the identity",
    )

    return parser.parse_args(list(argv))


def _build_request(args: argparse.Namespace) -> IdentifyRequestPayload:
    if args.payload is not None:
        if args.email is not None or args.phone_number is not None:
            raise InvalidRequestError("Use either --payload or --email/--phone-number, not both")
        raw = sys.stdin.read() if args.payload == "-" else args.payload
        return IdentifyRequestPayload.model_validate_json(raw)
    return IdentifyRequestPayload.model_validate(
        {"email": args.email, "phoneNumber": args.phone_number}
    )


def _print_view(view: IdentityView) -> None:
    print(IdentifyResponsePayload.from_view(view).model_dump_json(by_alias=True))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        if parsed_args.command == "identify":
            request = _build_request(parsed_args)
            view = identify_contact(email=request.email, phone_number=request.phone_number)
        elif parsed_args.command == "show":
            view = show_identity(contact_id=parsed_args.contact_id)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ValidationError, InvalidRequestError, ContactNotFoundError) as exc:
        log.error("Invalid request: %s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Identification failed")
        sys.exit(1)

    _print_view(view)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
