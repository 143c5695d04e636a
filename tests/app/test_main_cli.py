from __future__ import annotations

import io
import json
from typing import TYPE_CHECKING

import pytest

from contactlink.domain.errors import ContactNotFoundError, InvalidRequestError, StorageError
from contactlink.domain.identity import IdentityView
from contactlink.ui import cli

if TYPE_CHECKING:
    from collections.abc import Callable

VIEW = IdentityView(
    primary_contact_id=1,
    emails=("a@x.com",),
    phone_numbers=("123",),
    secondary_contact_ids=(2,),
)


@pytest.fixture
def captured_identify(monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake_identify(**kwargs: object) -> IdentityView:
        captured.update(kwargs)
        return VIEW

    monkeypatch.setattr(cli, "identify_contact", fake_identify)
    return captured


def test_identify_flags_are_normalized(
    captured_identify: dict[str, object],
    capsys: pytest.CaptureFixture[str],
) -> None:
    cli.main(["identify", "--email", " A@X.com ", "--phone-number", "+1 (23)"])

    assert captured_identify == {"email": "a@x.com", "phone_number": "123"}
    assert json.loads(capsys.readouterr().out) == {
        "contact": {
            "primaryContactId": 1,
            "emails": ["a@x.com"],
            "phoneNumbers": ["123"],
            "secondaryContactIds": [2],
        }
    }


def test_identify_accepts_json_payload(captured_identify: dict[str, object]) -> None:
    cli.main(["identify", "--payload", '{"email": null, "phoneNumber": 123456}'])

    assert captured_identify == {"email": None, "phone_number": "123456"}


def test_identify_reads_payload_from_stdin(
    captured_identify: dict[str, object],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO('{"email": "b@x.com"}'))

    cli.main(["identify", "--payload", "-"])

    assert captured_identify == {"email": "b@x.com", "phone_number": None}


@pytest.mark.parametrize(
    "argv",
    [
        ["identify", "--email", "not-an-email"],
        ["identify", "--payload", "{not json"],
        ["identify", "--payload", "{}", "--email", "a@x.com"],
    ],
)
def test_identify_invalid_input_exits_with_code_2(
    captured_identify: dict[str, object],
    argv: list[str],
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2
    assert captured_identify == {}


def _raising(exc: Exception) -> Callable[..., IdentityView]:
    def fake(**_: object) -> IdentityView:
        raise exc

    return fake


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (InvalidRequestError("Either email or phone number must be provided"), 2),
        (StorageError("database unavailable"), 1),
    ],
)
def test_identify_errors_map_to_exit_codes(
    monkeypatch: pytest.MonkeyPatch,
    exc: Exception,
    code: int,
) -> None:
    monkeypatch.setattr(cli, "identify_contact", _raising(exc))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["identify"])

    assert excinfo.value.code == code


def test_show_prints_identity(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    captured: dict[str, object] = {}

    def fake_show(**kwargs: object) -> IdentityView:
        captured.update(kwargs)
        return VIEW

    monkeypatch.setattr(cli, "show_identity", fake_show)

    cli.main(["show", "--contact-id", "2"])

    assert captured == {"contact_id": 2}
    assert json.loads(capsys.readouterr().out)["contact"]["primaryContactId"] == 1


def test_show_unknown_contact_exits_with_code_2(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "show_identity", _raising(ContactNotFoundError("missing")))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["show", "--contact-id", "9"])

    assert excinfo.value.code == 2
