"""Tests for log redaction."""

from bankfetch.log import REDACTED, redact_sensitive_fields


def test_redacts_credential_like_keys():
    event = {
        "event": "login_attempt",
        "password": "1234",
        "db_password": "x",
        "Username": "alice",
        "relationship": "ING",
    }

    result = redact_sensitive_fields(None, "info", event)

    assert result["password"] == REDACTED
    assert result["db_password"] == REDACTED
    assert result["Username"] == REDACTED
    assert result["relationship"] == "ING"
    assert result["event"] == "login_attempt"


def test_pin_matched_as_whole_segment():
    event = {
        "event": "statements_listed",
        "pin": "2580",
        "card_pin": "1111",
        "PIN-code": "0000",
        "mapping": "by_account",
        "skipping": 2,
        "shipping": "none",
    }

    result = redact_sensitive_fields(None, "info", event)

    assert result["pin"] == REDACTED
    assert result["card_pin"] == REDACTED
    assert result["PIN-code"] == REDACTED
    assert result["mapping"] == "by_account"
    assert result["skipping"] == 2
    assert result["shipping"] == "none"
