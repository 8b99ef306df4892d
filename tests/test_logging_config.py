from core.logging_config import redact_secrets


def test_access_key_is_masked():
    event = redact_secrets(None, "info", {"event": "x", "access_key": "abcd1234efgh5678", "AccessKey": "short"})
    assert event["access_key"] == "abcd***5678"
    assert event["AccessKey"] == "***"
    assert event["event"] == "x"


def test_empty_and_unrelated_fields_untouched():
    event = redact_secrets(None, "info", {"access_key": "", "remote_key": "photo_1.jpg"})
    assert event == {"access_key": "", "remote_key": "photo_1.jpg"}
