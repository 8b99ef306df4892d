import pytest

from domain.offload.outcome import (
    ErrorCategory,
    TransferErrorKind,
    TransferOutcome,
    classify_delete_status,
    classify_http_status,
    classify_transport_error,
)


@pytest.mark.parametrize(
    "status_code, tag",
    [
        (200, "success"),
        (201, "success"),
        (401, "error: unauthorized"),
        (403, "error: forbidden"),
        (404, "error: not found"),
        (413, "error: file too large"),
        (429, "error: rate limited"),
        (500, "error: server error"),
        (503, "error: server error"),
        (302, "error: HTTP 302"),
        (418, "error: HTTP 418"),
    ],
)
def test_upload_status_tags(status_code, tag):
    assert classify_http_status(status_code).status_tag == tag


def test_protocol_failures_carry_status_code_and_category():
    outcome = classify_http_status(413, detail="too big")
    assert not outcome.ok
    assert outcome.kind is TransferErrorKind.FILE_TOO_LARGE
    assert outcome.category is ErrorCategory.PROTOCOL
    assert outcome.status_code == 413
    assert outcome.detail == "too big"


def test_delete_treats_404_as_success():
    outcome = classify_delete_status(404)
    assert outcome.ok
    assert outcome.category is ErrorCategory.NOT_FOUND_AS_SUCCESS
    assert classify_delete_status(204).ok
    assert not classify_delete_status(401).ok


@pytest.mark.parametrize(
    "message, kind",
    [
        ("ReadTimeout: The read operation timed out", TransferErrorKind.TIMEOUT),
        ("cURL error 28: Operation timeout", TransferErrorKind.TIMEOUT),
        ("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed", TransferErrorKind.SSL_ERROR),
        ("[Errno 111] Connection refused", TransferErrorKind.CONNECTION_FAILED),
        ("SSL connection has been closed unexpectedly", TransferErrorKind.CONNECTION_FAILED),
        ("Could not connect: SSL handshake failed", TransferErrorKind.CONNECTION_FAILED),
        ("RemoteProtocolError: illegal status line", TransferErrorKind.REQUEST_FAILED),
        ("", TransferErrorKind.REQUEST_FAILED),
    ],
)
def test_transport_errors_classified_from_message(message, kind):
    outcome = classify_transport_error(message)
    assert outcome.kind is kind
    assert outcome.category is ErrorCategory.TRANSPORT


def test_timeout_tag_includes_elapsed_seconds():
    outcome = classify_transport_error("timed out", elapsed=32.4412)
    assert outcome.status_tag == "error: timeout (32.4s)"
    assert TransferOutcome(TransferErrorKind.TIMEOUT).status_tag == "error: timeout"


def test_local_failures_have_their_own_categories():
    assert TransferOutcome.failure(TransferErrorKind.THROTTLED).category is ErrorCategory.ADMISSION
    assert TransferOutcome.failure(TransferErrorKind.INSUFFICIENT_PERMISSIONS).category is ErrorCategory.AUTHORIZATION
    assert TransferOutcome.failure(TransferErrorKind.NOT_CONFIGURED).category is ErrorCategory.CONFIGURATION
    assert TransferOutcome.failure(TransferErrorKind.FILE_UNREADABLE).category is ErrorCategory.VALIDATION
    assert (
        TransferOutcome.failure(TransferErrorKind.THROTTLED).status_tag
        == "error: throttled (too many concurrent uploads)"
    )


def test_every_kind_has_a_category():
    for kind in TransferErrorKind:
        assert isinstance(kind.category, ErrorCategory)


def test_transport_detail_can_differ_from_classified_message():
    outcome = classify_transport_error(
        "[SSL: WRONG_VERSION_NUMBER] wrong version number",
        detail="ConnectError: [SSL: WRONG_VERSION_NUMBER] wrong version number",
    )
    assert outcome.kind is TransferErrorKind.SSL_ERROR
    assert outcome.detail.startswith("ConnectError:")
