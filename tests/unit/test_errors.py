"""
Unit tests for the error taxonomy and outcome classification.
"""

import httpx
import pytest

from sematext_client.errors import (
    ConfigurationError,
    EncodingError,
    ExporterError,
    NoClientError,
    OutcomeKind,
    PermanentClientError,
    RetryableServerError,
    TransportError,
    classify_status,
    is_retryable,
    map_http_error,
)


@pytest.mark.parametrize(
    "status, kind",
    [
        (200, OutcomeKind.SUCCESS),
        (204, OutcomeKind.SUCCESS),
        (299, OutcomeKind.SUCCESS),
        (500, OutcomeKind.RETRYABLE),
        (599, OutcomeKind.RETRYABLE),
        (301, OutcomeKind.PERMANENT),
        (400, OutcomeKind.PERMANENT),
        (429, OutcomeKind.PERMANENT),
        (100, OutcomeKind.PERMANENT),
    ],
)
def test_classify_status(status, kind):
    outcome = classify_status(status, "reason")
    assert outcome.kind is kind
    assert outcome.status_code == status


def test_success_outcome_does_not_raise():
    classify_status(204).raise_for_outcome("")


def test_outcome_raises_matching_error():
    with pytest.raises(RetryableServerError) as ei:
        classify_status(503, "down").raise_for_outcome("body")
    assert ei.value.status_code == 503
    assert ei.value.body == "body"

    with pytest.raises(PermanentClientError):
        classify_status(400, "bad").raise_for_outcome()


@pytest.mark.parametrize(
    "error, retryable",
    [
        (TransportError("x"), True),
        (RetryableServerError("x", 500), True),
        (PermanentClientError("x", 400), False),
        (EncodingError("x"), False),
        (ConfigurationError("x"), False),
        (NoClientError("x"), False),
        (ValueError("x"), False),
    ],
)
def test_is_retryable(error, retryable):
    assert is_retryable(error) is retryable


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)
    assert issubclass(ConfigurationError, ExporterError)


@pytest.mark.parametrize(
    "exc, expected",
    [
        (httpx.ConnectError("refused"), TransportError),
        (httpx.ReadTimeout("slow"), TransportError),
        (httpx.InvalidURL("bad"), ConfigurationError),
        (RuntimeError("other"), ExporterError),
    ],
)
def test_map_http_error(exc, expected):
    assert type(map_http_error(exc)) is expected


def test_map_http_error_passes_exporter_errors_through():
    err = NoClientError("x")
    assert map_http_error(err) is err
