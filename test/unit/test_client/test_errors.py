"""
Tests for user-facing error messages.
"""

import pytest

from numbergame.client.errors import (
    InvalidMoveError,
    MalformedResponseError,
    NetworkError,
    ServerError,
    describe_error,
)


@pytest.mark.parametrize(
    "exc,message",
    [
        (
            MalformedResponseError("html", body="<!DOCTYPE html><p>404: This page does not exist</p>"),
            "API endpoint not found. Please check server deployment.",
        ),
        (
            MalformedResponseError("html", body="<html><h1>500 Internal Server Error</h1></html>"),
            "Server error. Please try again later.",
        ),
        (
            MalformedResponseError("html", body="<html>maintenance</html>"),
            "Server returned HTML instead of JSON. Check server configuration.",
        ),
        (MalformedResponseError("invalid JSON", body="{oops"), "Invalid response format from server."),
        (ServerError("", 503), "Database not configured. Please contact app developer."),
        (ServerError("Room is full", 400), "Room is full"),
        (ServerError("", 502), "HTTP Error 502. Server may be down."),
        (ServerError(""), "Server reported an unknown error."),
        (NetworkError("timed out", offline=True), "Connection failed: timed out"),
        (InvalidMoveError("Not your turn. Please wait for your turn."), "Not your turn. Please wait for your turn."),
    ],
)
def test_describe_error(exc, message):
    assert describe_error(exc) == message


def test_malformed_is_html():
    assert MalformedResponseError("x", body="  <HTML>").is_html
    assert not MalformedResponseError("x", body='{"a": 1}').is_html
