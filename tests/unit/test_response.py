"""
Unit tests for HTTP response building.
"""

import pytest

from simplewebserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    ok,
    ok_head,
    bad_request,
    not_found,
    too_many_requests,
    internal_error,
    error_response,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_head_uses_bare_lf(self):
        """Test that lines end with LF and nothing is added automatically."""
        response = HTTPResponse(status=HTTPStatus.OK, body=b"hi")

        assert response.head() == b"HTTP/1.1 200 OK\n\n"
        assert response.to_bytes() == b"HTTP/1.1 200 OK\n\nhi"
        assert b"\r" not in response.to_bytes()

    def test_headers_in_order(self):
        """Test that headers are written in insertion order."""
        response = HTTPResponse(status=HTTPStatus.OK)
        response.set_header("A", "1").set_header("B", "2")

        assert response.head() == b"HTTP/1.1 200 OK\nA: 1\nB: 2\n\n"

    def test_set_body_encodes_str(self):
        """Test that string bodies are UTF-8 encoded."""
        response = HTTPResponse().set_body("héllo")

        assert response.body == "héllo".encode("utf-8")


class TestResponseBuilder:
    """Tests for ResponseBuilder fluent API."""

    def test_builder_chain(self):
        """Test method chaining."""
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Test", "yes")
            .html("<h1>/</h1>")
            .build())

        assert response.status == HTTPStatus.OK
        assert response.headers == {"X-Test": "yes"}
        assert response.body == b"<h1>/</h1>"

    def test_builder_to_bytes(self):
        """Test building and serializing in one step."""
        assert ResponseBuilder().text("x").to_bytes() == b"HTTP/1.1 200 OK\n\nx"


class TestWireFormat:
    """The exact bytes of every response the server can send."""

    def test_ok(self):
        assert ok("hi").to_bytes() == b"HTTP/1.1 200 OK\n\nhi"

    def test_ok_head(self):
        assert ok_head() == b"HTTP/1.1 200 OK\n\n"

    def test_bad_request(self):
        assert bad_request().to_bytes() == b"HTTP/1.1 400 Bad Request\n\n400\n"

    def test_not_found_has_no_trailing_newline(self):
        assert not_found().to_bytes() == b"HTTP/1.1 404 Not Found\n\n404"

    def test_too_many_requests(self):
        assert too_many_requests(12).to_bytes() == (
            b"HTTP/1.1 429 Too Many Requests\nRetry-After: 12\n\n429\n"
        )

    def test_internal_error(self):
        assert internal_error().to_bytes() == b"HTTP/1.1 500 Internal Server Error\n\n500\n"


class TestErrorResponse:
    """Tests for error_response()."""

    @pytest.mark.parametrize("status,factory", [
        (HTTPStatus.BAD_REQUEST, bad_request),
        (HTTPStatus.NOT_FOUND, not_found),
        (HTTPStatus.INTERNAL_SERVER_ERROR, internal_error),
    ])
    def test_maps_status(self, status, factory):
        """Test that each status maps to its canonical response."""
        assert error_response(status).to_bytes() == factory().to_bytes()

    def test_429_needs_retry_after(self):
        """Test that 429 cannot be built without a Retry-After value."""
        with pytest.raises(ValueError):
            error_response(HTTPStatus.TOO_MANY_REQUESTS)


class TestHTTPStatus:
    """Tests for the HTTPStatus enum."""

    def test_int_comparison(self):
        assert HTTPStatus.NOT_FOUND == 404

    def test_categories(self):
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.TOO_MANY_REQUESTS.is_client_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_server_error
        assert not HTTPStatus.BAD_REQUEST.is_server_error
