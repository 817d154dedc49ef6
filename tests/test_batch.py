"""Multipart batch response parsing."""

from seo_pilot.utils.batch import BatchItem, boundary_from_content_type, parse_batch_response


def _part(status_line, body="{}"):
    return (
        "Content-Type: application/http\r\n"
        "Content-ID: <response-item>\r\n"
        "\r\n"
        f"{status_line}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n"
        "\r\n"
        f"{body}\r\n"
    )


def _batch(boundary, *parts):
    return "".join(f"--{boundary}\r\n{p}" for p in parts) + f"--{boundary}--\r\n"


def test_boundary_from_content_type_variants():
    assert boundary_from_content_type("multipart/mixed; boundary=batch_abc") == "batch_abc"
    assert boundary_from_content_type('multipart/mixed; boundary="batch_q"; charset=utf-8') == "batch_q"
    assert boundary_from_content_type("multipart/mixed; charset=utf-8; boundary=batch_z") == "batch_z"
    assert boundary_from_content_type("application/json") is None
    assert boundary_from_content_type(None) is None


def test_parses_statuses_in_order():
    body = _batch(
        "batch_1",
        _part("HTTP/1.1 200 OK", '{"urlNotificationMetadata": {}}'),
        _part("HTTP/1.1 403 Forbidden", '{"error": {"code": 403, "message": "Permission denied"}}'),
        _part("HTTP/1.1 200 OK"),
    )
    items = parse_batch_response(body, "batch_1")
    assert [i.status_code for i in items] == [200, 403, 200]
    assert items[1].error == "Permission denied"
    assert items[0].ok and not items[1].ok


def test_falls_back_to_boundary_found_in_body():
    body = _batch("batch_XyZ-1", _part("HTTP/1.1 200 OK"), _part("HTTP/1.1 500 Internal"))
    items = parse_batch_response(body)
    assert [i.status_code for i in items] == [200, 500]


def test_no_boundary_anywhere_yields_nothing():
    assert parse_batch_response("just some text") == []


def test_parts_without_status_line_are_skipped():
    body = _batch("batch_s", "Content-Type: text/plain\r\n\r\nnothing here\r\n", _part("HTTP/1.1 204 No Content"))
    assert parse_batch_response(body, "batch_s") == [BatchItem(status_code=204)]


def test_error_without_message_is_serialized():
    body = _batch("batch_e", _part("HTTP/1.1 400 Bad Request", '{"error": {"code": 400}}'))
    (item,) = parse_batch_response(body, "batch_e")
    assert item.status_code == 400
    assert item.error == '{"code": 400}'


def test_http2_status_line():
    body = _batch("batch_h2", _part("HTTP/2 429"))
    assert parse_batch_response(body, "batch_h2")[0].status_code == 429
