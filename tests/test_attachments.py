"""Tests for attachment URL normalization."""

import pytest

from core.chunking.attachments import encode_uri_component, resolve_attachment_url


def test_local_path_is_routed_through_attachment_viewer():
    assert (
        resolve_attachment_url("/tmp/my file (1).png")
        == "/api/v1/attachments/view?path=%2Ftmp%2Fmy%20file%20(1).png"
    )


@pytest.mark.parametrize(
    "target",
    [
        "https://x/y.png",
        "http://example.com/a b.png",
        "/api/v1/attachments/view?path=%2Fa.png",
        "/v1/files/42",
    ],
)
def test_remote_and_internal_targets_pass_through(target):
    assert resolve_attachment_url(target) == target


def test_relative_path_is_encoded():
    assert resolve_attachment_url("charts/q1.png") == "/api/v1/attachments/view?path=charts%2Fq1.png"


def test_encode_uri_component_leaves_unreserved_marks_literal():
    assert encode_uri_component("a-b_c.d!e~f*g'h(i)j") == "a-b_c.d!e~f*g'h(i)j"


def test_encode_uri_component_escapes_reserved_and_unicode():
    assert encode_uri_component("a/b?c=d&e f") == "a%2Fb%3Fc%3Dd%26e%20f"
    assert encode_uri_component("café") == "caf%C3%A9"
