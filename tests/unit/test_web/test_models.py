"""Tests for browser wire models."""

from __future__ import annotations

import json

import pytest

from pvdbridge.domain.models import (
    ClientRequest,
    PvdRecord,
    host_date_message,
    hostname_message,
    pvd_attributes_message,
    pvd_list_message,
)


class TestServerMessages:
    def test_hostname(self) -> None:
        assert json.loads(hostname_message("box").to_json()) == {
            "what": "hostname",
            "payload": {"hostname": "box"},
        }

    def test_pvd_list_uses_camel_case(self) -> None:
        assert json.loads(pvd_list_message(("a", "b")).to_json()) == {
            "what": "pvdList",
            "payload": {"pvdList": ["a", "b"]},
        }

    def test_pvd_attributes_keeps_arbitrary_json(self) -> None:
        record = PvdRecord(id="r1", attributes={"rdnss": ["2001:db8::53"], "nested": {"a": None}})
        assert json.loads(pvd_attributes_message(record).to_json()) == {
            "what": "pvdAttributes",
            "payload": {
                "pvd": "r1",
                "pvdAttributes": {"rdnss": ["2001:db8::53"], "nested": {"a": None}},
            },
        }

    def test_host_date(self) -> None:
        assert json.loads(host_date_message("2017-05-01T12:00:00.000Z").to_json()) == {
            "what": "hostDate",
            "payload": {"hostDate": "2017-05-01T12:00:00.000Z"},
        }


class TestClientRequest:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("PVD_GET_LIST", ClientRequest.GET_LIST),
            ("PVD_GET_ATTRIBUTES", ClientRequest.GET_ATTRIBUTES),
            ("PVDID_GET_LIST", ClientRequest.GET_LIST),
            ("PVDID_GET_ATTRIBUTES", ClientRequest.GET_ATTRIBUTES),
            ("PVD_GET_LIST\n", ClientRequest.GET_LIST),
            ("PVD_GET_SOMETHING", None),
            ("", None),
        ],
    )
    def test_parse(self, text: str, expected: ClientRequest | None) -> None:
        assert ClientRequest.parse(text) is expected
