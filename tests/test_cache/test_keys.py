"""Tests for cache key derivation."""

from __future__ import annotations

import uuid

import pytest

from qbcache.cache.keys import DEFAULT_DBID, derive_key, key_parts
from qbcache.models import DEFAULT_NAMESPACE

NS = DEFAULT_NAMESPACE


def _expected(name: str, namespace: uuid.UUID = NS) -> str:
    return f"{uuid.uuid5(namespace, name)}.json"


# ------------------------------------------------------------------ #
# Parts
# ------------------------------------------------------------------ #


class TestKeyParts:
    def test_schema_uses_api_and_dbid_only(self) -> None:
        assert key_parts("API_GetSchema", {"dbid": "abc", "qid": 1}) == ["API_GetSchema", "abc"]

    def test_missing_dbid_defaults_to_main(self) -> None:
        assert key_parts("API_GetSchema", {}) == ["API_GetSchema", DEFAULT_DBID]
        assert key_parts("API_GetSchema", None) == ["API_GetSchema", "main"]

    def test_empty_dbid_defaults_to_main(self) -> None:
        assert key_parts("API_GetSchema", {"dbid": ""}) == ["API_GetSchema", "main"]

    def test_do_query_full_order(self) -> None:
        options = {
            "options": "num-10",
            "slist": "3",
            "clist": "3.6.7",
            "qid": 12,
            "dbid": "t1",
        }
        assert key_parts("API_DoQuery", options) == [
            "API_DoQuery", "t1", "12", "3.6.7", "3", "num-10",
        ]

    def test_qid_takes_precedence_over_query(self) -> None:
        parts = key_parts("API_DoQuery", {"dbid": "t1", "qid": 5, "query": "{3.EX.'1'}"})
        assert parts == ["API_DoQuery", "t1", "5"]

    def test_query_used_without_qid(self) -> None:
        parts = key_parts("API_DoQueryCount", {"dbid": "t1", "query": "{3.EX.'1'}"})
        assert parts == ["API_DoQueryCount", "t1", "{3.EX.'1'}"]

    def test_absent_fields_skipped_not_padded(self) -> None:
        parts = key_parts("API_DoQuery", {"dbid": "t1", "slist": "6"})
        assert parts == ["API_DoQuery", "t1", "6"]

    def test_user_role_appends_userid(self) -> None:
        parts = key_parts("API_GetUserRole", {"dbid": "app", "userid": "58153882.d9ju"})
        assert parts == ["API_GetUserRole", "app", "58153882.d9ju"]

    def test_user_role_without_userid(self) -> None:
        assert key_parts("API_GetUserRole", {"dbid": "app"}) == ["API_GetUserRole", "app"]

    def test_unknown_api_still_has_parts(self) -> None:
        assert key_parts("API_AddRecord", {"dbid": "t1", "qid": 1}) == ["API_AddRecord", "t1"]

    def test_boolean_value_lowercase(self) -> None:
        parts = key_parts("API_DoQuery", {"dbid": "t1", "options": True})
        assert parts == ["API_DoQuery", "t1", "true"]

    def test_list_value_comma_joined(self) -> None:
        parts = key_parts("API_DoQuery", {"dbid": "t1", "clist": ["3", 6, 7]})
        assert parts == ["API_DoQuery", "t1", "3,6,7"]

    def test_mapping_value_sorted_json(self) -> None:
        parts = key_parts("API_DoQuery", {"dbid": "t1", "options": {"skp": 10, "num": 5}})
        assert parts == ["API_DoQuery", "t1", '{"num":5,"skp":10}']


# ------------------------------------------------------------------ #
# Derived keys
# ------------------------------------------------------------------ #


class TestDeriveKey:
    def test_matches_uuid5_of_joined_parts(self) -> None:
        assert derive_key(NS, "API_GetSchema", {"dbid": "abc"}) == _expected("API_GetSchema-abc")

    def test_do_query_key(self) -> None:
        key = derive_key(NS, "API_DoQuery", {"dbid": "t1", "qid": 12, "clist": "3.6"})
        assert key == _expected("API_DoQuery-t1-12-3.6")

    def test_deterministic(self) -> None:
        opts = {"dbid": "t1", "query": "{3.GT.'5'}", "clist": "a"}
        assert derive_key(NS, "API_DoQuery", opts) == derive_key(NS, "API_DoQuery", dict(opts))

    @pytest.mark.parametrize(
        "field, value",
        [
            ("dbid", "t2"),
            ("qid", 99),
            ("query", "{1.EX.'x'}"),
            ("clist", "1.2"),
            ("slist", "4"),
            ("options", "sortorder-D"),
        ],
    )
    def test_each_query_field_changes_key(self, field: str, value) -> None:
        base = {"dbid": "t1", "clist": "3", "slist": "3", "options": "num-5"}
        changed = dict(base, **{field: value})
        assert derive_key(NS, "API_DoQuery", base) != derive_key(NS, "API_DoQuery", changed)

    def test_equal_mappings_in_any_order_share_key(self) -> None:
        first = {"dbid": "t1", "qid": 1, "options": {"num": 5, "skp": 10}}
        second = {"dbid": "t1", "qid": 1, "options": {"skp": 10, "num": 5}}
        assert derive_key(NS, "API_DoQuery", first) == derive_key(NS, "API_DoQuery", second)

    def test_irrelevant_option_does_not_change_key(self) -> None:
        base = derive_key(NS, "API_GetSchema", {"dbid": "abc"})
        assert derive_key(NS, "API_GetSchema", {"dbid": "abc", "clist": "3"}) == base

    def test_namespace_changes_key(self) -> None:
        other = uuid.UUID("00000000-0000-0000-0000-000000000001")
        assert derive_key(NS, "API_GetSchema", {}) != derive_key(other, "API_GetSchema", {})

    def test_api_name_changes_key(self) -> None:
        opts = {"dbid": "t1", "qid": 1}
        assert derive_key(NS, "API_DoQuery", opts) != derive_key(NS, "API_DoQueryCount", opts)

    def test_usable_as_file_name(self) -> None:
        key = derive_key(NS, "API_DoQuery", {"dbid": "a/b", "query": "{3.EX.'../x'}"})
        assert "/" not in key
        assert key.endswith(".json")
        uuid.UUID(key[: -len(".json")])
