"""Unit tests for shared helpers and error classification."""

import json
from kubernetes_asyncio.client import ApiException
from dseop.utils.errors import (
    already_exists_error,
    describe_api_exception,
    not_found_error,
)
from dseop.utils.helpers import canonicalize_dict, merge_labels, upsert_condition


def api_exception(status, reason=None, message=None):
    ex = ApiException(status=status, reason="Error")
    body = {}
    if reason:
        body["reason"] = reason
    if message:
        body["message"] = message
    ex.body = json.dumps(body) if body else None
    return ex


class TestErrors:
    def test_not_found(self):
        assert not_found_error(api_exception(404))
        assert not not_found_error(api_exception(500))
        assert not not_found_error(KeyError("x"))

    def test_already_exists(self):
        assert already_exists_error(api_exception(409, reason="AlreadyExists"))
        assert not already_exists_error(api_exception(409, reason="Conflict"))
        assert not already_exists_error(api_exception(422))

    def test_describe(self):
        ex = api_exception(422, message="spec.replicas: Invalid value")
        assert describe_api_exception(ex) == (
            "Kubernetes API error (422): Error - spec.replicas: Invalid value"
        )
        assert describe_api_exception(ValueError("plain")) == "plain"


class TestHelpers:
    def test_canonicalize_ignores_key_order(self):
        first = {"b": 1, "a": {"y": [1, 2], "x": None}}
        second = {"a": {"x": None, "y": [1, 2]}, "b": 1}
        assert canonicalize_dict(first) == canonicalize_dict(second)
        assert json.loads(canonicalize_dict(first)) == first

    def test_canonicalize_writes_plain_keys(self):
        assert canonicalize_dict({2: "b", 1: {"z": 0}}) == '{"1": {"z": 0}, "2": "b"}'

    def test_merge_labels(self):
        assert merge_labels({"a": "1", "b": "1"}, {"b": "2"}, None, {"c": "3"}) == {
            "a": "1",
            "b": "2",
            "c": "3",
        }

    def test_upsert_condition_bumps_transition_on_flip(self):
        conds = [{"type": "Ready", "status": "False", "lastTransitionTime": "t0"}]
        conds = upsert_condition(conds, {"type": "Ready", "status": "True"})
        assert conds[0]["status"] == "True"
        assert conds[0]["lastTransitionTime"] != "t0"
