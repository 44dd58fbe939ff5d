"""Payload utility tests: cloning, equality, merging and display."""

import json

import pytest

from filterkit.utils import clone_payload, merge_payloads, payload_to_string, payloads_equal


def leaf(op, field, value, rhs_type="Constant"):
    return {"Operator": op, "LHSField": field, "RHSValue": value, "RHSType": rhs_type}


PRICE = leaf("GT", "Price", 10)
STATUS = leaf("EQ", "Status", "active")
NAME = leaf("Contains", "Name", "wid")


class TestClone:
    def test_clone_is_independent(self):
        src = {"Operator": "And", "Condition": [leaf("IN", "Status", ["active"])]}
        dup = clone_payload(src)
        dup["Condition"][0]["RHSValue"].append("inactive")
        assert src["Condition"][0]["RHSValue"] == ["active"]

    def test_clone_none(self):
        assert clone_payload(None) is None


class TestEquality:
    def test_and_or_children_ignore_order(self):
        a = {"Operator": "And", "Condition": [PRICE, {"Operator": "Or", "Condition": [STATUS, NAME]}]}
        b = {"Operator": "And", "Condition": [{"Operator": "Or", "Condition": [NAME, STATUS]}, PRICE]}
        assert payloads_equal(a, b)

    def test_missing_rhs_type_equals_constant(self):
        bare = {"Operator": "GT", "LHSField": "Price", "RHSValue": 10}
        assert payloads_equal(bare, PRICE)
        assert not payloads_equal(bare, leaf("GT", "Price", 10, "Variable"))

    def test_operator_and_value_differences(self):
        assert not payloads_equal(
            {"Operator": "And", "Condition": [PRICE, STATUS]}, {"Operator": "Or", "Condition": [PRICE, STATUS]}
        )
        assert not payloads_equal(PRICE, leaf("GT", "Price", 11))
        assert not payloads_equal(leaf("EQ", "InStock", True), leaf("EQ", "InStock", 1))

    def test_single_child_and_or_equals_its_child(self):
        assert payloads_equal({"Operator": "And", "Condition": [PRICE]}, PRICE)
        assert payloads_equal({"Operator": "Or", "Condition": [PRICE]}, {"Operator": "And", "Condition": [PRICE]})
        assert not payloads_equal({"Operator": "Not", "Condition": [PRICE]}, PRICE)

    def test_list_values_are_positional(self):
        assert not payloads_equal(leaf("Between", "Price", [1, 2]), leaf("Between", "Price", [2, 1]))

    def test_absent_payloads(self):
        assert payloads_equal(None, None)
        assert not payloads_equal(None, PRICE)


class TestMerge:
    def test_flattens_and_or_inputs(self):
        a = {"Operator": "And", "Condition": [PRICE]}
        b = {"Operator": "Or", "Condition": [STATUS, NAME]}
        assert merge_payloads([a, b]) == {"Operator": "And", "Condition": [PRICE, STATUS, NAME]}

    def test_not_and_leaf_inputs_kept_whole(self):
        negated = {"Operator": "Not", "Condition": [STATUS]}
        assert merge_payloads([PRICE, negated], "Or") == {"Operator": "Or", "Condition": [PRICE, negated]}

    def test_single_survivor_is_cloned(self):
        a = {"Operator": "And", "Condition": [PRICE]}
        merged = merge_payloads([None, a, {"Operator": "And", "Condition": []}])
        assert merged == a
        assert merged is not a

    def test_nothing_to_merge(self):
        assert merge_payloads([]) is None
        assert merge_payloads([None, None]) is None

    def test_merge_output_does_not_alias_inputs(self):
        a = {"Operator": "And", "Condition": [leaf("IN", "Status", ["active"])]}
        merged = merge_payloads([a, {"Operator": "And", "Condition": [PRICE]}])
        merged["Condition"][0]["RHSValue"].append("inactive")
        assert a["Condition"][0]["RHSValue"] == ["active"]

    def test_json_text_inputs(self):
        a = json.dumps({"Operator": "And", "Condition": [PRICE]})
        assert merge_payloads([a, STATUS]) == {"Operator": "And", "Condition": [PRICE, STATUS]}
        assert merge_payloads(["null", a]) == {"Operator": "And", "Condition": [PRICE]}
        assert merge_payloads(['{"Operator": ', STATUS]) == STATUS

    def test_not_is_not_a_merge_operator(self):
        with pytest.raises(ValueError):
            merge_payloads([PRICE, STATUS], "Not")


class TestDisplay:
    def test_absent(self):
        assert payload_to_string(None) == "No filters"

    def test_single_child_group_renders_child(self):
        assert payload_to_string({"Operator": "And", "Condition": [PRICE]}) == "Price GT 10"

    def test_nested(self):
        payload = {
            "Operator": "And",
            "Condition": [PRICE, {"Operator": "Or", "Condition": [STATUS, NAME]}],
        }
        assert payload_to_string(payload) == "(Price GT 10 AND (Status EQ active OR Name Contains wid))"

    def test_not(self):
        payload = {"Operator": "Not", "Condition": [leaf("EQ", "InStock", False)]}
        assert payload_to_string(payload) == "NOT (InStock EQ false)"

    @pytest.mark.parametrize(
        "node,text",
        [
            (leaf("IN", "Status", ["active", "inactive"]), "Status IN [active, inactive]"),
            (leaf("Empty", "Name", None), "Name Empty"),
            (leaf("GTE", "ListPrice", {"amount": 10, "currencyCode": "USD"}), "ListPrice GTE 10 USD"),
            (leaf("Between", "Price", [1, 2.5]), "Price Between [1, 2.5]"),
        ],
    )
    def test_leaf_values(self, node, text):
        assert payload_to_string(node) == text
