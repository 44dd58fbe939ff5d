"""Payload codec tests: serialization, structural checks and loading."""

import json

import pytest

from filterkit.builder import SequentialIdProvider
from filterkit.codec import PayloadError, from_payload, is_well_formed, to_payload
from filterkit.filters import Operator
from filterkit.utils import payloads_equal


def leaf(op, field, value, rhs_type="Constant"):
    return {"Operator": op, "LHSField": field, "RHSValue": value, "RHSType": rhs_type}


NESTED = {
    "Operator": "Or",
    "Condition": [
        leaf("GT", "Price", 10),
        {
            "Operator": "And",
            "Condition": [
                leaf("EQ", "Status", "active"),
                {"Operator": "Not", "Condition": [leaf("EQ", "InStock", False)]},
            ],
        },
    ],
}


class TestWellFormed:
    @pytest.mark.parametrize(
        "payload",
        [
            None,
            NESTED,
            leaf("Empty", "Name", None),
            {"Operator": "IN", "LHSField": "Status", "RHSValue": ["active"]},
            json.dumps(NESTED),
        ],
    )
    def test_accepted(self, payload):
        assert is_well_formed(payload)

    @pytest.mark.parametrize(
        "payload",
        [
            '{"Operator": ',
            [],
            {"Operator": "And", "Condition": []},
            {"Operator": "Not", "Condition": [leaf("GT", "Price", 1), leaf("LT", "Price", 9)]},
            {"Operator": "GT", "RHSValue": 1},
            {"Operator": "LIKE", "LHSField": "Name", "RHSValue": "a"},
            {**leaf("GT", "Price", 1), "Extra": True},
            leaf("GT", "Price", 1, rhs_type="Bogus"),
            {"Operator": "And", "Condition": [{"LHSField": "Price"}]},
        ],
    )
    def test_rejected(self, payload):
        assert not is_well_formed(payload)


class TestToPayload:
    def test_empty_builder(self, builder):
        assert to_payload(builder) is None

    def test_invalid_leaves_and_emptied_groups_are_omitted(self, builder):
        g = builder.add_group("Or")
        builder.add_condition("Price", "GT", "x", parent_id=g)
        builder.add_condition("Name", "EQ", "widget")
        assert to_payload(builder) == {"Operator": "And", "Condition": [leaf("EQ", "Name", "widget")]}

    def test_partly_invalid_group_is_left_out_whole(self, builder):
        g = builder.add_group("Or")
        builder.add_condition("Price", "GT", 5, parent_id=g)
        builder.add_condition("Status", "EQ", "pending", parent_id=g)
        assert not builder.get_node(g).is_valid
        assert to_payload(builder) is None

        builder.add_condition("Name", "EQ", "widget")
        assert to_payload(builder) == {"Operator": "And", "Condition": [leaf("EQ", "Name", "widget")]}

    def test_not_over_partly_invalid_group_is_not_weakened(self, builder):
        negated = builder.add_group("Not")
        inner = builder.add_group("And", parent_id=negated)
        builder.add_condition("Price", "GT", 5, parent_id=inner)
        bad = builder.add_condition("Price", "LT", "x", parent_id=inner)
        assert to_payload(builder) is None

        builder.update_condition(bad, value=50)
        assert to_payload(builder) == {
            "Operator": "And",
            "Condition": [
                {
                    "Operator": "Not",
                    "Condition": [
                        {"Operator": "And", "Condition": [leaf("GT", "Price", 5), leaf("LT", "Price", 50)]}
                    ],
                }
            ],
        }

    def test_output_does_not_alias_tree(self, builder):
        nid = builder.add_condition("Price", "IN", [1, 2])
        to_payload(builder)["Condition"][0]["RHSValue"].append(3)
        assert builder.get_node(nid).value == [1, 2]


class TestFromPayload:
    def test_round_trip(self, registry):
        b = from_payload(NESTED, registry)
        assert b.root_operator is Operator.OR
        assert b.is_valid
        assert b.to_payload() == NESTED

    def test_json_string_input(self, registry):
        assert from_payload(json.dumps(NESTED), registry).to_payload() == NESTED

    def test_fresh_ids(self, registry):
        b = from_payload(NESTED, registry, id_provider=SequentialIdProvider())
        assert [n.id for n in b.nodes()] == ["n1", "n2", "n3", "n4", "n5"]

    def test_absent_payload(self, registry):
        b = from_payload(None, registry)
        assert not b.has_nodes()
        assert b.to_payload() is None

    def test_missing_rhs_type_defaults_to_constant(self, registry):
        payload = {"Operator": "And", "Condition": [{"Operator": "GT", "LHSField": "Price", "RHSValue": 3}]}
        out = from_payload(payload, registry).to_payload()
        assert out["Condition"][0]["RHSType"] == "Constant"
        assert payloads_equal(out, payload)

    def test_leaf_root(self, registry):
        b = from_payload(leaf("GT", "Price", 5), registry)
        assert b.root_operator is Operator.AND
        assert b.node_count() == 1
        assert b.to_payload() == {"Operator": "And", "Condition": [leaf("GT", "Price", 5)]}

    def test_leaf_root_round_trips(self, registry):
        payload = {"Operator": "GT", "LHSField": "Price", "RHSValue": 5}
        assert is_well_formed(payload)
        assert payloads_equal(from_payload(payload, registry).to_payload(), payload)

    def test_not_root(self, registry):
        payload = {"Operator": "Not", "Condition": [leaf("EQ", "InStock", True)]}
        b = from_payload(payload, registry)
        assert b.root_operator is Operator.NOT
        assert b.to_payload() == payload

    @pytest.mark.parametrize(
        "payload",
        ['{"Operator": ', {"Operator": "And", "Condition": []}, {"Operator": "GT", "RHSValue": 1}],
    )
    def test_malformed_payload_raises(self, registry, payload):
        with pytest.raises(PayloadError):
            from_payload(payload, registry)

    def test_payload_error_is_a_value_error(self, registry):
        with pytest.raises(ValueError, match="Malformed filter payload"):
            from_payload({"Operator": "And", "Condition": [{"Operator": "GT"}]}, registry)

    def test_stale_values_load_as_invalid_nodes(self, registry):
        payload = {
            "Operator": "And",
            "Condition": [leaf("EQ", "Status", "archived"), leaf("GT", "Price", 1)],
        }
        b = from_payload(payload, registry)
        assert not b.is_valid
        errors = b.validate_all().errors
        assert [e.message for e in errors] == ["Value must be one of the available options"]
        assert b.to_payload() == {"Operator": "And", "Condition": [leaf("GT", "Price", 1)]}

    def test_values_are_copied_in(self, registry):
        values = ["active"]
        payload = {"Operator": "And", "Condition": [leaf("IN", "Status", values)]}
        b = from_payload(payload, registry)
        values.append("inactive")
        assert b.to_payload()["Condition"][0]["RHSValue"] == ["active"]

    def test_reset_returns_to_loaded_tree(self, registry):
        b = from_payload(NESTED, registry)
        b.clear()
        b.add_condition("Name", "EQ", "x")
        b.reset()
        assert b.to_payload() == NESTED
