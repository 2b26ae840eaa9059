"""Tests for the Content Loader."""

import json

import pytest

from unlock_kernel.content.loader import (
    ContentError,
    DanglingConditionError,
    dump_definition,
    load_definitions,
    parse_definition,
    parse_definitions,
)
from unlock_kernel.models.condition import (
    AndCondition,
    ComparisonOp,
    NotCondition,
    ThresholdCheck,
    all_of,
    completed,
    threshold,
)
from unlock_kernel.models.unlock import UnlockDefinition


def _raw_bone_sword() -> dict:
    return {
        "id": "recipe_bone_sword",
        "display_name": "Bone Sword Recipe",
        "reward_id": "recipe:bone_sword",
        "condition": {"type": "and", "children": [
            {"type": "leaf", "check": {
                "kind": "threshold", "topic": "kills:goblin", "target": 10, "op": "Ge",
            }},
            {"type": "leaf", "check": {"kind": "completed", "topic": "research:bone_crafting"}},
        ]},
    }


class TestParseDefinition:
    def test_valid_definition(self):
        definition = parse_definition(_raw_bone_sword())
        assert definition.id == "recipe_bone_sword"
        assert definition.reward_id == "recipe:bone_sword"
        assert isinstance(definition.condition, AndCondition)
        assert definition.condition == all_of(
            threshold("kills:goblin", 10), completed("research:bone_crafting")
        )

    def test_op_defaults_to_ge(self):
        raw = {
            "id": "a",
            "reward_id": "r",
            "condition": {"type": "leaf", "check": {"kind": "threshold", "topic": "t", "target": 3}},
        }
        check = parse_definition(raw).condition.check
        assert isinstance(check, ThresholdCheck)
        assert check.op == ComparisonOp.GE

    def test_not_variant(self):
        raw = {
            "id": "pacifist",
            "reward_id": "title:pacifist",
            "condition": {"type": "not", "child": {
                "type": "leaf", "check": {"kind": "completed", "topic": "kills:first"},
            }},
        }
        assert isinstance(parse_definition(raw).condition, NotCondition)

    def test_unknown_operator_is_dangling(self):
        raw = _raw_bone_sword()
        raw["condition"]["children"][0]["check"]["op"] = "Approx"
        with pytest.raises(DanglingConditionError) as exc_info:
            parse_definition(raw)
        assert exc_info.value.unlock_id == "recipe_bone_sword"

    def test_unknown_variant_is_dangling(self):
        raw = {"id": "a", "reward_id": "r", "condition": {"type": "xor", "children": []}}
        with pytest.raises(DanglingConditionError):
            parse_definition(raw)

    def test_missing_child_is_dangling(self):
        raw = {"id": "a", "reward_id": "r", "condition": {"type": "not"}}
        with pytest.raises(DanglingConditionError):
            parse_definition(raw)

    def test_missing_reward_id(self):
        raw = _raw_bone_sword()
        del raw["reward_id"]
        with pytest.raises(ContentError) as exc_info:
            parse_definition(raw)
        assert not isinstance(exc_info.value, DanglingConditionError)
        assert "reward_id" in exc_info.value.detail

    def test_not_an_object(self):
        with pytest.raises(ContentError) as exc_info:
            parse_definition(["id", "a"])
        assert exc_info.value.unlock_id == "<unknown>"

    def test_batch_stops_at_first_bad_definition(self):
        bad = {"id": "broken", "reward_id": "r", "condition": {"type": "leaf"}}
        with pytest.raises(DanglingConditionError) as exc_info:
            parse_definitions([_raw_bone_sword(), bad])
        assert exc_info.value.unlock_id == "broken"

    def test_dump_matches_content_format(self):
        definition = UnlockDefinition(
            id="a", reward_id="r", condition=threshold("kills:goblin", 10, ComparisonOp.GT)
        )
        dumped = dump_definition(definition)
        assert dumped["condition"]["check"]["op"] == "Gt"
        assert parse_definition(dumped) == definition


class TestLoadDefinitions:
    def test_single_object_file(self, tmp_path):
        path = tmp_path / "sword.unlock.json"
        path.write_text(json.dumps(_raw_bone_sword()), encoding="utf-8")
        definitions = load_definitions(path)
        assert [d.id for d in definitions] == ["recipe_bone_sword"]

    def test_list_file(self, tmp_path):
        second = dict(_raw_bone_sword(), id="recipe_bone_shield", reward_id="recipe:bone_shield")
        path = tmp_path / "bones.json"
        path.write_text(json.dumps([_raw_bone_sword(), second]), encoding="utf-8")
        assert [d.id for d in load_definitions(str(path))] == [
            "recipe_bone_sword", "recipe_bone_shield",
        ]

    def test_directory_in_name_order(self, tmp_path):
        (tmp_path / "b.unlock.json").write_text(
            json.dumps(dict(_raw_bone_sword(), id="from_b")), encoding="utf-8"
        )
        (tmp_path / "a.unlock.json").write_text(
            json.dumps(dict(_raw_bone_sword(), id="from_a")), encoding="utf-8"
        )
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        assert [d.id for d in load_definitions(tmp_path)] == ["from_a", "from_b"]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.unlock.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ContentError) as exc_info:
            load_definitions(path)
        assert exc_info.value.unlock_id == "broken.unlock.json"
