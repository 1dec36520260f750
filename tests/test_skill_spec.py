"""Tests for skill specification normalization and the module skill adapter."""

import types

import pytest

from veritas.agent.skill import (
    ArgumentDefinition,
    ModuleSkill,
    SkillResult,
    normalize_aliases,
    normalize_skill_spec,
)
from veritas.errors import SkillDefinitionError


def _module(name="demo_skill", **attrs):
    module = types.ModuleType(name)
    for key, value in attrs.items():
        setattr(module, key, value)
    return module


def test_description_resolution_order():
    assert normalize_skill_spec({"description": "D", "humanDescription": "H", "what": "W"}, "m").description == "D"
    assert normalize_skill_spec({"humanDescription": "H", "what": "W"}, "m").description == "H"
    assert normalize_skill_spec({"description": "  ", "what": "W"}, "m").description == "W"
    assert normalize_skill_spec({"name": "named"}, "m").description == "Skill named"
    assert normalize_skill_spec({}, "module_file").description == "Skill module_file"


def test_arguments_are_normalized():
    spec = normalize_skill_spec({
        "name": "demo",
        "arguments": {
            " statement ": {"type": "string", "llmHint": "Give a claim", "required": True, "custom": 1},
            "count": 5,
            "   ": {"description": "dropped"},
        },
        "requiredArguments": ["statement", "", None, 3, " count "],
    }, "demo_module")

    assert list(spec.arguments) == ["statement", "count"]
    statement = spec.arguments["statement"]
    assert statement.llm_hint == "Give a claim"
    assert statement.required is True
    assert statement.extras["custom"] == 1
    assert spec.arguments["count"].description == "5"
    assert spec.required_arguments == ("statement", "count")
    assert spec.optional_arguments == []


def test_non_mapping_declaration_fails():
    with pytest.raises(SkillDefinitionError):
        normalize_skill_spec(["not", "a", "mapping"], "broken")


def test_match_argument_ignores_case():
    spec = normalize_skill_spec({"arguments": {"Document": "text"}}, "m")
    assert spec.match_argument("document") == "Document"
    assert spec.match_argument("other") is None


def test_provider_name():
    assert ArgumentDefinition.from_raw("x", {"type": "%listRoles"}).provider_name == "listRoles"
    assert ArgumentDefinition.from_raw("x", {"type": "string"}).provider_name is None


def test_alias_shapes():
    assert normalize_aliases({"Claim": "statement"}) == {"claim": "statement"}
    assert normalize_aliases({"statement": ["claim", "Assertion"]}) == {
        "claim": "statement",
        "assertion": "statement",
    }
    assert normalize_aliases(None) == {}


def test_skill_result_from_value():
    assert SkillResult.from_value(None).success is True
    assert SkillResult.from_value({"success": False, "reason": "nope"}).message == "nope"
    assert SkillResult.from_value("text").result == "text"


# ============================================================================
# Module skills
# ============================================================================


def test_module_skill_requires_specs_and_action():
    with pytest.raises(SkillDefinitionError):
        ModuleSkill.from_module(_module(specs=lambda: {"name": "x"}))


def test_module_skill_wraps_failing_specs():
    def specs():
        raise RuntimeError("boom")

    with pytest.raises(SkillDefinitionError, match="boom"):
        ModuleSkill.from_module(_module(specs=specs, action=lambda args, ctx: None))


def test_module_skill_reads_roles_and_aliases():
    skill = ModuleSkill.from_module(_module(
        specs=lambda: {"name": "demo", "arguments": {"statement": "Claim"}},
        action=lambda args, ctx: None,
        roles=lambda: ["Analyst", " ", 3],
        argument_aliases=lambda: {"claim": "statement"},
    ))

    assert skill.name == "demo"
    assert skill.roles() == ["Analyst"]
    assert skill.resolve_alias("Claim") == "statement"
    assert skill.resolve_alias("STATEMENT") == "statement"
    assert skill.resolve_alias("other") == "other"


@pytest.mark.asyncio
async def test_module_skill_action_sync_and_async():
    async def async_action(args, ctx):
        return {"success": True, "result": args["x"] * 2}

    sync_skill = ModuleSkill.from_module(_module(specs=lambda: {"name": "s"}, action=lambda args, ctx: "done"))
    async_skill = ModuleSkill.from_module(_module(specs=lambda: {"name": "a"}, action=async_action))

    assert (await sync_skill.action({}, None)).result == "done"
    assert (await async_skill.action({"x": 2}, None)).result == 4
