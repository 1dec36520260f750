"""Tests for option normalization and resolution."""

import types

import pytest

from veritas.agent.options import match_option, normalize_options, option_samples, resolve_skill_options
from veritas.agent.skill import ModuleSkill
from veritas.errors import MissingOptionProviderError


def _skill(arguments, **providers):
    module = types.ModuleType("option_skill")
    module.specs = lambda: {"name": "option-skill", "arguments": arguments}
    module.action = lambda args, ctx: None
    for name, fn in providers.items():
        setattr(module, name, fn)
    return ModuleSkill.from_module(module)


def test_normalize_options_is_total():
    assert normalize_options(["x", {"value": 1, "label": "one"}, None, {"value": 0}]) == [
        {"value": "x", "label": "x"},
        {"value": 1, "label": "one"},
        {"value": 0, "label": "0"},
    ]


def test_normalize_options_is_idempotent():
    once = normalize_options(["a", {"value": 2}, 3])
    assert normalize_options(once) == once
    assert normalize_options("not a list") == []


@pytest.mark.asyncio
async def test_enumerator_and_free_text():
    skill = _skill({
        "role": {"enumerator": lambda: ["Analyst", {"value": "sysadmin", "label": "System Admin"}]},
        "note": {"type": "string"},
    })

    options = await resolve_skill_options(skill)

    assert options["role"] == [
        {"value": "Analyst", "label": "Analyst"},
        {"value": "sysadmin", "label": "System Admin"},
    ]
    assert options["note"] == []


@pytest.mark.asyncio
async def test_failing_enumerator_yields_empty_list():
    def broken():
        raise RuntimeError("backend down")

    skill = _skill({"role": {"enumerator": broken}, "other": {"enumerator": lambda: ["x"]}})

    options = await resolve_skill_options(skill)
    assert options == {"role": [], "other": [{"value": "x", "label": "x"}]}


@pytest.mark.asyncio
async def test_async_provider_receives_argument():
    seen = {}

    async def list_sources(argument, spec):
        seen["argument"] = argument
        return ["hr.md", "it.md"]

    skill = _skill({"source": {"type": "%list_sources"}}, list_sources=list_sources)

    options = await skill.get_options()
    assert [o["value"] for o in options["source"]] == ["hr.md", "it.md"]
    assert seen["argument"] == "source"


@pytest.mark.asyncio
async def test_missing_provider_is_fatal():
    skill = _skill({"source": {"type": "%list_sources"}})

    with pytest.raises(MissingOptionProviderError) as exc:
        await resolve_skill_options(skill)

    message = str(exc.value)
    assert "option-skill" in message
    assert "source" in message
    assert "list_sources" in message


def test_samples_and_matching():
    options = normalize_options([{"value": f"v{i}", "label": f"Label {i}"} for i in range(8)])

    assert option_samples(options) == [f"Label {i}" for i in range(5)]
    assert match_option("label 3", options)["value"] == "v3"
    assert match_option("V7", options)["value"] == "v7"
    assert match_option("nope", options) is None
