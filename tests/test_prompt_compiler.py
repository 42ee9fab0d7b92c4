"""Tests for instruction assembly."""

from datetime import date

import pytest

from contracts.generation import GenerationMode, Language
from exceptions import UnknownSectionError
from pipeline.prompt_compiler import (
    JSON_SYSTEM_PROMPT,
    TEXT_SYSTEM_PROMPT,
    compile_field,
    compile_object_fill,
    compile_prompt,
    compile_summary,
    compile_targeted_fill,
    compile_translation,
    compile_work_package,
    compile_wp_scaffold,
    is_title_path,
)
from rules import RuleRegistry
from schemas.sections import SectionKind
from schemas.shape import TEXT_HINT_HEADER, to_json_schema

TEMPORAL_HEADER = "═══ TEMPORAL INTEGRITY RULE (MANDATORY) ═══"


@pytest.fixture
def registry():
    return RuleRegistry.for_language(Language.EN)


@pytest.fixture
def slovenian_document(empty_document):
    empty_document["problemAnalysis"]["coreProblem"] = {
        "title": "Premalo sodelovanje med občinami",
        "description": "Občine za razvoj ne sodelujejo, ker ni skupne strategije, ki bi jo lahko okrepili.",
    }
    return empty_document


class TestCompilePrompt:
    """Test the section instruction and its part order."""

    def test_part_order(self, sample_document, registry):
        prompt = compile_prompt("risks", sample_document, Language.EN, registry=registry)
        text = prompt.instruction

        positions = [
            text.index(registry.get_language_directive()),
            text.index("Define at least 5 risks"),
            text.index(TEXT_HINT_HEADER),
            text.index("═══ QUALITY GATE"),
            text.index("Here is the current project information (Context):"),
            text.index("MODE: FULL REGENERATION."),
            text.index("═══ ACADEMIC RIGOR"),
            text.index("═══ HUMANIZATION RULES"),
            text.index("GLOBAL RULES:\n"),
            text.index("DETAILED CHAPTER RULES:"),
        ]
        assert positions == sorted(positions)
        assert text.startswith(registry.get_language_directive())

    def test_prompt_metadata(self, sample_document):
        prompt = compile_prompt(SectionKind.ACTIVITIES, sample_document, "en")

        assert prompt.section_key == "activities"
        assert prompt.max_tokens == 16384
        assert prompt.system_prompt == JSON_SYSTEM_PROMPT
        assert prompt.json_mode
        assert prompt.response_schema is None

    def test_native_schema_replaces_text_hint(self, sample_document):
        prompt = compile_prompt("risks", sample_document, "en", native_schema=True)

        assert TEXT_HINT_HEADER not in prompt.instruction
        assert prompt.response_schema == to_json_schema(SectionKind.RISKS.shape)
        assert prompt.response_schema["type"] == "array"
        assert not prompt.json_mode

    def test_activities_repeat_temporal_rule(self, sample_document):
        text = compile_prompt("activities", sample_document, "en").instruction

        assert text.startswith(TEMPORAL_HEADER)
        assert text.count(TEMPORAL_HEADER) == 2
        assert "The project runs from 2026-01-01 to 2027-12-31 (24 months)." in text
        assert text.rstrip().endswith("═" * 67)

    def test_activities_without_start_date(self, empty_document):
        text = compile_prompt("activities", empty_document, "en", today=date(2026, 5, 1)).instruction

        assert TEMPORAL_HEADER not in text
        assert "Project starts on 2026-05-01" in text

    def test_other_sections_have_no_temporal_rule(self, sample_document):
        assert TEMPORAL_HEADER not in compile_prompt("risks", sample_document, "en").instruction

    def test_unknown_section(self, sample_document):
        with pytest.raises(UnknownSectionError) as exc_info:
            compile_prompt("budget", sample_document, "en")
        assert exc_info.value.section_key == "budget"

    def test_fill_mode_quotes_existing_data(self, sample_document):
        prompt = compile_prompt(
            "risks",
            sample_document,
            "en",
            mode=GenerationMode.FILL,
            current_data=sample_document["risks"],
        )
        assert "MODE: FILL MISSING ONLY." in prompt.instruction
        assert 'Existing data: [{"id": "RISK1"' in prompt.instruction

    def test_title_rules_only_for_idea(self, sample_document):
        assert "PROJECT TITLE RULES" in compile_prompt("projectIdea", sample_document, "en").instruction
        assert "PROJECT TITLE RULES" in compile_prompt("mainAim", sample_document, "en").instruction
        assert "PROJECT TITLE RULES" not in compile_prompt("risks", sample_document, "en").instruction

    def test_idea_task_quotes_user_title(self, sample_document):
        text = compile_prompt("projectIdea", sample_document, "en").instruction
        assert 'USER INPUT FOR PROJECT TITLE:\n"Electric Public Transport Transition' in text

    def test_problem_task_quotes_user_input(self, sample_document, empty_document):
        text = compile_prompt("causes", sample_document, "en").instruction
        assert 'Title: "Low uptake of electric buses in mid-sized cities"' in text
        assert "(no user input yet)" in compile_prompt("problemAnalysis", empty_document, "en").instruction

    def test_language_mismatch_notice(self, slovenian_document):
        text = compile_prompt("causes", slovenian_document, "en").instruction
        assert "═══ INPUT LANGUAGE NOTICE ═══" in text
        assert "INPUT LANGUAGE NOTICE" not in compile_prompt("causes", slovenian_document, "si").instruction

    def test_slovenian_prompt(self, sample_document):
        text = compile_prompt("risks", sample_document, "si").instruction
        assert "NAČIN: POPOLNA PONOVNA GENERACIJA." in text
        assert "PODROBNA PRAVILA ZA TO POGLAVJE:" in text
        assert "MODE: FULL REGENERATION." not in text


class TestPartialPrompts:
    """Test targeted fill, object fill and single-field prompts."""

    def test_targeted_fill(self, sample_document):
        sample_document["risks"] = [
            {"id": "RISK1", "title": "Supplier delay", "description": "Late."},
            {"id": "RISK2", "title": "", "description": ""},
            {"id": "RISK3", "title": "Low uptake", "description": "Few users."},
            {"id": "RISK4", "title": "Cost overrun", "description": ""},
        ]
        text = compile_targeted_fill("risks", sample_document, "en", [1, 3]).instruction

        assert text.count("(KEEP UNCHANGED)") == 2
        assert '"Supplier delay" (KEEP UNCHANGED)' in text
        assert "Item 2 (index 1) — partial data: id: \"RISK2\"" in text
        assert 'Item 4 (index 3) — partial data: id: "RISK4", title: "Cost overrun"' in text
        assert "Return a JSON array with EXACTLY 2 items" in text
        assert "[1, 3]" in text

    def test_targeted_fill_needs_list_section(self, sample_document):
        with pytest.raises(ValueError):
            compile_targeted_fill("projectManagement", sample_document, "en", [0])

    def test_object_fill_reduces_shape(self, sample_document):
        sample_document["projectIdea"]["mainAim"] = ""
        prompt = compile_object_fill("projectIdea", sample_document, "en", ["mainAim", "stateOfTheArt"])

        assert list(prompt.shape.properties) == ["mainAim", "stateOfTheArt"]
        assert '"mainAim" — EMPTY (GENERATE THIS)' in prompt.instruction
        assert '"projectAcronym": "EBUS" (KEEP UNCHANGED)' in prompt.instruction
        assert 'Return a JSON object with EXACTLY 2 fields: "mainAim", "stateOfTheArt".' in prompt.instruction

    def test_object_fill_needs_object_section(self, sample_document):
        with pytest.raises(ValueError):
            compile_object_fill("risks", sample_document, "en", ["title"])

    def test_field_prompt(self, sample_document):
        prompt = compile_field(["risks", 0, "mitigation"], sample_document, "en")

        assert prompt.shape is None
        assert prompt.max_tokens == 2048
        assert prompt.system_prompt == TEXT_SYSTEM_PROMPT
        assert not prompt.json_mode
        assert "FIELD-SPECIFIC RULE:\nHigh risks" in prompt.instruction
        assert 'title: "Delayed vehicle delivery"' in prompt.instruction
        assert prompt.instruction.rstrip().endswith('If unknown: "[Insert verified data: ...]".')

    def test_title_field_prompt(self, sample_document):
        text = compile_field(["projectIdea", "projectTitle"], sample_document, "en").instruction

        assert "USER'S CURRENT TITLE: \"Electric Public Transport Transition" in text
        assert "PROJECT TITLE RULES" in text
        assert "ACADEMIC RIGOR" not in text

    def test_is_title_path(self):
        assert is_title_path(["projectIdea", "projectTitle"])
        assert is_title_path(["projectIdea", "title"])
        assert not is_title_path(["risks", 0, "title"])

    def test_field_path_must_not_be_empty(self, sample_document):
        with pytest.raises(ValueError):
            compile_field([], sample_document, "en")


class TestDocumentPrompts:
    """Test summary, translation and per-WP prompts."""

    def test_summary(self, sample_document):
        prompt = compile_summary(sample_document, "en")

        assert prompt.max_tokens == 4096
        assert prompt.shape is None
        assert "MAXIMUM 800 words" in prompt.instruction
        assert "SUMMARY RULES" in prompt.instruction

    def test_translation(self, sample_document):
        prompt = compile_translation(sample_document, Language.SI)

        assert prompt.max_tokens == 8192
        assert prompt.shape.kind == "object"
        assert prompt.json_mode
        assert "strictly into Slovenian" in prompt.instruction
        assert "TRANSLATION RULES" in prompt.instruction
        assert '"projectAcronym": "EBUS"' in prompt.instruction

    def test_scaffold(self, sample_document):
        prompt = compile_wp_scaffold(sample_document, "en")

        assert prompt.shape.kind == "array"
        assert "Generate ONLY the work package structure" in prompt.instruction
        assert prompt.instruction.startswith(TEMPORAL_HEADER)

    def test_work_package(self, sample_document):
        scaffold = [{"id": "WP1", "title": "Baseline"}, {"id": "WP2", "title": "Dissemination"}, {"id": "WP3", "title": "Management"}]
        previous = [{"id": "WP1", "title": "Baseline", "tasks": [{"id": "T1.1", "title": "Survey", "startDate": "2026-01-01", "endDate": "2026-06-30"}]}]

        content = compile_work_package(scaffold, 1, previous, sample_document, "en").instruction
        first = compile_work_package(scaffold, 0, [], sample_document, "en").instruction

        assert 'COMPLETE work package WP2: "Dissemination"' in content
        assert "This WP is horizontal and runs from 2026-01-01 to 2027-12-31." in content
        assert "ALREADY GENERATED WPs" in content
        assert "T2.1, T2.2" in content
        assert "This is a content WP" in first
        assert "ALREADY GENERATED WPs" not in first
