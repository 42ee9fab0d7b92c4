"""Tests for SectionGenerator with a scripted provider."""

import asyncio
import copy
from datetime import date

import pytest

from contracts.generation import GenerationMode, GenerationRequest, Language
from exceptions import MalformedResponseError, ProviderError, ShapeMismatchError
from pipeline.generator import SectionGenerator, assign_missing_ids, reimpose_preserved
from rules import InMemoryOverrideStore
from schemas.sections import SectionKind
from conftest import ScriptedProvider, as_json


def risk(title, risk_id=""):
    return {
        "id": risk_id,
        "category": "technical",
        "title": title,
        "description": f"{title} could delay the pilots.",
        "likelihood": "medium",
        "impact": "high",
        "mitigation": "Two suppliers are contracted.",
    }


def work_package(wp_id, start="2025-01-01", end="2029-01-01"):
    number = wp_id.replace("WP", "")
    return {
        "id": wp_id,
        "title": f"Work package {number}",
        "tasks": [{
            "id": f"T{number}.1",
            "title": "Analysis of needs",
            "description": "Structured interviews with operators.",
            "startDate": start,
            "endDate": end,
            "dependencies": [],
        }],
        "milestones": [{"id": f"M{number}.1", "description": "Report approved", "date": "2030-01-01"}],
        "deliverables": [{"id": f"D{number}.1", "title": "Needs report", "description": "", "indicator": "1 report"}],
    }


def make_generator(replies=None, **kwargs):
    provider = ScriptedProvider(replies, native_schema=kwargs.pop("native_schema", False))
    return SectionGenerator(provider, today=date(2026, 1, 1), **kwargs), provider


class TestGenerateSection:
    """Test whole-section generation."""

    def test_regenerate_list_assigns_ids(self, sample_document):
        generator, provider = make_generator([as_json([risk("Supplier delay"), risk("Staff turnover")])])

        value = generator.generate_section("risks", sample_document, Language.EN)

        assert [item["id"] for item in value] == ["RISK1", "RISK2"]
        assert provider.calls[0]["max_tokens"] == 6144
        assert provider.calls[0]["json_mode"] is True
        assert provider.calls[0]["response_schema"] is None

    def test_document_not_modified(self, sample_document):
        before = copy.deepcopy(sample_document)
        generator, _ = make_generator([as_json([risk("Supplier delay")])])

        generator.generate_section("risks", sample_document, "en")

        assert sample_document == before

    def test_malformed_reply_raises(self, sample_document):
        before = copy.deepcopy(sample_document)
        generator, _ = make_generator(["Sorry, I cannot help with that."])

        with pytest.raises(MalformedResponseError):
            generator.generate_section("risks", sample_document, "en")
        assert sample_document == before

    def test_shape_mismatch_raises(self, sample_document):
        generator, _ = make_generator([as_json([{"description": "x"}])])
        with pytest.raises(ShapeMismatchError):
            generator.generate_section("projectManagement", sample_document, "en")

    def test_provider_error_propagates(self, sample_document):
        generator, _ = make_generator([ProviderError("429", kind=ProviderError.RATE_LIMIT)])
        with pytest.raises(ProviderError):
            generator.generate_section("risks", sample_document, "en")

    def test_fill_keeps_user_text(self, sample_document):
        sample_document["projectManagement"] = {
            "description": "Our own management approach.",
            "structure": {"coordinator": "", "steeringCommittee": "Steering Committee (SC)", "advisoryBoard": "", "wpLeaders": ""},
        }
        reply = {
            "description": "Generated approach.",
            "structure": {
                "coordinator": "Project Coordinator (PC)",
                "steeringCommittee": "Generated SC",
                "advisoryBoard": "Advisory Board (AB)",
                "wpLeaders": "WP Leaders (WPL)",
            },
        }
        generator, provider = make_generator([as_json(reply)])

        value = generator.generate_section("projectManagement", sample_document, "en", GenerationMode.FILL)

        assert value["description"] == "Our own management approach."
        assert value["structure"]["coordinator"] == "Project Coordinator (PC)"
        assert value["structure"]["steeringCommittee"] == "Steering Committee (SC)"
        assert "Existing data:" in provider.calls[0]["instruction"]

    def test_targeted_fill_mode_rejected(self, sample_document):
        generator, _ = make_generator()
        with pytest.raises(ValueError):
            generator.generate_section("risks", sample_document, "en", GenerationMode.TARGETED_FILL)

    def test_partial_idea_section_overlays(self, sample_document):
        generator, _ = make_generator([as_json({"mainAim": "To pilot electric buses in five cities."})])

        value = generator.generate_section("mainAim", sample_document, "en")

        assert value["mainAim"] == "To pilot electric buses in five cities."
        assert value["projectAcronym"] == "EBUS"
        assert value["startDate"] == "2026-01-01"

    def test_activities_clamped_to_envelope(self, sample_document):
        generator, _ = make_generator([as_json([work_package("WP1"), work_package("WP2"), work_package("WP3")])])

        value = generator.generate_section("activities", sample_document, "en")

        first_task = value[0]["tasks"][0]
        assert first_task["startDate"] == "2026-01-01"
        assert first_task["endDate"] == "2027-12-31"
        assert value[0]["milestones"][0]["date"] == "2027-12-31"

    def test_native_schema_provider(self, sample_document):
        generator, provider = make_generator([as_json([risk("Supplier delay")])], native_schema=True)

        generator.generate_section("risks", sample_document, "en")

        call = provider.calls[0]
        assert call["response_schema"]["type"] == "array"
        assert call["json_mode"] is False

    def test_model_override_passed(self, sample_document):
        generator, provider = make_generator([as_json([risk("Supplier delay")])], model="gemini-2.5-pro")
        generator.generate_section("risks", sample_document, "en")
        assert provider.calls[0]["model"] == "gemini-2.5-pro"

    def test_rule_override_reaches_prompt(self, sample_document):
        store = InMemoryOverrideStore({"version": "4.2", "global_rules": "Always mention the Danube region."})
        generator, provider = make_generator([as_json([risk("Supplier delay")])], rules_store=store)

        generator.generate_section("risks", sample_document, "en")

        assert "GLOBAL RULES:\nAlways mention the Danube region." in provider.calls[0]["instruction"]

    def test_usage_totals(self, sample_document):
        generator, _ = make_generator([as_json([risk("A")]), as_json([risk("B")])])

        generator.generate_section("risks", sample_document, "en")
        generator.generate_section("kers", sample_document, "en")

        assert generator.usage.calls == 2
        assert generator.usage.input_tokens == 200
        assert generator.usage.cost == pytest.approx(0.02)

    def test_async_variant(self, sample_document):
        generator, _ = make_generator([as_json([risk("Supplier delay")])])

        value = asyncio.run(generator.agenerate_section("risks", sample_document, "en"))

        assert value[0]["id"] == "RISK1"


class TestPartialGeneration:
    """Test targeted fills, object fills, requests and single fields."""

    def test_targeted_fill(self, sample_document):
        sample_document["risks"] = [
            risk("Supplier delay", "RISK1"),
            {"id": "RISK2", "category": "", "title": "", "description": "", "likelihood": "", "impact": "", "mitigation": ""},
            risk("Low uptake", "RISK3"),
            {"id": "", "category": "", "title": "", "description": "", "likelihood": "", "impact": "", "mitigation": ""},
        ]
        generator, _ = make_generator([as_json([risk("Staff turnover"), risk("Cost overrun")])])

        value = generator.generate_targeted_fill("risks", sample_document, "en", [1, 3])

        assert value[0] == sample_document["risks"][0]
        assert value[2] == sample_document["risks"][2]
        assert value[1]["title"] == "Staff turnover"
        assert value[1]["id"] == "RISK2"
        assert value[3]["title"] == "Cost overrun"
        assert value[3]["id"] == "RISK4"

    def test_targeted_fill_count_mismatch_logged(self, sample_document, caplog):
        sample_document["outputs"] = [{"title": "", "description": "", "indicator": ""} for _ in range(2)]
        generator, _ = make_generator([as_json({"title": "Platform", "description": "x", "indicator": "1"})])

        value = generator.generate_targeted_fill("outputs", sample_document, "en", [0, 1])

        assert value[0]["title"] == "Platform"
        assert value[1]["title"] == ""
        assert "asked for 2 item(s), got 1" in caplog.text

    def test_object_fill(self, sample_document):
        sample_document["projectIdea"]["stateOfTheArt"] = ""
        reply = {"stateOfTheArt": "The ELIPTIC project (Horizon 2020, 2015–2018) electrified bus lines.", "mainAim": "Ignored"}
        generator, provider = make_generator([as_json(reply)])

        value = generator.generate_object_fill("projectIdea", sample_document, "en", ["stateOfTheArt"])

        assert value["stateOfTheArt"].startswith("The ELIPTIC project")
        assert value["mainAim"] == sample_document["projectIdea"]["mainAim"]
        assert "EXACTLY 1 fields" in provider.calls[0]["instruction"]

    def test_request_dispatch(self, sample_document):
        generator, _ = make_generator([as_json([risk("Staff turnover")])])
        request = GenerationRequest(section_key="risks", mode="targeted-fill", empty_indices=[0])
        sample_document["risks"][0]["title"] = ""

        value = generator.generate(request, sample_document)

        assert value[0]["title"] == "Staff turnover"
        assert value[0]["id"] == "RISK1"

    def test_field(self, sample_document):
        generator, provider = make_generator(["High likelihood is addressed by **two** framework contracts."])

        value = generator.generate_field(["risks", 0, "mitigation"], sample_document, "en")

        assert value == "High likelihood is addressed by two framework contracts."
        assert provider.calls[0]["max_tokens"] == 2048
        assert provider.calls[0]["json_mode"] is False

    def test_title_field_sanitized(self, sample_document):
        generator, _ = make_generator(['"GREENTRANS – Green Urban Transport Transformation in Central Europe"'])

        value = generator.generate_field(["projectIdea", "projectTitle"], sample_document, "en")

        assert value == "Green Urban Transport Transformation in Central Europe"

    def test_empty_field_reply(self, sample_document):
        generator, _ = make_generator(["```\n```"])
        with pytest.raises(MalformedResponseError):
            generator.generate_field(["risks", 0, "mitigation"], sample_document, "en")


class TestExpectedResults:
    """Test the composite outputs/outcomes/impacts flow."""

    def test_failed_subsection_keeps_existing_data(self, sample_document):
        sample_document["outcomes"] = [{"title": "Existing outcome", "description": "x", "indicator": "y"}]
        results = [{"title": "Result", "description": "Text.", "indicator": "5 by 2027"}]
        generator, _ = make_generator([as_json(results), "not json", as_json(results)])

        outcome = generator.generate_expected_results(sample_document, "en")

        assert not outcome.ok
        assert list(outcome.errors) == ["outcomes"]
        assert outcome.values["outputs"] == results
        assert outcome.values["impacts"] == results
        assert outcome.values["outcomes"] == sample_document["outcomes"]

    def test_async_all_succeed(self, sample_document):
        results = [{"title": "Result", "description": "Text.", "indicator": "5 by 2027"}]
        provider = ScriptedProvider(responder=lambda instruction: as_json(results))
        generator = SectionGenerator(provider)

        outcome = asyncio.run(generator.agenerate_expected_results(sample_document, "en"))

        assert outcome.ok
        assert set(outcome.values) == {"outputs", "outcomes", "impacts"}
        assert len(provider.calls) == 3


class TestActivitiesPerWorkPackage:
    """Test scaffold-then-WP activities generation."""

    def scaffold_reply(self):
        return as_json([{"id": "WP1", "title": "Baseline"}, {"title": "Dissemination"}, {"id": "WP3", "title": "Management"}])

    def test_full_flow(self, sample_document):
        replies = [self.scaffold_reply()] + [as_json(work_package(f"WP{n}")) for n in (1, 2, 3)]
        generator, provider = make_generator(replies)
        progress = []

        value = generator.generate_activities_per_wp(
            sample_document,
            "en",
            on_progress=lambda position, total, title: progress.append((position, total, title)),
        )

        assert [wp["id"] for wp in value] == ["WP1", "WP2", "WP3"]
        assert len(provider.calls) == 4
        assert progress == [(0, 3, "Baseline"), (1, 3, "Dissemination"), (2, 3, "Management")]
        assert "ALREADY GENERATED WPs" in provider.calls[2]["instruction"]
        assert "ALREADY GENERATED WPs" not in provider.calls[1]["instruction"]
        for wp in value:
            assert wp["tasks"][0]["startDate"] >= "2026-01-01"
            assert wp["tasks"][0]["endDate"] <= "2027-12-31"

    def test_scaffold_id_imposed_on_wp(self, sample_document):
        scaffold = [{"id": "WP1", "title": "Baseline"}]
        wrong_id = work_package("WP7")
        wrong_id["title"] = ""
        generator, _ = make_generator([as_json([wrong_id])])

        value = generator.generate_activities_per_wp(sample_document, "en", scaffold=scaffold)

        assert value[0]["id"] == "WP1"
        assert value[0]["title"] == "Baseline"

    def test_only_indices_fill_existing(self, sample_document):
        existing = work_package("WP1", "2026-01-01", "2026-06-30")
        empty = {"id": "WP2", "title": "Dissemination", "tasks": [], "milestones": [], "deliverables": []}
        sample_document["activities"] = [existing, empty]
        scaffold = [{"id": "WP1", "title": "Baseline"}, {"id": "WP2", "title": "Dissemination"}]
        generator, provider = make_generator([as_json(work_package("WP2"))])

        value = generator.generate_activities_per_wp(sample_document, "en", scaffold=scaffold, only_indices=[1])

        assert len(provider.calls) == 1
        assert value[0]["tasks"][0]["endDate"] == "2027-12-31"
        assert value[1]["tasks"][0]["id"] == "T2.1"

    def test_empty_scaffold(self, sample_document):
        generator, _ = make_generator(["[]"])
        with pytest.raises(MalformedResponseError):
            generator.generate_activities_per_wp(sample_document, "en")

    def test_async_flow(self, sample_document):
        replies = [self.scaffold_reply()] + [as_json(work_package(f"WP{n}")) for n in (1, 2, 3)]
        generator, _ = make_generator(replies)

        value = asyncio.run(generator.agenerate_activities_per_wp(sample_document, "en"))

        assert [wp["id"] for wp in value] == ["WP1", "WP2", "WP3"]


class TestSummaryAndTranslation:
    def test_summary_keeps_headings(self, sample_document):
        generator, provider = make_generator(["```markdown\n## Project\nElectric buses.\n```"])

        summary = generator.generate_summary(sample_document, "en")

        assert summary == "## Project\nElectric buses."
        assert provider.calls[0]["json_mode"] is False

    def test_translation_keeps_identifiers(self, sample_document):
        translated = copy.deepcopy(sample_document)
        translated["risks"][0].update({"id": "TVEGANJE1", "title": "Zamuda dobave vozil", "likelihood": "srednja"})
        translated["projectIdea"]["startDate"] = "1. 1. 2026"
        del translated["projectIdea"]["projectAcronym"]
        generator, _ = make_generator([as_json(translated)])

        value = generator.translate_document(sample_document, "si")

        assert value["risks"][0]["title"] == "Zamuda dobave vozil"
        assert value["risks"][0]["id"] == "RISK1"
        assert value["risks"][0]["likelihood"] == "medium"
        assert value["projectIdea"]["startDate"] == "2026-01-01"
        assert value["projectIdea"]["projectAcronym"] == "EBUS"


class TestHelpers:
    def test_assign_missing_ids(self):
        items = [{"id": "KER2"}, {"id": ""}, {"title": "no id"}]
        assert [item["id"] for item in assign_missing_ids(SectionKind.KERS, items)] == ["KER2", "KER3", "KER4"]

    def test_no_ids_for_results(self):
        items = [{"title": "x"}]
        assert assign_missing_ids(SectionKind.OUTPUTS, items) == [{"title": "x"}]

    def test_reimpose_preserved_extra_items(self):
        assert reimpose_preserved([{"id": "A"}], [{"id": "X"}, {"id": "Y"}]) == [{"id": "A"}, {"id": "Y"}]
