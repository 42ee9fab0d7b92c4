"""Section generator: compile, call the provider, process, enforce and merge.

Every operation is split into a prepare step (compile the prompt) and a
finish step (process the reply, enforce schedules, merge). The synchronous
and asynchronous entry points share both steps and differ only in how the
provider is called. Nothing here writes to the caller's document; every
operation returns the new value and the caller decides where it goes.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from contracts.generation import GenerationMode, GenerationRequest, Language
from exceptions import MalformedResponseError, ProposalPipelineError
from providers.base import LLMProvider, LLMResponse
from rules.registry import RuleRegistry
from rules.store import OverrideStore
from schemas.sections import SectionKind

from .completeness import has_deep_content
from .context import section_value
from .merge import is_blank, merge, merge_object_fill, merge_targeted
from .prompt_compiler import (
    CompiledPrompt,
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
from .response_processor import process_items, process_response, process_single, process_text, strip_code_fence
from .sanitizers import FIELD_NORMALIZERS, next_identifier, sanitize_project_title
from .temporal import DEFAULT_DURATION_MONTHS, enforce_envelope, project_envelope

logger = logging.getLogger(__name__)

# Identifier prefix per list section; new items without an id get the next free one
ID_PREFIXES = {
    SectionKind.ACTIVITIES: "WP",
    SectionKind.RISKS: "RISK",
    SectionKind.KERS: "KER",
}

# Keys whose values are copied back from the source document after translation
PRESERVED_KEYS = frozenset({
    "id",
    "predecessorId",
    "type",
    "startDate",
    "endDate",
    "date",
    "durationMonths",
    "level",
    "category",
    "likelihood",
    "impact",
    "projectAcronym",
})

RESULT_SECTIONS = (SectionKind.OUTPUTS, SectionKind.OUTCOMES, SectionKind.IMPACTS)


@dataclass
class UsageTotals:
    """Token and cost totals across the calls made by one generator."""
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    def record(self, response: LLMResponse) -> None:
        self.calls += 1
        self.input_tokens += response.input_tokens
        self.output_tokens += response.output_tokens
        self.cost += response.cost


@dataclass
class _Step:
    prompt: CompiledPrompt
    finish: Callable[[str], Any]


@dataclass
class ExpectedResults:
    """Outcome of the composite outputs/outcomes/impacts generation."""
    values: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, ProposalPipelineError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def reimpose_preserved(source: Any, translated: Any) -> Any:
    """Copy identifiers, dates and enum values from ``source`` into ``translated``.

    Walks both structures positionally; keys missing from the translation are
    restored from the source.
    """
    if isinstance(source, dict) and isinstance(translated, dict):
        result = dict(translated)
        for key, value in source.items():
            if key in PRESERVED_KEYS:
                result[key] = copy.deepcopy(value)
            elif key in result:
                result[key] = reimpose_preserved(value, result[key])
            else:
                result[key] = copy.deepcopy(value)
        return result
    if isinstance(source, list) and isinstance(translated, list):
        return [
            reimpose_preserved(source[index], item) if index < len(source) else item
            for index, item in enumerate(translated)
        ]
    return translated


def assign_missing_ids(section: SectionKind, items: Any) -> Any:
    """Give list items with a blank id the next free identifier of the section."""
    prefix = ID_PREFIXES.get(section)
    if prefix is None or not isinstance(items, list):
        return items
    used = [item.get("id") for item in items if isinstance(item, dict)]
    for item in items:
        if isinstance(item, dict) and is_blank(item.get("id")):
            item["id"] = next_identifier(prefix, used)
            used.append(item["id"])
    return items


class SectionGenerator:
    """Runs generation calls for one provider and rule store.

    The provider, rule store and language are explicit arguments; there is no
    session lookup. Parse and shape errors propagate unmodified.
    """

    def __init__(
        self,
        provider: LLMProvider,
        rules_store: Optional[OverrideStore] = None,
        model: Optional[str] = None,
        default_duration: int = DEFAULT_DURATION_MONTHS,
        today: Optional[date] = None,
    ):
        """Initialize the generator.

        Args:
            provider: Model provider used for every call
            rules_store: Rule override store; built-in rules when None
            model: Model override passed to the provider
            default_duration: Months assumed when the idea sets no duration
            today: Start-date fallback for schedules (tests pin this)
        """
        self.provider = provider
        self.rules_store = rules_store
        self.model = model
        self.default_duration = default_duration
        self.today = today
        self.usage = UsageTotals()

    @property
    def native_schema(self) -> bool:
        return self.provider.supports_native_schema

    def registry(self, language: Union[str, Language]) -> RuleRegistry:
        return RuleRegistry.for_language(language, self.rules_store)

    # ─── Provider calls ──────────────────────────────────────────

    def _complete(self, prompt: CompiledPrompt) -> str:
        logger.info("Generating %s (%d max tokens) via %s", prompt.section_key, prompt.max_tokens, self.provider.name)
        response = self.provider.complete(
            prompt.system_prompt,
            prompt.instruction,
            model=self.model,
            max_tokens=prompt.max_tokens,
            response_schema=prompt.response_schema,
            json_mode=prompt.json_mode,
        )
        return self._received(prompt, response)

    async def _acomplete(self, prompt: CompiledPrompt) -> str:
        logger.info("Generating %s (%d max tokens) via %s", prompt.section_key, prompt.max_tokens, self.provider.name)
        response = await self.provider.acomplete(
            prompt.system_prompt,
            prompt.instruction,
            model=self.model,
            max_tokens=prompt.max_tokens,
            response_schema=prompt.response_schema,
            json_mode=prompt.json_mode,
        )
        return self._received(prompt, response)

    def _received(self, prompt: CompiledPrompt, response: LLMResponse) -> str:
        self.usage.record(response)
        logger.debug(
            "%s: %d in / %d out tokens, $%.4f",
            prompt.section_key,
            response.input_tokens,
            response.output_tokens,
            response.cost,
        )
        return response.content

    def _run(self, step: _Step) -> Any:
        return step.finish(self._complete(step.prompt))

    async def _arun(self, step: _Step) -> Any:
        return step.finish(await self._acomplete(step.prompt))

    # ─── Post-processing ─────────────────────────────────────────

    def _enforce(self, activities: Any, document: Dict[str, Any]) -> Any:
        envelope = project_envelope(document, self.default_duration)
        if envelope is None or not isinstance(activities, list):
            return activities
        start, end, _ = envelope
        return enforce_envelope(activities, start, end)

    def _finalize(self, section: SectionKind, value: Any, document: Dict[str, Any]) -> Any:
        value = assign_missing_ids(section, value)
        if section is SectionKind.ACTIVITIES:
            value = self._enforce(value, document)
        return value

    # ─── Whole sections ──────────────────────────────────────────

    def _section_step(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        mode: GenerationMode,
        current_data: Any,
    ) -> _Step:
        section = SectionKind.from_key(section_key)
        mode = GenerationMode(mode)
        current = section_value(document, section) if current_data is None else current_data
        prompt = compile_prompt(
            section,
            document,
            language,
            mode=mode,
            current_data=current if mode is not GenerationMode.REGENERATE else None,
            registry=self.registry(language),
            native_schema=self.native_schema,
            default_duration=self.default_duration,
            today=self.today,
        )

        def finish(raw_text: str) -> Any:
            generated = process_response(raw_text, section.shape, section)
            if section.binding.partial:
                base = dict(current or {})
                if mode is GenerationMode.REGENERATE:
                    return {**base, **generated}
                owned = {name: base.get(name) for name in generated}
                return {**base, **merge(owned, generated, mode)}
            return self._finalize(section, merge(current, generated, mode), document)

        return _Step(prompt, finish)

    def generate_section(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        mode: Union[str, GenerationMode] = GenerationMode.REGENERATE,
        current_data: Any = None,
    ) -> Any:
        """Generate one section and return its new value.

        In fill and enhance modes the reply is merged into the current value
        (read from ``document`` unless ``current_data`` is given).

        Raises:
            UnknownSectionError: Unregistered section key
            MalformedResponseError: Reply is not JSON
            ShapeMismatchError: Reply kind contradicts the section shape
            ProviderError: Provider call failed
        """
        mode = GenerationMode(mode)
        if mode is GenerationMode.TARGETED_FILL:
            raise ValueError("Use generate_targeted_fill for targeted-fill requests")
        return self._run(self._section_step(section_key, document, language, mode, current_data))

    async def agenerate_section(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        mode: Union[str, GenerationMode] = GenerationMode.REGENERATE,
        current_data: Any = None,
    ) -> Any:
        mode = GenerationMode(mode)
        if mode is GenerationMode.TARGETED_FILL:
            raise ValueError("Use agenerate_targeted_fill for targeted-fill requests")
        return await self._arun(self._section_step(section_key, document, language, mode, current_data))

    # ─── Partial fills ───────────────────────────────────────────

    def _targeted_step(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        empty_indices: Sequence[int],
    ) -> _Step:
        section = SectionKind.from_key(section_key)
        indices = list(empty_indices)
        prompt = compile_targeted_fill(
            section,
            document,
            language,
            indices,
            registry=self.registry(language),
            native_schema=self.native_schema,
            default_duration=self.default_duration,
        )

        def finish(raw_text: str) -> Any:
            generated = process_items(raw_text, section)
            if len(generated) != len(indices):
                logger.warning(
                    "Targeted fill for %s: asked for %d item(s), got %d",
                    section.key,
                    len(indices),
                    len(generated),
                )
            merged = merge_targeted(copy.deepcopy(section_value(document, section)), generated, indices)
            return self._finalize(section, merged, document)

        return _Step(prompt, finish)

    def generate_targeted_fill(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        empty_indices: Sequence[int],
    ) -> List[Any]:
        """Regenerate only the list items at ``empty_indices``; other items are untouched."""
        return self._run(self._targeted_step(section_key, document, language, empty_indices))

    async def agenerate_targeted_fill(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        empty_indices: Sequence[int],
    ) -> List[Any]:
        return await self._arun(self._targeted_step(section_key, document, language, empty_indices))

    def _object_fill_step(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        empty_fields: Sequence[str],
    ) -> _Step:
        section = SectionKind.from_key(section_key)
        prompt = compile_object_fill(
            section,
            document,
            language,
            empty_fields,
            registry=self.registry(language),
            native_schema=self.native_schema,
            default_duration=self.default_duration,
            today=self.today,
        )
        fields = list(prompt.shape.properties)

        def finish(raw_text: str) -> Any:
            generated = process_response(raw_text, prompt.shape, section)
            return merge_object_fill(section_value(document, section), generated, fields)

        return _Step(prompt, finish)

    def generate_object_fill(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        empty_fields: Sequence[str],
    ) -> Dict[str, Any]:
        """Generate only the empty fields of an object section and overlay them."""
        return self._run(self._object_fill_step(section_key, document, language, empty_fields))

    async def agenerate_object_fill(
        self,
        section_key: Union[str, SectionKind],
        document: Dict[str, Any],
        language: Union[str, Language],
        empty_fields: Sequence[str],
    ) -> Dict[str, Any]:
        return await self._arun(self._object_fill_step(section_key, document, language, empty_fields))

    # ─── Request dispatch ────────────────────────────────────────

    def _request_step(self, request: GenerationRequest, document: Dict[str, Any]) -> _Step:
        if request.mode is GenerationMode.TARGETED_FILL:
            return self._targeted_step(request.section_key, document, request.language, request.empty_indices)
        if request.mode is GenerationMode.FILL and request.empty_fields:
            return self._object_fill_step(request.section_key, document, request.language, request.empty_fields)
        return self._section_step(
            request.section_key,
            document,
            request.language,
            request.mode,
            request.current_data,
        )

    def generate(self, request: GenerationRequest, document: Dict[str, Any]) -> Any:
        """Run one request and return the new section value."""
        return self._run(self._request_step(request, document))

    async def agenerate(self, request: GenerationRequest, document: Dict[str, Any]) -> Any:
        return await self._arun(self._request_step(request, document))

    # ─── Single fields ───────────────────────────────────────────

    def _field_step(
        self,
        path: Sequence[Union[str, int]],
        document: Dict[str, Any],
        language: Union[str, Language],
    ) -> _Step:
        prompt = compile_field(
            path,
            document,
            language,
            registry=self.registry(language),
            default_duration=self.default_duration,
        )
        normalizer = sanitize_project_title if is_title_path(path) else FIELD_NORMALIZERS.get(str(path[-1]))

        def finish(raw_text: str) -> str:
            text = process_text(raw_text, normalizer)
            if not text:
                raise MalformedResponseError("Empty field value from model", raw_text=raw_text)
            return text

        return _Step(prompt, finish)

    def generate_field(
        self,
        path: Sequence[Union[str, int]],
        document: Dict[str, Any],
        language: Union[str, Language],
    ) -> str:
        """Generate the plain-text value of the field at ``path``."""
        return self._run(self._field_step(path, document, language))

    async def agenerate_field(
        self,
        path: Sequence[Union[str, int]],
        document: Dict[str, Any],
        language: Union[str, Language],
    ) -> str:
        return await self._arun(self._field_step(path, document, language))

    # ─── Composite results ───────────────────────────────────────

    def _result_failed(self, results: ExpectedResults, section: SectionKind, error: ProposalPipelineError,
                       document: Dict[str, Any]) -> None:
        logger.warning("Expected results: %s failed, keeping existing data: %s", section.key, error)
        results.errors[section.key] = error
        results.values[section.key] = section_value(document, section)

    def generate_expected_results(
        self,
        document: Dict[str, Any],
        language: Union[str, Language],
        mode: Union[str, GenerationMode] = GenerationMode.REGENERATE,
    ) -> ExpectedResults:
        """Generate outputs, outcomes and impacts one after another.

        A failed subsection keeps its existing value and is reported in
        ``errors``; the others still complete.
        """
        results = ExpectedResults()
        for section in RESULT_SECTIONS:
            try:
                results.values[section.key] = self.generate_section(section, document, language, mode)
            except ProposalPipelineError as e:
                self._result_failed(results, section, e, document)
        return results

    async def agenerate_expected_results(
        self,
        document: Dict[str, Any],
        language: Union[str, Language],
        mode: Union[str, GenerationMode] = GenerationMode.REGENERATE,
    ) -> ExpectedResults:
        """Concurrent variant of generate_expected_results."""
        replies = await asyncio.gather(
            *(self.agenerate_section(section, document, language, mode) for section in RESULT_SECTIONS),
            return_exceptions=True,
        )
        results = ExpectedResults()
        for section, reply in zip(RESULT_SECTIONS, replies):
            if isinstance(reply, ProposalPipelineError):
                self._result_failed(results, section, reply, document)
            elif isinstance(reply, BaseException):
                raise reply
            else:
                results.values[section.key] = reply
        return results

    # ─── Activities, one work package at a time ──────────────────

    def _scaffold_step(self, document: Dict[str, Any], language: Union[str, Language]) -> _Step:
        prompt = compile_wp_scaffold(
            document,
            language,
            registry=self.registry(language),
            native_schema=self.native_schema,
            default_duration=self.default_duration,
            today=self.today,
        )

        def finish(raw_text: str) -> List[Dict[str, Any]]:
            scaffold = [wp for wp in process_items(raw_text, SectionKind.ACTIVITIES) if isinstance(wp, dict)]
            if not scaffold:
                raise MalformedResponseError("Model returned an empty work package scaffold", raw_text=raw_text)
            for index, wp in enumerate(scaffold):
                if is_blank(wp.get("id")):
                    wp["id"] = f"WP{index + 1}"
            logger.info("Work package scaffold: %s", ", ".join(wp["id"] for wp in scaffold))
            return scaffold

        return _Step(prompt, finish)

    def _work_package_step(
        self,
        scaffold: List[Dict[str, Any]],
        index: int,
        previous: List[Dict[str, Any]],
        document: Dict[str, Any],
        language: Union[str, Language],
    ) -> _Step:
        prompt = compile_work_package(
            scaffold,
            index,
            previous,
            document,
            language,
            registry=self.registry(language),
            native_schema=self.native_schema,
            default_duration=self.default_duration,
            today=self.today,
        )
        planned = scaffold[index]

        def finish(raw_text: str) -> Dict[str, Any]:
            wp = process_single(raw_text, SectionKind.ACTIVITIES)
            wp["id"] = planned["id"]
            wp["title"] = wp.get("title") or planned.get("title", "")
            logger.info(
                "%s generated: %d tasks, %d milestones, %d deliverables",
                wp["id"],
                len(wp.get("tasks") or []),
                len(wp.get("milestones") or []),
                len(wp.get("deliverables") or []),
            )
            return wp

        return _Step(prompt, finish)

    def _merge_work_packages(
        self,
        generated: List[Dict[str, Any]],
        document: Dict[str, Any],
        only_indices: Optional[Sequence[int]],
    ) -> List[Dict[str, Any]]:
        if only_indices is None:
            return generated
        merged = copy.deepcopy(section_value(document, SectionKind.ACTIVITIES) or [])
        positions = {wp.get("id"): i for i, wp in enumerate(merged) if isinstance(wp, dict)}
        for wp in generated:
            position = positions.get(wp["id"])
            if position is None:
                merged.append(wp)
                continue
            existing = merged[position]
            for part in ("tasks", "milestones", "deliverables"):
                if not has_deep_content(existing.get(part)):
                    existing[part] = wp.get(part) or existing.get(part) or []
        return merged

    def _wp_indices(self, scaffold: List[Dict[str, Any]], only_indices: Optional[Sequence[int]]) -> List[int]:
        indices = range(len(scaffold)) if only_indices is None else only_indices
        return [index for index in indices if 0 <= index < len(scaffold)]

    def generate_activities_per_wp(
        self,
        document: Dict[str, Any],
        language: Union[str, Language],
        scaffold: Optional[List[Dict[str, Any]]] = None,
        only_indices: Optional[Sequence[int]] = None,
        on_progress: Optional[Callable[[int, int, str], None]] = None,
    ) -> List[Dict[str, Any]]:
        """Generate activities as a scaffold call followed by one call per work package.

        Args:
            document: Project document
            language: Output language
            scaffold: Existing ``[{id, title}]`` list; generated when None
            only_indices: Generate just these scaffold positions and fill the
                empty parts of the matching existing work packages
            on_progress: Called with (position, total, title) before each WP call

        Returns:
            Work packages after dependency repair and envelope enforcement
        """
        scaffold = scaffold or self._run(self._scaffold_step(document, language))
        indices = self._wp_indices(scaffold, only_indices)
        generated: List[Dict[str, Any]] = []
        for position, index in enumerate(indices):
            if on_progress:
                on_progress(position, len(indices), scaffold[index].get("title", ""))
            generated.append(self._run(self._work_package_step(scaffold, index, generated, document, language)))
        activities = self._merge_work_packages(generated, document, only_indices)
        return self._finalize(SectionKind.ACTIVITIES, activities, document)

    async def agenerate_activities_per_wp(
        self,
        document: Dict[str, Any],
        language: Union[str, Language],
        scaffold: Optional[List[Dict[str, Any]]] = None,
        only_indices: Optional[Sequence[int]] = None,
        on_progress: Optional[Callable[[int, int, str], None]] = None,
    ) -> List[Dict[str, Any]]:
        # Work packages stay sequential: each call sees the ones before it
        scaffold = scaffold or await self._arun(self._scaffold_step(document, language))
        indices = self._wp_indices(scaffold, only_indices)
        generated: List[Dict[str, Any]] = []
        for position, index in enumerate(indices):
            if on_progress:
                on_progress(position, len(indices), scaffold[index].get("title", ""))
            generated.append(await self._arun(self._work_package_step(scaffold, index, generated, document, language)))
        activities = self._merge_work_packages(generated, document, only_indices)
        return self._finalize(SectionKind.ACTIVITIES, activities, document)

    # ─── Summary and translation ─────────────────────────────────

    def _summary_step(self, document: Dict[str, Any], language: Union[str, Language]) -> _Step:
        prompt = compile_summary(
            document,
            language,
            registry=self.registry(language),
            default_duration=self.default_duration,
        )

        def finish(raw_text: str) -> str:
            # Headings carry the summary structure, so markdown is kept
            return strip_code_fence(raw_text).strip()

        return _Step(prompt, finish)

    def generate_summary(self, document: Dict[str, Any], language: Union[str, Language]) -> str:
        """Condensed project summary with ``##`` section headings."""
        return self._run(self._summary_step(document, language))

    async def agenerate_summary(self, document: Dict[str, Any], language: Union[str, Language]) -> str:
        return await self._arun(self._summary_step(document, language))

    def _translation_step(self, document: Dict[str, Any], target_language: Union[str, Language]) -> _Step:
        prompt = compile_translation(document, target_language, registry=self.registry(target_language))

        def finish(raw_text: str) -> Dict[str, Any]:
            translated = process_response(raw_text, prompt.shape, "translation", normalizers={})
            return reimpose_preserved(document, translated)

        return _Step(prompt, finish)

    def translate_document(
        self,
        document: Dict[str, Any],
        target_language: Union[str, Language],
    ) -> Dict[str, Any]:
        """Translate every text of ``document``; ids, dates and enum values are kept."""
        return self._run(self._translation_step(document, target_language))

    async def atranslate_document(
        self,
        document: Dict[str, Any],
        target_language: Union[str, Language],
    ) -> Dict[str, Any]:
        return await self._arun(self._translation_step(document, target_language))
