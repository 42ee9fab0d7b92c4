"""Document session: runs generation requests against one user-owned document.

The session is the only writer of its document. Each request reads the
current section, awaits the generator and assigns the merged value only
after the call returned and the merge succeeded, so a failed or cancelled
request leaves the document exactly as it was. Requests for the same
top-level section are serialized by a per-section lock; different sections
run concurrently.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Union

from config import settings
from contracts.generation import GenerationMode, GenerationOutcome, Language
from exceptions import ProposalPipelineError, ProviderError, describe_error
from pipeline.completeness import FillAction, plan_fill
from pipeline.context import section_value
from pipeline.generator import SectionGenerator
from schemas.sections import SectionKind

logger = logging.getLogger(__name__)

# Sections in the order a full "fill missing" pass visits them; later
# sections see what earlier ones produced
FILL_ORDER = (
    SectionKind.PROBLEM_ANALYSIS,
    SectionKind.PROJECT_IDEA,
    SectionKind.GENERAL_OBJECTIVES,
    SectionKind.SPECIFIC_OBJECTIVES,
    SectionKind.PROJECT_MANAGEMENT,
    SectionKind.ACTIVITIES,
    SectionKind.RISKS,
    SectionKind.OUTPUTS,
    SectionKind.OUTCOMES,
    SectionKind.IMPACTS,
    SectionKind.KERS,
)

RESULTS_FLOW = (SectionKind.OUTPUTS, SectionKind.OUTCOMES, SectionKind.IMPACTS, SectionKind.KERS)

Path = Sequence[Union[str, int]]


def set_path_value(document: Dict[str, Any], path: Path, value: Any) -> None:
    """Assign ``value`` at ``path``, creating intermediate objects as needed."""
    node: Any = document
    for step, following in zip(path[:-1], path[1:]):
        if isinstance(node, list):
            node = node[int(step)]
            continue
        child = node.get(step)
        if child is None:
            child = [] if isinstance(following, int) else {}
            node[step] = child
        node = child
    last = path[-1]
    if isinstance(node, list):
        node[int(last)] = value
    else:
        node[last] = value


class DocumentSession:
    """Owns one project document for the length of an editing session."""

    def __init__(
        self,
        document: Dict[str, Any],
        generator: SectionGenerator,
        language: Optional[Union[str, Language]] = None,
        rate_limit_retries: Optional[int] = None,
        rate_limit_backoff: Optional[float] = None,
        per_wp_activities: bool = True,
    ):
        """Initialize the session.

        Args:
            document: Project document in wire (camelCase dict) form
            generator: Generator bound to a provider and rule store
            language: Output language (settings.default_language by default)
            rate_limit_retries: Retries on rate limiting in composite flows
            rate_limit_backoff: Base backoff in seconds, multiplied by the attempt
            per_wp_activities: Regenerate activities one work package at a time
        """
        self.document = document
        self.generator = generator
        self.language = Language(language or settings.default_language)
        self.rate_limit_retries = (
            settings.rate_limit_retries if rate_limit_retries is None else rate_limit_retries
        )
        self.rate_limit_backoff = (
            settings.rate_limit_backoff_seconds if rate_limit_backoff is None else rate_limit_backoff
        )
        self.per_wp_activities = per_wp_activities
        self.history: List[GenerationOutcome] = []
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, section: Union[str, SectionKind]) -> asyncio.Lock:
        """Lock guarding the top-level document key that ``section`` writes to."""
        key = SectionKind.from_key(section).path[0]
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    # ─── Outcome bookkeeping ─────────────────────────────────────

    def _record(self, outcome: GenerationOutcome) -> GenerationOutcome:
        self.history.append(outcome)
        return outcome

    def _failure(self, key: str, mode: GenerationMode, error: Exception, attempts: int) -> GenerationOutcome:
        logger.error("Generation of %s (%s) failed after %d attempt(s): %s", key, mode.value, attempts, error)
        return self._record(GenerationOutcome(
            section_key=key,
            mode=mode,
            ok=False,
            error=describe_error(error),
            error_type=type(error).__name__,
            attempts=attempts,
        ))

    async def _attempt(
        self,
        key: str,
        mode: GenerationMode,
        produce: Callable[[], Awaitable[Any]],
        assign: Optional[Callable[[Any], None]] = None,
        retries: int = 0,
    ) -> GenerationOutcome:
        """Run ``produce``, retrying rate-limited calls up to ``retries`` times."""
        attempts = 0
        while True:
            attempts += 1
            try:
                value = await produce()
            except ProviderError as e:
                if e.is_rate_limit and attempts <= retries:
                    delay = attempts * self.rate_limit_backoff
                    logger.warning(
                        "%s rate limited (attempt %d/%d), retrying in %.1fs",
                        key,
                        attempts,
                        retries + 1,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                return self._failure(key, mode, e, attempts)
            except ProposalPipelineError as e:
                return self._failure(key, mode, e, attempts)
            if assign is not None:
                assign(value)
            logger.info("Generated %s (%s)", key, mode.value)
            return self._record(GenerationOutcome(section_key=key, mode=mode, ok=True, value=value, attempts=attempts))

    # ─── Section requests ────────────────────────────────────────

    def _producer(
        self,
        section: SectionKind,
        mode: GenerationMode,
        empty_indices: Optional[Sequence[int]],
        empty_fields: Optional[Sequence[str]],
    ) -> Callable[[], Awaitable[Any]]:
        generator, language = self.generator, self.language

        def produce() -> Awaitable[Any]:
            # Reads the document at call time so a retry sees the latest state
            document = self.document
            if mode is GenerationMode.TARGETED_FILL:
                return generator.agenerate_targeted_fill(section, document, language, empty_indices or [])
            if mode is GenerationMode.FILL and empty_fields:
                return generator.agenerate_object_fill(section, document, language, empty_fields)
            if section is SectionKind.ACTIVITIES and mode is GenerationMode.REGENERATE and self.per_wp_activities:
                return generator.agenerate_activities_per_wp(document, language)
            return generator.agenerate_section(section, document, language, mode)

        return produce

    async def generate(
        self,
        section_key: Union[str, SectionKind],
        mode: Union[str, GenerationMode] = GenerationMode.REGENERATE,
        empty_indices: Optional[Sequence[int]] = None,
        empty_fields: Optional[Sequence[str]] = None,
        retries: int = 0,
    ) -> GenerationOutcome:
        """Generate one section and assign it to the document on success.

        Failures are returned as an outcome with ``ok=False``; the document is
        unchanged. Cancellation propagates and likewise leaves it unchanged.
        """
        mode = GenerationMode(mode)
        try:
            section = SectionKind.from_key(section_key)
        except ProposalPipelineError as e:
            return self._failure(str(section_key), mode, e, attempts=0)

        if section.is_composite:
            outcomes = await self.generate_expected_results(mode)
            failed = [outcome for outcome in outcomes if not outcome.ok]
            return GenerationOutcome(
                section_key=section.key,
                mode=mode,
                ok=not failed,
                value={outcome.section_key: outcome.value for outcome in outcomes if outcome.ok},
                error="; ".join(f"{o.section_key}: {o.error}" for o in failed) or None,
                error_type=failed[0].error_type if failed else None,
            )

        async with self.lock_for(section):
            return await self._attempt(
                section.key,
                mode,
                self._producer(section, mode, empty_indices, empty_fields),
                assign=lambda value: set_path_value(self.document, section.path, value),
                retries=retries,
            )

    async def run_action(self, action: FillAction, retries: int = 0) -> GenerationOutcome:
        return await self.generate(
            action.section_key,
            action.mode,
            empty_indices=action.empty_indices,
            empty_fields=action.empty_fields,
            retries=retries,
        )

    async def generate_field(self, path: Path) -> GenerationOutcome:
        """Generate one text field and write it at ``path``."""
        key = ".".join(str(step) for step in path)
        try:
            section = SectionKind.from_key(str(path[0]))
        except ProposalPipelineError as e:
            return self._failure(key, GenerationMode.REGENERATE, e, attempts=0)
        async with self.lock_for(section):
            return await self._attempt(
                key,
                GenerationMode.REGENERATE,
                lambda: self.generator.agenerate_field(path, self.document, self.language),
                assign=lambda value: set_path_value(self.document, list(path), value),
            )

    # ─── Composite flows ─────────────────────────────────────────

    async def generate_expected_results(
        self,
        mode: Union[str, GenerationMode] = GenerationMode.REGENERATE,
    ) -> List[GenerationOutcome]:
        """Outputs, outcomes and impacts concurrently; a failed one keeps its data."""
        mode = GenerationMode(mode)
        return list(await asyncio.gather(*(
            self.generate(section, mode) for section in SectionKind.EXPECTED_RESULTS.components
        )))

    async def generate_results(
        self,
        mode: Union[str, GenerationMode] = GenerationMode.FILL,
        sections: Iterable[Union[str, SectionKind]] = RESULTS_FLOW,
    ) -> List[GenerationOutcome]:
        """Results chapter (outputs, outcomes, impacts, KERs) with rate-limit retries.

        Each section is planned on its own: empty sections are generated,
        partly filled ones get a targeted or object fill, complete ones are
        skipped (enhance only touches sections that have content).
        """
        mode = GenerationMode(mode)
        actions = []
        for key in sections:
            section = SectionKind.from_key(key)
            action = plan_fill(section.key, section_value(self.document, section), mode)
            if action is None:
                logger.info("Results: %s needs no generation in %s mode, skipping", section.key, mode.value)
                continue
            actions.append(action)
        return list(await asyncio.gather(*(
            self.run_action(action, retries=self.rate_limit_retries) for action in actions
        )))

    async def fill_missing(
        self,
        sections: Iterable[Union[str, SectionKind]] = FILL_ORDER,
        mode: Union[str, GenerationMode] = GenerationMode.FILL,
    ) -> List[GenerationOutcome]:
        """Visit ``sections`` in order and generate whatever is still missing."""
        mode = GenerationMode(mode)
        outcomes = []
        for key in sections:
            section = SectionKind.from_key(key)
            action = plan_fill(section.key, section_value(self.document, section), mode)
            if action is None:
                logger.debug("%s is complete, skipping", section.key)
                continue
            outcomes.append(await self.run_action(action, retries=self.rate_limit_retries))
        return outcomes

    # ─── Read-only products ──────────────────────────────────────

    async def summarize(self) -> GenerationOutcome:
        """Project summary; the document is not modified."""
        return await self._attempt(
            "summary",
            GenerationMode.REGENERATE,
            lambda: self.generator.agenerate_summary(self.document, self.language),
        )

    async def translate(self, target_language: Union[str, Language]) -> GenerationOutcome:
        """Translated copy of the document as the outcome value; this session's document is kept."""
        return await self._attempt(
            "translation",
            GenerationMode.REGENERATE,
            lambda: self.generator.atranslate_document(self.document, target_language),
        )
