"""Generation pipeline: context, prompts, response processing, schedules and merging."""

from .completeness import FillAction, NeedsGeneration, has_deep_content, plan_fill, section_needs_generation
from .context import build_context, detect_language, section_value
from .generator import ExpectedResults, SectionGenerator, UsageTotals, reimpose_preserved
from .merge import merge, merge_object_fill, merge_targeted, smart_merge
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
)
from .response_processor import parse_json, process_response, process_text
from .sanitizers import next_identifier, sanitize
from .temporal import add_months, check_envelope, clamp_schedule, enforce_envelope, project_end_date, sanitize_dependencies

__all__ = [
    "FillAction",
    "NeedsGeneration",
    "has_deep_content",
    "plan_fill",
    "section_needs_generation",
    "build_context",
    "detect_language",
    "section_value",
    "ExpectedResults",
    "SectionGenerator",
    "UsageTotals",
    "reimpose_preserved",
    "merge",
    "merge_object_fill",
    "merge_targeted",
    "smart_merge",
    "CompiledPrompt",
    "compile_field",
    "compile_object_fill",
    "compile_prompt",
    "compile_summary",
    "compile_targeted_fill",
    "compile_translation",
    "compile_work_package",
    "compile_wp_scaffold",
    "parse_json",
    "process_response",
    "process_text",
    "next_identifier",
    "sanitize",
    "add_months",
    "check_envelope",
    "clamp_schedule",
    "enforce_envelope",
    "project_end_date",
    "sanitize_dependencies",
]
