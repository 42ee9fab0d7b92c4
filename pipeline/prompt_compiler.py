"""Prompt Compiler.

Assembles the instruction for one generation call. Parts placed first and
last get the most attention from the generator: the language directive and
the task lead, the quality gate closes the section-specific part, and for
activities the date envelope is repeated at both ends.
"""

import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from contracts.generation import GenerationMode, Language
from rules.registry import RuleRegistry
from schemas.sections import (
    FIELD_MAX_TOKENS,
    SUMMARY_MAX_TOKENS,
    TRANSLATION_MAX_TOKENS,
    WORK_PACKAGE,
    WORK_PACKAGE_SCAFFOLD,
    SectionKind,
)
from contracts.document import ProjectDocument
from schemas.shape import Shape, one, to_json_schema, to_text_hint

from .context import build_context, detect_language, section_value
from .temporal import DEFAULT_DURATION_MONTHS, parse_date, project_end_date

JSON_SYSTEM_PROMPT = (
    "You are an expert EU project proposal writer. Respond ONLY with valid JSON that matches "
    "the structure requested in the instruction. No markdown, no code fences, no commentary."
)
TEXT_SYSTEM_PROMPT = (
    "You are an expert EU project proposal writer. Respond with plain text only, without markdown."
)

_LABELS = {
    Language.EN: {
        "existing_data": "Existing data",
        "no_input": "(no user input yet)",
        "title": "Title",
        "description": "Description",
        "title_context": "USER INPUT FOR PROJECT TITLE",
        "title_keep": "Keep this title if it follows the title rules; otherwise improve it on the same topic.",
        "field_rule": "FIELD-SPECIFIC RULE",
        "siblings": "EXISTING DATA IN THE SAME SECTION (use as the basis for generation)",
    },
    Language.SI: {
        "existing_data": "Obstoječi podatki",
        "no_input": "(uporabnik še ni vnesel podatkov)",
        "title": "Naslov",
        "description": "Opis",
        "title_context": "UPORABNIKOV VNOS ZA NAZIV PROJEKTA",
        "title_keep": "Ohrani ta naziv, če ustreza pravilom za naziv; sicer ga izboljšaj na isto temo.",
        "field_rule": "PRAVILO ZA TO POLJE",
        "siblings": "OBSTOJEČI PODATKI V ISTEM RAZDELKU (uporabi kot osnovo)",
    },
}


@dataclass
class CompiledPrompt:
    """Instruction plus the declared output shape for one provider call.

    Attributes:
        section_key: Section (or pseudo-section such as "field") being generated
        instruction: Full instruction text (the user message)
        shape: Declared output shape; None for plain-text calls
        max_tokens: Output token budget
        native_schema: The provider enforces ``shape`` itself
        system_prompt: System message sent with the instruction
    """
    section_key: str
    instruction: str
    shape: Optional[Shape]
    max_tokens: int
    native_schema: bool = False
    system_prompt: str = JSON_SYSTEM_PROMPT

    @property
    def response_schema(self) -> Optional[Dict[str, Any]]:
        """Native structured-output declaration, when the provider takes one."""
        if self.shape is None or not self.native_schema:
            return None
        return to_json_schema(self.shape)

    @property
    def json_mode(self) -> bool:
        return self.shape is not None and not self.native_schema


def join_parts(parts: Iterable[Optional[str]]) -> str:
    """Drop empty parts and join the rest with blank lines."""
    return "\n\n".join(part for part in parts if part and part.strip())


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _schema_hint(shape: Shape, native_schema: bool) -> str:
    return "" if native_schema else to_text_hint(shape)


def project_schedule(
    document: Dict[str, Any],
    default_duration: int = DEFAULT_DURATION_MONTHS,
    today: Optional[date] = None,
) -> Dict[str, str]:
    """projectStart / projectEnd / projectDurationMonths placeholders.

    Falls back to ``today`` when the idea sets no start date.
    """
    idea = (document or {}).get("projectIdea") or {}
    start = parse_date(idea.get("startDate")) or today or date.today()
    try:
        months = int(idea.get("durationMonths") or default_duration)
    except (TypeError, ValueError):
        months = default_duration
    if months < 1:
        months = default_duration
    return {
        "projectStart": start.isoformat(),
        "projectEnd": project_end_date(start, months).isoformat(),
        "projectDurationMonths": str(months),
    }


def task_placeholders(
    section: SectionKind,
    document: Dict[str, Any],
    language: Language,
    default_duration: int = DEFAULT_DURATION_MONTHS,
    today: Optional[date] = None,
) -> Dict[str, str]:
    """Values for the ``{{placeholders}}`` of the section's task template."""
    labels = _LABELS[language]
    task_key = section.task_key
    if task_key == "problemAnalysis":
        core = ((document or {}).get("problemAnalysis") or {}).get("coreProblem") or {}
        lines = []
        if (core.get("title") or "").strip():
            lines.append(f'{labels["title"]}: "{core["title"].strip()}"')
        if (core.get("description") or "").strip():
            lines.append(f'{labels["description"]}: "{core["description"].strip()}"')
        return {"userInput": "\n".join(lines) or labels["no_input"]}
    if task_key == "projectIdea":
        title = (((document or {}).get("projectIdea") or {}).get("projectTitle") or "").strip()
        if not title:
            return {"titleContext": ""}
        return {"titleContext": f'{labels["title_context"]}:\n"{title}"\n{labels["title_keep"]}\n\n'}
    if task_key == "activities":
        return project_schedule(document, default_duration, today)
    return {}


def temporal_block(
    registry: RuleRegistry,
    document: Dict[str, Any],
    default_duration: int = DEFAULT_DURATION_MONTHS,
) -> str:
    """Envelope restatement; empty when the idea has no valid start date."""
    idea = (document or {}).get("projectIdea") or {}
    if parse_date(idea.get("startDate")) is None:
        return ""
    return registry.get_temporal_rule(project_schedule(document, default_duration))


def _mismatch_notice(registry: RuleRegistry, document: Dict[str, Any]) -> str:
    detected = detect_language(document)
    return registry.get_language_mismatch_notice(detected) if detected else ""


def compile_prompt(
    section_key: Union[str, SectionKind],
    document: Dict[str, Any],
    language: Union[str, Language],
    mode: Union[str, GenerationMode] = GenerationMode.REGENERATE,
    current_data: Any = None,
    registry: Optional[RuleRegistry] = None,
    native_schema: bool = False,
    default_duration: int = DEFAULT_DURATION_MONTHS,
    today: Optional[date] = None,
) -> CompiledPrompt:
    """Build the instruction and output shape for one section.

    Args:
        section_key: Section to generate
        document: Whole project document (wire dict form)
        language: Output language
        mode: regenerate, fill, enhance or targeted-fill
        current_data: Current section value, quoted in fill/enhance modes
        registry: Resolved rules; the compiled-in defaults when None
        native_schema: Provider enforces the schema, so no textual hint
        default_duration: Months assumed when the idea sets none
        today: Start-date fallback for activities

    Raises:
        UnknownSectionError: If ``section_key`` is not registered
    """
    section = SectionKind.from_key(section_key)
    language = Language(language)
    mode = GenerationMode(mode)
    registry = registry or RuleRegistry.for_language(language)
    labels = _LABELS[language]

    mode_instruction = registry.get_mode_instruction(mode)
    if mode in (GenerationMode.FILL, GenerationMode.ENHANCE) and current_data:
        mode_instruction = f"{mode_instruction}\n{labels['existing_data']}: {_dump(current_data)}"

    temporal = temporal_block(registry, document, default_duration) if section is SectionKind.ACTIVITIES else ""
    title_rules = registry.get_title_rules() if section.task_key == "projectIdea" else ""
    placeholders = task_placeholders(section, document, language, default_duration, today)

    instruction = join_parts([
        temporal,
        registry.get_language_directive(),
        _mismatch_notice(registry, document),
        registry.get_task_instruction(section, placeholders),
        _schema_hint(section.shape, native_schema),
        registry.get_quality_gate(section),
        build_context(document, default_duration),
        mode_instruction,
        title_rules,
        registry.get_academic_rules(),
        registry.get_humanization_rules(),
        registry.get_global_rules(),
        registry.get_section_rules(section),
        temporal,
    ])
    return CompiledPrompt(
        section_key=section.key,
        instruction=instruction,
        shape=section.shape,
        max_tokens=section.max_tokens,
        native_schema=native_schema,
    )


def _item_label(item: Any, index: int) -> str:
    if isinstance(item, dict):
        return item.get("title") or item.get("description") or f"Item {index + 1}"
    return f"Item {index + 1}"


def _partial_info(item: Any) -> str:
    if not isinstance(item, dict):
        return ""
    return ", ".join(
        f'{key}: "{value}"' for key, value in item.items()
        if isinstance(value, str) and value.strip()
    )


def compile_targeted_fill(
    section_key: Union[str, SectionKind],
    document: Dict[str, Any],
    language: Union[str, Language],
    empty_indices: Sequence[int],
    registry: Optional[RuleRegistry] = None,
    native_schema: bool = False,
    default_duration: int = DEFAULT_DURATION_MONTHS,
) -> CompiledPrompt:
    """Instruction that asks only for the items at ``empty_indices``.

    The response is an array whose i-th element fills ``empty_indices[i]``.
    """
    section = SectionKind.from_key(section_key)
    language = Language(language)
    registry = registry or RuleRegistry.for_language(language)
    if not section.is_list:
        raise ValueError(f"Targeted fill needs a list section, got '{section.key}'")

    current = section_value(document, section) or []
    targets = list(empty_indices)
    existing: List[str] = []
    missing: List[str] = []
    for index, item in enumerate(current):
        if index in targets:
            partial = _partial_info(item)
            if language is Language.SI:
                suffix = f" — delni podatki: {partial}" if partial else " — popolnoma prazen"
                missing.append(f"  - Element {index + 1} (indeks {index}){suffix}")
            else:
                suffix = f" — partial data: {partial}" if partial else " — completely empty"
                missing.append(f"  - Item {index + 1} (index {index}){suffix}")
        else:
            label = _item_label(item, index)
            if language is Language.SI:
                existing.append(f'  - Element {index + 1}: "{label}" (OHRANI NESPREMENJENO)')
            else:
                existing.append(f'  - Item {index + 1}: "{label}" (KEEP UNCHANGED)')

    count, order = len(targets), ", ".join(str(i) for i in targets)
    if language is Language.SI:
        task = "\n".join([
            f'NALOGA: Generiraj vsebino SAMO za manjkajoče elemente v razdelku "{section.key}".',
            f"\nOBSTOJEČI ELEMENTI (NE SPREMINJAJ):\n" + "\n".join(existing),
            f"\nMANJKAJOČI ELEMENTI (GENERIRAJ TE):\n" + "\n".join(missing),
            "\nPRAVILA:",
            f"- Vrni JSON array z NATANKO {count} elementi, enega za vsak manjkajoči element.",
            f"- Vrstni red mora ustrezati vrstnemu redu manjkajočih indeksov: [{order}].",
            "- NE vračaj obstoječih elementov.",
        ])
    else:
        task = "\n".join([
            f'TASK: Generate content ONLY for the missing items in the "{section.key}" section.',
            f"\nEXISTING ITEMS (DO NOT MODIFY):\n" + "\n".join(existing),
            f"\nMISSING ITEMS (GENERATE THESE):\n" + "\n".join(missing),
            "\nRULES:",
            f"- Return a JSON array with EXACTLY {count} items, one for each missing item.",
            f"- The order must match the order of missing indices: [{order}].",
            "- Do NOT return existing items.",
        ])

    instruction = join_parts([
        registry.get_language_directive(),
        registry.get_mode_instruction(GenerationMode.TARGETED_FILL),
        task,
        _schema_hint(section.shape, native_schema),
        build_context(document, default_duration),
        registry.get_academic_rules(),
        registry.get_humanization_rules(),
        registry.get_section_rules(section),
    ])
    return CompiledPrompt(section.key, instruction, section.shape, section.max_tokens, native_schema)


def compile_object_fill(
    section_key: Union[str, SectionKind],
    document: Dict[str, Any],
    language: Union[str, Language],
    empty_fields: Sequence[str],
    registry: Optional[RuleRegistry] = None,
    native_schema: bool = False,
    default_duration: int = DEFAULT_DURATION_MONTHS,
    today: Optional[date] = None,
) -> CompiledPrompt:
    """Instruction for the empty fields of an object section, with a reduced shape."""
    section = SectionKind.from_key(section_key)
    language = Language(language)
    registry = registry or RuleRegistry.for_language(language)
    if section.is_list:
        raise ValueError(f"Object fill needs an object section, got '{section.key}'")

    shape = section.shape.subset(empty_fields)
    requested = list(shape.properties)
    current = section_value(document, section) or {}
    existing: List[str] = []
    missing: List[str] = []
    keep = "OHRANI NESPREMENJENO" if language is Language.SI else "KEEP UNCHANGED"
    for name, value in current.items():
        if name in requested:
            marker = "PRAZNO (GENERIRAJ)" if language is Language.SI else "EMPTY (GENERATE THIS)"
            missing.append(f'  - "{name}" — {marker}')
        elif isinstance(value, str) and value.strip():
            preview = value if len(value) <= 150 else value[:150] + "..."
            existing.append(f'  - "{name}": "{preview}" ({keep})')
        elif value and isinstance(value, (dict, list)):
            existing.append(f'  - "{name}": [object/array with content] ({keep})')
    for name in requested:
        if name not in current:
            marker = "PRAZNO (GENERIRAJ)" if language is Language.SI else "EMPTY (GENERATE THIS)"
            missing.append(f'  - "{name}" — {marker}')

    names = ", ".join(f'"{name}"' for name in requested)
    if language is Language.SI:
        task = "\n".join([
            f'NALOGA: Generiraj vsebino SAMO za manjkajoča polja v razdelku "{section.key}".',
            "\nOBSTOJEČA POLJA (NE SPREMINJAJ, uporabi kot kontekst):\n" + "\n".join(existing),
            "\nMANJKAJOČA POLJA (GENERIRAJ SAMO TE):\n" + "\n".join(missing),
            "\nPRAVILA:",
            f"- Vrni JSON objekt z NATANKO {len(requested)} polji: {names}.",
            "- NE vračaj obstoječih polj.",
        ])
    else:
        task = "\n".join([
            f'TASK: Generate content ONLY for the missing fields in the "{section.key}" section.',
            "\nEXISTING FIELDS (DO NOT MODIFY, use as context):\n" + "\n".join(existing),
            "\nMISSING FIELDS (GENERATE ONLY THESE):\n" + "\n".join(missing),
            "\nRULES:",
            f"- Return a JSON object with EXACTLY {len(requested)} fields: {names}.",
            "- Do NOT return existing fields.",
        ])

    placeholders = task_placeholders(section, document, language, default_duration, today)
    instruction = join_parts([
        registry.get_language_directive(),
        task,
        _schema_hint(shape, native_schema),
        registry.get_task_instruction(section, placeholders),
        registry.get_title_rules() if section.task_key == "projectIdea" else "",
        build_context(document, default_duration),
        registry.get_academic_rules(),
        registry.get_humanization_rules(),
        registry.get_section_rules(section),
        registry.get_quality_gate(section),
    ])
    return CompiledPrompt(section.key, instruction, shape, section.max_tokens, native_schema)


def _parent(document: Dict[str, Any], path: Sequence[Union[str, int]]) -> Any:
    node: Any = document
    for step in path[:-1]:
        try:
            node = node[step]
        except (KeyError, IndexError, TypeError):
            return None
    return node


def is_title_path(path: Sequence[Union[str, int]]) -> bool:
    field_name = str(path[-1])
    return field_name == "projectTitle" or (str(path[0]) == "projectIdea" and field_name == "title" and len(path) <= 2)


def compile_field(
    path: Sequence[Union[str, int]],
    document: Dict[str, Any],
    language: Union[str, Language],
    registry: Optional[RuleRegistry] = None,
    default_duration: int = DEFAULT_DURATION_MONTHS,
) -> CompiledPrompt:
    """Instruction for a single text field at ``path`` (e.g. ``["risks", 2, "mitigation"]``)."""
    if not path:
        raise ValueError("Field path must not be empty")
    language = Language(language)
    registry = registry or RuleRegistry.for_language(language)
    labels = _LABELS[language]
    section = SectionKind.from_key(str(path[0]))
    field_name = str(path[-1])
    is_title = is_title_path(path)

    siblings = ""
    parent = _parent(document or {}, path)
    if isinstance(parent, dict):
        lines = [
            f'  {key}: "{value}"' for key, value in parent.items()
            if key != field_name and isinstance(value, str) and value.strip()
        ]
        if lines:
            siblings = f"{labels['siblings']}:\n" + "\n".join(lines)

    rule = registry.get_field_rule(field_name)
    field_rule = f"{labels['field_rule']}:\n{rule}" if rule else ""

    if is_title:
        current = (((document or {}).get("projectIdea") or {}).get("projectTitle") or "").strip()
        if language is Language.SI:
            task = (
                f'UPORABNIKOV TRENUTNI NAZIV: "{current}"\nČe je primeren, ga VRNI NESPREMENJENO, sicer ga izboljšaj.\n'
                if current else "Generiraj primeren NAZIV PROJEKTA na podlagi konteksta projekta.\n"
            ) + "Vrni SAMO golo besedilo naziva (30–200 znakov), brez narekovajev in razlage."
        else:
            task = (
                f'USER\'S CURRENT TITLE: "{current}"\nIf acceptable, RETURN IT UNCHANGED; otherwise improve it.\n'
                if current else "Generate an appropriate PROJECT TITLE based on the project context.\n"
            ) + "Return ONLY the plain text title (30–200 characters), no quotes, no explanation."
    elif language is Language.SI:
        task = (
            f'Generiraj profesionalno vrednost za polje "{field_name}" znotraj "{section.key}". '
            "Vrni samo golo besedilo brez markdowna. Če ne poznaš podatka: \"[Vstavite preverjen podatek: ...]\"."
        )
    else:
        task = (
            f'Generate a professional value for the field "{field_name}" within "{section.key}". '
            "Return only plain text, no markdown. If unknown: \"[Insert verified data: ...]\"."
        )

    instruction = join_parts([
        registry.get_language_directive(),
        _mismatch_notice(registry, document),
        "" if is_title else registry.get_academic_rules(),
        "" if is_title else registry.get_humanization_rules(),
        registry.get_title_rules() if is_title else "",
        build_context(document, default_duration),
        siblings,
        registry.get_global_rules(),
        registry.get_section_rules(section),
        field_rule,
        task,
    ])
    return CompiledPrompt(
        section_key="field",
        instruction=instruction,
        shape=None,
        max_tokens=FIELD_MAX_TOKENS,
        system_prompt=TEXT_SYSTEM_PROMPT,
    )


def compile_summary(
    document: Dict[str, Any],
    language: Union[str, Language],
    registry: Optional[RuleRegistry] = None,
    default_duration: int = DEFAULT_DURATION_MONTHS,
) -> CompiledPrompt:
    """Condensed project summary instruction (at most 800 words, five sections)."""
    language = Language(language)
    registry = registry or RuleRegistry.for_language(language)
    if language is Language.SI:
        lead = "KRITIČNO NAVODILO: DESTILIRAJ projektne podatke v KRATEK povzetek, NAJVEČ 800 besed, 5 sekcij, brez alinej."
        reminder = "KONČNI OPOMNIK: NAJVEČ 800 besed. 5 sekcij z ## naslovi. BREZ alinej. NE kopiraj, KONDENZIRAJ."
    else:
        lead = "CRITICAL INSTRUCTION: DISTILL the project data into a SHORT summary, MAXIMUM 800 words, 5 sections, no bullet points."
        reminder = "FINAL REMINDER: MAXIMUM 800 words. 5 sections with ## headings. NO bullet points. Do NOT copy, CONDENSE."
    instruction = join_parts([
        registry.get_language_directive(),
        lead,
        registry.get_summary_rules(),
        "---\nPROJECT DATA TO SUMMARISE:\n---",
        build_context(document, default_duration),
        "---",
        reminder,
    ])
    return CompiledPrompt("summary", instruction, None, SUMMARY_MAX_TOKENS, system_prompt=TEXT_SYSTEM_PROMPT)


def compile_translation(
    document: Dict[str, Any],
    target_language: Union[str, Language],
    registry: Optional[RuleRegistry] = None,
) -> CompiledPrompt:
    """Whole-document translation instruction; the reply is the translated JSON object."""
    target_language = Language(target_language)
    registry = registry or RuleRegistry.for_language(target_language)
    instruction = "\n".join([
        "You are a professional translator for EU Project Proposals.",
        f"Translate the following JSON object strictly into {target_language.display_name}.",
        registry.get_translation_rules(),
        "Return ONLY the valid JSON object, with exactly the same keys and structure.",
        f"\nJSON to Translate:\n{_dump(document)}",
    ])
    return CompiledPrompt(
        "translation",
        instruction,
        one(ProjectDocument),
        TRANSLATION_MAX_TOKENS,
        native_schema=False,
    )


def compile_wp_scaffold(
    document: Dict[str, Any],
    language: Union[str, Language],
    registry: Optional[RuleRegistry] = None,
    native_schema: bool = False,
    default_duration: int = DEFAULT_DURATION_MONTHS,
    today: Optional[date] = None,
) -> CompiledPrompt:
    """First step of per-WP generation: work package ids and titles only."""
    language = Language(language)
    registry = registry or RuleRegistry.for_language(language)
    schedule = project_schedule(document, default_duration, today)
    start, end, months = schedule["projectStart"], schedule["projectEnd"], schedule["projectDurationMonths"]
    if language is Language.SI:
        task = (
            "NALOGA: Generiraj SAMO strukturo delovnih sklopov, BREZ nalog, mejnikov ali dosežkov.\n"
            f"Za vsak DS vrni id (WP1, WP2 ...) in title (samostalniška zveza). Projekt traja od {start} do {end} ({months} mesecev).\n"
            "Med 6 in 10 DS. Predzadnji je diseminacija, zadnji upravljanje projekta."
        )
    else:
        task = (
            "TASK: Generate ONLY the work package structure, WITHOUT tasks, milestones or deliverables.\n"
            f"For each WP return id (WP1, WP2 ...) and title (noun phrase). Project runs from {start} to {end} ({months} months).\n"
            "Between 6 and 10 WPs. The second-to-last is dissemination, the last is project management."
        )
    temporal = temporal_block(registry, document, default_duration)
    instruction = join_parts([
        temporal,
        registry.get_language_directive(),
        task,
        _schema_hint(WORK_PACKAGE_SCAFFOLD, native_schema),
        registry.get_task_instruction(SectionKind.ACTIVITIES, schedule),
        build_context(document, default_duration),
        temporal,
    ])
    return CompiledPrompt("activities", instruction, WORK_PACKAGE_SCAFFOLD, SectionKind.ACTIVITIES.max_tokens, native_schema)


def compile_work_package(
    scaffold: Sequence[Dict[str, Any]],
    index: int,
    previous: Sequence[Dict[str, Any]],
    document: Dict[str, Any],
    language: Union[str, Language],
    registry: Optional[RuleRegistry] = None,
    native_schema: bool = False,
    default_duration: int = DEFAULT_DURATION_MONTHS,
    today: Optional[date] = None,
) -> CompiledPrompt:
    """One work package in full, with earlier WPs as dependency context."""
    language = Language(language)
    registry = registry or RuleRegistry.for_language(language)
    schedule = project_schedule(document, default_duration, today)
    wp = scaffold[index]
    wp_id, wp_title = wp.get("id", f"WP{index + 1}"), wp.get("title", "")
    number = str(wp_id).replace("WP", "") or str(index + 1)
    horizontal = index >= len(scaffold) - 2

    overview = "\n".join(f'  {item.get("id")}: "{item.get("title")}"' for item in scaffold)
    earlier = [
        {
            "id": item.get("id"),
            "title": item.get("title"),
            "tasks": [
                {key: task.get(key) for key in ("id", "title", "startDate", "endDate")}
                for task in item.get("tasks") or [] if isinstance(task, dict)
            ],
        }
        for item in previous
    ]

    if language is Language.SI:
        lead = (
            f'NALOGA: Generiraj CELOTEN delovni sklop {wp_id}: "{wp_title}" z nalogami, mejniki in dosežki.\n'
            f'Vrni EN JSON objekt (ne array): {{"id": "{wp_id}", "title": "{wp_title}", "tasks": [...], '
            '"milestones": [...], "deliverables": [...]}'
        )
        kind = (
            f"Ta DS je horizontalen in traja od {schedule['projectStart']} do {schedule['projectEnd']}."
            if horizontal else "Ta DS je vsebinski; ne sme trajati celotno obdobje projekta."
        )
        rules = (
            f"PRAVILA ZA {wp_id}:\n- 2–5 nalog z ID-ji T{number}.1, T{number}.2 ...\n"
            "- Vsaj 1 mejnik in 1 dosežek\n- Naslovi nalog so samostalniške zveze"
        )
        header_scaffold, header_previous = "CELOTEN SCAFFOLD PROJEKTA", "ŽE GENERIRANI DS (za odvisnosti med DS)"
    else:
        lead = (
            f'TASK: Generate the COMPLETE work package {wp_id}: "{wp_title}" with tasks, milestones and deliverables.\n'
            f'Return ONE JSON object (not an array): {{"id": "{wp_id}", "title": "{wp_title}", "tasks": [...], '
            '"milestones": [...], "deliverables": [...]}'
        )
        kind = (
            f"This WP is horizontal and runs from {schedule['projectStart']} to {schedule['projectEnd']}."
            if horizontal else "This is a content WP; it MUST NOT span the entire project duration."
        )
        rules = (
            f"RULES FOR {wp_id}:\n- 2–5 tasks with IDs T{number}.1, T{number}.2 ...\n"
            "- At least 1 milestone and 1 deliverable\n- Task titles are noun phrases"
        )
        header_scaffold, header_previous = "FULL PROJECT SCAFFOLD", "ALREADY GENERATED WPs (for cross-WP dependencies)"

    temporal = temporal_block(registry, document, default_duration)
    instruction = join_parts([
        temporal,
        registry.get_language_directive(),
        lead,
        kind,
        f"{header_scaffold}:\n{overview}",
        f"{header_previous}:\n{json.dumps(earlier, indent=2, ensure_ascii=False)}" if earlier else "",
        rules,
        _schema_hint(WORK_PACKAGE, native_schema),
        build_context(document, default_duration),
        registry.get_academic_rules(),
        registry.get_humanization_rules(),
        registry.get_section_rules(SectionKind.ACTIVITIES),
        registry.get_quality_gate(SectionKind.ACTIVITIES),
        temporal,
    ])
    return CompiledPrompt("activities", instruction, WORK_PACKAGE, SectionKind.ACTIVITIES.max_tokens, native_schema)
