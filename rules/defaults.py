"""Compiled-in default rule sets.

Chapter, global, field, translation and summary rules are written once in
English and shared by both languages; the language directive decides the
output language. Directives, mode instructions, quality gates and task
templates are maintained per language.
"""

from typing import Dict, List

from contracts.generation import Language
from contracts.rules import RuleSet, TextRuleBlock

DEFAULT_RULES_VERSION = "4.2"

BANNER = "═" * 67

# ─── Shared blocks ──────────────────────────────────────────────

GLOBAL_RULES = """You are an expert EU project consultant drafting content for an intervention-logic proposal.
Follow every rule below without exception.

A. NO FABRICATION
   - Never invent organisations, projects, studies, programmes, statistics or dates.
   - When a specific data point is needed but not certain, write the placeholder
     "[Insert verified data: <what is needed>]" instead of guessing.

B. CITATIONS
   - Every statistic, trend, policy reference or research finding carries an inline
     citation in the form (Source Name, Year).
   - Preferred sources: Eurostat, European Commission, OECD, World Bank, UN agencies,
     EU agencies (EEA, JRC, CEDEFOP, Eurofound), peer-reviewed journals, national
     statistical offices.
   - Never cite Wikipedia, blogs, social media or unreferenced websites.

C. QUANTITATIVE PRECISION
   - Prefer numbers over qualifiers ("7 partners in 4 Member States", not "several partners").
   - State the reference year and the unit of every figure.

D. FORMAT
   - Plain text only inside JSON string values. No markdown markers (**, ##, `).
   - Return valid JSON exactly matching the requested structure.

E. TITLE FORMATS
   - Objectives: infinitive verb ("Strengthen ...", "Develop ...").
   - Work packages, tasks, milestones, deliverables: noun phrase ("Development of ...").
   - Outputs, outcomes, impacts: result-oriented noun phrase ("Established platform ...").
   - Key exploitable results: specific noun phrase naming the asset."""

CHAPTER_RULES = {
    "chapter1_problemAnalysis": TextRuleBlock(text="""CHAPTER 1 – PROBLEM ANALYSIS
Purpose: an evidence-based diagnosis of the central problem; every later chapter builds on it.

CENTRAL PROBLEM
- One clear statement of 1–3 sentences with at least one cited quantitative indicator.

CAUSES
- At least 4 distinct, non-overlapping causes, root causes before proximate ones.
- Each cause: noun-phrase title, 3–5 sentence explanation, at least two cited data points.

CONSEQUENCES
- At least 4 distinct consequences, direct effects before systemic ones.
- At least one consequence refers to an EU-level policy concern.

CONSISTENCY
- The tree reads as one narrative: causes → central problem → consequences."""),
    "chapter2_projectIdea": TextRuleBlock(text="""CHAPTER 2 – PROJECT IDEA
Purpose: present the concept, position it against existing work and show its added value.

- Project title: noun phrase of 30–200 characters, no acronym, no full sentence.
- Acronym: 3–8 uppercase characters, pronounceable, no dots or spaces.
- Main aim: one sentence starting with an infinitive.
- State of the art: at least 3 real projects or studies with names, programmes and years;
  close with the gap this project fills.
- Proposed solution: an introductory paragraph of 5–8 sentences, then phases written as
  plain-text headers "Phase 1: Title", each linked to a cause from Chapter 1.
- EU policies: at least 3 real policies, each with a specific alignment statement.
- Readiness levels (TRL, SRL, ORL, LRL): a level and a concrete justification for each."""),
    "chapter3_4_objectives": TextRuleBlock(text="""CHAPTERS 3 & 4 – OBJECTIVES
- General objectives (3–5) state the long-term change the project contributes to.
- Specific objectives (at least 5) are S.M.A.R.T. and each answers one cause.
- Titles begin with an infinitive verb.
- Every indicator has a numeric target, a unit and a deadline."""),
    "chapter5_activities": TextRuleBlock(text="""CHAPTER 5 – ACTIVITIES, MANAGEMENT AND RISKS
WORK PACKAGES
- 6–10 work packages. The second-to-last is dissemination, communication and exploitation;
  the last is project management and coordination. Both span the whole project.
- Identifiers: WP1, WP2, ...; tasks T1.1, T1.2, ...; milestones M1.1, ...; deliverables D1.1, ...
- Every WP has at least one milestone and one deliverable; technical WPs have at least 3 tasks.
- All dates use YYYY-MM-DD and lie within the project duration.
- Task dependencies use FS, SS, FF or SF; FS requires the successor to start after the
  predecessor ends.

PROJECT MANAGEMENT
- A description of at least 500 words in separate paragraphs: structure, decision making,
  quality assurance, risk management, internal communication, conflict resolution, data management.
- Structure fields hold short organigram labels only.

RISKS
- At least 5 risks across technical, social, economic and environmental categories.
- Likelihood and impact are low, medium or high; high risks get preventive and corrective mitigation."""),
    "chapter6_results": TextRuleBlock(text="""CHAPTER 6 – EXPECTED RESULTS
- Outputs are the tangible products delivered by the activities.
- Outcomes are the medium-term changes for target groups.
- Impacts are the long-term changes, each with its pathway to impact.
- Key exploitable results name the asset, the exploiting actor, the route and the timeline.
- Every item carries a measurable indicator with a target value and a deadline."""),
}

FIELD_RULES = {
    "projectTitle": "Noun phrase of 30–200 characters conveying thematic focus and scope. No acronym, no conjugated verb, no comma-separated enumerations, no adjective chains.",
    "projectAcronym": "3–8 uppercase characters, pronounceable, related to the topic. No periods or spaces.",
    "mainAim": "Exactly one sentence beginning with 'To' and a verb, naming the core action, the target group and the expected change.",
    "stateOfTheArt": "At least 3 real, named projects or initiatives with funding programme, period and key results, followed by the gap this project fills. Use '[Insert verified project: <topic>]' when unsure.",
    "proposedSolution": "An introductory paragraph of 5–8 sentences, then phases separated by blank lines with plain-text headers 'Phase N: Title'. Each phase states objective, method, tools and intermediate result.",
    "description": "At least 3 substantive sentences on method, scope, target groups and expected results, with a citation where applicable.",
    "indicator": "Quantitative or verifiably qualitative, with a numeric target, a unit and a timeframe.",
    "milestone_date": "YYYY-MM-DD within the project timeline; spread milestones over the whole duration.",
    "likelihood": "Exactly one of: low, medium, high.",
    "impact": "Exactly one of: low, medium, high.",
    "mitigation": "High risks: at least 3 sentences covering preventive and corrective action. Others: at least 2 sentences.",
    "exploitationStrategy": "At least 3 sentences stating who exploits the result, how (licensing, open access, commercialisation, policy uptake) and when.",
}

TRANSLATION_RULES = """TRANSLATION RULES
- Keep the JSON structure identical: keys, nesting and array order do not change.
- Translate string values only, never keys.
- Keep identifiers (WP1, T1.1, M1.1, D1.1, RISK1, KER1) and dates (YYYY-MM-DD) exactly as they are.
- Keep internationally used abbreviations (EU, SME, ICT, TRL).
- Keep title formats: infinitive for objectives, noun phrase for work packages and results.
- Use the official EU terminology of the target language and keep it consistent.
- Keep line breaks and paragraph structure."""

SUMMARY_RULES = """SUMMARY RULES
- Condensed summary for EU evaluators, at most 800 words.
- Exactly 5 sections, each opened by a "## " heading: Project, Problem, Aim and Objectives,
  Approach and Work Plan, Expected Results.
- Flowing paragraphs only; no bullet points or numbered lists.
- Include at least 2 quantitative indicators from the objectives or results.
- Introduce no information that is not in the project data."""

# ─── Per-language blocks ────────────────────────────────────────

LANGUAGE_DIRECTIVES = {
    Language.EN: f"""═══ LANGUAGE DIRECTIVE (MANDATORY) ═══
Write EVERY text value (titles, descriptions, indicators) exclusively in British English,
even when the context below is partly or fully in Slovenian.
{BANNER}""",
    Language.SI: f"""═══ LANGUAGE DIRECTIVE (MANDATORY) ═══
Write EVERY text value (titles, descriptions, indicators) exclusively in Slovenian
(slovenščina), even when the context below is partly or fully in English. Translate
concepts; do not copy English phrases.
{BANNER}""",
}

LANGUAGE_MISMATCH_TEMPLATE = """═══ INPUT LANGUAGE NOTICE ═══
The existing content appears to be written in {detected}, but the output language is {target}.
1. Keep the meaning and topic of the existing content regardless of its language.
2. Write all new content in {target}.
3. When improving existing content, translate it into {target} at the same time.
4. Never discard input because it is written in another language.
""" + BANNER

ACADEMIC_RULES = {
    Language.EN: f"""═══ ACADEMIC RIGOR & CITATION RULES ═══
1. Support every claim with a verifiable source; no plausible-sounding inventions.
2. Cite inline as (Author/Organisation, Year), 2–3 citations per major paragraph.
3. Unknown data point: "[Insert verified data: <description>]".
4. Before returning, check that every cited organisation, figure and year is real.
{BANNER}""",
    Language.SI: f"""═══ PRAVILA AKADEMSKE STROGOSTI IN CITIRANJA ═══
1. Vsako trditev podpri s preverljivim virom; brez verjetno zvenečih izmišljotin.
2. Citiraj v besedilu kot (Avtor/Organizacija, Leto), 2–3 citati na večji odstavek.
3. Neznan podatek: "[Vstavite preverjen podatek: <opis>]".
4. Pred oddajo preveri, da so vse navedene organizacije, številke in letnice resnične.
{BANNER}""",
}

HUMANIZATION_RULES = {
    Language.EN: f"""═══ HUMANIZATION RULES ═══
1. Mix short, medium and long sentences; never three similar sentences in a row.
2. Avoid machine phrases: "plays a crucial role", "holistic approach", "leverage",
   "synergy", "cutting-edge", "paving the way", "it is important to note".
3. Let list items differ in length and structure.
4. Replace abstract statements with concrete ones: who, how many, by when.
5. Prefer active voice; vary connectors instead of "Furthermore" and "Moreover".
{BANNER}""",
    Language.SI: f"""═══ PRAVILA ZA HUMANIZACIJO BESEDILA ═══
1. Mešaj kratke, srednje in dolge stavke; nikoli trije podobni stavki zapored.
2. Izogibaj se strojnim frazam: "igra ključno vlogo", "celosten pristop",
   "sinergije", "utira pot", "pomembno je poudariti".
3. Elementi seznama naj se razlikujejo po dolžini in zgradbi.
4. Abstraktne trditve zamenjaj s konkretnimi: kdo, koliko, do kdaj.
5. Raje tvornik; variraj povezovalce namesto "Poleg tega" in "Nadalje".
{BANNER}""",
}

TITLE_RULES = {
    Language.EN: f"""═══ PROJECT TITLE RULES (projectTitle) ═══
1. 30–200 characters, a concise noun phrase, not a sentence.
2. No acronym; the acronym is a separate field.
3. No conjugated verbs, enumerations or adjective chains.
4. It answers: what does the project deliver?
Good: "Circular Economy in the Wood Processing Industry of the Danube Region"
Bad: "GREENTRANS – Green Urban Transport Transformation" (contains an acronym)
Bad: "The project will establish a platform for ..." (sentence)
{BANNER}""",
    Language.SI: f"""═══ PRAVILA ZA NAZIV PROJEKTA (projectTitle) ═══
1. 30–200 znakov, jedrnata samostalniška zveza, ne stavek.
2. Brez akronima; akronim je ločeno polje.
3. Brez glagolov v osebni obliki, naštevanj in verig pridevnikov.
4. Odgovori na vprašanje: kaj projekt prinese?
Dobro: "Krožno gospodarstvo v lesnopredelovalni industriji Podonavja"
Slabo: "GREENTRANS – Zelena preobrazba prometa" (vsebuje akronim)
Slabo: "Projekt bo vzpostavil platformo za ..." (stavek)
{BANNER}""",
}

TEMPORAL_RULES = {
    Language.EN: f"""═══ TEMPORAL INTEGRITY RULE (MANDATORY) ═══
The project runs from {{{{projectStart}}}} to {{{{projectEnd}}}} ({{{{projectDurationMonths}}}} months).
1. No task, milestone or deliverable may start before {{{{projectStart}}}}.
2. No task, milestone or deliverable may end after {{{{projectEnd}}}}.
3. Every task has startDate <= endDate, both in YYYY-MM-DD.
4. A Finish-to-Start dependency requires the successor to start after the predecessor ends.
{BANNER}""",
    Language.SI: f"""═══ PRAVILO ČASOVNE CELOVITOSTI (OBVEZNO) ═══
Projekt traja od {{{{projectStart}}}} do {{{{projectEnd}}}} ({{{{projectDurationMonths}}}} mesecev).
1. Nobena naloga, mejnik ali dosežek se ne sme začeti pred {{{{projectStart}}}}.
2. Nobena naloga, mejnik ali dosežek se ne sme končati po {{{{projectEnd}}}}.
3. Vsaka naloga ima startDate <= endDate, oba v obliki YYYY-MM-DD.
4. Odvisnost Finish-to-Start zahteva, da se naslednik začne po koncu predhodnika.
{BANNER}""",
}

MODE_RULES = {
    Language.EN: {
        "fill": """MODE: FILL MISSING ONLY.
1. Return every existing non-empty field exactly as it is.
2. Generate content only for empty ("") or missing fields.
3. If a list has fewer items than recommended, add new items.
4. Return valid JSON.""",
        "enhance": """MODE: PROFESSIONAL ENHANCEMENT.
1. Keep the meaning and topic of the existing content.
2. Deepen arguments with evidence and EU terminology; add citations from real sources.
3. Expand short fields to 3–5 sentences and correct errors.
4. Add items to short lists; never remove existing items.
5. Return valid JSON.""",
        "regenerate": """MODE: FULL REGENERATION.
Generate completely new, self-consistent content. Cite real sources, use no markdown and
write like an experienced consultant.""",
        "targeted-fill": """MODE: TARGETED FILL.
Generate ONLY the items listed as missing below, in the order given. Items marked
KEEP UNCHANGED are context and must not be returned.""",
    },
    Language.SI: {
        "fill": """NAČIN: DOPOLNJEVANJE MANJKAJOČEGA.
1. Vsa obstoječa neprazna polja vrni natanko takšna, kot so.
2. Vsebino generiraj samo za prazna ("") ali manjkajoča polja.
3. Če ima seznam premalo elementov, dodaj nove.
4. Vrni veljaven JSON.""",
        "enhance": """NAČIN: STROKOVNA IZBOLJŠAVA.
1. Ohrani pomen in tematiko obstoječe vsebine.
2. Poglobi argumente z dokazi in EU terminologijo; dodaj citate iz resničnih virov.
3. Kratka polja razširi na 3–5 stavkov in popravi napake.
4. Kratkim seznamom dodaj elemente; obstoječih nikoli ne briši.
5. Vrni veljaven JSON.""",
        "regenerate": """NAČIN: POPOLNA PONOVNA GENERACIJA.
Generiraj popolnoma novo, skladno vsebino. Citiraj resnične vire, ne uporabljaj markdowna in
piši kot izkušen svetovalec.""",
        "targeted-fill": """NAČIN: CILJNO DOPOLNJEVANJE.
Generiraj SAMO spodaj navedene manjkajoče elemente v podanem vrstnem redu. Elementi,
označeni z OHRANI NESPREMENJENO, so kontekst in jih ne vračaj.""",
    },
}

QUALITY_GATES: Dict[Language, Dict[str, List[str]]] = {
    Language.EN: {
        "problemAnalysis": [
            "Every cause and consequence description cites at least one source as (Source, Year)",
            "The core problem statement contains a quantitative indicator",
            "At least 4 distinct, non-overlapping causes, root causes first",
            "At least 4 consequences, one of them tied to EU-level policy",
            "No fabricated statistics; unknown figures use the placeholder",
            "No markdown and no banned machine phrases",
        ],
        "projectIdea": [
            "projectTitle is a 30–200 character noun phrase without an acronym",
            "State of the art names at least 3 real projects or studies with years",
            "Proposed solution opens with a 5–8 sentence introduction before the phases",
            "Phase headers are plain text ('Phase 1: ...')",
            "Main aim is one sentence starting with an infinitive",
            "At least 3 real EU policies with specific alignment",
            "Every readiness level has a concrete justification",
        ],
        "_default": [
            "Every description has at least 3 substantive sentences",
            "Titles use the format required for this section",
            "Content links directly to the project context and problem analysis",
            "Every cited source is real and verifiable",
            "No markdown formatting in any text value",
            "Sentence lengths vary naturally",
        ],
    },
    Language.SI: {
        "problemAnalysis": [
            "Vsak opis vzroka in posledice navaja vsaj en vir kot (Vir, Leto)",
            "Izjava o osrednjem problemu vsebuje kvantitativni kazalnik",
            "Vsaj 4 ločeni, neprekrivajoči se vzroki, najprej temeljni",
            "Vsaj 4 posledice, ena vezana na politiko EU",
            "Brez izmišljenih statistik; neznani podatki uporabijo označbo",
            "Brez markdowna in brez prepovedanih strojnih fraz",
        ],
        "projectIdea": [
            "projectTitle je samostalniška zveza s 30–200 znaki brez akronima",
            "Stanje tehnike navaja vsaj 3 resnične projekte ali študije z letnicami",
            "Predlagana rešitev se začne z uvodom v 5–8 stavkih pred fazami",
            "Naslovi faz so golo besedilo ('Faza 1: ...')",
            "Glavni cilj je en stavek, ki se začne z nedoločnikom",
            "Vsaj 3 resnične politike EU s specifično usklajenostjo",
            "Vsaka stopnja pripravljenosti ima konkretno utemeljitev",
        ],
        "_default": [
            "Vsak opis ima vsaj 3 vsebinske stavke",
            "Naslovi so v obliki, ki jo zahteva ta razdelek",
            "Vsebina je neposredno vezana na kontekst projekta in analizo problemov",
            "Vsak naveden vir je resničen in preverljiv",
            "Brez markdown oblikovanja v besedilih",
            "Dolžine stavkov se naravno razlikujejo",
        ],
    },
}

TASK_INSTRUCTIONS = {
    Language.EN: {
        "problemAnalysis": """USER INPUT FOR CORE PROBLEM:
{{userInput}}

TASK: Based strictly on the user input above, create (or complete) a detailed problem analysis.
- Title and description stay on the user's topic.
- Every cause and consequence: title, 3–5 sentence description, at least one real citation.""",
        "projectIdea": """{{titleContext}}Based on the problem analysis, develop (or complete) a comprehensive project idea.
- State of the art references at least 3 real projects or studies with names and years.
- The proposed solution opens with an introductory paragraph, then plain-text phases.""",
        "generalObjectives": "Define 3–5 general objectives. Titles begin with an infinitive verb. At least 3 substantive sentences each.",
        "specificObjectives": "Define at least 5 S.M.A.R.T. specific objectives. Titles begin with an infinitive verb. Each has a measurable KPI.",
        "projectManagement": """Create the project management section.
- description: at least 500 words in separate paragraphs, each starting with a plain-text topic line.
- structure: short organigram labels only, e.g. "Project Coordinator (PC)".""",
        "activities": """Project starts on {{projectStart}} and ends on {{projectEnd}} ({{projectDurationMonths}} months).
Design 6–10 work packages derived from the objectives. The second-to-last WP covers dissemination,
the last WP covers project management; both run from {{projectStart}} to {{projectEnd}}.
Every task has startDate and endDate in YYYY-MM-DD; every WP has milestones and deliverables.""",
        "outputs": "Define at least 6 tangible outputs with result-oriented noun-phrase titles and measurable indicators.",
        "outcomes": "Define at least 6 medium-term outcomes with result-oriented noun-phrase titles and measurable indicators.",
        "impacts": "Define at least 6 long-term impacts with a pathway to impact and measurable indicators.",
        "risks": "Define at least 5 risks (technical, social, economic, environmental) with noun-phrase titles, likelihood, impact and mitigation.",
        "kers": "Define at least 5 key exploitable results named as specific assets, each with an exploitation strategy.",
    },
    Language.SI: {
        "problemAnalysis": """UPORABNIKOV VNOS ZA OSREDNJI PROBLEM:
{{userInput}}

NALOGA: Strogo na podlagi zgornjega vnosa ustvari (ali dopolni) podrobno analizo problemov.
- Naslov in opis ostaneta pri uporabnikovi temi.
- Vsak vzrok in posledica: naslov, opis s 3–5 stavki, vsaj en resničen citat.""",
        "projectIdea": """{{titleContext}}Na podlagi analize problemov razvij (ali dopolni) celovito projektno idejo.
- Stanje tehnike navaja vsaj 3 resnične projekte ali študije z imeni in letnicami.
- Predlagana rešitev se začne z uvodnim odstavkom, nato sledijo faze v golem besedilu.""",
        "generalObjectives": "Opredeli 3–5 splošnih ciljev. Naslovi se začnejo z nedoločnikom. Vsak ima vsaj 3 vsebinske stavke.",
        "specificObjectives": "Opredeli vsaj 5 S.M.A.R.T. specifičnih ciljev. Naslovi se začnejo z nedoločnikom. Vsak ima merljiv KPI.",
        "projectManagement": """Ustvari razdelek o upravljanju projekta.
- description: vsaj 500 besed v ločenih odstavkih, vsak se začne z vrstico teme v golem besedilu.
- structure: samo kratke oznake za organigram, npr. "Koordinator projekta (PK)".""",
        "activities": """Projekt se začne {{projectStart}} in konča {{projectEnd}} ({{projectDurationMonths}} mesecev).
Oblikuj 6–10 delovnih sklopov na podlagi ciljev. Predzadnji DS pokriva diseminacijo, zadnji
upravljanje projekta; oba trajata od {{projectStart}} do {{projectEnd}}.
Vsaka naloga ima startDate in endDate v obliki YYYY-MM-DD; vsak DS ima mejnike in dosežke.""",
        "outputs": "Opredeli vsaj 6 neposrednih rezultatov z rezultatskimi samostalniškimi naslovi in merljivimi kazalniki.",
        "outcomes": "Opredeli vsaj 6 vmesnih učinkov z rezultatskimi samostalniškimi naslovi in merljivimi kazalniki.",
        "impacts": "Opredeli vsaj 6 dolgoročnih vplivov s potjo do vpliva in merljivimi kazalniki.",
        "risks": "Opredeli vsaj 5 tveganj (tehnično, družbeno, ekonomsko, okoljsko) s samostalniškimi naslovi, verjetnostjo, vplivom in ukrepi.",
        "kers": "Opredeli vsaj 5 ključnih izkoriščljivih rezultatov, poimenovanih kot konkretna sredstva, vsak s strategijo izkoriščanja.",
    },
}


def build_default_rule_set(language: Language) -> RuleSet:
    """Complete compiled-in rule set for ``language``."""
    return RuleSet(
        version=DEFAULT_RULES_VERSION,
        language=language,
        global_rules=GLOBAL_RULES,
        section_rules=dict(CHAPTER_RULES),
        field_rules=dict(FIELD_RULES),
        mode_rules=dict(MODE_RULES[language]),
        quality_gates={key: list(checks) for key, checks in QUALITY_GATES[language].items()},
        task_instructions=dict(TASK_INSTRUCTIONS[language]),
        language_directive=LANGUAGE_DIRECTIVES[language],
        academic_rules=ACADEMIC_RULES[language],
        humanization_rules=HUMANIZATION_RULES[language],
        title_rules=TITLE_RULES[language],
        translation_rules=TRANSLATION_RULES,
        summary_rules=SUMMARY_RULES,
    )


DEFAULT_RULE_SETS: Dict[Language, RuleSet] = {
    language: build_default_rule_set(language) for language in Language
}

