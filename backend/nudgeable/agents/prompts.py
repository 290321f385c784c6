"""Prompt templates for the judge agent."""
from .rubric import Rubric

JUDGE_SYSTEM_PROMPT = """You are an expert evaluator of system prompts for customer-support AI agents.
You grade a user's system prompt together with a simulated conversation that was run against it.

Your responsibilities:
1. Read the system prompt under evaluation carefully
2. Read the full conversation transcript between a USER and the ASSISTANT driven by that prompt
3. Score every rubric dimension below on its own scale, using the whole range
4. Justify each score with one short note that cites the prompt or the transcript
5. List concrete strengths and concrete, actionable improvements
6. Estimate prompt efficiency: approximate token count, redundancy, and one compression suggestion

Rubric (version {version}):
{dimensions}

Overall score:
{formula}

Be strict and consistent. A prompt that never states what the agent must not do cannot score
above half marks on guardrails. Do not reward length for its own sake.
"""

JUDGE_OUTPUT_FORMAT = """Respond with ONLY valid JSON matching this exact schema. No prose, no markdown, no code fences.

{{
    "overall_score": <integer 0-100>,
    "dimension_scores": {{
{dimension_schema}
    }},
    "strengths": ["<strength 1>", "<strength 2>"],
    "improvements": ["<improvement 1>", "<improvement 2>"],
    "prompt_efficiency": {{
        "total_tokens": <integer estimate of prompt tokens>,
        "redundancy_flag": "<none|low|moderate|high>",
        "compression_suggestion": "<one concrete way to shorten the prompt>"
    }}
}}"""

JUDGE_TASK_PROMPT = """Evaluate the following system prompt and simulated conversation.

{problem_statement_block}**System Prompt Under Evaluation:**
{compiled_prompt}

**Conversation ({message_count} messages):**
{transcript}
"""

PROBLEM_STATEMENT_BLOCK = """**Problem Statement:**
{problem_statement}

"""


def _render_dimensions(rubric: Rubric) -> str:
    lines = []
    for d in rubric.dimensions:
        weight = f", weight {d.weight}" if d.weight is not None else ""
        lines.append(f"- {d.key} ({d.label}): 0-{d.max_points}{weight}. {d.description}")
    return "\n".join(lines)


def _render_formula(rubric: Rubric) -> str:
    if rubric.weighted:
        terms = " + ".join(f"{d.key} x {d.weight}" for d in rubric.dimensions)
        return (
            f"overall_score = {terms}, rounded to the nearest integer "
            f"(maximum {int(rubric.max_total())})."
        )
    return (
        "overall_score = the sum of all dimension scores "
        f"(maximum {int(rubric.max_total())})."
    )


def render_judge_instructions(rubric: Rubric) -> str:
    """Build the judge instruction document for ``rubric``."""
    schema_lines = [
        f'        "{d.key}": {{"score": <integer 0-{d.max_points}>, "max": {d.max_points}, "note": "<one sentence>"}}'
        for d in rubric.dimensions
    ]
    system = JUDGE_SYSTEM_PROMPT.format(
        version=rubric.version,
        dimensions=_render_dimensions(rubric),
        formula=_render_formula(rubric),
    )
    output_format = JUDGE_OUTPUT_FORMAT.format(dimension_schema=",\n".join(schema_lines))
    return f"{system}\n{output_format}"
