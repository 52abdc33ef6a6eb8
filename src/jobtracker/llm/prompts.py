from __future__ import annotations

from jobtracker.types import (
    ApplicationSnapshot,
    ConfirmedMapping,
    EvidenceRecord,
    GenerationConstraints,
    GenerationMode,
)

PROMPT_HEADER = """
You are a professional cover letter writer. Generate a compelling cover letter for the following job application.

**Company:** {company}
**Role:** {role}

**Job Description:**
{jd_snapshot}
""".strip()

GROUNDED_INSTRUCTIONS = [
    "- Write a professional cover letter that demonstrates how my experience matches the requirements",
    "- Use the provided evidence bullets to ground your claims",
    "- Do NOT fabricate evidence for requirements marked as uncovered",
]

PREVIEW_GUIDANCE = [
    "**Preview Mode - No Confirmed Evidence:**",
    "- No confirmed evidence is available for this letter yet",
    "- Do not invent specific claims, employers, metrics, or achievements",
    "- Keep content generic where evidence is lacking",
    "- This is not for submission; it is a preview to review the structure and tone",
]

UNCOVERED_NOTE = "  (No suitable evidence found - do not fabricate evidence for this item)"
DEFAULT_TONE_LINE = "- Keep the tone professional and confident"
LENGTH_LINE = "- Length: 300-400 words"
GROUNDED_STRUCTURE_LINE = (
    "- Structure: Opening paragraph (interest + fit), body paragraphs (match requirements "
    "with evidence), closing paragraph (next steps)"
)
PREVIEW_STRUCTURE_LINE = (
    "- Structure: Opening paragraph (interest + fit), body paragraphs (relate the role's "
    "needs to general strengths), closing paragraph (next steps)"
)


def build_grounded_prompt(
    *,
    jd_snapshot: str,
    company: str,
    role: str,
    mapping: ConfirmedMapping,
    evidence: dict[str, EvidenceRecord],
    constraints: GenerationConstraints | None = None,
) -> str:
    lines = [_header(jd_snapshot=jd_snapshot, company=company, role=role), ""]
    lines.extend(["**Requirements and Evidence:**", ""])

    for item in mapping.items:
        label = "Responsibility" if item.kind == "responsibility" else "Requirement"
        lines.append(f"{label}: {item.text}")

        # Stale bulletIds on an uncovered item must never reach the model.
        if item.uncovered:
            lines.append(UNCOVERED_NOTE)
        else:
            evidence_lines = []
            for bullet_id in item.bullet_ids:
                record = evidence.get(bullet_id)
                if record is None:
                    continue
                text = f"{record.title}: {record.text}" if record.title else record.text
                evidence_lines.append(f"  - {text}")
            if evidence_lines:
                lines.append("  Evidence:")
                lines.extend(evidence_lines)
        lines.append("")

    lines.append("**Instructions:**")
    lines.extend(GROUNDED_INSTRUCTIONS)
    lines.extend(constraint_lines(constraints))
    lines.append(GROUNDED_STRUCTURE_LINE)
    lines.append(LENGTH_LINE)
    return "\n".join(lines)


def build_preview_prompt(
    *,
    jd_snapshot: str,
    company: str,
    role: str,
    constraints: GenerationConstraints | None = None,
) -> str:
    lines = [_header(jd_snapshot=jd_snapshot, company=company, role=role), ""]
    lines.extend(PREVIEW_GUIDANCE)
    lines.append("")
    lines.append("**Instructions:**")
    lines.append("- Write a professional cover letter expressing interest in the role")
    lines.extend(constraint_lines(constraints))
    lines.append(PREVIEW_STRUCTURE_LINE)
    lines.append(LENGTH_LINE)
    return "\n".join(lines)


def build_prompt(
    *,
    application: ApplicationSnapshot,
    mode: GenerationMode,
    constraints: GenerationConstraints | None,
    evidence: dict[str, EvidenceRecord] | None = None,
) -> str:
    if mode == "preview":
        return build_preview_prompt(
            jd_snapshot=application.jd_snapshot or "",
            company=application.company,
            role=application.role,
            constraints=constraints,
        )

    if application.confirmed_mapping is None:
        raise ValueError("grounded prompts need a confirmed mapping")
    return build_grounded_prompt(
        jd_snapshot=application.jd_snapshot or "",
        company=application.company,
        role=application.role,
        mapping=application.confirmed_mapping,
        evidence=evidence or {},
        constraints=constraints,
    )


def constraint_lines(constraints: GenerationConstraints | None) -> list[str]:
    if constraints is None or not constraints.tone:
        lines = [DEFAULT_TONE_LINE]
    else:
        lines = [f"- Tone: {constraints.tone}"]

    if constraints is None:
        return lines

    if constraints.emphasis:
        lines.append(f"- Emphasis: {constraints.emphasis}")
    if constraints.keywords_include:
        lines.append(f"- Include these keywords where they are truthful: {', '.join(constraints.keywords_include)}")
    if constraints.keywords_avoid:
        lines.append(f"- Avoid these words and phrases: {', '.join(constraints.keywords_avoid)}")
    return lines


def _header(*, jd_snapshot: str, company: str, role: str) -> str:
    return PROMPT_HEADER.format(company=company, role=role, jd_snapshot=jd_snapshot)
