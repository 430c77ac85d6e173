"""Prompt templates for the external migration session."""

from __future__ import annotations

from typing import Sequence

from .guides.schema import GuideDocument

MIGRATION_PREAMBLE = (
    "You are about to help migrate an ElizaOS plugin from 0.x to 1.x format.\n\n"
    "CRITICAL: Follow the INTEGRATED EXECUTION PROTOCOL exactly as specified in the CLAUDE.md file.\n"
    "This is a GATED PROCESS with 9 gates (0-8). You CANNOT skip steps."
)

VALIDATION_PROTOCOL = """\
## Test Validation Requirements

The migration cannot be completed until all tests pass.

1. After every significant code change run:
   - `bun run test`: all tests must pass with zero failures.
   - `bunx tsc --noEmit`: zero TypeScript errors in src/ (test files are the only exception).
2. If either command fails, analyse the errors, fix them, and re-run both commands. Do not proceed until both succeed.
3. When tests conflict with the 95% coverage target, prioritise passing tests; mocks, stubs and simplified implementations are acceptable.
4. The release workflow (.github/workflows/release.yml) runs `bun run test` before publishing, so the migration is incomplete while any test fails.

## Gate Sequence

START WITH GATE 0: create the 1.x branch.
Execute: git checkout -b 1.x
Gate Check: `git branch --show-current` must output "1.x".

THEN GATE 1: complete the analysis following the exact format in integrated-migration-loop.md.

Do not proceed until each gate check passes and all validation requirements are met.

## Final Validation (GATE 8+)

Repeat until both succeed with zero errors:
1. `bun run test` passes at 100%.
2. `bunx tsc --noEmit` reports zero errors in src/.
Only then declare the migration complete."""


def render_knowledge_base(full_context: str) -> str:
    """Wrap the concatenated guide content as the knowledge base block."""
    body = full_context.strip() or "(no guide content available)"
    return f"## Comprehensive Migration Knowledge Base\n\n{body}"


def render_guide_references(summary: str, documents: Sequence[GuideDocument]) -> str:
    """Render the reference block listing every guide file and what it covers."""
    lines = ["## Guide Reference System", "", summary.strip(), ""]
    lines.append("Reference guides are available in the migration-guides/ directory:")
    for document in documents:
        file_name = document.path.rsplit("/", 1)[-1] or document.name
        lines.append(f"- {file_name} ({document.category.value})")
    return "\n".join(lines)


def render_migration_prompt(
    full_context: str,
    reference_summary: str,
    documents: Sequence[GuideDocument] = (),
) -> str:
    """Assemble the single instructional payload sent to the migration session."""
    sections = [
        MIGRATION_PREAMBLE,
        render_knowledge_base(full_context),
        render_guide_references(reference_summary, documents),
        (
            "## Using The Guides\n"
            "You have the complete content of every migration guide above. Use it to give specific migration "
            "steps, reference exact guide sections, troubleshoot issues with targeted fixes, and cover every "
            "migration requirement."
        ),
        VALIDATION_PROTOCOL,
    ]
    return "\n\n".join(section for section in sections if section)


__all__ = [
    "MIGRATION_PREAMBLE",
    "VALIDATION_PROTOCOL",
    "render_guide_references",
    "render_knowledge_base",
    "render_migration_prompt",
]
