"""Artifact serialization — renders a CompiledPack once and writes it to a folder and a zip."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path

from .compiler import CompiledPack, SkillItem
from .errors import SerializationFailure

logger = logging.getLogger(__name__)

ROUTES_VERSION = "0.2.0"
PACK_VERSION = "0.1.0"
SOURCE_EXCERPT_CHARS = 120_000

# Fixed member timestamp so identical packs produce identical archives.
ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class ManifestFile:
    """One rendered artifact, addressed by its POSIX relative path."""
    relative_path: str
    content: str

    @property
    def data(self) -> bytes:
        return self.content.encode("utf-8")


@dataclass(frozen=True)
class WriteResult:
    """Where a pack was written and what it contained."""
    folder: Path
    zip_path: Path
    files: tuple[ManifestFile, ...]


# ── Markdown / JSON builders ──────────────────────────────────────


def _format_weight(weight: float) -> str:
    return f"{weight:g}"


def build_main_skill_md(pack: CompiledPack) -> str:
    description = (
        f"Auto-compiled from {pack.source_count} PDF file(s). "
        f"Includes {len(pack.items)} atomic skills."
    )
    return "\n".join([
        "---",
        f"name: {pack.skill_name}",
        f"description: {description}",
        f"version: {PACK_VERSION}",
        "---",
        "",
        f"# {pack.skill_name}",
        "",
        "This skill pack is auto-compiled from a source PDF.",
        "",
        "## How it works",
        "",
        "- The agent reads `skills/index.md` to route sub-skills.",
        "- Each `skills/skill-xxx.md` contains one atomic capability unit.",
        "- Use this pack when user intent matches a topic in the source book/manual.",
        "",
        "## Routing",
        "",
        "When request includes concepts, methods, procedures, troubleshooting, or checklist",
        "from this domain, select the most relevant atomic skill in `skills/index.md`.",
        "",
        "## Stats",
        "",
        f"- Generated atomic skills: {len(pack.items)}",
        "- Routing metadata: `skills/routes.json`",
        "- Dependency graph: `skills/dependency-graph.md`",
    ])


def build_readme_md(pack: CompiledPack) -> str:
    return "\n".join([
        f"# {pack.skill_name}",
        "",
        "Generated by pdf2skill.",
        "",
        f"Language mode: {pack.language_mode}",
        f"Input files: {pack.source_count}",
        "",
        "## Files",
        "",
        "- `SKILL.md`: entry skill",
        "- `skills/index.md`: router index",
        "- `skills/skill-xxx.md`: atomic skills",
        "- `references/source_excerpt.md`: extracted source text",
        "",
        "## Install",
        "",
        "Copy this folder to your skill directory.",
    ])


def build_index_md(pack: CompiledPack) -> str:
    """Routing table with one row per item. The cutoff is advisory and filters nothing."""
    lines = [
        "# Skill Index",
        "",
        "This file routes user requests to atomic skills.",
        "",
        f"Routing score cutoff: {pack.min_score}",
        "",
        "| Skill ID | Topic | Trigger Hint | Base Score |",
        "|---|---|---|---|",
    ]
    for item in pack.items:
        lines.append(f"| {item.id} | {item.title} | {item.trigger} | {item.base_score} |")
    return "\n".join(lines)


def build_dependency_graph_md(pack: CompiledPack) -> str:
    lines = ["# Dependency Graph", "", "```mermaid", "graph LR"]
    for item in pack.items:
        label = item.title.replace('"', "'")
        lines.append(f'  {item.id}["{item.id}: {label}"]')
    for edge in pack.dependencies:
        lines.append(f"  {edge.source} -->|{_format_weight(edge.weight)}| {edge.target}")
    lines += [
        "```",
        "",
        "## Notes",
        "",
        "- Edge weight is keyword-overlap similarity (Jaccard).",
        "- Use stronger links first when composing multi-skill answers.",
    ]
    return "\n".join(lines)


def build_routes_json(pack: CompiledPack) -> str:
    payload = {
        "version": ROUTES_VERSION,
        "minScore": pack.min_score,
        "skills": [
            {
                "id": item.id,
                "title": item.title,
                "trigger": item.trigger,
                "baseScore": item.base_score,
                "keywords": list(item.keywords),
            }
            for item in pack.items
        ],
        "dependencies": [edge.to_dict() for edge in pack.dependencies],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def build_atomic_skill_md(item: SkillItem) -> str:
    if item.steps:
        step_lines = [f"{n}. {step}" for n, step in enumerate(item.steps, start=1)]
    else:
        step_lines = ["1. No explicit numbered steps found in source."]

    if item.conditions:
        condition_lines = [f"- {c}" for c in item.conditions]
    else:
        condition_lines = ["- No explicit IF/ELSE style branch found in source."]

    return "\n".join([
        "---",
        f"name: {item.id}",
        f"description: {item.title}",
        "---",
        "",
        f"# {item.title}",
        "",
        "## Trigger",
        "",
        f"Use this skill when the user asks about: {item.title}",
        "",
        f"**Keywords**: {', '.join(item.keywords)}",
        "",
        "## Input",
        "",
        "- User objective",
        "- Current constraints and context",
        "",
        "## Procedure",
        "",
        "1. Extract the user's concrete target.",
        "2. Map target to the applicable rules/methods below.",
        "3. Output a concise, actionable plan.",
        "",
        "## Extracted Steps",
        "",
        *step_lines,
        "",
        "## Conditions / Branches",
        "",
        *condition_lines,
        "",
        "## Knowledge",
        "",
        item.content,
    ])


def render_manifest(pack: CompiledPack) -> tuple[ManifestFile, ...]:
    """Render every artifact of a pack, in a fixed order."""
    files = [
        ManifestFile("SKILL.md", build_main_skill_md(pack)),
        ManifestFile("README.md", build_readme_md(pack)),
        ManifestFile("skills/index.md", build_index_md(pack)),
        ManifestFile("skills/dependency-graph.md", build_dependency_graph_md(pack)),
        ManifestFile("skills/routes.json", build_routes_json(pack)),
    ]
    files.extend(
        ManifestFile(f"skills/{item.id}.md", build_atomic_skill_md(item))
        for item in pack.items
    )
    files.append(
        ManifestFile("references/source_excerpt.md", pack.source_text[:SOURCE_EXCERPT_CHARS])
    )
    return tuple(files)


# ── Writers ───────────────────────────────────────────────────────


def write_folder(base_dir: Path, files: tuple[ManifestFile, ...]) -> None:
    """Write each manifest entry under ``base_dir``."""
    for f in files:
        target = base_dir / f.relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(f.data)


def write_zip(zip_path: Path, files: tuple[ManifestFile, ...]) -> None:
    """Write the manifest to a deflated zip, replacing ``zip_path`` atomically."""
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{zip_path.name}.", suffix=".tmp", dir=zip_path.parent
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for f in files:
                info = zipfile.ZipInfo(f.relative_path, date_time=ZIP_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                zf.writestr(info, f.data)
        os.replace(tmp_path, zip_path)
    finally:
        tmp_path.unlink(missing_ok=True)


def write_pack(pack: CompiledPack, outdir: str | Path) -> WriteResult:
    """Render a pack and write it to ``outdir/<name>/`` and ``outdir/<name>.zip``.

    The zip is removed up front and only written once the folder is complete,
    so its presence marks a finished compile.

    Raises:
        SerializationFailure: If either sink cannot be written.
    """
    outdir = Path(outdir).resolve()
    folder = outdir / pack.skill_name
    zip_path = outdir / f"{pack.skill_name}.zip"
    files = render_manifest(pack)

    try:
        zip_path.unlink(missing_ok=True)
        write_folder(folder, files)
        write_zip(zip_path, files)
    except (OSError, zipfile.BadZipFile) as e:
        raise SerializationFailure(f"Failed to write skill pack: {e}") from e

    if not zip_path.exists():
        raise SerializationFailure("Compilation finished but ZIP file was not generated.")

    logger.info("Wrote %d files to %s and %s", len(files), folder, zip_path)
    return WriteResult(folder=folder, zip_path=zip_path, files=files)
