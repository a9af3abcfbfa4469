import io
import csv
import re
import time
from datetime import date

from adstudio.models import FUNNEL_STAGES

CSV_HEADERS = [
    "Stage", "Concept", "Format", "Hook 1", "Hook 2", "Hook 3", "Objective",
    "Scroll Stopper", "Problem", "Solution", "Benefits", "Proof", "CTA",
    "Suggested Visual", "Script",
]


def _hook(concept: dict, i: int) -> str:
    hooks = concept.get("hooks") or []
    return hooks[i] if i < len(hooks) and hooks[i] else ""


def concepts_to_csv(concepts: list[dict]) -> str:
    """One row per concept; every data cell quoted so spreadsheets keep commas and newlines."""
    buf = io.StringIO()
    buf.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for c in concepts:
        writer.writerow([
            c.get("funnel_stage") or "",
            c.get("concept") or "",
            c.get("format") or "",
            _hook(c, 0),
            _hook(c, 1),
            _hook(c, 2),
            c.get("marketing_objective") or "",
            c.get("scroll_stopper") or "",
            c.get("problem") or "",
            c.get("solution") or "",
            c.get("benefits") or "",
            c.get("proof") or "",
            c.get("cta") or "",
            c.get("suggested_visual") or "",
            c.get("script_outline") or "",
        ])
    return buf.getvalue()


def concepts_to_text(concepts: list[dict], analysis: dict, today: date | None = None) -> str:
    """Readable brief grouped by funnel stage; stages without concepts are left out."""
    today = today or date.today()
    lines = [
        f"CREATIVE CONCEPTS - {analysis.get('brand_name', '')}",
        f"Website: {analysis.get('website_url', '')}",
        f"Date: {today.strftime('%d/%m/%Y')}",
        "",
        "=" * 80,
        "",
    ]

    for stage in FUNNEL_STAGES:
        stage_concepts = [c for c in concepts if c.get("funnel_stage") == stage]
        if not stage_concepts:
            continue

        lines += ["", f"### {stage} - {len(stage_concepts)} concepts", ""]
        for i, c in enumerate(stage_concepts, start=1):
            lines += [f"## Concept {i}: {c.get('concept', '')}", ""]
            lines.append(f"Format: {c.get('format', '')}")
            lines += [f"Objective: {c.get('marketing_objective', '')}", ""]
            lines.append("Hooks:")
            for j, hook in enumerate(c.get("hooks") or [], start=1):
                lines.append(f"  {j}. {hook}")
            lines.append("")
            for label, key in (
                ("Scroll Stopper", "scroll_stopper"),
                ("Problem", "problem"),
                ("Solution", "solution"),
                ("Benefits", "benefits"),
                ("Proof", "proof"),
                ("CTA", "cta"),
                ("Suggested Visual", "suggested_visual"),
                ("Script", "script_outline"),
            ):
                lines += [f"{label}:", c.get(key) or "", ""]
            lines += ["-" * 80, ""]

    return "\n".join(lines) + "\n"


def export_filename(analysis: dict, ext: str) -> str:
    """ASCII-only name, safe to send in a Content-Disposition header."""
    brand = re.sub(r"[^A-Za-z0-9_-]+", "_", analysis.get("brand_name") or "brand").strip("_") or "brand"
    return f"concepts_{brand}_{int(time.time() * 1000)}.{ext}"
