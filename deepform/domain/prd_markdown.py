"""Deterministic PRD markdown rendering from a normalized requirements artifact."""

from deepform.domain.language import QUALITY_KEYS, lang_pack


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _numbered(items: list[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def render_prd_markdown(prd: dict, theme: str, lang: str | None = None) -> str:
    """Render the PRD as markdown.

    Args:
        prd: The inner ``prd`` object of a requirements artifact (or the artifact itself)
        theme: Session theme, used as the document title
        lang: Language code for headings and labels

    Returns:
        Markdown text ending with a newline
    """
    prd = prd.get("prd", prd)
    pack = lang_pack(lang)
    h = pack.prd_headings

    features = "\n\n".join(
        f"### {f.get('name', '')}\n{f.get('description', '')}\n\n"
        f"**{h['priority']}**: {f.get('priority', '')}\n\n"
        f"**{h['acceptance']}**:\n{_bullets(f.get('acceptanceCriteria', []))}\n\n"
        f"**{h['edge_cases']}**:\n{_bullets(f.get('edgeCases', []))}"
        for f in prd.get("coreFeatures", [])
    )

    flows = "\n\n".join(
        f"### {flow.get('name', '')}\n{_numbered(flow.get('steps', []))}"
        for flow in prd.get("userFlows", [])
    )

    quality_source = prd.get("qualityRequirements") or {}
    quality_sections = []
    for key in QUALITY_KEYS:
        item = quality_source.get(key)
        if not item or not (item.get("description") or item.get("criteria")):
            continue
        quality_sections.append(
            f"### {pack.quality_labels[key]}\n{item.get('description', '')}\n{_bullets(item.get('criteria', []))}"
        )
    quality = "\n\n".join(quality_sections)

    columns = h["metric_columns"].split("|")
    metric_rows = "\n".join(
        f"| {m.get('name', '')} | {m.get('definition', '')} | {m.get('target', '')} |"
        for m in prd.get("metrics", [])
    )

    sections = [
        f"# PRD: {theme}",
        f"## {h['problem']}\n{prd.get('problemDefinition', '')}",
        f"## {h['target_user']}\n{prd.get('targetUser', '')}",
        f"## {h['jobs']}\n{_numbered(prd.get('jobsToBeDone', []))}",
        f"## {h['features']}\n{features}",
        f"## {h['non_goals']}\n{_bullets(prd.get('nonGoals', []))}",
        f"## {h['flows']}\n{flows}",
        f"## {h['quality']}\n{quality}",
        f"## {h['metrics']}\n"
        f"| {' | '.join(columns)} |\n"
        f"|{'|'.join('------' for _ in columns)}|\n"
        f"{metric_rows}",
        f"## {h['constraints']}\n\n{h['constraints_intro']}\n\n{_bullets(list(pack.implementation_constraints))}",
    ]
    return "\n\n".join(sections) + "\n"
