"""Renders setup metadata, summaries and status output from Jinja2 templates."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Sequence

from jinja2 import Environment, FileSystemLoader

from .catalog import Catalog
from .models import ClassificationResult

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .maintenance import ConfigStatus
    from .provision import SetupOutcome

TEMPLATES_DIR = Path(__file__).with_name("templates")


def format_size(num_bytes: int) -> str:
    """Return a ``du -h`` style size such as ``12K`` or ``1.5M``."""
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G"):
        if size < 1024 or unit == "G":
            if unit == "B":
                return f"{int(size)}{unit}"
            return f"{size:.1f}{unit}" if size < 10 else f"{size:.0f}{unit}"
        size /= 1024
    return f"{size:.0f}G"


class ReportRenderer:
    """Thin wrapper around a Jinja2 environment rooted at the bundled templates."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        directories = [str(templates_dir)] if templates_dir else []
        directories.append(str(TEMPLATES_DIR))
        self._env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def setup_info(self, outcome: "SetupOutcome", *, date: str) -> str:
        return self._render(
            "setup_info.j2",
            global_root=outcome.global_root,
            date=date,
            project=outcome.project_root.name,
            project_type=outcome.classification.label,
            python_version=outcome.classification.python_version,
            mode=outcome.plan.mode.value,
            asset_count=len(outcome.selected),
        )

    def summary(self, outcome: "SetupOutcome") -> str:
        return self._render(
            "summary.j2",
            project=outcome.project_root.name,
            outcome=outcome,
            skill_size=format_size(outcome.skill_bytes),
        )

    def classification(
        self,
        project: str,
        result: ClassificationResult,
        catalog: Catalog,
        *,
        groups: Sequence[str] = (),
        assets: Iterable[str] = (),
    ) -> str:
        order = list(catalog.category_names)
        scores = sorted(
            result.scores.items(),
            key=lambda item: (-item[1], order.index(item[0]) if item[0] in order else len(order)),
        )
        return self._render(
            "classification.j2",
            project=project,
            result=result,
            scores=scores,
            languages=_declared_order(result.detected_languages, catalog.languages),
            providers=_declared_order(result.detected_cloud_providers, catalog.providers),
            groups=list(groups),
            assets=sorted(assets),
        )

    def status(self, status: "ConfigStatus") -> str:
        return self._render("status.j2", status=status)

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context)


def _declared_order(names: Iterable[str], declared: Iterable[str]) -> list[str]:
    wanted = set(names)
    ordered = [name for name in declared if name in wanted]
    return ordered + sorted(wanted.difference(ordered))


__all__ = ["ReportRenderer", "TEMPLATES_DIR", "format_size"]
