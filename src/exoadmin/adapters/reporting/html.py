"""HTML report rendering with Jinja2."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader, select_autoescape

if TYPE_CHECKING:
    from exoadmin.domain.ports import TableDocument

TEMPLATE_NAME = "report.html.j2"

# Status column values that get a colour in the rendered table.
_STATUS_CLASSES = {"Applied": "applied", "Skipped": "skipped", "Failed": "failed"}


def _status_class(value: str) -> str:
    return _STATUS_CLASSES.get(value, "")


def build_environment() -> Environment:
    env = Environment(
        loader=PackageLoader("exoadmin.adapters.reporting", "templates"),
        autoescape=select_autoescape(["html", "xml", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["status_class"] = _status_class
    return env


@dataclass(slots=True)
class HtmlReportRenderer:
    """Render a table document as a styled, self-contained HTML page."""

    suffix: str = "html"
    env: Environment = field(default_factory=build_environment)

    def __call__(self, document: TableDocument) -> str:
        template = self.env.get_template(TEMPLATE_NAME)
        return template.render(
            title=document.title,
            columns=list(document.columns),
            rows=list(document.rows),
            summary=dict(document.summary),
            generated_at=(
                document.generated_at.isoformat(timespec="seconds")
                if document.generated_at
                else None
            ),
        )
