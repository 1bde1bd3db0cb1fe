"""
Report Generator - console, JSON and HTML renditions of an audit report.

JSON and HTML artifacts land in <reports_dir>/<category>/<timestamp>.<ext>.
"""

import os
from datetime import datetime
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from labaudit.logger import logger
from labaudit.schemas.audit_result import AuditReportOut
from labaudit.services.scoring.models import AuditReport, CRITICAL, WARNING

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

SEVERITY_STYLE = {
    CRITICAL: "bold red",
    WARNING: "yellow",
}

PRIORITY_STYLE = {
    "critical": "bold red",
    "high": "yellow",
    "medium": "cyan",
}


def report_timestamp(moment: datetime) -> str:
    """ISO-8601 timestamp safe for file names (':' and '.' replaced by '-')."""
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"


def score_style(score: int, threshold: int) -> str:
    if score >= threshold:
        return "green"
    if score >= threshold - 20:
        return "yellow"
    return "red"


class ReportWriter:
    """Persist reports as JSON/HTML files."""

    def __init__(self, reports_dir: str):
        self.reports_dir = reports_dir
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"])
        )

    def _path(self, report: AuditReport, extension: str) -> str:
        moment = report.completed_at or report.started_at
        directory = os.path.join(self.reports_dir, report.category)
        os.makedirs(directory, exist_ok=True)
        return os.path.join(directory, f"{report_timestamp(moment)}.{extension}")

    def to_json(self, report: AuditReport) -> str:
        return AuditReportOut.from_report(report).model_dump_json(indent=2)

    def render_html(self, report: AuditReport) -> str:
        template = self.env.get_template("audit_report.html")
        return template.render(
            report=AuditReportOut.from_report(report),
            generated=datetime.now().strftime("%B %d, %Y %H:%M")
        )

    def _write(self, report: AuditReport, extension: str, content: str) -> Optional[str]:
        try:
            path = self._path(report, extension)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Could not save {extension} report: {e}")
            return None
        logger.info(f"Report saved to {path}")
        return path

    def save_json(self, report: AuditReport) -> Optional[str]:
        """Write the JSON report; returns its path, or None when it could not be written."""
        return self._write(report, "json", self.to_json(report))

    def save_html(self, report: AuditReport) -> Optional[str]:
        return self._write(report, "html", self.render_html(report))


class ConsoleReporter:
    """Human-readable report on standard output."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print(self, report: AuditReport):
        console = self.console

        console.print()
        console.print(Panel.fit(
            f"[bold cyan]{escape(report.title)}[/bold cyan]\n"
            f"Target: [yellow]{escape(report.target)}[/yellow]\n"
            f"Category: [cyan]{report.category}[/cyan]",
            border_style="cyan"
        ))

        table = Table(box=box.SIMPLE_HEAVY)
        table.add_column("Check", style="bold")
        table.add_column("Weight", justify="right")
        table.add_column("Score", justify="right")
        table.add_column("Findings", justify="right")

        for result in report.results:
            style = score_style(result.score, report.pass_threshold)
            table.add_row(
                escape(result.name),
                str(report.weights.get(result.name, 0)),
                f"[{style}]{result.score}/100[/{style}]",
                str(len(result.findings))
            )
        console.print(table)

        for result in report.results:
            if not result.findings:
                continue
            console.print(f"[bold]{escape(result.name)}[/bold]")
            for finding in result.findings:
                style = SEVERITY_STYLE.get(finding.severity, "dim")
                console.print(f"  [{style}]{finding.severity:>8}[/{style}]  {escape(finding.message)}")

        style = score_style(report.overall_score, report.pass_threshold)
        verdict = "[green]PASSED[/green]" if report.passed else "[red]FAILED[/red]"
        console.print()
        console.print(
            f"Overall score: [{style}]{report.overall_score}/100[/{style}]  "
            f"Status: [bold]{report.status_tier}[/bold]  {verdict} "
            f"(threshold {report.pass_threshold}, critical findings {report.critical_count})"
        )

        if report.recommendations:
            console.print()
            console.print("[bold]Recommendations[/bold]")
            for i, rec in enumerate(report.recommendations, 1):
                style = PRIORITY_STYLE.get(rec.priority, "white")
                console.print(f"  {i}. [{style}]{rec.priority.upper()}[/{style}] {escape(rec.check)}: {escape(rec.message)}")
        console.print()
