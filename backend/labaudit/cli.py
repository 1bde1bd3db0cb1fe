"""
Lab Auditor - command line entry point.

Exit codes: 0 audit passed, 1 audit failed (or invalid definitions on
validate), 2 invalid invocation or unloadable definition, 130 interrupted.
"""

import asyncio
import sys

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from labaudit.config import TargetConfig, settings
from labaudit.errors import AuditDefinitionError
from labaudit.logger import set_level
from labaudit.services.audit_runner import AuditRunner
from labaudit.services.definitions import builtin_names, load_definition
from labaudit.services.report import ConsoleReporter, ReportWriter

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

console = Console()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version="1.0.0", prog_name=settings.APP_NAME)
@click.option("--verbose", "-v", is_flag=True, help="Debug logs")
def cli(verbose):
    """
    Audit a running laboratory application and its source tree.

    Examples:

      labaudit list

      labaudit run endpoint-security --base-url http://localhost:5000

      labaudit run ./my-audit.yaml --html
    """
    if verbose:
        set_level("DEBUG")


@cli.command(name="list")
def list_cmd():
    """List the built-in audits."""
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("Audit", style="bold cyan")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Checks", justify="right")

    for name in builtin_names():
        try:
            definition = load_definition(name)
        except AuditDefinitionError as e:
            table.add_row(name, f"[red]invalid: {escape(e.message)}[/red]", "", "")
            continue
        table.add_row(name, definition.title, definition.category, str(len(definition.checks)))

    console.print(table)


@cli.command(name="run")
@click.argument("audit")
@click.option("--base-url", help="Target base URL (default: AUDIT_BASE_URL)")
@click.option("--token", help="Bearer token for authenticated probes (default: AUDIT_TOKEN)")
@click.option("--project-root", type=click.Path(file_okay=False), help="Source tree for file and command checks")
@click.option("--concurrency", type=click.IntRange(min=1), help="Checks in flight (default: from the audit)")
@click.option("--reports-dir", type=click.Path(file_okay=False), help="Where reports are written")
@click.option("--no-save", is_flag=True, help="Do not write the JSON report")
@click.option("--html", is_flag=True, help="Also write an HTML report")
@click.option("--quiet", "-q", is_flag=True, help="Only print the overall result")
def run_cmd(audit, base_url, token, project_root, concurrency, reports_dir, no_save, html, quiet):
    """
    Run AUDIT (a built-in name or a YAML file) and exit 0 when it passes.
    """
    if quiet:
        set_level("WARNING")

    try:
        definition = load_definition(audit)
    except AuditDefinitionError as e:
        console.print(f"[red]Invalid audit[/red] {escape(e.source)}: {escape(e.message)}", soft_wrap=True)
        sys.exit(EXIT_USAGE)

    target = TargetConfig.from_settings(
        base_url=base_url,
        token=token,
        project_root=project_root,
        reports_dir=reports_dir
    )

    report = asyncio.run(AuditRunner(target).run(definition, concurrency=concurrency))

    if quiet:
        verdict = "PASSED" if report.passed else "FAILED"
        console.print(f"{report.audit}: {report.overall_score}/100 {report.status_tier} {verdict}", markup=False, soft_wrap=True)
    else:
        ConsoleReporter(console).print(report)

    writer = ReportWriter(target.reports_dir)
    if not no_save:
        path = writer.save_json(report)
        if path and not quiet:
            console.print(f"JSON report: {path}", markup=False, soft_wrap=True)
    if html:
        path = writer.save_html(report)
        if path and not quiet:
            console.print(f"HTML report: {path}", markup=False, soft_wrap=True)

    sys.exit(EXIT_PASSED if report.passed else EXIT_FAILED)


@cli.command(name="validate")
@click.argument("audits", nargs=-1, required=True)
def validate_cmd(audits):
    """Load AUDITS and report their weight sums."""
    invalid = 0
    for audit in audits:
        try:
            definition = load_definition(audit)
        except AuditDefinitionError as e:
            invalid += 1
            console.print(f"[red]invalid[/red]  {escape(audit)}: {escape(e.message)}", highlight=False, soft_wrap=True)
            continue

        weights = definition.weight_table()
        note = "" if weights.total == 100 else f" [yellow](weights sum to {weights.total}, normalized)[/yellow]"
        console.print(
            f"[green]ok[/green]       {definition.name}: {len(weights)} checks, "
            f"pass at {definition.pass_threshold}{note}",
            highlight=False,
            soft_wrap=True
        )

    if invalid:
        sys.exit(EXIT_FAILED)


def main():
    """Entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nInterrupted.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
