"""Command-line interface for Contract Intelligence.

Provides ``analyze``, ``extract`` and ``features`` commands with rich
terminal output using the ``click`` and ``rich`` libraries.

Usage::

    contract-intelligence analyze contract.pdf --jurisdiction NG --standard local_labor_law
    contract-intelligence analyze msa.docx nda.pdf -j KE --advisor -o json
    contract-intelligence extract --types liability,termination contract.docx -j KE
    contract-intelligence features
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .analyzer import ContractAnalyzer
from .config import get_settings
from .errors import ContractAnalysisError
from .models import AnalysisDepth, AnalysisResult, BatchError, BatchResult, RiskLevel
from .parsers import load_document

console = Console()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _get_risk_style(level: RiskLevel) -> str:
    """Return a rich style string for a risk level."""
    return {
        RiskLevel.CRITICAL: "bold white on red",
        RiskLevel.HIGH: "bold red",
        RiskLevel.MEDIUM: "bold yellow",
        RiskLevel.LOW: "dim green",
    }.get(level, "")


def _get_risk_icon(level: RiskLevel) -> str:
    """Return an emoji icon for a risk level."""
    return {
        RiskLevel.CRITICAL: "⛔",
        RiskLevel.HIGH: "🔴",
        RiskLevel.MEDIUM: "🟡",
        RiskLevel.LOW: "🟢",
    }.get(level, "")


def _split(values: str | None) -> list[str]:
    return [v.strip() for v in values.split(",") if v.strip()] if values else []


def _build_request(
    file: Path,
    jurisdiction: str,
    language: str,
    contract_type: str | None,
    analysis_types: list[str],
    standards: list[str],
    threshold: str,
    depth: str,
    recommendations: bool,
) -> dict:
    parsed = load_document(file)
    request = {
        "document": parsed.to_request_document(),
        "analysisTypes": analysis_types,
        "jurisdiction": jurisdiction,
        "language": language,
        "complianceStandards": standards,
        "riskThreshold": threshold,
        "analysisDepth": depth,
        "includeRecommendations": recommendations,
    }
    if contract_type:
        request["contractType"] = contract_type
    return request


def _make_analyzer(advisor: bool | None) -> ContractAnalyzer:
    settings = get_settings()
    if advisor is not None:
        settings = settings.model_copy(update={"use_advisor": advisor})
    return ContractAnalyzer(settings=settings)


def _run(request_factory, advisor: bool | None = None) -> AnalysisResult:
    try:
        request = request_factory()
        with _make_analyzer(advisor) as analyzer:
            return analyzer.analyze(request)
    except (ContractAnalysisError, OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)


def _run_batch(files: tuple[Path, ...], request_factory, advisor: bool | None = None) -> BatchResult:
    """Analyze every file; unreadable or invalid files are reported, not fatal."""
    requests = []
    positions = []
    load_errors = []
    for index, file in enumerate(files):
        try:
            requests.append(request_factory(file))
        except (OSError, ValueError) as e:
            load_errors.append(BatchError(index, file.name, str(e)))
        else:
            positions.append(index)

    try:
        with _make_analyzer(advisor) as analyzer:
            batch = analyzer.analyze_many(requests)
    except (ContractAnalysisError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)

    errors = load_errors + [BatchError(positions[e.index], e.file_name, e.error) for e in batch.errors]
    return BatchResult(batch.results, tuple(sorted(errors, key=lambda e: e.index)))


@click.group()
@click.version_option(package_name="contract-intelligence")
def main() -> None:
    """📄 Contract Intelligence: jurisdiction-aware contract analysis.

    Extract clauses and terms, assess risks and compliance, detect red
    flags and score contracts.
    """
    pass


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--jurisdiction", "-j", required=True, help="ISO code or name, e.g. NG, KENYA, INTL.")
@click.option("--language", "-l", default="en", show_default=True, help="Document language code.")
@click.option("--contract-type", "-c", default=None, help="Contract type; inferred when omitted.")
@click.option("--types", "-t", "analysis_types", default="full_analysis", show_default=True,
              help="Comma-separated analysis types.")
@click.option("--standard", "standards", multiple=True,
              help="Compliance standard to check (repeatable), e.g. gdpr.")
@click.option("--threshold", type=click.Choice([r.value for r in RiskLevel], case_sensitive=False),
              default=RiskLevel.LOW.value, show_default=True, help="Minimum risk severity to report.")
@click.option("--depth", type=click.Choice([d.value for d in AnalysisDepth], case_sensitive=False),
              default=AnalysisDepth.STANDARD.value, show_default=True, help="Analysis depth.")
@click.option("--recommendations/--no-recommendations", default=True, show_default=True,
              help="Generate recommendations.")
@click.option("--advisor/--no-advisor", default=None,
              help="Consult the LLM risk advisor (default: CONTRACT_INTEL_USE_ADVISOR).")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.option("--save", "-s", type=click.Path(path_type=Path), default=None,
              help="Save results to a JSON file.")
@click.option("--verbose", "-v", is_flag=True, help="Log pipeline progress.")
def analyze(
    files: tuple[Path, ...],
    jurisdiction: str,
    language: str,
    contract_type: str | None,
    analysis_types: str,
    standards: tuple[str, ...],
    threshold: str,
    depth: str,
    recommendations: bool,
    advisor: bool | None,
    output: str,
    save: Path | None,
    verbose: bool,
) -> None:
    """Run a full analysis on one or more contracts.

    Several files are analyzed as a batch with the same options.

    Example: contract-intelligence analyze contract.pdf -j NG --standard local_labor_law
    """
    _configure_logging(verbose)

    def request_factory(file: Path) -> dict:
        return _build_request(
            file,
            jurisdiction,
            language,
            contract_type,
            _split(analysis_types),
            [s for value in standards for s in _split(value)],
            threshold,
            depth,
            recommendations,
        )

    if len(files) == 1:
        with console.status("[bold blue]Analyzing contract...", spinner="dots"):
            outcome = _run(lambda: request_factory(files[0]), advisor)
    else:
        with console.status(f"[bold blue]Analyzing {len(files)} contracts...", spinner="dots"):
            outcome = _run_batch(files, request_factory, advisor)

    payload = json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False)
    if output == "json":
        click.echo(payload)
    elif isinstance(outcome, BatchResult):
        _render_batch(outcome)
    else:
        _render_analysis(outcome)

    if save:
        save.write_text(payload, encoding="utf-8")
        console.print(f"\n[dim]Results saved to {save}[/]")


@main.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option("--jurisdiction", "-j", default="INTL", show_default=True, help="Jurisdiction code.")
@click.option("--language", "-l", default="en", show_default=True, help="Document language code.")
@click.option("--types", "-t", "clause_types", default=None,
              help="Comma-separated clause types (e.g., liability,termination).")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def extract(file: Path, jurisdiction: str, language: str, clause_types: str | None, output: str) -> None:
    """Extract clauses from a contract, optionally filtered by type.

    Example: contract-intelligence extract --types termination,liability contract.pdf
    """
    _configure_logging(False)
    wanted = {t.lower() for t in _split(clause_types)}

    with console.status("[bold blue]Extracting clauses...", spinner="dots"):
        result = _run(
            lambda: _build_request(
                file, jurisdiction, language, None, ["clause_extraction"], [],
                RiskLevel.LOW.value, AnalysisDepth.STANDARD.value, False,
            )
        )

    clauses = [c for c in result.extracted_clauses if not wanted or c.type.value in wanted]
    if output == "json":
        click.echo(json.dumps([c.to_dict() for c in clauses], indent=2, ensure_ascii=False))
    else:
        _render_clauses(clauses, file.name)


@main.command()
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def features(output: str) -> None:
    """List supported jurisdictions, languages, contract types and standards."""
    try:
        with ContractAnalyzer() as analyzer:
            supported = analyzer.supported_features()
    except ContractAnalysisError as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)

    if output == "json":
        click.echo(json.dumps(supported, indent=2))
        return

    table = Table(title=f"Supported features (rules {supported['ruleSetVersion']})", show_lines=True)
    table.add_column("Feature", style="cyan", width=20)
    table.add_column("Values", style="white")
    for key, values in supported.items():
        if key == "ruleSetVersion":
            continue
        table.add_row(key, ", ".join(values))
    console.print(table)


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------


def _render_analysis(result: AnalysisResult) -> None:
    """Render a full AnalysisResult with rich formatting."""
    console.print()
    document = result.document
    inferred = " (inferred)" if result.contract_type_inferred else ""
    console.print(Panel(
        f"[bold]{document.file_name or 'document'}[/]\n"
        f"Type: {result.contract_type.value}{inferred} | "
        f"Jurisdiction: {result.jurisdiction.value} | "
        f"Pages: {document.page_count} | "
        f"Clauses: {result.summary.clauses_found} | "
        f"Risks: {result.summary.risks_identified}",
        title=f"📄 Contract Analysis {result.analysis_id}",
        border_style="blue",
    ))

    if result.extracted_clauses:
        _render_clauses(list(result.extracted_clauses), document.file_name or "document")

    if result.extracted_terms:
        table = Table(title="Extracted Terms", show_lines=False)
        table.add_column("Category", style="cyan", width=12)
        table.add_column("Value", style="white")
        table.add_column("Normalized", style="green")
        for term in result.extracted_terms[:30]:  # Cap display at 30
            table.add_row(term.category.value, term.value[:80], term.normalized or "")
        if len(result.extracted_terms) > 30:
            table.add_row("...", f"({len(result.extracted_terms) - 30} more)", "")
        console.print(table)
        console.print()

    if result.red_flags:
        console.print("[bold]Red Flags[/]")
        for flag in result.red_flags:
            style = _get_risk_style(flag.severity)
            where = f" ({flag.clause.clause_id})" if flag.clause else ""
            console.print(f"  🚩 [{style}]{flag.title}[/]{where}: {flag.description}")
        console.print()

    if result.identified_risks:
        console.print("[bold]Risk Assessment[/]")
        for risk in result.identified_risks:
            icon = _get_risk_icon(risk.severity)
            style = _get_risk_style(risk.severity)
            console.print(f"  {icon} [{style}]{risk.severity.value.upper()}[/]: {risk.description}")
            if risk.mitigation:
                console.print(f"      💡 {risk.mitigation}")
        console.print()

    for check in result.compliance_checks:
        table = Table(
            title=f"{check.standard.value.upper()} ({check.jurisdiction.value}): {check.percentage:.0f}%",
            show_lines=False,
        )
        table.add_column("Requirement", style="white")
        table.add_column("Status", justify="center", width=10)
        table.add_column("Note", style="dim")
        for requirement in check.requirements:
            status_style = {"satisfied": "green", "partial": "yellow", "missing": "red"}[requirement.status.value]
            table.add_row(
                requirement.description,
                Text(requirement.status.value, style=status_style),
                requirement.note or "",
            )
        console.print(table)
        console.print()

    if result.recommendations:
        console.print("[bold]Recommendations[/]")
        for rec in result.recommendations:
            console.print(f"  \\[{rec.priority.value}] {rec.title}")
        console.print()

    if result.negotiation_points:
        console.print("[bold]Negotiation Points[/]")
        for point in result.negotiation_points:
            style = _get_risk_style(point.risk_if_unchanged)
            console.print(f"  🤝 [{style}]{point.clause.clause_id}[/]: {point.issue}")
            console.print(f"      [dim]Now:[/] {point.current_position}")
            console.print(f"      [dim]Ask:[/] {point.suggested_position}")
        console.print()

    score = result.score
    if score.overall < 50:
        score_style = "bold red"
    elif score.overall < 70:
        score_style = "bold yellow"
    else:
        score_style = "bold green"
    breakdown = score.breakdown
    console.print(
        f"Contract Score: [{score_style}]{score.overall:.1f}[/] "
        f"(risk {breakdown.risk:.0f}, compliance {breakdown.compliance:.0f}, "
        f"completeness {breakdown.completeness:.0f}, clarity {breakdown.clarity:.0f}; "
        f"{score.benchmark.percentile:.0f}th percentile in {score.benchmark.jurisdiction.value})"
    )
    for warning in result.summary.warnings:
        console.print(f"[yellow]Warning:[/] {warning}")
    console.print()


def _render_batch(batch: BatchResult) -> None:
    """Render every analysis in a batch, then a summary table."""
    for result in batch.results:
        _render_analysis(result)

    table = Table(title=f"Batch Summary: {batch.total} documents", show_lines=False)
    table.add_column("File", style="cyan")
    table.add_column("Score", justify="right", width=7)
    table.add_column("Risks", justify="right", width=6)
    table.add_column("Red flags", justify="right", width=9)
    for result in batch.results:
        table.add_row(
            result.document.file_name or result.analysis_id,
            f"{result.score.overall:.1f}",
            str(result.summary.risks_identified),
            str(len(result.red_flags)),
        )
    for error in batch.errors:
        table.add_row(error.file_name or f"#{error.index + 1}", Text("failed", style="bold red"), "", "")
    console.print(table)
    for error in batch.errors:
        console.print(f"[bold red]Error:[/] {error.file_name or f'#{error.index + 1}'}: {error.error}")
    console.print(f"Average score: {batch.average_score:.1f}")
    console.print()


def _render_clauses(clauses: list, filename: str) -> None:
    """Render clauses as a rich table."""
    table = Table(title=f"Clauses: {filename}", show_lines=True)
    table.add_column("#", justify="right", width=4)
    table.add_column("Type", style="cyan", width=20)
    table.add_column("Text (excerpt)", style="white", max_width=60)
    table.add_column("Conf.", justify="center", width=6)
    table.add_column("Span", justify="center", width=14)

    for i, clause in enumerate(clauses, 1):
        excerpt = clause.text[:120].replace("\n", " ") + ("..." if len(clause.text) > 120 else "")
        table.add_row(
            str(i),
            clause.type.value.replace("_", " ").title(),
            excerpt,
            f"{clause.confidence:.0%}",
            f"{clause.start}-{clause.end}",
        )

    console.print(table)
    console.print()


if __name__ == "__main__":
    main()
