"""Terminal output formatting utilities."""
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from accessguard.models.scan import Impact
from accessguard.schemas.scan import ScanResult

console = Console()

IMPACT_COLORS = {
    Impact.CRITICAL: "bold red",
    Impact.SERIOUS: "red",
    Impact.MODERATE: "yellow",
    Impact.MINOR: "cyan",
}


def score_color(score: int | None) -> str:
    """Green from 90, yellow from 70, red below."""
    if score is None:
        return "dim"
    if score >= 90:
        return "green"
    if score >= 70:
        return "yellow"
    return "red"


def format_impact_badge(impact: Impact) -> str:
    """Format impact level as terminal-style badge."""
    color = IMPACT_COLORS.get(impact, "white")
    return f"[{color}]■[/{color}] {impact.value.upper()}"


def impact_counts(result: ScanResult) -> dict[Impact, int]:
    counts = {impact: 0 for impact in Impact}
    for violation in result.violations:
        counts[violation.impact] += 1
    return counts


def print_scan_result(result: ScanResult, max_nodes: int = 3) -> None:
    """Print a scan report to the terminal."""
    color = score_color(result.score)
    counts = impact_counts(result)
    summary = "  ".join(
        f"{format_impact_badge(impact)} {count}" for impact, count in counts.items()
    )

    console.print(
        Panel(
            f"[bold]Score:[/bold] [{color}]{result.score}/100[/{color}]  |  "
            f"[bold]Violations:[/bold] {len(result.violations)}  |  "
            f"[bold]Passes:[/bold] {result.passes}  |  "
            f"[bold]Needs review:[/bold] {result.incomplete}\n"
            f"{summary}\n"
            f"[dim]Scanned in {result.scan_duration / 1000:.1f}s at {result.timestamp:%Y-%m-%d %H:%M:%S} UTC[/dim]",
            title=f"[bold]{result.url}[/bold]",
            border_style=color,
        )
    )

    if not result.violations:
        console.print("  [green]✓[/green] No accessibility violations found")
        return

    for violation in result.violations:
        console.print(f"\n  {format_impact_badge(violation.impact)}  [bold]{violation.help}[/bold] [dim]({violation.id})[/dim]")
        console.print(f"    {violation.description}")
        console.print(f"    [dim]{violation.help_url}[/dim]")

        for node in violation.nodes[:max_nodes]:
            target = ", ".join(node.target) or "-"
            console.print(f"    - [cyan]{target}[/cyan]")
            console.print(f"      [green]Fix:[/green] {node.fix_suggestion}")
        if len(violation.nodes) > max_nodes:
            console.print(f"      [dim]... and {len(violation.nodes) - max_nodes} more elements[/dim]")


def print_summary_table(results: list[tuple[str, ScanResult | None, str | None]]) -> None:
    """Summary table for several scans: (url, result, error)."""
    table = Table(title="Scan Summary")
    table.add_column("URL", style="cyan", max_width=50)
    table.add_column("Score", justify="center")
    table.add_column("Critical", justify="center")
    table.add_column("Serious", justify="center")
    table.add_column("Violations", justify="center")

    for url, result, error in results:
        if result is None:
            table.add_row(url, "[dim]ERROR[/dim]", "-", "-", f"[dim]{error or '-'}[/dim]")
            continue

        counts = impact_counts(result)
        color = score_color(result.score)
        table.add_row(
            url,
            f"[{color}]{result.score}[/{color}]",
            str(counts[Impact.CRITICAL]),
            str(counts[Impact.SERIOUS]),
            str(len(result.violations)),
        )

    console.print(table)
