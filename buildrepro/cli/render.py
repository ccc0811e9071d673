"""Rich renderables for builds, classifications and comparisons."""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from buildrepro.models.catalog import Build, BuildArtifact
from buildrepro.models.classification import Classification
from buildrepro.models.diff import BuildComparison, CommandDiff, MapDiff
from buildrepro.models.execution import describe_result


def _fmt_time(build: Build) -> str:
    return build.start.strftime("%Y-%m-%d %H:%M:%S")


def result_markup(build: Build) -> str:
    text = describe_result(build.result)
    return f"[green]{text}[/green]" if build.successful else f"[bold red]{text}[/bold red]"


def builds_table(builds: list[Build], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Start")
    table.add_column("Job", style="cyan")
    table.add_column("UUID")
    table.add_column("Platform")
    table.add_column("Result")
    table.add_column("Main binary sha256", style="dim")
    for build in builds:
        table.add_row(
            _fmt_time(build),
            build.job_name,
            build.uuid,
            build.platform,
            result_markup(build),
            build.output_hash or "",
        )
    return table


def artifacts_table(artifacts: list[BuildArtifact]) -> Table:
    table = Table(title="Artifacts")
    table.add_column("Path", style="cyan")
    table.add_column("SHA256", style="dim")
    table.add_column("Size", justify="right")
    for artifact in artifacts:
        table.add_row(artifact.filepath, artifact.sha256, str(artifact.size))
    return table


def build_panel(build: Build) -> Panel:
    duration = build.finish - build.start
    lines = [
        f"[bold]Job:[/bold] {build.job_name}",
        f"[bold]Platform:[/bold] {build.platform}",
        f"[bold]Started:[/bold] {_fmt_time(build)} (took {duration})",
        f"[bold]Result:[/bold] {result_markup(build)}",
        f"[bold]Input hash:[/bold] {build.input_hash or '-'}",
        f"[bold]Main binary:[/bold] "
        + (f"{build.main_binary.filepath} {build.main_binary.sha256}" if build.main_binary else "-"),
    ]
    return Panel("\n".join(lines), title=f"Build {build.uuid}", border_style="blue")


def print_classification(console: Console, classification: Classification) -> None:
    console.print(build_panel(classification.reference))
    reproduced = classification.reproduced_by
    console.print(f"[bold]Reproduced by {len(reproduced)} build(s)[/bold]")
    for build in classification.same_input_same_output:
        console.print(f"  [green]same input[/green]      {_fmt_time(build)} {build.uuid}")
    for build in classification.different_input_same_output:
        console.print(f"  [yellow]different input[/yellow] {_fmt_time(build)} {build.uuid}")
    if classification.same_input_different_output:
        console.print("[bold red]Same input, different output (not reproducible!)[/bold red]")
        for build in classification.same_input_different_output:
            console.print(f"  {_fmt_time(build)} {build.uuid} {build.output_hash}")
    for label, build in (
        ("Latest build", classification.latest),
        ("Later build with different output", classification.next_different_output),
        ("Earlier build with different output", classification.previous_different_output),
    ):
        if build is not None:
            console.print(f"[bold]{label}:[/bold] {_fmt_time(build)} {build.uuid}")


def _map_section(title: str, diff: MapDiff) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("", width=1)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in diff.removed.items():
        table.add_row("[red]-[/red]", key, value)
    for key, value in diff.added.items():
        table.add_row("[green]+[/green]", key, value)
    for change in diff.changed:
        table.add_row("[yellow]~[/yellow]", change.key, f"{change.old} -> {change.new}")
    return table


def _commands_text(label: str, diff: CommandDiff) -> Text:
    text = Text(f"  {label}:\n")
    for command in diff.old:
        text.append(f"    - {' '.join(command)}\n", style="red")
    for command in diff.new:
        text.append(f"    + {' '.join(command)}\n", style="green")
    return text


def print_comparison(console: Console, comparison: BuildComparison) -> None:
    packages = comparison.packages
    summary = Table.grid(padding=(0, 2))
    summary.add_row("opam packages removed", str(len(packages.removed)))
    summary.add_row("new opam packages installed", str(len(packages.added)))
    summary.add_row("opam packages with version changes", str(len(packages.version_changed)))
    summary.add_row("opam packages with changes in their opam file", str(len(packages.metadata_changed)))
    summary.add_row("opam packages unchanged", str(len(packages.same)))
    summary.add_row("environment variables added", str(len(comparison.env.added)))
    summary.add_row("environment variables removed", str(len(comparison.env.removed)))
    summary.add_row("environment variables changed", str(len(comparison.env.changed)))
    console.print(
        Panel(summary, title=f"{comparison.left_uuid} vs {comparison.right_uuid}")
    )

    versions = Table(title="Version changes")
    versions.add_column("Package", style="cyan")
    versions.add_column("Left")
    versions.add_column("Right")
    for change in packages.version_changed:
        versions.add_row(change.name, change.old_version, change.new_version)

    metadata: list[Text] = []
    for change in packages.metadata_changed:
        block = Text(f"{change.name}.{change.version}\n", style="bold")
        if change.build is not None:
            block.append(_commands_text("build", change.build))
        if change.install is not None:
            block.append(_commands_text("install", change.install))
        if change.url is not None:
            block.append(f"  url: {change.url.old} -> {change.url.new}\n")
        metadata.append(block)

    console.print(
        Group(
            Text("Removed: " + " ".join(str(p) for p in packages.removed), style="red"),
            Text("Added: " + " ".join(str(p) for p in packages.added), style="green"),
            versions,
            *metadata,
            _map_section("Environment", comparison.env),
            _map_section("System packages", comparison.system_packages),
        )
    )
