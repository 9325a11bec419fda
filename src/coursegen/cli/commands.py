"""CLI commands for coursegen.

Commands:
- extract: Extract text from course material
- outline: Generate a course outline draft from material
- parse: Parse a markdown outline offline into a draft
- build: Materialize an edited draft as a course
- usage: Show AI usage reports
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from coursegen.config.app_config import (
    AppConfig,
    ConfigurationError,
    load_app_config,
    require_api_config,
)
from coursegen.core.course_builder import materialize_course
from coursegen.core.markdown_parser import OutlineParseError, parse_markdown_outline
from coursegen.core.outline import OutlineEditError, read_review_yaml, write_review_yaml
from coursegen.core.outline_generator import OutlineGenerationError, generate_outline
from coursegen.core.text_extractor import TextExtractionClient, TextExtractionError
from coursegen.core.usage_ledger import UsageLedger
from coursegen.db.usage_repository import UsageBreakdownRow
from coursegen.hosts.filesystem import FileSystemCourseHost
from coursegen.llm.api_client import ApiClient
from coursegen.llm.client import build_chat_client
from coursegen.llm.errors import ApiError

app = typer.Typer(
    name="coursegen",
    help="Generate courses from documents with the Lumination AI API.",
    no_args_is_help=True,
)

console = Console()

DEFAULT_DRAFT_PATH = "data/drafts/outline_draft.yaml"
SOURCE_SUFFIX = ".source.txt"


def _load_config_or_exit(needs_api: bool = True) -> AppConfig:
    """Load config and check API settings, or exit with an error."""
    config = load_app_config()
    if not needs_api:
        return config
    try:
        return require_api_config(config)
    except ConfigurationError as e:
        console.print(f"[red]✗ {e}[/red]")
        console.print(f"  Set ${config.api.api_key_env} or edit data/config/coursegen.yaml")
        raise typer.Exit(code=1)


def _ledger(config: AppConfig) -> UsageLedger:
    return UsageLedger(Path(config.storage.usage_db))


def _extract_or_exit(api: ApiClient, files: list[str]) -> str:
    """Run batch extraction, exit if no text came out."""
    paths = [Path(f).expanduser().resolve() for f in files]
    client = TextExtractionClient(api)

    try:
        batch = client.extract_files(paths)
    except TextExtractionError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    for error in batch.errors:
        console.print(f"  [yellow]⚠ {error}[/yellow]")

    if not batch.ok:
        console.print("[red]✗ Could not extract text from any file[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[green]✓ Extracted {len(batch.text):,} chars from {len(batch.files)} file(s)[/green]"
    )
    return batch.text


def _draft_int_or_exit(document: dict, key: str, override: int | None) -> int:
    """Read an integer setting from a draft document, or exit with an error."""
    if override is not None:
        return override
    value = document.get(key) or 0
    try:
        return int(value)
    except (TypeError, ValueError):
        console.print(f"[red]✗ Invalid draft: {key} must be a number (got {value!r})[/red]")
        raise typer.Exit(code=1)


@app.command()
def extract(
    files: list[str] = typer.Argument(..., help="Files to extract (pdf, doc, docx, txt, ppt, pptx)"),
    output: str | None = typer.Option(None, "--output", "-o", help="Write text to this file"),
) -> None:
    """Extract plain text from course material."""
    config = _load_config_or_exit()
    text = _extract_or_exit(ApiClient(config.api), files)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")
        console.print(f"  [dim]output:[/dim] {output_path}")
    else:
        console.print(text)


@app.command()
def outline(
    files: list[str] = typer.Argument(..., help="Course material files"),
    title: str = typer.Option("", "--title", "-t", help="Course title (AI picks one if empty)"),
    instructions: str = typer.Option("", "--instructions", "-i", help="Audience, tone, scope..."),
    language: str | None = typer.Option(None, "--language", "-l", help="Language code"),
    category: int = typer.Option(0, "--category", "-c", help="Target category id"),
    user_id: int = typer.Option(0, "--user-id", help="User charged for AI usage"),
    output: str = typer.Option(DEFAULT_DRAFT_PATH, "--output", "-o", help="Draft YAML path"),
) -> None:
    """Generate a course outline draft for review.

    Writes the draft YAML (outline plus course settings) and the combined
    source text next to it. Edit the draft, then run: coursegen build <draft>
    """
    config = _load_config_or_exit()
    api = ApiClient(config.api)
    language = language or config.generation.default_language

    source_text = _extract_or_exit(api, files)

    console.print("[blue]Generating outline...[/blue]")
    try:
        result = generate_outline(
            source_text,
            title=title,
            instructions=instructions,
            language=language,
            chat=build_chat_client(config, api),
            ledger=_ledger(config),
            user_id=user_id,
            max_source_chars=config.generation.outline_source_chars,
        )
    except ApiError as e:
        console.print(f"[red]✗ AI service error: {e}[/red]")
        raise typer.Exit(code=1)
    except (OutlineGenerationError, OutlineParseError) as e:
        console.print(f"[red]✗ {e}[/red]")
        console.print("  Try again or adjust the instructions")
        raise typer.Exit(code=1)

    draft_path = Path(output)
    source_path = draft_path.with_suffix(SOURCE_SUFFIX)
    source_path.parent.mkdir(parents=True, exist_ok=True)
    source_path.write_text(source_text, encoding="utf-8")

    write_review_yaml(
        {
            "title": result.title or title,
            "category_id": category,
            "language": language,
            "user_id": user_id,
            "source_file": source_path.name,
            "outline": result.to_dict(),
        },
        draft_path,
    )

    console.print(f"[green]✓ Outline generated: {result.title or title}[/green]")
    console.print(f"  [dim]modules:[/dim] {len(result.modules)}")
    console.print(f"  [dim]lessons:[/dim] {result.lesson_count}")
    console.print(f"  [dim]draft:[/dim]   {draft_path}")
    console.print(f"\n[cyan]Edit the draft and run:[/cyan] coursegen build {draft_path}")


@app.command()
def parse(
    markdown_file: str = typer.Argument(..., help="Markdown outline file"),
    title: str = typer.Option("", "--title", "-t", help="Course title"),
    output: str | None = typer.Option(None, "--output", "-o", help="Draft YAML path"),
) -> None:
    """Parse a markdown outline into a draft (no AI calls)."""
    path = Path(markdown_file)
    if not path.exists():
        console.print(f"[red]✗ File not found: {path}[/red]")
        raise typer.Exit(code=1)

    try:
        result = parse_markdown_outline(path.read_text(encoding="utf-8"), title)
    except OutlineParseError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    draft_path = Path(output) if output else path.with_suffix(".yaml")
    write_review_yaml(
        {
            "title": title,
            "category_id": 0,
            "language": "en",
            "outline": result.to_dict(),
        },
        draft_path,
    )

    console.print(f"[green]✓ Parsed {len(result.modules)} modules, {result.lesson_count} lessons[/green]")
    for i, module in enumerate(result.modules, start=1):
        console.print(f"  {i}. {module.title} [dim]({len(module.lessons)} lessons)[/dim]")
    console.print(f"  [dim]draft:[/dim] {draft_path}")


@app.command()
def build(
    draft: str = typer.Argument(..., help="Edited draft YAML"),
    title: str | None = typer.Option(None, "--title", "-t", help="Override course title"),
    category: int | None = typer.Option(None, "--category", "-c", help="Override category id"),
    courses_dir: str | None = typer.Option(None, "--courses-dir", help="Where courses are written"),
    user_id: int | None = typer.Option(None, "--user-id", help="User charged for AI usage"),
) -> None:
    """Create a course from an edited outline draft.

    Each module becomes a section and each lesson a page with generated
    content. Lessons that fail to generate get placeholder content.
    """
    draft_path = Path(draft)

    try:
        document, course_outline = read_review_yaml(draft_path)
    except FileNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    except OutlineEditError as e:
        console.print(f"[red]✗ Invalid draft: {e}[/red]")
        raise typer.Exit(code=1)

    category_id = _draft_int_or_exit(document, "category_id", category)
    charged_user = _draft_int_or_exit(document, "user_id", user_id)

    # Lesson generation only skips the AI API with an OpenAI-compatible backend
    config = _load_config_or_exit(needs_api=load_app_config().generation.backend == "agent")

    course_title = title or document.get("title") or course_outline.title
    if not course_title:
        console.print("[red]✗ Course title is required (--title)[/red]")
        raise typer.Exit(code=1)

    source_text = ""
    if document.get("source_file"):
        source_path = draft_path.parent / document["source_file"]
        if source_path.exists():
            source_text = source_path.read_text(encoding="utf-8")
        else:
            console.print(f"[yellow]⚠ Source text not found: {source_path}[/yellow]")

    host = FileSystemCourseHost(
        Path(courses_dir or config.storage.courses_dir),
        categories=config.storage.categories,
    )

    def report_lesson(section: int, lesson_title: str, generated: bool) -> None:
        mark = "[green]✓[/green]" if generated else "[yellow]⚠ placeholder[/yellow]"
        console.print(f"  {mark} {section}. {lesson_title}")

    console.print(
        f"[blue]Building '{course_title}' "
        f"({len(course_outline.modules)} modules, {course_outline.lesson_count} lessons)...[/blue]"
    )

    try:
        result = materialize_course(
            course_outline,
            course_title,
            category_id,
            host=host,
            chat=build_chat_client(config),
            source_text=source_text,
            language=document.get("language") or config.generation.default_language,
            ledger=_ledger(config),
            user_id=charged_user,
            context_chars=config.generation.lesson_context_chars,
            on_lesson=report_lesson,
        )
    except OSError as e:
        console.print(f"[red]✗ Course creation failed: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Course created: {result.course.shortname}[/green]")
    console.print(f"  [dim]sections:[/dim]   {result.sections}")
    console.print(f"  [dim]activities:[/dim] {result.activities}")
    if result.placeholders:
        console.print(f"  [yellow]⚠ {result.placeholders} page(s) need content[/yellow]")
    console.print(f"  [dim]path:[/dim]       {host.course_path(result.course.shortname)}")


def _breakdown_table(title: str, key_label: str, rows: list[UsageBreakdownRow]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column(key_label, style="cyan")
    table.add_column("Requests", justify="right")
    table.add_column("Tokens in", justify="right")
    table.add_column("Tokens out", justify="right")
    table.add_column("Credits", justify="right")
    for row in rows:
        table.add_row(
            str(row.key),
            str(row.requests),
            f"{row.tokens_in:,}",
            f"{row.tokens_out:,}",
            f"{row.credits:.2f}",
        )
    return table


@app.command()
def usage(
    days: int = typer.Option(30, "--days", "-d", help="Report period in days"),
) -> None:
    """Show AI usage for the last N days."""
    config = load_app_config()
    ledger = _ledger(config)

    summary = ledger.summary(days)
    console.print(f"[bold]Usage, last {days} days[/bold]")
    console.print(f"  [dim]requests:[/dim]   {summary.total_requests}")
    console.print(f"  [dim]tokens in:[/dim]  {summary.total_tokens_in:,}")
    console.print(f"  [dim]tokens out:[/dim] {summary.total_tokens_out:,}")
    console.print(f"  [dim]credits:[/dim]    {summary.total_credits:.2f}")

    if summary.total_requests == 0:
        return

    console.print(_breakdown_table("By day", "Day", ledger.daily_breakdown(days)))
    console.print(_breakdown_table("By action", "Action", ledger.by_action(days)))
    console.print(_breakdown_table("Top users", "User", ledger.by_user(days)))


if __name__ == "__main__":
    app()
