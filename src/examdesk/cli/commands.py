"""CLI commands for examdesk.

Commands:
- init-db: Create the database schema
- serve: Run the web API
- sample-csv: Write the student import template
- import-students: Bulk-create students from a CSV file
- generate-questions: Generate questions for a topic
- detect-type: Classify a document URL
- evaluate: Evaluate one student's answer sheet
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from examdesk.config import load_app_config
from examdesk.core.csv_utils import (
    SAMPLE_CSV_FILENAME,
    generate_sample_csv,
    import_students_csv,
)
from examdesk.core.documents import detect_document_type, needs_ocr
from examdesk.core.evaluation_workflow import build_evaluation_request, evaluate_student
from examdesk.core.paper_evaluator import EvaluationError
from examdesk.core.question_generator import generate_questions as do_generate_questions
from examdesk.db.database import init_db
from examdesk.llm.client import LLMClient
from examdesk.storage.object_store import create_object_store

app = typer.Typer(
    name="examdesk",
    help="Students, tests, question papers and AI-assisted evaluation.",
    no_args_is_help=True,
)

console = Console()


def _init_database() -> Path:
    db_path = load_app_config().db_path
    init_db(db_path)
    return db_path


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"


@app.command(name="init-db")
def init_database() -> None:
    """Create the database schema (safe to run repeatedly)."""
    db_path = _init_database()
    console.print(f"[green]✓ Database ready:[/green] {db_path}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the web API with uvicorn."""
    import uvicorn

    console.print(f"[green]Serving examdesk on http://{host}:{port}[/green]")
    uvicorn.run("examdesk.web.api:app", host=host, port=port, reload=reload)


@app.command(name="sample-csv")
def sample_csv(
    output: Path = typer.Option(
        Path(SAMPLE_CSV_FILENAME), "--output", "-o", help="Where to write the template"
    ),
) -> None:
    """Write the sample students CSV."""
    output.write_text(generate_sample_csv(), encoding="utf-8")
    console.print(f"[green]✓ Template written:[/green] {output}")


@app.command(name="import-students")
def import_students(
    csv_file: Path = typer.Argument(..., help="Students CSV file"),
    class_id: str | None = typer.Option(
        None, "--class-id", "-c", help="Put every student in this class"
    ),
) -> None:
    """Bulk-create students from a CSV file."""
    if not csv_file.exists():
        console.print(f"[red]✗ File not found: {csv_file}[/red]")
        raise typer.Exit(code=1)

    _init_database()
    result = import_students_csv(csv_file.read_text(encoding="utf-8"), class_id=class_id)

    console.print(f"[green]✓ Created {len(result.created)} students[/green]")
    if result.skipped:
        console.print(
            f"[yellow]⚠ Skipped {len(result.skipped)} rows with existing GR numbers[/yellow]"
        )
        for row in result.skipped:
            console.print(f"  [dim]-[/dim] {row.get('gr_number')} ({row.get('name')})")
    for error in result.errors:
        console.print(f"[red]✗ {error}[/red]")

    if result.errors and not result.created:
        raise typer.Exit(code=1)


@app.command(name="generate-questions")
def generate_questions(
    subject: str = typer.Option(..., "--subject", "-s", help="Subject name"),
    topic: str = typer.Option(..., "--topic", "-t", help="Topic"),
    content_file: Path | None = typer.Option(
        None, "--content-file", "-f", help="Text file with source material"
    ),
    difficulty: int = typer.Option(2, "--difficulty", "-d", min=1, max=3, help="1-3"),
) -> None:
    """Generate questions for a topic and print them."""
    content = None
    if content_file is not None:
        if not content_file.exists():
            console.print(f"[red]✗ File not found: {content_file}[/red]")
            raise typer.Exit(code=1)
        content = content_file.read_text(encoding="utf-8")

    result = do_generate_questions(subject, topic, content=content, difficulty=difficulty)
    if not result.success:
        console.print(f"[red]✗ {result.message}[/red]")
        if result.raw_content:
            console.print(Panel(_truncate(result.raw_content, 500), title="Model output"))
        raise typer.Exit(code=1)

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", width=4)
    table.add_column("Type", style="cyan", width=18)
    table.add_column("Level", width=12)
    table.add_column("Question", width=70)

    for i, q in enumerate(result.questions, start=1):
        table.add_row(
            str(i),
            str(q.get("type", "")),
            str(q.get("level", "")),
            _truncate(str(q.get("text", "")), 140),
        )

    console.print(table)
    console.print(f"[green]✓ {result.message}[/green]")


@app.command(name="detect-type")
def detect_type(url: str = typer.Argument(..., help="Document URL")) -> None:
    """Classify a document URL as pdf, zip, image or unknown."""
    console.print(f"[bold]{detect_document_type(url)}[/bold]")
    if needs_ocr(url):
        console.print("  [dim]needs OCR as an answer sheet[/dim]")


@app.command()
def evaluate(
    test_id: str = typer.Option(..., "--test-id", help="Test ID"),
    student_id: str = typer.Option(..., "--student-id", help="Student ID"),
    topic: str = typer.Option(..., "--topic", help="Assigned topic"),
) -> None:
    """Evaluate one student's answer sheet and save the grade."""
    _init_database()

    def _on_retry(attempt: int, error: str) -> None:
        console.print(f"[yellow]⚠ Retry {attempt}: {error}[/yellow]")

    try:
        request = build_evaluation_request(test_id, student_id, topic)
        evaluation = evaluate_student(
            request,
            LLMClient(),
            create_object_store(),
            on_retry=_on_retry,
        )
    except EvaluationError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    summary = evaluation["summary"]
    assigned, possible = summary["totalScore"]
    console.print(
        Panel(
            f"[bold]{assigned}/{possible}[/bold] ({summary['percentage']}%)",
            title=f"[bold]{request.student_info.get('name')}[/bold]",
            expand=False,
        )
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Q", style="cyan", width=6)
    table.add_column("Score", justify="center", width=8)
    table.add_column("Remarks", width=70)
    for answer in evaluation.get("answers") or []:
        score = answer.get("score")
        score_text = f"{score[0]}/{score[1]}" if isinstance(score, list) and len(score) == 2 else "-"
        table.add_row(
            str(answer.get("question_no", "")),
            score_text,
            _truncate(str(answer.get("remarks", "")), 140),
        )
    console.print(table)


if __name__ == "__main__":
    app()
