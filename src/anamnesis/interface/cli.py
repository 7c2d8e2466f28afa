"""anamnesis CLI: grading, reviewing and inspecting flashcards."""

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer

from anamnesis.application.config import AppConfig, resolve_config
from anamnesis.application.evaluator import evaluate as evaluate_answer
from anamnesis.application.evaluator import suggest_grade
from anamnesis.application.review_service import ReviewService
from anamnesis.application.stats import MetricsCalculator
from anamnesis.domain.errors import AnamnesisError
from anamnesis.domain.models import Answer, Flashcard, Grade
from anamnesis.infrastructure.json_store import JsonCardRepository, JsonReviewLogRepository

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="anamnesis: flashcard review scheduler and answer grader.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage anamnesis configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(ctx: typer.Context) -> AppConfig:
    return resolve_config(ctx.obj or {})


def _service(config: AppConfig) -> ReviewService:
    return ReviewService(
        JsonCardRepository(config.data_dir),
        JsonReviewLogRepository(config.data_dir),
        retention=config.log_retention,
        accept_alternatives=config.accept_alternatives,
    )


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a service call, turning domain errors into a red message and exit code 1."""
    try:
        return asyncio.run(coro)
    except AnamnesisError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e


def _fmt_time(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000).isoformat(sep=" ", timespec="minutes")


def _card_row(card: Flashcard) -> dict[str, Any]:
    s = card.scheduling
    return {
        "id": card.id,
        "front": card.front,
        "deck": card.deck,
        "state": s.state.value,
        "interval": s.interval.value,
        "unit": s.interval.unit.value,
        "ease": s.ease,
        "due": s.due,
    }


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: Annotated[
        Path | None, typer.Option("--data-dir", help="Directory holding the card and log files.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for anamnesis."""
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    if verbose:
        ctx.obj["verbose"] = 1 + verbose
        logging.getLogger().setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Grading
# ---------------------------------------------------------------------------


@app.command()
def evaluate(
    ctx: typer.Context,
    reference: Annotated[str | None, typer.Argument(help="Reference answer.")] = None,
    answer: Annotated[str | None, typer.Argument(help="The answer to grade.")] = None,
    ref: Annotated[
        list[str] | None, typer.Option("--ref", "-r", help="Cloze reference blank (repeatable).")
    ] = None,
    blank: Annotated[
        list[str] | None, typer.Option("--blank", "-b", help="Cloze answer blank (repeatable).")
    ] = None,
    alternatives: Annotated[
        bool | None,
        typer.Option(
            "--alternatives/--no-alternatives",
            help="Treat '/' and '|' in the reference as separators between accepted answers.",
        ),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Grade an answer against a reference and suggest a review grade."""
    config = _config(ctx)
    split = config.accept_alternatives if alternatives is None else alternatives

    expected: Answer
    given: Answer
    if ref:
        if reference is not None or answer is not None:
            typer.secho("Use either REFERENCE ANSWER or --ref/--blank, not both.", fg="red", err=True)
            raise typer.Exit(2)
        expected, given = list(ref), list(blank or [])
    elif reference is not None and answer is not None:
        expected, given = reference, answer
    else:
        typer.secho("Provide REFERENCE and ANSWER, or --ref/--blank for cloze.", fg="red", err=True)
        raise typer.Exit(2)

    try:
        result = evaluate_answer(expected, given, split_alternatives=split)
    except AnamnesisError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e
    grade = suggest_grade(result.similarity)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "correctness": result.correctness.value,
                    "similarity": result.similarity,
                    "suggested_grade": grade.value,
                },
                indent=2,
            )
        )
        return

    colors = {"correct": "green", "partial": "yellow", "wrong": "red"}
    typer.secho(result.correctness.value.upper(), fg=colors[result.correctness.value], bold=True)
    typer.echo(f"Similarity: {result.similarity:.3f}")
    typer.echo(f"Suggested grade: {grade.value}")


@app.command()
def suggest(
    similarity: Annotated[
        float, typer.Argument(min=0.0, max=1.0, help="Similarity score between 0 and 1.")
    ],
):
    """Suggest a review grade for a similarity score."""
    typer.echo(suggest_grade(similarity).value)


# ---------------------------------------------------------------------------
# Cards and reviews
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    front: Annotated[str, typer.Argument(help="Question, or cloze text.")],
    back: Annotated[list[str], typer.Argument(help="Answer, or one answer per cloze blank.")],
    deck: Annotated[str, typer.Option(help="Deck name.")] = "Default",
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag (repeatable).")] = None,
    cloze: Annotated[bool, typer.Option("--cloze", help="Create a cloze card.")] = False,
):
    """Create a new card."""
    if not cloze and len(back) != 1:
        typer.secho("A QA card takes exactly one answer; use --cloze for blanks.", fg="red", err=True)
        raise typer.Exit(2)

    service = _service(_config(ctx))
    card = _run(
        service.create_card(
            front, list(back) if cloze else back[0], deck=deck, tags=tuple(tag or ())
        )
    )
    typer.secho(f"Created {card.id}", fg="green")


@app.command()
def review(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to review.")],
    grade: Annotated[
        str | None,
        typer.Argument(help="again, hard, good or easy. Omit to use the suggested grade."),
    ] = None,
    time_spent: Annotated[
        float, typer.Option("--time", help="Seconds spent answering.")
    ] = 0.0,
    answer: Annotated[
        list[str] | None,
        typer.Option("--answer", "-a", help="Typed answer (repeat once per cloze blank)."),
    ] = None,
):
    """Record a review and schedule the card's next due time."""
    service = _service(_config(ctx))

    async def run():
        grading = None
        user_answer: Answer | None = None
        chosen = grade
        if answer:
            card = await service.get_card(card_id)
            user_answer = list(answer) if card.is_cloze else answer[0]
            grading, suggested = await service.grade_answer(card_id, user_answer)
            typer.echo(
                f"Answer: {grading.correctness.value} "
                f"(similarity {grading.similarity:.3f}, suggests {suggested.value})"
            )
            chosen = chosen or suggested.value
        if chosen is None:
            typer.secho("Provide a GRADE or an --answer to grade.", fg="red", err=True)
            raise typer.Exit(2)
        return await service.review(card_id, Grade.parse(chosen), time_spent, user_answer, grading)

    result = _run(run())
    s = result.scheduling
    typer.secho(
        f"{card_id}: {s.state.value}, interval {s.interval.value:g} {s.interval.unit.value}, "
        f"ease {s.ease:.2f}, due {_fmt_time(s.due)}",
        fg="green",
    )


@app.command()
def delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to delete.")],
):
    """Delete a card and its review history."""
    service = _service(_config(ctx))
    _run(service.delete_card(card_id))
    typer.secho(f"Deleted {card_id}", fg="green")


@app.command()
def due(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List cards due now, highest priority first."""
    service = _service(_config(ctx))
    cards = _run(service.due_cards())

    if json_output:
        typer.echo(json.dumps([_card_row(card) for card in cards], indent=2, ensure_ascii=False))
        return

    if not cards:
        typer.secho("No cards due.", fg="green")
        return
    for card in cards:
        typer.echo(f"{card.id}  [{card.scheduling.state.value}]  {card.front}")


@app.command()
def history(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card whose reviews to show.")],
):
    """Show the review log of a card."""
    service = _service(_config(ctx))
    entries = _run(service.history(card_id))
    if not entries:
        typer.echo("No reviews.")
        return
    for entry in entries:
        typer.echo(
            f"{_fmt_time(entry.timestamp)}  {entry.grade.value:<5}  {entry.time_spent:.1f}s  "
            f"interval {entry.old_interval:g} -> {entry.new_interval:g}  "
            f"ease {entry.old_ease:.2f} -> {entry.new_ease:.2f}"
        )


@app.command()
def new(ctx: typer.Context):
    """List cards that have never been reviewed."""
    service = _service(_config(ctx))
    cards = _run(service.new_cards())
    if not cards:
        typer.secho("No new cards.", fg="green")
        return
    for card in cards:
        typer.echo(f"{card.id}  [{card.deck}]  {card.front}")


@app.command()
def show(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to inspect.")],
):
    """Show a card's scheduling state and derived metrics."""
    service = _service(_config(ctx))
    m = _run(service.card_metrics(card_id))

    def rate(value: float | None) -> str:
        return "-" if value is None else f"{value:.0%}"

    typer.echo(f"{m.card_id}  [{m.deck}]  {m.state.value}")
    typer.echo(f"Reps: {m.reps}  Lapses: {m.lapses}  Lapse rate: {rate(m.lapse_rate)}")
    typer.echo(f"Interval: {m.interval:g}  Ease: {m.ease:.2f}  Difficulty: {m.difficulty:.2f}")
    typer.echo(f"Correct rate: {rate(m.correct_rate)}  Average time: {m.average_time:.1f}s")
    typer.echo(f"Days overdue: {m.days_overdue:.1f}")


@app.command()
def stats(ctx: typer.Context):
    """Show collection, deck and tag statistics."""
    service = _service(_config(ctx))

    async def run():
        return (
            await service.session_stats(),
            await service.deck_stats(),
            await service.tag_stats(),
        )

    summary, decks, tags = _run(run())
    typer.echo(f"Cards: {summary.total}  New: {summary.new}  Due: {summary.due}")
    typer.echo(f"Reviewed today: {summary.reviewed_today}  Logged reviews: {summary.total_reviews}")
    typer.echo(f"Streak: {summary.streak} days")

    if decks:
        typer.secho("\nDecks", bold=True)
        for d in decks:
            typer.echo(
                f"  {d.deck}: {d.total_cards} cards, {d.due_cards} due, {d.new_cards} new, "
                f"correct {d.correct_rate:.0%}, avg interval {d.average_interval:.1f}d"
            )
    if tags:
        typer.secho("\nTags", bold=True)
        for t in tags:
            typer.echo(f"  {t.tag}: {t.count} cards, correct {t.correct_rate:.0%}")


@app.command()
def difficult(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option(min=1, help="Maximum cards to show.")] = 10,
):
    """List the cards you struggle with most."""
    config = _config(ctx)
    cards_repo = JsonCardRepository(config.data_dir)
    logs_repo = JsonReviewLogRepository(config.data_dir)

    async def run():
        return await cards_repo.list_cards(), await logs_repo.load_logs()

    cards, logs = _run(run())
    found = MetricsCalculator().difficult_cards(cards, logs, limit=limit)
    if not found:
        typer.secho("No difficult cards.", fg="green")
        return
    for item in found:
        typer.echo(
            f"{item.card.id}  errors={item.error_count}  "
            f"difficulty={item.card.stats.difficulty:.2f}  pattern={item.pattern.value}  "
            f"{item.card.front}"
        )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
