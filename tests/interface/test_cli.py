"""Tests for CLI commands: evaluate, suggest, add, review, due, new, show, history, stats, difficult, config."""

import json
import re
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from anamnesis.interface.cli import app

runner = CliRunner()


@pytest.fixture
def invoke(data_dir, mock_home):
    def _invoke(*args: str):
        return runner.invoke(app, ["--data-dir", str(data_dir), *args])

    return _invoke


def _add(invoke, *args: str) -> str:
    result = invoke("add", *args)
    assert result.exit_code == 0, result.output
    match = re.search(r"Created (card_\w+)", result.output)
    assert match
    return match.group(1)


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "evaluate" in result.stdout
    assert "review" in result.stdout
    assert "config" in result.stdout


# --- Grading ---


def test_evaluate_text(invoke):
    result = invoke("evaluate", "Paris", "paris")
    assert result.exit_code == 0
    assert "CORRECT" in result.stdout
    assert "Similarity: 1.000" in result.stdout
    assert "Suggested grade: easy" in result.stdout


def test_evaluate_json(invoke):
    result = invoke("evaluate", "colour", "color", "--json")
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["correctness"] == "partial"
    assert data["similarity"] == pytest.approx(5 / 6)
    assert data["suggested_grade"] == "good"


def test_evaluate_cloze(invoke):
    result = invoke("evaluate", "--ref", "cat", "--ref", "dog", "--blank", "cat", "--blank", "dag", "--json")
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["similarity"] == pytest.approx(0.75)
    assert data["correctness"] == "partial"


def test_evaluate_alternatives(invoke):
    result = invoke("evaluate", "Paris / Lutetia", "lutetia", "--alternatives", "--json")
    assert json.loads(result.stdout)["correctness"] == "correct"


def test_evaluate_too_many_blanks(invoke):
    result = invoke("evaluate", "--ref", "cat", "--blank", "cat", "--blank", "dog")
    assert result.exit_code == 1
    assert "Error" in result.output


def test_evaluate_requires_answer(invoke):
    result = invoke("evaluate", "Paris")
    assert result.exit_code == 2


def test_suggest():
    assert runner.invoke(app, ["suggest", "0.85"]).stdout.strip() == "good"
    assert runner.invoke(app, ["suggest", "0.2"]).stdout.strip() == "again"


def test_suggest_out_of_range():
    assert runner.invoke(app, ["suggest", "1.5"]).exit_code != 0


# --- Cards and reviews ---


def test_add_review_and_history(invoke):
    card_id = _add(invoke, "Capital of France?", "Paris", "--deck", "Geo")

    due = invoke("due", "--json")
    assert due.exit_code == 0
    rows = json.loads(due.stdout)
    assert [row["id"] for row in rows] == [card_id]
    assert rows[0]["state"] == "new"
    assert rows[0]["deck"] == "Geo"

    review = invoke("review", card_id, "good", "--time", "3")
    assert review.exit_code == 0, review.output
    assert "learning" in review.stdout
    assert "interval 1 days" in review.stdout

    assert json.loads(invoke("due", "--json").stdout) == []

    history = invoke("history", card_id)
    assert "good" in history.stdout
    assert "interval 0 -> 1" in history.stdout


def test_review_with_typed_answer_uses_suggestion(invoke):
    card_id = _add(invoke, "Capital of France?", "Paris")

    result = invoke("review", card_id, "--answer", "paris")

    assert result.exit_code == 0, result.output
    assert "suggests easy" in result.stdout
    assert "review" in result.stdout
    assert "interval 4 days" in result.stdout


def test_review_cloze_answers(invoke):
    card_id = _add(invoke, "{{c1}} chases {{c2}}", "cat", "mouse", "--cloze")
    result = invoke("review", card_id, "hard", "-a", "cat", "-a", "mouze")
    assert result.exit_code == 0, result.output
    assert "Answer: partial" in result.stdout


def test_review_bad_grade(invoke):
    card_id = _add(invoke, "Q", "A")
    result = invoke("review", card_id, "perfect")
    assert result.exit_code == 1
    assert "Unsupported grade" in result.output


def test_review_unknown_card(invoke):
    result = invoke("review", "card_missing", "good")
    assert result.exit_code == 1
    assert "Card not found: card_missing" in result.output


def test_review_needs_grade_or_answer(invoke):
    card_id = _add(invoke, "Q", "A")
    assert invoke("review", card_id).exit_code == 2


def test_add_qa_rejects_multiple_answers(invoke):
    result = invoke("add", "Q", "A", "B")
    assert result.exit_code == 2


def test_delete(invoke):
    card_id = _add(invoke, "Q", "A")
    assert invoke("delete", card_id).exit_code == 0
    assert invoke("delete", card_id).exit_code == 1


def test_due_empty(invoke):
    result = invoke("due")
    assert result.exit_code == 0
    assert "No cards due." in result.stdout


def test_stats(invoke):
    card_id = _add(invoke, "Q1", "A1")
    _add(invoke, "Q2", "A2")
    invoke("review", card_id, "again")

    result = invoke("stats")
    assert result.exit_code == 0
    assert "Cards: 2  New: 1" in result.stdout
    assert "Reviewed today: 1" in result.stdout
    assert "Streak: 1 days" in result.stdout


def test_stats_by_deck_and_tag(invoke):
    _add(invoke, "Q1", "A1", "--deck", "Geo", "--tag", "eu")
    _add(invoke, "Q2", "A2", "--deck", "Geo", "--tag", "eu")
    _add(invoke, "Q3", "A3", "--deck", "Math")

    result = invoke("stats")

    assert result.exit_code == 0
    assert "Geo: 2 cards, 2 due, 2 new" in result.stdout
    assert "Math: 1 cards" in result.stdout
    assert "eu: 2 cards" in result.stdout


def test_new_lists_unreviewed_cards(invoke):
    reviewed = _add(invoke, "Q1", "A1")
    fresh = _add(invoke, "Q2", "A2", "--deck", "Geo")
    invoke("review", reviewed, "good")

    result = invoke("new")

    assert result.exit_code == 0
    assert fresh in result.stdout
    assert "[Geo]" in result.stdout
    assert reviewed not in result.stdout


def test_show_card_metrics(invoke):
    card_id = _add(invoke, "Q", "A")
    invoke("review", card_id, "again")

    result = invoke("show", card_id)

    assert result.exit_code == 0, result.output
    assert "learning" in result.stdout
    assert "Reps: 1  Lapses: 1  Lapse rate: 100%" in result.stdout
    assert invoke("show", "card_missing").exit_code == 1


def test_review_rejects_nan_time(invoke, data_dir):
    card_id = _add(invoke, "Q", "A")

    result = invoke("review", card_id, "good", "--time", "nan")

    assert result.exit_code == 1
    assert "finite" in result.output
    assert "NaN" not in (data_dir / "flashcards.json").read_text(encoding="utf-8")


def test_difficult(invoke):
    card_id = _add(invoke, "Q", "A")
    _add(invoke, "Easy one", "B")
    invoke("review", card_id, "again")

    result = invoke("difficult")
    assert result.exit_code == 0
    assert card_id in result.stdout
    assert "errors=1" in result.stdout
    assert "Easy one" not in result.stdout


def test_corrupt_store_reports_error(invoke, data_dir):
    (data_dir / "flashcards.json").write_text("{oops", encoding="utf-8")
    result = invoke("due")
    assert result.exit_code == 1
    assert "Could not read" in result.output


# --- Config ---


@patch("anamnesis.interface.cli.resolve_config")
def test_config_show_command(mock_resolve_config):
    mock_config = MagicMock()
    mock_config.model_dump.return_value = {
        "data_dir": Path("/tmp/anamnesis"),
        "log_retention": 1000,
        "accept_alternatives": False,
        "verbose": 1,
    }
    mock_resolve_config.return_value = mock_config

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    output_data = json.loads(result.stdout)
    assert output_data["data_dir"] == str(Path("/tmp/anamnesis"))
    assert output_data["log_retention"] == 1000


def test_config_show_reads_env(monkeypatch, mock_home, tmp_path):
    monkeypatch.setenv("ANAMNESIS_DATA_DIR", str(tmp_path / "cards"))
    monkeypatch.setenv("ANAMNESIS_LOG_RETENTION", "50")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    output_data = json.loads(result.stdout)
    assert output_data["data_dir"] == str((tmp_path / "cards").resolve())
    assert output_data["log_retention"] == 50
