from __future__ import annotations

import datetime
from typing import Optional

import click

from . import corpus, db, progress, settings, statistics
from .errors import StudyError
from .selection import StudyStrategy, select_questions
from .session import StudySession


def _ensure_db() -> None:
    if not db.is_db_initialized():
        db.init_db()


@click.group()
@click.option("--db", "db_path", envvar="FP_STUDY_DB", default=None, help="SQLite database file")
def cli(db_path: Optional[str]) -> None:
    """FP exam study engine."""
    if db_path:
        db.configure(f"sqlite:///{db_path}")


@cli.command("init-db")
def init_db() -> None:
    """Create the study database tables."""
    db.init_db()
    click.echo("Database initialized.")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_corpus(path: str) -> None:
    """Import (or re-import) questions from a JSON file."""
    _ensure_db()
    try:
        count = corpus.import_file(path)
    except StudyError as e:
        click.echo(f"❌ Import failed: {e}", err=True)
        for problem in getattr(e, "errors", []):
            click.echo(f"   {problem}", err=True)
        raise SystemExit(1)
    click.echo(f"✅ Imported {count} questions ({corpus.question_count()} in total).")


@cli.command("reset")
@click.option("--full", is_flag=True, help="Also delete the imported questions")
@click.confirmation_option(prompt="Delete all study history? This cannot be undone.")
def reset(full: bool) -> None:
    """Delete answers, progress and daily statistics."""
    _ensure_db()
    corpus.reset_history(full=full)
    click.echo("History cleared." + (" Questions removed too." if full else ""))


@cli.command("study")
@click.option("--strategy", type=click.Choice([s.value for s in StudyStrategy]), default="random",
              show_default=True)
@click.option("--count", type=int, default=None, help="Number of questions (defaults to the daily goal)")
@click.option("--grade", type=click.Choice(settings.GRADES), default=None)
@click.option("--category", default=None, help="Category id, for --strategy category")
@click.option("--year", type=int, default=None, help="Exam year, for --strategy year")
def study(strategy: str, count: Optional[int], grade: Optional[str],
          category: Optional[str], year: Optional[int]) -> None:
    """Run an interactive quiz in the terminal."""
    _ensure_db()
    prefs = settings.load_settings()
    if count is None:
        count = prefs.daily_goal
    try:
        questions = select_questions(strategy, count, grade=grade or prefs.target_grade,
                                     category=category, year=year)
    except ValueError as e:
        raise click.BadParameter(str(e))

    if not questions:
        if corpus.question_count() == 0:
            click.echo("No questions yet. Import a corpus with 'fp-study import FILE'.")
        else:
            click.echo("🎉 No questions match this study mode right now.")
        return

    session = StudySession.start(strategy, questions)
    while True:
        question = session.current_question
        if question is None:
            break
        click.echo(f"\n[{session.current_index + 1}/{len(session.questions)}] {question.question_text}")
        for i, option in enumerate(question.options, 1):
            click.echo(f"  {i}. {option}")
        choice = click.prompt("Your answer (0 to skip)", type=click.IntRange(0, len(question.options)))
        if choice:
            answer = session.answer(choice - 1)
            if answer.is_correct:
                click.echo("✅ Correct!")
            else:
                click.echo(f"❌ Wrong. Answer: {question.correct_answer + 1}. "
                           f"{question.options[question.correct_answer]}")
            if question.explanation:
                click.echo(question.explanation)
        if session.is_last_question:
            break
        session.next_question()

    session.finish()
    click.echo(f"\nSession done: {session.correct_count}/{len(session.answers)} correct.")


@cli.command("bookmark")
@click.argument("question_id")
def bookmark(question_id: str) -> None:
    """Toggle the bookmark on a question."""
    _ensure_db()
    state = progress.toggle_bookmark(question_id)
    click.echo(f"Question {question_id} {'bookmarked' if state else 'unbookmarked'}.")


@cli.command("note")
@click.argument("question_id")
@click.argument("text")
def note(question_id: str, text: str) -> None:
    """Save a note on a question (empty text clears it)."""
    _ensure_db()
    progress.set_notes(question_id, text)
    click.echo(f"Note saved for {question_id}.")


@cli.command("progress")
def show_progress() -> None:
    """Show how many questions are mastered, familiar, learning and new."""
    _ensure_db()
    dist = progress.mastery_distribution()
    click.echo(f"Mastered: {dist.mastered}")
    click.echo(f"Familiar: {dist.familiar}")
    click.echo(f"Learning: {dist.learning}")
    click.echo(f"New:      {dist.new}")
    click.echo(f"Total:    {dist.total}")


@cli.command("stats")
def show_stats() -> None:
    """Show overall and per-category statistics."""
    _ensure_db()
    overall = statistics.overall_stats()
    click.echo(f"Answers: {overall.total_questions_solved}  Accuracy: {overall.overall_accuracy}%")
    click.echo(f"Study time: {overall.total_study_time_minutes} min")
    click.echo(f"Streak: {overall.current_streak} days (longest {overall.longest_streak})")
    click.echo("")
    for cat in statistics.category_stats():
        click.echo(f"  {cat.name}: {cat.answered_questions}/{cat.total_questions} answered, "
                   f"{cat.accuracy}%")


@cli.command("settings")
@click.option("--goal", type=int, default=None, help="Daily question goal")
@click.option("--grade", type=click.Choice(settings.GRADES), default=None)
@click.option("--exam-date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--theme", type=click.Choice(settings.THEMES), default=None)
def configure_settings(goal: Optional[int], grade: Optional[str],
                       exam_date: Optional[datetime.datetime], theme: Optional[str]) -> None:
    """Show or change settings."""
    _ensure_db()
    changes = {}
    if goal is not None:
        changes["daily_goal"] = goal
    if grade is not None:
        changes["target_grade"] = grade
    if exam_date is not None:
        changes["exam_date"] = exam_date.date()
    if theme is not None:
        changes["theme"] = theme
    if changes:
        try:
            settings.save_settings(**changes)
        except ValueError as e:
            raise click.BadParameter(str(e))
    prefs = settings.load_settings()
    click.echo(f"Grade: {prefs.target_grade}  Daily goal: {prefs.daily_goal}  Theme: {prefs.theme}")
    days = settings.days_until_exam()
    if days is not None:
        click.echo(f"Exam date: {prefs.exam_date} ({days} days left)")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
