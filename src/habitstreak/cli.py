"""Command-line entry point for HabitStreak."""

from __future__ import annotations

from typing import Optional

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .errors import HabitStreakError
from .logging_config import setup_logging
from .services.day_window import WEEKDAY_NAMES
from .services.schedule import EVERY_DAY, schedule_from_days


def parse_days(value: str):
    """Parse ``daily`` or a comma list of weekday indexes/names into a schedule."""

    value = value.strip().lower()
    if value in {"daily", "all", "*"}:
        return EVERY_DAY
    short_names = {name[:3].lower(): index for index, name in enumerate(WEEKDAY_NAMES)}
    days = []
    for token in filter(None, (part.strip() for part in value.split(","))):
        if token.isdigit():
            days.append(int(token))
        elif token[:3] in short_names:
            days.append(short_names[token[:3]])
        else:
            raise click.BadParameter(f"Unknown weekday {token!r}", param_hint="--days")
    if not days:
        raise click.BadParameter("At least one weekday is required", param_hint="--days")
    try:
        return schedule_from_days(days)
    except HabitStreakError as exc:
        raise click.BadParameter(str(exc), param_hint="--days") from exc


def _user_id(ctx: AppContext, username: str) -> int:
    return ctx.habits.ensure_user(username).id  # type: ignore[return-value]


@click.group()
@click.pass_context
def cli(click_ctx: click.Context) -> None:
    """Track habits and daily streaks."""

    if click_ctx.obj is None:
        config = BaseConfig()
        setup_logging(config)
        click_ctx.obj = create_app_context(config)


@cli.command("init-db")
def init_db() -> None:
    """Create the database schema."""

    # Schema creation happens while building the context.
    click.echo("Database ready.")


@cli.command("add-user")
@click.argument("username")
@click.pass_obj
def add_user(ctx: AppContext, username: str) -> None:
    """Create USERNAME if it does not exist."""

    user = ctx.habits.ensure_user(username)
    click.echo(f"User {user.username} (id {user.id})")


@cli.command("add-habit")
@click.option("--user", "username", required=True)
@click.option("--name", required=True)
@click.option("--days", default="daily", show_default=True, help="daily, or e.g. 'mon,wed,fri' / '1,3,5' (0 = Sunday)")
@click.option("--identity", default=None)
@click.option("--difficulty", default=None)
@click.option("--reminder", "reminder_time", default=None, help="HH:MM")
@click.pass_obj
def add_habit(
    ctx: AppContext,
    username: str,
    name: str,
    days: str,
    identity: Optional[str],
    difficulty: Optional[str],
    reminder_time: Optional[str],
) -> None:
    """Create a habit."""

    schedule = parse_days(days)
    try:
        habit = ctx.habits.create_habit(
            _user_id(ctx, username),
            name,
            schedule,
            identity=identity,
            difficulty=difficulty,
            reminder_time=reminder_time,
        )
    except (HabitStreakError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created habit {habit.id}: {habit.name}")


@cli.command("complete")
@click.argument("habit_id", type=int)
@click.option("--user", "username", required=True)
@click.pass_obj
def complete(ctx: AppContext, habit_id: int, username: str) -> None:
    """Mark HABIT_ID completed for today."""

    user_id = _user_id(ctx, username)
    try:
        habit = ctx.streaks.complete_habit(habit_id, user_id)
    except HabitStreakError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Completed {habit.name} (streak {habit.streak})")
    _echo_streak(ctx, user_id)


@cli.command("uncomplete")
@click.argument("habit_id", type=int)
@click.option("--user", "username", required=True)
@click.pass_obj
def uncomplete(ctx: AppContext, habit_id: int, username: str) -> None:
    """Reverse today's completion of HABIT_ID."""

    user_id = _user_id(ctx, username)
    try:
        habit = ctx.streaks.uncomplete_habit(habit_id, user_id)
    except HabitStreakError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Reverted {habit.name} (streak {habit.streak})")
    _echo_streak(ctx, user_id)


@cli.command("habits")
@click.option("--user", "username", required=True)
@click.pass_obj
def list_habits(ctx: AppContext, username: str) -> None:
    """List habits with today's status."""

    try:
        statuses = ctx.habits.list_habits(_user_id(ctx, username))
    except HabitStreakError as exc:
        raise click.ClickException(str(exc)) from exc
    if not statuses:
        click.echo("No habits yet.")
        return
    for status in statuses:
        mark = "x" if status.completed_today else ("." if status.due_today else "-")
        click.echo(f"[{mark}] {status.habit.id:>4}  {status.habit.name}  (streak {status.habit.streak})")


@cli.command("analytics")
@click.option("--user", "username", required=True)
@click.pass_obj
def analytics(ctx: AppContext, username: str) -> None:
    """Show completion analytics."""

    try:
        result = ctx.analytics.get_analytics(_user_id(ctx, username))
    except HabitStreakError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Completion (last {ctx.analytics.window_days} days): {result.weekly_completion_pct}%")
    click.echo(f"Current streak: {result.current_streak}")
    click.echo(f"Longest streak: {result.longest_streak}")
    click.echo(f"Total completed: {result.total_completed}")
    if result.best_day:
        click.echo(f"Best day: {result.best_day}  Worst day: {result.worst_day}")


@cli.command("report")
@click.option("--user", "username", required=True)
@click.pass_obj
def report(ctx: AppContext, username: str) -> None:
    """Print the weekly summary sentence."""

    try:
        weekly = ctx.analytics.weekly_report(_user_id(ctx, username))
    except HabitStreakError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(weekly.summary)


@cli.command("overview")
@click.option("--user", "username", required=True)
@click.pass_obj
def overview(ctx: AppContext, username: str) -> None:
    """Show all-time totals."""

    try:
        result = ctx.analytics.overview(_user_id(ctx, username))
    except HabitStreakError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Habits: {result.total_habits}")
    click.echo(f"Completions: {result.total_completions}")
    click.echo(f"Average per day: {result.average_per_day}")


def _echo_streak(ctx: AppContext, user_id: int) -> None:
    result = ctx.analytics.get_analytics(user_id)
    click.echo(f"Daily streak: {result.current_streak} (best {result.longest_streak})")


def main() -> None:  # pragma: no cover - console script
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
