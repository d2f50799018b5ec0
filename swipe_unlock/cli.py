"""
swipe-unlock CLI — browse stored swipes of a chat log without changing it.

Registered as `swipe-unlock` console script via pyproject.toml.
"""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path

import click

from .config import SwipeUnlockSettings, load_settings
from .exceptions import SwipeUnlockError, TranscriptFormatError
from .formatting import strip_markup
from .navigator import SwipeNavigator
from .store import Transcript, load_transcript
from .translation import SqliteTranslationStore
from .view import MemoryView

HELP_TEXT = "Commands: n(ext)  p(rev)  t(ranslate)  c(opy)  q(uit)"
USE_CASE_PATTERN = re.compile(r"^(\d{2})_(.+)$")


def _project_root() -> Path:
    """Nearest ancestor of this package holding pyproject.toml, else the cwd."""
    here = Path(__file__).resolve()
    for candidate in here.parents:
        if (candidate / "pyproject.toml").is_file():
            return candidate
    return Path.cwd()


def _load_chat(path: str) -> Transcript:
    try:
        return load_transcript(path)
    except TranscriptFormatError as exc:
        raise click.ClickException(str(exc)) from exc


def _load_settings_or_exit(config_path: str | None) -> SwipeUnlockSettings:
    try:
        return load_settings(config_path)
    except tomllib.TOMLDecodeError as exc:
        raise click.ClickException(f"Invalid config file {config_path}: {exc}") from exc


# ── Main group ────────────────────────────────────────────────────────────────


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="swipe-unlock")
@click.option("-v", "--verbose", count=True, help="Log controller activity (-vv for debug).")
def cli(verbose: int) -> None:
    """swipe-unlock — browse alternative message contents in a chat log."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


# ── Inspect ───────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("chat", type=click.Path(exists=True, dir_okay=False))
def inspect(chat: str) -> None:
    """List the messages of CHAT and how many swipes each one stores."""
    transcript = _load_chat(chat)
    if not len(transcript):
        click.secho("No messages in this chat.", fg="yellow")
        return

    click.secho(f"\n  {'#':<6}{'Speaker':<20}{'Swipes':<8}{'Active':<8}Browsable", fg="cyan")
    click.secho(f"  {'─' * 5} {'─' * 19} {'─' * 7} {'─' * 7} {'─' * 9}", fg="cyan")
    for message_id, record in enumerate(transcript):
        total = len(record.alternatives)
        active = f"{record.active_index + 1}" if total else "-"
        browsable = "yes" if total > 1 else "no"
        speaker = (record.name or ("You" if record.is_user else "?"))[:19]
        click.echo(f"  {message_id:<6}{speaker:<20}{total:<8}{active:<8}{browsable}")
    click.echo()


# ── Browse ────────────────────────────────────────────────────────────────────


def _echo_state(navigator: SwipeNavigator, view: MemoryView, message_id: int) -> None:
    label = navigator.current_display_label(message_id)
    marker = " (original)" if label.is_original else ""
    translated = " [translated]" if navigator.registry.get(message_id).translation_enabled else ""
    click.secho(f"\n── swipe {label.text}{marker}{translated} ──", fg="cyan", bold=True)
    click.echo(strip_markup(view.content.get(message_id, "")))


async def _browse(
    navigator: SwipeNavigator,
    view: MemoryView,
    message_id: int,
    commands: list[str] | None,
) -> int:
    record = navigator.store.get(message_id)
    navigator.open(message_id)
    await navigator.reconciler.render(message_id, record.active_index, False)
    _echo_state(navigator, view, message_id)
    click.echo(HELP_TEXT)

    while navigator.is_open(message_id):
        if commands is not None:
            if not commands:
                break
            command = commands.pop(0)
            click.echo(f"> {command}")
        else:
            command = await asyncio.to_thread(click.prompt, ">", default="q", show_default=False)

        command = command.strip().lower()
        if command in {"n", "next"}:
            if navigator.move(message_id, +1) is None:
                click.secho("Already at the last swipe.", fg="yellow")
                continue
        elif command in {"p", "prev"}:
            if navigator.move(message_id, -1) is None:
                click.secho("Already at the first swipe.", fg="yellow")
                continue
        elif command in {"t", "translate"}:
            session = navigator.registry.get(message_id)
            navigator.set_translation(message_id, not session.translation_enabled)
        elif command in {"c", "copy"}:
            text = await navigator.copy_active_text(message_id)
            click.secho("Copied text:", fg="green")
            click.echo(text)
            continue
        elif command in {"q", "quit", "l", "lock"}:
            break
        else:
            click.echo(HELP_TEXT)
            continue

        await navigator.drain()
        _echo_state(navigator, view, message_id)

    restored = navigator.close(message_id)
    await navigator.drain()
    click.secho(
        f"\nLocked message #{message_id}; restored swipe {restored + 1}/{len(record.alternatives)}.",
        fg="green",
    )
    return restored


@cli.command()
@click.argument("chat", type=click.Path(exists=True, dir_okay=False))
@click.argument("message_id", type=int)
@click.option(
    "--translations",
    "translation_db",
    type=click.Path(dir_okay=False),
    default=None,
    help="sqlite translation store (overrides the config file).",
)
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None)
@click.option(
    "--script",
    default=None,
    help="Space-separated commands to run instead of prompting, e.g. 'n n t c q'.",
)
def browse(
    chat: str,
    message_id: int,
    translation_db: str | None,
    config_path: str | None,
    script: str | None,
) -> None:
    """Unlock MESSAGE_ID of CHAT and browse its swipes. The file is never modified."""
    settings = _load_settings_or_exit(config_path)
    if translation_db:
        settings.translation_db = translation_db

    transcript = _load_chat(chat)
    if not settings.char_name:
        settings.char_name = str(transcript.header.get("character_name") or "")
    if settings.user_name == "User" and transcript.header.get("user_name"):
        settings.user_name = str(transcript.header["user_name"])

    view = MemoryView(visible=list(range(len(transcript))))
    navigator = SwipeNavigator.from_settings(transcript, view, settings)
    commands = script.split() if script is not None else None

    try:
        asyncio.run(_browse(navigator, view, message_id, commands))
    except SwipeUnlockError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        lookup = navigator.translations
        if lookup is not None and isinstance(lookup.translations, SqliteTranslationStore):
            lookup.translations.close()


# ── Translation store ─────────────────────────────────────────────────────────


@cli.group()
def translation() -> None:
    """Manage the sqlite translation store."""


@translation.command(name="set")
@click.argument("db", type=click.Path(dir_okay=False))
@click.argument("source")
@click.argument("translated")
def translation_set(db: str, source: str, translated: str) -> None:
    """Store TRANSLATED as the translation of the exact text SOURCE."""
    store = SqliteTranslationStore(db)
    try:
        store.put(source, translated)
        click.secho(f"Stored translation ({store.count()} entries).", fg="green")
    finally:
        store.close()


@translation.command(name="get")
@click.argument("db", type=click.Path(exists=True, dir_okay=False))
@click.argument("source")
def translation_get(db: str, source: str) -> None:
    """Print the stored translation of SOURCE."""
    store = SqliteTranslationStore(db)
    try:
        result = store.get_sync(source)
    finally:
        store.close()
    if result is None:
        click.secho("No translation stored for that text.", fg="yellow", err=True)
        raise SystemExit(1)
    click.echo(result)


# ── Use Cases ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UseCase:
    number: str
    title: str
    script: Path


def _use_cases(root: Path) -> dict[str, UseCase]:
    """Numbered ``use_cases/NN_name/example.py`` walkthroughs, keyed by number."""
    found: dict[str, UseCase] = {}
    for script in sorted(root.glob("use_cases/*/example.py")):
        match = USE_CASE_PATTERN.match(script.parent.name)
        if match:
            number, slug = match.groups()
            found[number] = UseCase(number, slug.replace("_", " ").capitalize(), script)
    return found


@cli.command()
@click.option("--list", "list_all", is_flag=True, help="List the available use cases.")
@click.argument("number", required=False)
def run(list_all: bool, number: str | None) -> None:
    """Run a numbered walkthrough from use_cases/, e.g. `swipe-unlock run 3`."""
    root = _project_root()
    use_cases = _use_cases(root)
    selected = use_cases.get(number.zfill(2)) if number and not list_all else None

    if selected is None:
        if number and not list_all:
            click.secho(f"No use case numbered {number}.", fg="red", err=True)
        if not use_cases:
            click.secho("No use cases found under use_cases/.", fg="yellow", err=True)
        for use_case in use_cases.values():
            click.echo(f"  {use_case.number}  {use_case.title}")
        raise SystemExit(1 if number and not list_all else 0)

    click.secho(f"Running use case {selected.number}: {selected.title}", fg="cyan", bold=True)
    try:
        result = subprocess.run([sys.executable, str(selected.script)], cwd=root)
    except OSError as exc:
        raise click.ClickException(f"Could not start {selected.script}: {exc}") from exc
    raise SystemExit(result.returncode)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
