"""CLI entry point: python -m promptrelay <command> <config.yaml>"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from promptrelay.config import GameConfig, load_config
from promptrelay.core.adapter import AdapterError
from promptrelay.core.errors import PromptRelayError, ValidationError
from promptrelay.core.scorer import ModelScorer
from promptrelay.models import SessionState
from promptrelay.reporting import gallery, rankings, score_stats, stats
from promptrelay.scoring import ScoringLedger, resolve_game
from promptrelay.session import (
    SessionEngine,
    SessionEvent,
    build_adapter,
    build_artifact_store,
)
from promptrelay.store import SessionStore

console = Console()

_EVENT_STYLES = {
    "started": "bold green",
    "warning": "bold yellow",
    "timeout": "bold red",
    "finished": "bold green",
    "stopped": "bold red",
    "reset": "dim",
}


def _print_event(event: SessionEvent) -> None:
    style = _EVENT_STYLES.get(event.kind, "")
    extra = f" {event.detail['theme']}" if "theme" in event.detail else ""
    console.print(f"[{style}]{event.kind.upper()}[/] ({event.remaining_s}s left){extra}")


def _build_ledger(config: GameConfig) -> ScoringLedger:
    scorer = None
    if config.scorer is not None:
        scorer = ModelScorer(
            build_adapter(config.scorer),
            max_tokens=config.scorer.max_output_tokens,
            timeout_s=config.scorer.timeout_s,
        )
    return ScoringLedger(config.data_dir, scorer)


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


def _cmd_play(config: GameConfig, args) -> int:
    engine = SessionEngine(config, listener=_print_event)
    ctx = engine.create_session(args.participants, name=args.name)
    ctx = engine.start(ctx.session_id)
    if ctx is None:
        console.print("[red]Could not start the session.[/]")
        return 1

    console.print(Panel(
        f"[bold]{ctx.session.theme.title}[/]\n{ctx.session.theme.description}",
        title=f"{ctx.session.name} ({ctx.session_id})",
        border_style="cyan",
    ))
    console.print(f"First up: [bold]{ctx.current_participant.name}[/]. One prompt per line.")

    for line in sys.stdin:
        if ctx.state is not SessionState.PLAYING:
            break
        if not line.strip():
            continue
        try:
            result = engine.submit_prompt(ctx.session_id, line)
        except ValidationError as exc:
            console.print(f"[red]{exc.message}[/]")
            continue
        if result is None or result.discarded:
            continue
        status = (
            f"[red]fallback[/] ({result.fallback_reason})" if result.fallback
            else f"[green]{result.extraction.strategy}[/]"
        )
        console.print(
            f"#{result.record.order} {result.participant}: {result.artifact.file_name} {status}"
        )
        if result.next_participant:
            console.print(f"Next: [bold]{result.next_participant}[/]")

    if ctx.state is SessionState.PLAYING:
        engine.complete(ctx.session_id)
    console.print(f"Prompts: {len(ctx.session.prompt_history)}  State: {ctx.state.value}")
    return 0


def _cmd_gallery(config: GameConfig, args) -> int:
    index = build_artifact_store(config.mode, config.data_dir)
    table = Table(title="Gallery")
    table.add_column("Created")
    table.add_column("Session")
    table.add_column("Theme")
    table.add_column("Participant")
    table.add_column("Prompt", overflow="fold")
    table.add_column("Game ID", style="dim")
    for entry in gallery(index):
        table.add_row(
            entry["createdAt"],
            entry["sessionName"],
            entry["theme"],
            entry["participant"],
            entry["prompt"],
            entry["gameId"],
        )
    console.print(table)
    return 0


def _cmd_stats(config: GameConfig, args) -> int:
    index = build_artifact_store(config.mode, config.data_dir)
    table = Table(title="Statistics", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for key, value in stats(index).items():
        table.add_row(key, str(value))
    for key, value in score_stats(ScoringLedger(config.data_dir)).items():
        table.add_row(f"scores.{key}", str(value))
    console.print(table)
    return 0


def _cmd_rankings(config: GameConfig, args) -> int:
    table = Table(title="Rankings")
    table.add_column("#", justify="right")
    table.add_column("Participant")
    table.add_column("Theme")
    table.add_column("Score", justify="right")
    table.add_column("Game ID", style="dim")
    for entry in rankings(ScoringLedger(config.data_dir), limit=args.limit):
        table.add_row(
            str(entry["rank"]),
            entry["participant"],
            entry["theme"],
            str(entry["totalScore"]),
            entry["gameId"],
        )
    console.print(table)
    return 0


def _cmd_score(config: GameConfig, args) -> int:
    ledger = _build_ledger(config)
    index = build_artifact_store(config.mode, config.data_dir)
    artifact, theme, history = resolve_game(
        index, args.game_id, sessions=SessionStore(config.data_dir),
    )
    try:
        record = ledger.score_game(artifact, theme, history)
    except AdapterError as exc:
        console.print(f"[red]Scoring failed:[/] {exc}")
        return 1

    table = Table(title=f"{record.participant}: {record.total_score} / 1000")
    table.add_column("Category")
    table.add_column("Score", justify="right")
    for category, value in record.detail_scores.items():
        table.add_row(category, str(value))
    console.print(table)
    console.print(record.comment)
    return 0


_COMMANDS = {
    "play": _cmd_play,
    "gallery": _cmd_gallery,
    "stats": _cmd_stats,
    "rankings": _cmd_rankings,
    "score": _cmd_score,
}


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="promptrelay",
        description="Timed prompt relay: take turns prompting a model into a mini-game",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Run a session, reading prompts from stdin")
    play.add_argument("config", type=Path, help="Path to game YAML config file")
    play.add_argument("--participants", required=True, help='Comma-separated, e.g. "Aki,Ren"')
    play.add_argument("--name", default=None, help="Session name")

    for name, help_text in (("gallery", "List generated games"), ("stats", "Show statistics")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("config", type=Path, help="Path to game YAML config file")

    rank = sub.add_parser("rankings", help="Show the score ranking")
    rank.add_argument("config", type=Path, help="Path to game YAML config file")
    rank.add_argument("--limit", type=int, default=50)

    score = sub.add_parser("score", help="Score one game with the configured evaluator")
    score.add_argument("config", type=Path, help="Path to game YAML config file")
    score.add_argument("game_id", help="Game ID as shown by the gallery command")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()

    if not args.config.exists():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    config = load_config(args.config)
    try:
        code = _COMMANDS[args.command](config, args)
    except (PromptRelayError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
