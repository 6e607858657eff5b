"""
Command line interface for GuessFS.

``guessfs index`` builds (and optionally saves) an index and reports what was
excluded. ``guessfs play`` runs an interactive game in the terminal.
"""

import argparse
import logging
import random
import sys
from typing import Callable, List, Optional

from . import __version__
from .config.parser import ConfigurationError, load_config
from .errors import GuessFSError, HintExhaustedError
from .game.session import GameSession, SessionState
from .game.statistics import StatisticsAggregator
from .models.config import DifficultyChoice, GuessFSConfig
from .models.game import GameType, GuessResult
from .models.index import Index, IndexOptions
from .tools.fs_indexer import FSIndexer
from .tools.index_store import IndexStore

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]

HINT_COMMANDS = {":hint", ":h"}
TIME_COMMANDS = {":time", ":t"}
QUIT_COMMANDS = {":quit", ":exit", ":q"}

EXCLUDE_FLAGS = {
    "hidden": "exclude_hidden",
    "system": "exclude_system",
    "temp": "exclude_temporary",
    "empty": "exclude_empty",
    "privileged": "exclude_admin",
}


logger = logging.getLogger(__name__)


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def options_from_args(args: argparse.Namespace) -> IndexOptions:
    """Build IndexOptions from ``index`` subcommand arguments."""
    kinds = _split_list(args.index)
    unknown = [kind for kind in kinds if kind not in ("files", "dirs")]
    if unknown:
        raise ValueError(f"Unknown --index value(s): {', '.join(unknown)} (use files, dirs)")

    excludes = _split_list(args.exclude)
    unknown = [name for name in excludes if name not in EXCLUDE_FLAGS]
    if unknown:
        raise ValueError(
            f"Unknown --exclude value(s): {', '.join(unknown)} (use {', '.join(EXCLUDE_FLAGS)})"
        )

    data = {
        'path': args.path,
        'index_directories': "dirs" in kinds,
        'index_files': "files" in kinds,
        'file_types': _split_list(args.types) or None,
        'excluded_regex': args.exclude_regex,
        'excluded_paths': _split_list(args.exclude_paths),
        'excluded_files': _split_list(args.exclude_files),
    }
    for name in excludes:
        data[EXCLUDE_FLAGS[name]] = True
    return IndexOptions.from_dict(data)


def format_index_summary(index: Index) -> List[str]:
    """Human-readable summary lines for a built index."""
    stats = index.stats
    lines = [
        f"Indexed {len(index.directories())} directories and {len(index.files())} files "
        f"in {stats.duration_seconds:.3f}s ({stats.total_excluded()} excluded, {stats.errors} errors)"
    ]
    if stats.excluded:
        counts = ", ".join(f"{rule}: {count}" for rule, count in sorted(stats.excluded.items()))
        lines.append(f"Excluded counts: {counts}")
    if stats.symlinks_skipped:
        lines.append(f"Symbolic links skipped: {stats.symlinks_skipped}")
    for path in stats.skipped_paths:
        lines.append(f"Skipped unreadable subtree: {path}")
    return lines


def run_index(args: argparse.Namespace, print_fn: PrintFn = print) -> int:
    """Run the ``index`` subcommand."""
    options = options_from_args(args)
    index = FSIndexer(max_workers=args.workers).build(options)
    for line in format_index_summary(index):
        print_fn(line)

    if args.save:
        target = IndexStore(args.data_dir).save(index)
        print_fn(f"Saved index snapshot to {target}")
    return 0


def _load_index(config: GuessFSConfig, use_snapshot: bool, print_fn: PrintFn) -> Index:
    store = IndexStore(config.indexer.get_data_path())
    if use_snapshot:
        index = store.load(config.index.path, options=config.index)
        if index is not None:
            print_fn(f"Using saved index for {index.root} ({len(index)} entries)")
            return index
        if store.exists(config.index.path):
            print_fn("Saved index was built with different options, indexing now")
        else:
            print_fn("No saved index found, indexing now")

    index = FSIndexer(max_workers=config.indexer.max_workers).build(config.index)
    for line in format_index_summary(index):
        print_fn(line)
    return index


def play_game(
    session: GameSession,
    input_fn: InputFn = input,
    print_fn: PrintFn = print
) -> None:
    """
    Play a started session interactively until it finishes or the player quits.

    Args:
        session: Started game session
        input_fn: Reads one line of player input
        print_fn: Writes one line of output
    """
    settings = session.settings
    kind = settings.type.value
    announced = -1

    while not session.is_finished():
        if session.game.level != announced:
            announced = session.game.level
            print_fn(f"\n=== Level {announced + 1}/{settings.total_levels} ===")
            print_fn(f"Guess the {kind}. Commands: :hint, :time, :quit")
            if session.state == SessionState.LEVEL_COMPLETE:
                session.next_level()

        try:
            text = input_fn("Guess: ").strip()
        except EOFError:
            text = ":quit"

        if not text:
            continue

        lowered = text.lower()
        if lowered in QUIT_COMMANDS:
            session.abandon()
            print_fn("Game abandoned.")
            break

        if lowered in HINT_COMMANDS:
            try:
                hint = session.use_hint()
            except HintExhaustedError:
                print_fn("No hints left for this level.")
                continue
            print_fn(f"Hint {hint.hint_number}: {hint.revealed} ({hint.hints_remaining} left)")
            continue

        if lowered in TIME_COMMANDS:
            remaining = session.remaining_time()
            if remaining is None:
                print_fn("No time limit.")
            else:
                print_fn(f"{remaining:.0f}s left.")
            continue

        level_before = session.game.level
        answer = session.current_level().answer
        result = session.submit_guess(text)
        level_ended = session.is_finished() or session.game.level != level_before

        if result == GuessResult.CORRECT:
            print_fn("Correct!")
        elif level_ended:
            print_fn(f"Time's up! The answer was {session.index.relative_path(answer)}")
        elif result == GuessResult.CLOSE:
            print_fn("Close!")
        else:
            print_fn("Incorrect.")

    data = session.game_data
    print_fn("\n=== Game over ===")
    print_fn(
        f"Correct: {data.correct_answers} | Close: {data.close_answers} | "
        f"Incorrect: {data.incorrect_answers}"
    )


def run_play(
    args: argparse.Namespace,
    input_fn: InputFn = input,
    print_fn: PrintFn = print
) -> int:
    """Run the ``play`` subcommand."""
    config = load_config(args.config).config
    if args.path:
        config = config.model_copy(
            update={'index': IndexOptions.from_dict({**config.index.to_dict(), 'path': args.path})}
        )

    settings = config.resolve_settings(
        game_type=args.type,
        difficulty=args.difficulty,
    )
    index = _load_index(config, args.use_snapshot, print_fn)

    seed = args.seed if args.seed is not None else random.SystemRandom().randrange(2 ** 32)
    session = GameSession(index, settings, seed)
    session.start()
    print_fn(f"Starting {session.game.name} (seed {seed})")

    play_game(session, input_fn, print_fn)

    totals = StatisticsAggregator().record(session)
    print_fn(
        f"Levels: {totals.total} | Hints used: {totals.hints_used} | "
        f"Time: {totals.time_taken:.0f}s"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(prog="guessfs", description="Guess the file or directory")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser("index", help="Build an index and report exclusions")
    index_parser.add_argument("--path", required=True, help="Path to index")
    index_parser.add_argument("--index", required=True,
                              help="Index files and/or directories (comma-separated: files,dirs)")
    index_parser.add_argument("--types", help="File types to index (comma-separated)")
    index_parser.add_argument("--exclude",
                              help="Exclude common unwanted entries (comma-separated): "
                                   "hidden, system, temp, empty, privileged")
    index_parser.add_argument("--exclude-regex", help="Exclude paths matching this regex")
    index_parser.add_argument("--exclude-paths", help="Exclude specific paths (comma-separated)")
    index_parser.add_argument("--exclude-files", help="Exclude specific files (comma-separated)")
    index_parser.add_argument("--workers", type=int, default=4, help="Traversal threads")
    index_parser.add_argument("--save", action="store_true", help="Save the index snapshot")
    index_parser.add_argument("--data-dir", default="~/.guessfs", help="Snapshot directory")

    play_parser = subparsers.add_parser("play", help="Play a game")
    play_parser.add_argument("--config", help="Configuration file")
    play_parser.add_argument("--path", help="Override the indexed root path")
    play_parser.add_argument("--type", choices=[t.value for t in GameType], help="Answer kind")
    play_parser.add_argument("--difficulty", choices=[d.value for d in DifficultyChoice],
                             help="Difficulty")
    play_parser.add_argument("--seed", type=int, help="Seed for reproducible games")
    play_parser.add_argument("--use-snapshot", action="store_true",
                             help="Use a saved index snapshot when available")

    return parser


def main(
    argv: Optional[List[str]] = None,
    input_fn: InputFn = input,
    print_fn: PrintFn = print
) -> int:
    """Run the CLI application."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "index":
            return run_index(args, print_fn)
        return run_play(args, input_fn, print_fn)
    except (GuessFSError, ConfigurationError, ValueError) as e:
        logger.debug(f"Command '{args.command}' failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
