"""
Command-line interface for grammar-master

Plays the quiz in the terminal: questions one at a time, lettered options,
and a scored review with explanations at the end.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Callable, Optional

from .config import Config
from .providers import get_provider, PROVIDER_NAMES, ModelProvider
from .questions import QuestionSource, QuestionGenerationError, Topic
from .questions.schema import OPTION_LABELS
from .review import build_review, format_review_terminal
from .session import QuizSession, SessionState, SessionStatus

BOLD = "\033[1m"
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def build_provider(cfg: Config) -> ModelProvider:
    """Create the configured provider (once, at startup)."""
    return get_provider(cfg.models.provider, default_model=cfg.models.get_model())


def build_source(cfg: Config, provider: ModelProvider) -> QuestionSource:
    """Create the question source for a provider."""
    return QuestionSource(
        provider,
        quiz_config=cfg.quiz,
        temperature=cfg.models.temperature,
        max_tokens=cfg.models.max_tokens,
    )


def parse_choice(text: str) -> Optional[int]:
    """
    Parse an option choice typed by the user.

    Accepts a letter (A-D, any case) or a number (1-4).

    Returns:
        0-based option index, or None if the input is not a choice
    """
    text = text.strip().upper()
    if len(text) != 1:
        return None
    if text in OPTION_LABELS:
        return OPTION_LABELS.index(text)
    if text.isdigit() and 1 <= int(text) <= len(OPTION_LABELS):
        return int(text) - 1
    return None


def format_question(state: SessionState) -> str:
    """Format the current question with a progress header."""
    question = state.current_question
    if question is None:
        return ""

    filled = int(state.progress * 20)
    bar = "█" * filled + "░" * (20 - filled)

    lines = [
        "",
        f"Question {state.current_question_index + 1} of {state.total_questions}  {bar}",
        "",
        f"{BOLD}{question.text}{RESET}",
        "",
    ]
    for index, option in enumerate(question.options):
        lines.append(f"  {question.option_label(index)}) {option}")
    lines.append("")
    return "\n".join(lines)


def _ask(input_fn: Callable[[str], str], prompt: str) -> Optional[str]:
    """Read a line; None when input is closed."""
    try:
        return input_fn(prompt)
    except (EOFError, KeyboardInterrupt):
        return None


def _yes(answer: Optional[str]) -> bool:
    return answer is not None and answer.strip().lower() in ("y", "yes")


async def play(
    session: QuizSession,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
    show_all: bool = False,
) -> Optional[SessionState]:
    """
    Run the interactive quiz loop until the user quits.

    Args:
        session: Session to drive
        input_fn: Line reader (input() in the terminal)
        output: Line writer (print() in the terminal)
        show_all: Show every question in the review, not just mistakes

    Returns:
        The last finished state, or None if no quiz was finished
    """
    finished = None

    while True:
        output("\nPreparing questions...")
        state = await session.start()

        if state.status == SessionStatus.ERROR:
            output(f"{RED}Error: {state.error_message}{RESET}")
            if _yes(_ask(input_fn, "Try again? [y/N] ")):
                continue
            return finished

        while state.status == SessionStatus.ACTIVE:
            output(format_question(state))
            label = "Finish" if state.is_last_question else "Next"
            answer = _ask(input_fn, f"Your answer (A-D, q to quit) [{label}]: ")

            if answer is None or answer.strip().lower() == "q":
                return finished

            choice = parse_choice(answer)
            if choice is None:
                output("Please choose A, B, C or D.")
                continue

            state = session.answer(choice)

        finished = state
        review = build_review(state)
        output(format_review_terminal(review, show_all=show_all))

        if not _yes(_ask(input_fn, "Play again? [y/N] ")):
            return finished
        session.restart()


async def run_play(cfg: Config, show_all: bool = False) -> int:
    provider = build_provider(cfg)
    try:
        session = QuizSession(build_source(cfg, provider))
        finished = await play(session, show_all=show_all)
    finally:
        await provider.close()

    if finished is not None:
        print(f"\n{GREEN}Final score: {finished.score}/{finished.total_questions}{RESET}")
    return 0


async def run_generate(cfg: Config, as_json: bool) -> int:
    provider = build_provider(cfg)
    source = build_source(cfg, provider)
    try:
        questions = await source.fetch()
    except QuestionGenerationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await provider.close()

    if as_json:
        print(json.dumps([q.to_dict() for q in questions], indent=2, ensure_ascii=False))
        return 0

    for q in questions:
        print(f"\n{q.id + 1}. [{q.topic.value}] {q.text}")
        for index, option in enumerate(q.options):
            marker = "*" if index == q.correct_index else " "
            print(f"   {marker} {q.option_label(index)}) {option}")
        print(f"   {q.explanation}")

    usage = source.last_usage
    if usage:
        print(f"\nTokens: {usage['input_tokens']:,} in / {usage['output_tokens']:,} out")
    return 0


def build_config(args: argparse.Namespace) -> Config:
    """Build the startup config from defaults, env and CLI flags."""
    cfg = Config.mock_mode() if getattr(args, "mock", False) else Config()

    if getattr(args, "provider", None) and not getattr(args, "mock", False):
        cfg.models.provider = args.provider
    if getattr(args, "model", None):
        cfg.models.model = args.model
    if getattr(args, "count", None):
        cfg.quiz.question_count = args.count

    return cfg


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="grammar-master",
        description="AI-generated English tense quiz in your terminal",
        epilog="Example: grammar-master play --provider deepseek"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_source_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--provider",
            choices=PROVIDER_NAMES,
            help="AI provider (default: $QUIZ_PROVIDER or claude)"
        )
        sub.add_argument(
            "--model",
            help="Model ID (default: provider default)"
        )
        sub.add_argument(
            "--count",
            type=int,
            help="Number of questions (default: $QUESTION_COUNT or 25)"
        )
        sub.add_argument(
            "--mock",
            action="store_true",
            help="Use mock AI (for testing without API key)"
        )

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a quiz")
    add_source_options(play_parser)
    play_parser.add_argument(
        "--review-all",
        action="store_true",
        help="Review every question at the end, not just mistakes"
    )

    # Generate command
    generate_parser = subparsers.add_parser("generate", help="Generate one question batch and print it")
    add_source_options(generate_parser)
    generate_parser.add_argument(
        "--json",
        action="store_true",
        help="Output questions as JSON"
    )

    subparsers.add_parser("topics", help="List quiz topics")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "topics":
        for topic in Topic:
            print(topic.value)
        return 0

    if getattr(args, "count", None) is not None and args.count < 1:
        parser.error("--count must be at least 1")

    cfg = build_config(args)

    if args.command == "play":
        return asyncio.run(run_play(cfg, show_all=args.review_all))

    return asyncio.run(run_generate(cfg, as_json=args.json))


if __name__ == "__main__":
    sys.exit(main())
