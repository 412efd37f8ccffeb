"""
Main entry point for the unified interview engine.
"""

import argparse
import asyncio
import logging
import sys

from unified_interview.config import get_settings
from unified_interview.db.store import InMemorySessionStore, SessionStore, SqlSessionStore
from unified_interview.io.text_interface import TextInterface
from unified_interview.models.llm_client import LLMClient
from unified_interview.orchestrator.interview_orchestrator import InterviewEngine
from unified_interview.orchestrator.schemas import Difficulty, InterviewStyle, SessionSettings


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="unified-interview")
    parser.add_argument(
        "--style",
        choices=[s.value for s in InterviewStyle],
        default=InterviewStyle.FOCUSED.value,
        help="How many questions each module aims for",
    )
    parser.add_argument(
        "--difficulty",
        choices=[d.value for d in Difficulty],
        default=Difficulty.MIDDLE.value,
        help="Seniority level the interview is calibrated for",
    )
    parser.add_argument(
        "--user",
        default="cli-user",
        help="Candidate identifier for the session",
    )
    parser.add_argument(
        "--focus",
        action="append",
        default=[],
        help="Topic hint for the interviewer (repeatable)",
    )
    return parser


async def run_interview(argv: list[str] | None = None) -> None:
    """
    Run an interactive interview session.

    This is the main async entry point that initializes all components
    and runs the interview loop.
    """
    settings = get_settings()
    logger = logging.getLogger(__name__)

    args = build_parser().parse_args(argv)
    session_settings = SessionSettings(
        style=InterviewStyle(args.style),
        difficulty=Difficulty(args.difficulty),
        focus_areas=args.focus,
    )

    logger.info("Initializing unified interview engine...")
    logger.debug(f"Using LLM model: {settings.llm_model_name}")

    store: SessionStore
    if settings.database_url:
        sql_store = SqlSessionStore(settings.database_url)
        await sql_store.init_models()
        store = sql_store
    else:
        store = InMemorySessionStore()

    engine = InterviewEngine(llm_client=LLMClient(), store=store, settings=settings)
    interface = TextInterface(engine, user_id=args.user, settings=session_settings)

    logger.info("Starting interview session...")
    try:
        await interface.run()
    finally:
        await engine.aclose()


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    try:
        asyncio.run(run_interview(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nInterview session terminated by user.")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
