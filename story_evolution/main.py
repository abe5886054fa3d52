"""
Story Evolution - Command Line Entry Point

Processes one produced unit at a time against a story state file.

    python -m story_evolution.main init --state story.json --story-id s1 \\
        --format comic --outline outline.txt --characters roster.json
    python -m story_evolution.main run --state story.json --unit 4 --total 20 \\
        --content page4.txt --plan plan4.txt --upcoming upcoming.json
    python -m story_evolution.main context --state story.json --detailed
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv

from .agents import create_role_clients
from .config import create_default_config_from_env, create_settings_from_env
from .core.exceptions import EvolutionError
from .core.pipeline import StoryEvolution

logger = logging.getLogger("story_evolution")


def _configure_logging(verbose: bool) -> None:
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(handler)


def _read_text(path: Optional[str]) -> str:
    if not path:
        return ""
    return Path(path).read_text(encoding="utf-8")


def _read_json(path: Optional[str], default: Any) -> Any:
    if not path:
        return default
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _write_json(path: str, data: Any) -> None:
    Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="story_evolution",
        description="Track how a story evolves unit by unit and revise upcoming plans.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Create a new story state file")
    init.add_argument("--state", required=True, help="Path of the state JSON to create")
    init.add_argument("--story-id", required=True)
    init.add_argument("--format", default="book", choices=["book", "comic", "screenplay"])
    init.add_argument("--outline", help="Text file with the original outline")
    init.add_argument("--characters", help='JSON list of {"name", "role", "description"} objects')

    run = subparsers.add_parser("run", help="Process one produced unit")
    run.add_argument("--state", required=True, help="State JSON, updated in place")
    run.add_argument("--unit", type=int, required=True, help="Chapter, page or sequence number")
    run.add_argument("--total", type=int, required=True, help="Total planned units")
    run.add_argument("--content", required=True, help="Text file with the produced unit")
    run.add_argument("--plan", help="Text file with the unit's planned summary")
    run.add_argument("--prior", help="Text file with the story-so-far summary")
    run.add_argument("--upcoming", help="JSON list of upcoming plan units")
    run.add_argument("--decisions", help="JSON list of key decisions made in this unit")
    run.add_argument("--result", help="Where to write the unit result JSON")
    run.add_argument("--no-revise", action="store_true", help="Skip revising upcoming plans")

    context = subparsers.add_parser("context", help="Print the evolution context for the next unit")
    context.add_argument("--state", required=True)
    context.add_argument("--detailed", action="store_true")

    return parser


def _init(args: argparse.Namespace) -> int:
    settings = create_settings_from_env()
    evolution = StoryEvolution.initialize_tracking(
        args.story_id,
        _read_text(args.outline),
        _read_json(args.characters, []),
        args.format,
        settings=settings,
    )
    _write_json(args.state, evolution.to_dict())
    logger.info(f"[init] Wrote {args.format} story {args.story_id} to {args.state}")
    return 0


async def _run(args: argparse.Namespace) -> int:
    config = create_default_config_from_env()
    errors = config.validate_role_models()
    if errors:
        for error in errors:
            logger.error(f"[run] Configuration error: {error}")
        return 2

    extraction_client, revision_client = create_role_clients(config)
    evolution = StoryEvolution.from_dict(
        _read_json(args.state, {}),
        extraction_client=extraction_client,
        revision_client=revision_client,
        settings=create_settings_from_env(),
    )

    result = await evolution.run_unit(
        content=_read_text(args.content),
        unit_number=args.unit,
        planned_summary=_read_text(args.plan),
        prior_summary=_read_text(args.prior),
        upcoming_plans=_read_json(args.upcoming, []),
        total_units=args.total,
        decisions=_read_json(args.decisions, None),
        auto_revise=False if args.no_revise else None,
    )

    _write_json(args.state, evolution.to_dict())
    if args.result:
        _write_json(args.result, result.to_dict())

    for reason in result.reasons:
        print(f"- {reason}")
    print(f"Revision urgency: {result.urgency.value}")
    return 0


def _context(args: argparse.Namespace) -> int:
    evolution = StoryEvolution.from_dict(_read_json(args.state, {}))
    if args.detailed:
        print(evolution.generate_detailed_evolution_context())
    else:
        print(evolution.generate_evolution_context())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.command == "init":
            return _init(args)
        if args.command == "run":
            return asyncio.run(_run(args))
        return _context(args)
    except (EvolutionError, ValueError, OSError) as e:
        logger.error(f"[main] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
