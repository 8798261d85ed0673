from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from app.core.errors import LearningEnvError
from app.core.logging import setup_logging
from app.modules.generation import parser as output_parser
from app.modules.generation.client import GeminiCompleter
from app.modules.generation.prompts import PROMPT_BUILDERS
from app.modules.generation.service import LearningContentGenerator
from app.modules.wizard.models import ContentInput, EducationLevel


def _load_text(args: argparse.Namespace, flag: str = "--content") -> str:
    if args.text and args.file:
        raise SystemExit(f"Provide either {flag} or --file, not both")
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    if args.text:
        return args.text
    if not sys.stdin.isatty():
        return sys.stdin.read()
    raise SystemExit(f"{flag} or --file is required")


def _dump(items) -> None:
    print(json.dumps([i.model_dump(mode="json") for i in items], indent=2))


async def _generate(kind: str, content: ContentInput):
    generator = LearningContentGenerator(GeminiCompleter())
    if kind == "flashcards":
        return await generator.generate_flashcards(content)
    if kind == "quiz":
        return await generator.generate_quiz(content)
    return await generator.generate_theory(content)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="learning-env-gen", description="Learning material generator CLI"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    for kind in PROMPT_BUILDERS:
        g = sub.add_parser(kind, help=f"Generate {kind} from subject content")
        g.add_argument("--content", "-c", dest="text", help="Subject content (text)")
        g.add_argument("--file", help="Path to a file containing the subject content")
        g.add_argument(
            "--level",
            choices=[lvl.value for lvl in EducationLevel],
            default=EducationLevel.HBO.value,
        )
        g.add_argument(
            "--print-prompt",
            action="store_true",
            help="Print the prompt instead of calling the model",
        )

    p = sub.add_parser("parse", help="Parse saved model output without calling the model")
    p.add_argument("kind", choices=list(PROMPT_BUILDERS))
    p.add_argument("--text", "-t", help="Raw model output")
    p.add_argument("--file", help="Path to a file containing raw model output")

    args = parser.parse_args(argv)
    setup_logging()

    if args.cmd == "parse":
        raw = _load_text(args, flag="--text")
        if args.kind == "flashcards":
            _dump(output_parser.parse_flashcards(raw))
        elif args.kind == "quiz":
            _dump(output_parser.parse_quiz(raw))
        else:
            _dump(output_parser.parse_theory(raw))
        return 0

    content = ContentInput(subject_text=_load_text(args), level=args.level)
    if args.print_prompt:
        print(PROMPT_BUILDERS[args.cmd](content.source_text(), content.level))
        return 0
    try:
        result = asyncio.run(_generate(args.cmd, content))
    except LearningEnvError as e:
        print(json.dumps(e.to_payload(), indent=2), file=sys.stderr)
        return 1
    _dump(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
