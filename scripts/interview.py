"""Run one documentation conversation in the terminal.

Analyzes the materials, prints the clarifying questions, reads answers from
stdin (or `skip`) and writes PRD-<service>.md / TSD-<service>.md.
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from constants import DOCUMENTS_DIR
from doc_interviewer.errors import GateError, IncompleteAnswerSet
from doc_interviewer.gate import (
    ConversationGate,
    GateState,
    get_profile,
    get_schema,
    is_skip_directive,
    parse_answers,
    render_questions,
)
from doc_interviewer.materials import load_materials
from doc_interviewer.services.analysis import LLMAnalyzer
from doc_interviewer.services.document import write_document

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Interview a codebase, then write a PRD or TSD",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("materials", help="Codebase directory or git URL")
    parser.add_argument("--kind", "-k", choices=["prd", "tsd"], default="prd")
    parser.add_argument("--service", "-s", required=True, help="Service name used in the file name")
    parser.add_argument("--profile", "-p", choices=["generic", "python", "go"], default=None,
                        help="Analysis checklist (default: detected from project files)")
    parser.add_argument("--companion", "-c", default=None,
                        help="Companion document (e.g. the PRD when writing a TSD)")
    parser.add_argument("--output", "-o", default=str(DOCUMENTS_DIR), help="Output directory")
    parser.add_argument("--skip", action="store_true", help="Accept every stated assumption")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser.parse_args(argv)


def read_reply() -> str | None:
    """Read answer lines until an empty line; None on EOF before any line."""
    lines: list[str] = []
    for line in sys.stdin:
        if not line.strip():
            return "\n".join(lines)
        lines.append(line.rstrip("\n"))
    return "\n".join(lines) if lines else None


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    companion = None
    if args.companion:
        companion = Path(args.companion).read_text(encoding="utf-8")

    try:
        materials = load_materials(args.materials)
        gate = ConversationGate(
            get_schema(args.kind),
            LLMAnalyzer(),
            service_name=args.service,
            profile=get_profile(args.profile) if args.profile else None,
            companion_document=companion,
        )
        gate.analyze(materials)
    except GateError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    while gate.state == GateState.AWAITING_CLARIFICATION:
        if args.skip:
            gate.resume(skip=True)
            break
        print(render_questions(gate.pending_questions()))
        reply = read_reply()
        if reply is None:
            print("Input closed before every question was answered; no document written.", file=sys.stderr)
            return 1
        if not reply.strip():
            print("\nNo answers read. Answer the questions above or reply `skip`.\n")
            continue
        try:
            if is_skip_directive(reply):
                gate.resume(skip=True)
            else:
                gate.resume(parse_answers(reply))
        except IncompleteAnswerSet as exc:
            print(f"\n{exc}. Answer the remaining questions or reply `skip`.\n")
        except GateError as exc:
            print(f"\n{exc}\n")

    document = gate.generate()
    path = write_document(document.render(), document.file_name, args.output)
    print(f"Wrote {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
