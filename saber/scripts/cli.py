"""
Saber - Command-Line Entry Point
=================================
Owns the process lifecycle: loads settings, builds the model
collaborators once, wires the ``RAGManager`` and runs one command.

Commands:
    build [--force]          Build the text index (only if missing/empty unless --force).
    ask "<question>"         Route + generate an answer for one question.
    add-image <path>         Store, caption, embed and index an image file.
    find-image "<text>"      Print the stored image that best matches a description.

Observability:
    Every phase is timed — settings load, model wiring, the command
    itself — and printed in a summary footer.

Usage:
    saber build --force
    python -m saber.scripts.cli ask "Explique o protocolo X"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="saber", description="Saber — knowledge-base and image retrieval assistant.")
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Build the text index from the knowledge directory.")
    build.add_argument("--force", action="store_true", default=False, help="Rebuild even if a non-empty index already exists.")

    ask = sub.add_parser("ask", help="Answer a question using the knowledge base.")
    ask.add_argument("question", help="Question text.")

    add_image = sub.add_parser("add-image", help="Index an image file.")
    add_image.add_argument("path", type=Path, help="Image file to add.")

    find_image = sub.add_parser("find-image", help="Find the stored image that best matches a description.")
    find_image.add_argument("description", help="What the image shows.")

    return parser.parse_args(argv)


# ── Main Orchestration ─────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    # ── 0. Load settings + .env (timed) ────────────────────────────────
    t_settings = time.perf_counter()
    try:
        from saber.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)
    settings_ms = (time.perf_counter() - t_settings) * 1000

    # Now that settings is loaded, we can safely import the logger
    from saber.src.utils.logger import get_logger
    logger = get_logger(__name__)

    logger.info("Settings loaded in %.1fms", settings_ms)
    _print_header(settings)

    # ── 1. Build collaborators + engine (timed) ────────────────────────
    t_wiring = time.perf_counter()
    try:
        from saber.src.core.collaborators import build_collaborators
        from saber.src.core.rag_engine import RAGManager

        rag = RAGManager.from_collaborators(build_collaborators(settings))
    except ImportError as exc:
        logger.error("Missing model dependency: %s", exc)
        sys.exit(1)
    wiring_ms = (time.perf_counter() - t_wiring) * 1000
    logger.info("Engine wired in %.1fms", wiring_ms)

    # ── 2. Run command ─────────────────────────────────────────────────
    t_command = time.perf_counter()
    exit_code = asyncio.run(_run(args, rag))
    command_s = time.perf_counter() - t_command

    _print_footer(args.command, settings_ms, wiring_ms, command_s, time.perf_counter() - t_start)
    if exit_code:
        sys.exit(exit_code)


async def _run(args: argparse.Namespace, rag: object) -> int:
    """Execute the selected command.  Returns a process exit code."""
    if args.command == "build":
        if args.force:
            index = rag.pipeline.build_text_index()  # type: ignore[attr-defined]
            print(f"Index rebuilt: {len(index)} chunk(s).")
        else:
            print(f"Index ready: {rag.start()} chunk(s).")  # type: ignore[attr-defined]
        return 0

    if args.command == "ask":
        rag.start()  # type: ignore[attr-defined]
        answer = await rag.handle_text_query(args.question)  # type: ignore[attr-defined]
        if answer is None:
            print("(empty question — nothing to answer)")
            return 1
        print(answer)
        return 0

    if args.command == "add-image":
        if not args.path.is_file():
            print(f"Image not found: {args.path}")
            return 1
        receipt = await rag.handle_image_received(args.path.read_bytes())  # type: ignore[attr-defined]
        print(f"Stored: {receipt.stored_path}")
        print(f"Caption: {receipt.caption}")
        return 0

    if args.command == "find-image":
        match = await rag.handle_image_query(args.description)  # type: ignore[attr-defined]
        if match is None:
            print("No matching image.")
            return 1
        print(f"{match.record.file_path}  (score={match.score:.3f})")
        print(f"Caption: {match.record.caption}")
        return 0

    return 2


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: object) -> None:
    print()
    print("=" * 60)
    print("  SABER — Knowledge & Image Retrieval")
    print("=" * 60)
    print(f"  Environment   : {settings.ENV}")                 # type: ignore[attr-defined]
    print(f"  Knowledge dir : {settings.KNOWLEDGE_DIR}")       # type: ignore[attr-defined]
    print(f"  Text index    : {settings.VECTOR_INDEX_PATH}")   # type: ignore[attr-defined]
    print(f"  Image index   : {settings.IMAGE_INDEX_PATH}")    # type: ignore[attr-defined]
    print(f"  Embeddings    : {settings.EMBEDDING_PROVIDER}")  # type: ignore[attr-defined]
    print(f"  LLM           : {settings.LLM_PROVIDER}")        # type: ignore[attr-defined]
    print(f"  Top-K / thr.  : {settings.TOP_K} / {settings.SIM_THRESHOLD}")  # type: ignore[attr-defined]
    print("=" * 60)
    print()


def _print_footer(command: str, settings_ms: float, wiring_ms: float, command_s: float, elapsed: float) -> None:
    print()
    print("=" * 60)
    print(f"  EXECUTION SUMMARY — {command}")
    print("-" * 60)
    print(f"  Settings + .env load : {settings_ms:>8.1f}ms")
    print(f"  Engine wiring        : {wiring_ms:>8.1f}ms")
    print(f"  Command time         : {command_s:>8.2f}s")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
