"""pdf2skill CLI — command-line interface for the skill-pack compiler."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3789


def positive_int(value: str) -> int:
    """argparse type for integers >= 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def split_inputs(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma-separated --input values, dropping blanks."""
    inputs: list[str] = []
    for value in values or []:
        inputs.extend(part.strip() for part in str(value).split(","))
    return [p for p in inputs if p]


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="pdf2skill",
        description="Compile PDF documents into routed skill packs",
    )

    # Global logging verbosity flags
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging output",
    )
    verbosity.add_argument(
        "--quiet", "-q", action="store_true",
        help="Suppress all output except warnings and errors",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    # compile subcommand
    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile one or more PDFs into a skill folder and zip",
    )
    compile_parser.add_argument(
        "--input", "-i", action="append", required=True,
        help="Path to a source PDF (repeatable or comma-separated)",
    )
    compile_parser.add_argument(
        "--name", "-n", required=True, help="Skill name (slug recommended)"
    )
    compile_parser.add_argument(
        "--outdir", "-o", default=None,
        help="Output directory (default: current directory)",
    )
    compile_parser.add_argument(
        "--max-chunks", type=positive_int, default=24,
        help="Max generated atomic skills (default: 24)",
    )
    compile_parser.add_argument(
        "--min-score", type=int, default=55,
        help="Minimum routing score cutoff, recorded as metadata (default: 55)",
    )
    compile_parser.add_argument(
        "--lang", default="auto",
        help="Language mode: auto|zh|en (default: auto)",
    )
    compile_parser.add_argument(
        "--profile", default=None,
        help="Path to a language profile YAML (default: bundled profile)",
    )

    # serve subcommand
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP upload front-end",
    )
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument(
        "--port", type=int, default=None,
        help=f"Port (default: $PORT or {DEFAULT_PORT})",
    )

    # sweep subcommand
    sweep_parser = subparsers.add_parser(
        "sweep",
        help="Delete expired outputs from an output directory",
    )
    sweep_parser.add_argument(
        "--outdir", "-o", required=True, help="Output directory to sweep"
    )
    sweep_parser.add_argument(
        "--ttl-hours", type=int, default=24,
        help="Remove entries older than this many hours (minimum 1, default: 24)",
    )

    return parser


def cmd_compile(args: argparse.Namespace) -> int:
    """Compile PDFs into a skill pack.

    Returns exit code (0 = success).
    """
    # Imports inside function to keep --help fast
    from . import read_sources
    from .compiler import CompileConfig, compile_sources
    from .keywords import LANGUAGE_MODES, resolve_language_mode
    from .profile import load_profile, validate_profile
    from .render import write_pack

    inputs = split_inputs(args.input)
    if not inputs:
        logger.error("At least one --input is required.")
        return 1

    language_mode = resolve_language_mode(args.lang)
    if str(args.lang).strip().lower() not in LANGUAGE_MODES:
        logger.warning("Unknown language mode %r, using 'auto'", args.lang)

    # 1. Load and validate profile
    profile = load_profile(args.profile)
    errors = validate_profile(profile)
    if errors:
        for err in errors:
            logger.error("Profile error: %s", err)
        return 1

    # 2. Extract text from every input
    sources = read_sources(inputs)
    logger.info("Extracted text from %d input file(s)", len(sources))

    # 3. Compile
    config = CompileConfig(
        skill_name=args.name,
        language_mode=language_mode,
        max_chunks=args.max_chunks,
        min_score=args.min_score,
    )
    pack = compile_sources(sources, config, profile)

    # 4. Write folder + zip
    outdir = Path(args.outdir) if args.outdir else Path.cwd()
    result = write_pack(pack, outdir)

    logger.info("pdf2skill done")
    logger.info("- input files: %s", "; ".join(str(Path(p).resolve()) for p in inputs))
    logger.info("- language mode: %s", pack.language_mode)
    logger.info("- skill folder: %s", result.folder)
    logger.info("- zip: %s", result.zip_path)
    logger.info("- generated skills: %d", len(pack.items))
    logger.info("- dependency edges: %d", len(pack.dependencies))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP front-end with uvicorn.

    Returns exit code (0 = clean shutdown).
    """
    import uvicorn

    from .server import create_app

    port = args.port if args.port is not None else int(os.environ.get("PORT", DEFAULT_PORT))
    logger.info("pdf2skill web server running: http://%s:%d", args.host, port)
    uvicorn.run(create_app(), host=args.host, port=port)
    return 0


def cmd_sweep(args: argparse.Namespace) -> int:
    """Run one retention sweep over an output directory.

    Returns exit code (0 = success).
    """
    from .store import OutputStore

    outdir = Path(args.outdir)
    if not outdir.is_dir():
        logger.error("Output directory not found: %s", outdir)
        return 1

    removed = OutputStore(outdir, ttl_hours=args.ttl_hours).sweep()
    logger.info("Removed %d expired output(s)", len(removed))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()

    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # Return the exit code from argparse (0 for --help, 2 for errors)
        return e.code if isinstance(e.code, int) else 1

    # Configure root logger based on verbosity flags
    if getattr(args, "verbose", False):
        log_level = logging.DEBUG
    elif getattr(args, "quiet", False):
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    command_handlers = {
        "compile": cmd_compile,
        "serve": cmd_serve,
        "sweep": cmd_sweep,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except Exception as e:
        logger.error("pdf2skill failed: %s", e)
        return 1
