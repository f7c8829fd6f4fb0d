"""Command-line interface for the take selector.

WHY: Editors and batch jobs need to run selection on a transcript file
without writing Python. The CLI wires the pipeline together behind one
command: load the transcript and optional script, select takes, write
every requested output format, and optionally the explainability log.

HOW: argparse accepts the transcript path, script and config options,
output format selection, and output directory. Status messages go to
stderr; output files are saved next to the transcript (or to
--output-dir).

RULES:
- Positional argument: caption transcript JSON path
- --script overrides the auto-discovered {stem}-script.txt companion
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts
  (-selection-2.json)
- --log writes {stem}-selection-log.json; a log failure is reported but
  never fails the run
- Status output goes to stderr (not stdout)
- Exit code 1 on invalid input or configuration
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import jsonschema

from take_selector.adapters.transcript_adapter import load_transcript
from take_selector.config import load_config
from take_selector.core.engine import select_takes
from take_selector.core.explain import LogCollector
from take_selector.formatters import FORMATTERS
from take_selector.formatters.base import FormatterOutput

logger = logging.getLogger(__name__)

LOG_SUFFIX = "-selection-log.json"


def _status(msg: str) -> None:
    """Print a status message to stderr, flushed."""
    print(msg, file=sys.stderr, flush=True)


def _error(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def transcript_stem(path: Path) -> str:
    """Strip all extensions ("interview.captions.json" → "interview")."""
    stem = path.name
    while "." in stem:
        stem = stem.rsplit(".", 1)[0]
    return stem


def resolve_script_path(transcript_path: Path, explicit: Optional[str]) -> Optional[Path]:
    """Find the script to use, if any.

    RULES:
    - An explicit path wins (and must exist)
    - Otherwise {stem}-script.txt next to the transcript, if present
    """
    if explicit:
        return Path(explicit)
    companion = transcript_path.parent / "{}-script.txt".format(transcript_stem(transcript_path))
    if companion.is_file():
        return companion
    return None


def _resolve_output_path(stem: str, suffix: str, output_dir: Path) -> Path:
    """Return a path that does not exist yet, adding -2, -3... on conflict."""
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    # "-selection.json" → ("-selection", ".json")
    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _parse_formats(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(FORMATTERS.keys())
    keys = [f.strip() for f in raw.split(",") if f.strip()]
    for key in keys:
        if key not in FORMATTERS:
            available = ", ".join(sorted(FORMATTERS.keys()))
            _error("Unknown format '{}'. Available formats: {}".format(key, available))
    return keys


def _write_log(
    collector: LogCollector,
    stem: str,
    output_dir: Path,
    config,
    stats,
) -> Optional[Path]:
    """Finalize and save the explainability log; None if that failed."""
    try:
        trace = collector.finalize(stem, config, stats)
        path = _resolve_output_path(stem, LOG_SUFFIX, output_dir)
        path.write_text(json.dumps(trace, indent=2, ensure_ascii=False), encoding="utf-8")
        return path
    except (OSError, TypeError, ValueError):
        logger.exception("Could not write the selection log")
        return None


def run(args: argparse.Namespace) -> None:
    """Execute selection for one transcript file."""
    transcript_path = Path(args.transcript).resolve()
    if not transcript_path.is_file():
        _error("File not found: {}".format(transcript_path))

    output_dir = Path(args.output_dir).resolve() if args.output_dir else transcript_path.parent
    if not output_dir.is_dir():
        _error("Output directory does not exist: {}".format(output_dir))

    format_keys = _parse_formats(args.formats)
    stem = transcript_stem(transcript_path)

    try:
        config = load_config(args.config)
        if args.min_score is not None:
            config = replace(config, min_score=args.min_score).validate()

        _status("Loading transcript...")
        captions = load_transcript(transcript_path)
        _status("  {} caption(s)".format(len(captions)))

        script_text: Optional[str] = None
        script_path = resolve_script_path(transcript_path, args.script)
        if script_path is not None:
            if not script_path.is_file():
                _error("Script not found: {}".format(script_path))
            script_text = script_path.read_text(encoding="utf-8").strip()
            origin = "explicit" if args.script else "auto-discovered"
            _status("  Script: {} ({})".format(script_path.name, origin))

        collector = LogCollector() if args.log else None

        _status("Selecting takes...")
        result = select_takes(captions, script_text, config, collector)
        stats = result.stats
        _status("  Mode: {}".format(result.mode.value))
        _status("  Kept {} of {} take(s)".format(stats.selected_candidates, stats.total_candidates))
        if result.missing:
            _status("  Warning: {} script line(s) without a take".format(len(result.missing)))

        _status("Formatting output...")
        saved_files: List[Path] = []
        for key in format_keys:
            formatter = FORMATTERS[key]()
            _status("  Running {} formatter...".format(formatter.name))
            for output in formatter.format(result):
                saved_path = _save_output(output, stem, output_dir)
                saved_files.append(saved_path)
                _status("  Saved: {}".format(saved_path.name))
    except jsonschema.ValidationError as e:
        _error("Invalid document: {}".format(e.message))
    except ValueError as e:
        # Config and transcript format errors
        _error(str(e))

    if collector is not None:
        log_path = _write_log(collector, stem, output_dir, config, stats)
        if log_path is not None:
            saved_files.append(log_path)
            _status("  Saved: {}".format(log_path.name))
        else:
            _status("  Warning: selection log could not be written")

    _status("")
    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Kept separate from main() so tests can inspect the parser.
    """
    parser = argparse.ArgumentParser(
        prog="take_selector",
        description="Pick the best take of every line from a caption transcript "
                    "and write a cut list (selection JSON, plain text report).",
    )

    parser.add_argument(
        "transcript",
        help="Path to the caption transcript JSON file.",
    )

    parser.add_argument(
        "--script",
        default=None,
        help="Path to the script text file. Defaults to {stem}-script.txt "
             "next to the transcript if it exists.",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to a JSON file with selection config overrides.",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as the transcript).",
    )

    parser.add_argument(
        "--log",
        action="store_true",
        help="Also write the explainability log ({{stem}}{}).".format(LOG_SUFFIX),
    )

    parser.add_argument(
        "--min-score",
        type=float,
        default=None,
        help="Minimum acceptance score (0-100), overrides the config.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m take_selector``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    run(args)


if __name__ == "__main__":
    main()
