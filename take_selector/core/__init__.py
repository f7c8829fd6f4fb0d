"""Core alignment, grouping, scoring and selection modules.

WHY: The core package is the decision engine: everything that turns
captions and an optional script into selected and rejected takes. It is
consumed by the CLI and the formatters and must stay free of I/O.

HOW: ir.py defines the data structures, text.py and aligner.py are the
shared matching utilities, takes.py and phrases.py produce groups,
scorer.py and selector.py decide, engine.py wires them together and
explain.py collects an optional audit trail.

RULES:
- IR dataclasses are the contract between stages; change with care
- No module here reads files, environment variables, or the clock
  (explain.py measures processing time for the log only)
"""
