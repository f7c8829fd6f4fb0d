"""Take Selector: best-take detection for spoken-word recordings.

WHY: Talking-head recordings are full of false starts, stutters and
repeated attempts at the same line. Editors want one clean take per
line without listening to every attempt. This package finds every
attempt, scores it, and picks a winner per line with a readable reason.

HOW: Four-stage pipeline: load (transcript adapter), group (script
alignment or phrase similarity), score (weighted criteria), select
(one winner per group). Formatters turn the SelectionResult into
cut-list files; an optional LogCollector records the decision trace.

RULES:
- The core is pure computation: no network, file, or process I/O
- Identical transcript + script + config always give identical output
- Within one group at most one candidate is ever selected
"""

__version__ = "0.1.0"
