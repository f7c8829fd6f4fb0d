"""Package entry point for ``python -m take_selector``.

WHY: Users run the selector as ``python -m take_selector captions.json``.
Python's ``-m`` flag looks for ``__main__.py`` inside the package and
executes it.

RULES:
- This file must exist for ``python -m take_selector`` to work
- Delegates straight to the CLI's main()
"""

from take_selector.cli import main

if __name__ == "__main__":
    main()
