"""Module entrypoint for ``python -m taskorch``.

A thin wrapper around :func:`taskorch.cli.main`; the CLI return code becomes the process
exit status via ``SystemExit``. Equivalent to the ``taskorch`` console script.
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
