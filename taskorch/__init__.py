"""taskorch: hierarchical task lifecycle tracking for autonomous agents.

An agent decomposes work into a forest of tasks, then works through it strictly left to
right, depth first. The package keeps that forest consistent:

- `taskorch.engine.TaskEngine` creates, starts, completes, updates and deletes tasks. Starting
  a task auto-starts its first unfinished descendants; completing the last open child of a
  task auto-completes the parent, and so on upward.
- `taskorch.order` refuses to start a task while an earlier sibling (at any ancestor level)
  is unfinished.
- At most one leaf task is in progress at a time; starting another leaf resets the previous
  one to todo.
- `taskorch.report` renders the markdown progress/hierarchy tables returned by start and
  complete.
- `taskorch.store` persists whole snapshots to a JSON file or keeps them in memory.
- `taskorch.tools` exposes the engine as named tool calls with JSON responses, and
  `taskorch.cli` wraps those tools as subcommands plus a JSON-lines `serve` loop.

Key exports from this module
- `__version__`: the package version string. (`__all__` is intentionally limited to this.)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
