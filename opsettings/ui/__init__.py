"""opsettings UI module.

- tui: Textual-based settings surface
"""

from __future__ import annotations

__all__ = ["tui"]
