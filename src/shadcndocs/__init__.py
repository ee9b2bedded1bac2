"""Documentation retrieval for shadcn-svelte: fetch strategies over a two-tier cache."""

from __future__ import annotations

__version__ = "0.3.0"
