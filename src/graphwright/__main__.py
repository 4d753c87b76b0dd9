from __future__ import annotations

from graphwright.main import cli

cli()
