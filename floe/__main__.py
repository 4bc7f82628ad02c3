"""Allow ``python -m floe``."""
from __future__ import annotations

from .cli import main

main()
