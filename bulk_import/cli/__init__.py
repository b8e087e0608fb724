from __future__ import annotations


def main(argv: list[str] | None = None) -> int:
    # __main__ は遅延 import (python -m bulk_import.cli での二重 import 回避)
    from .__main__ import main as _main

    return _main(argv)
