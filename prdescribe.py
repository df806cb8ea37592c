#!/usr/bin/env python
"""
Thin wrapper script to invoke the prd_helper CLI.

Running ``python prdescribe.py`` is equivalent to running the
``prdescribe`` console script installed via ``pyproject.toml``.
"""

from prd_helper.cli import main


if __name__ == "__main__":
    main(prog_name="prdescribe")
