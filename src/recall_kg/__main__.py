"""Entry point for python -m recall_kg execution.

This module enables running recall-kg as a module:
    python -m recall_kg --help
    python -m recall_kg duplicates alice
"""

from recall_kg.cli import app

if __name__ == "__main__":
    app()
