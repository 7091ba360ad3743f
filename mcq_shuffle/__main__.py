"""
Module entry point for: python -m mcq_shuffle

Allows running the CLI directly as a module:
    python -m mcq_shuffle parse <exam.txt>
    python -m mcq_shuffle generate <exam.txt> [options]
    python -m mcq_shuffle sheet <exam.txt> [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
