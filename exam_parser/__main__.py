"""
Module entry point for: python -m exam_parser

Allows running the parser directly as a module:
    python -m exam_parser parse <source> [options]
    python -m exam_parser validate <json_path> [options]
    python -m exam_parser serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
