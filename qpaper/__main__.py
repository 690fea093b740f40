"""
Module entry point for: python -m qpaper

Allows running the extractor directly as a module:
    python -m qpaper extract <pdf_path> [options]
    python -m qpaper render <pdf_path> -o paper.html
    python -m qpaper serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
