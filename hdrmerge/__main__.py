"""
Entry point for `python -m hdrmerge`.

Provides the command-line interface without any GUI dependencies.
"""

from .cli import main

if __name__ == "__main__":
    main()
