"""
Entry point for running Template Filler as a module.

Usage:
    python -m template_filler fill template.docx data.json -o output.docx
    python -m template_filler info template.odt
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
