"""
Entry point for running DOCX Templater as a module.

Usage:
    python -m docx_templater variables template.docx
    python -m docx_templater fill template.docx plan.json --output out.docx
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
