"""Allow ``python -m docqa.cli`` execution."""

from docqa.cli.pipeline import main

main()
