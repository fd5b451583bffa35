"""Main entry point when executing hustleai as a package.

This allows running the package using python -m hustleai.
"""

from hustleai.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
