#!/usr/bin/env python3
"""
codeforge-agent - AI-first code editor for your terminal.

Runs the CLI from a source checkout without installing the package.
"""

import sys


def main():
    try:
        from codeforge_agent.main import cli
    except ImportError as e:
        print(f"Error: Failed to import required modules: {e}")
        print("Please make sure you have installed the package with:")
        print("  pip install -e .")
        sys.exit(1)
    cli()


if __name__ == "__main__":
    main()
