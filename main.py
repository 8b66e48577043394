"""Main entry point for the gitsync CLI tool.

Allows running the tool from a checkout without installing it:

    python main.py -c repos.yaml -b ~/src
"""

from gitsync.cli import main

if __name__ == "__main__":
    main()
