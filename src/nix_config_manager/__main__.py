"""Entry point for ``python -m nix_config_manager``."""

import sys

from nix_config_manager.cli import main

if __name__ == "__main__":
    sys.exit(main())
