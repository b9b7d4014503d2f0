"""nix-config-manager: keep a NixOS host in step with its configuration repo.

Checks whether the tracked branch moved on the remote, hard-resets the local
checkout to it, runs the system rebuild, and reports the outcome to a
Discord webhook.
"""

__version__ = "0.1.0"
