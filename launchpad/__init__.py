"""
launchpad - executor launcher for cluster worker nodes.

Fetches an executor's resources into its sandbox, sets up the executor's
environment and identity, then replaces itself with the executor command
(optionally wrapped in a container lifecycle).
"""

__version__ = "0.1.0"
