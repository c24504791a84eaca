"""Host identification for telemetry labels."""

from __future__ import annotations

import os
import socket


def get_hostname(no_hostname: bool = False) -> str:
    """Hostname to attach to collected telemetry.

    Returns an empty string when hostnames are disabled. ``NODE_NAME``
    takes precedence over the local host name so pods report their node.
    """
    if no_hostname:
        return ""
    node_name = os.environ.get("NODE_NAME")
    if node_name:
        return node_name
    return socket.gethostname()
