"""HAProxy load-balancer actions.

Config edits run as a short script on the load balancer: back up the
live file, edit it with sed, validate with ``haproxy -c`` and restart.
Any failure after the edit copies the backup back before exiting.
"""

import re

from kubehop import actions
from kubehop.commands.common import get_port, get_str, require
from kubehop.models import CommandTemplate, Params
from kubehop.services.proxy_config import BACKEND_NAME, BASE_CONFIG, server_line
from kubehop.services.registry import CommandRegistry
from kubehop.utils.shell import heredoc, sudo

HAPROXY_CONFIG = "/etc/haproxy/haproxy.cfg"
UPDATE_SCRIPT = "/tmp/update_haproxy.sh"
REMOVE_SCRIPT = "/tmp/remove_server.sh"
INSTALL_LOG = "/tmp/haproxy_install.log"
LOAD_BALANCER_INFO = "/tmp/load_balancer_info"
INSTALL_DONE = "load balancer install finished"

SERVER_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
ADDRESS_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.:-]*$")


def _checked_name(name: str) -> str:
    if not SERVER_NAME_RE.match(name):
        raise ValueError(f"invalid server name: {name!r}")
    return name


def _checked_address(address: str) -> str:
    if not ADDRESS_RE.match(address):
        raise ValueError(f"invalid server address: {address!r}")
    return address


def _guarded_tail(success_message: str) -> str:
    """Validate, restart and restore-on-failure, shared by both scripts."""
    return f"""
if ! haproxy -c -f "$CFG"; then
  restore "configuration check failed"
fi

if ! systemctl restart haproxy && ! service haproxy restart; then
  restore "haproxy restart failed"
fi

echo "{success_message}"
"""


def _script_head(config_path: str) -> str:
    return f"""#!/bin/bash
set -euo pipefail

CFG="{config_path}"
BACKUP="$CFG.bak_$(date +%Y%m%d%H%M%S)"
cp "$CFG" "$BACKUP"

restore() {{
  echo "$1, restoring $BACKUP"
  cp "$BACKUP" "$CFG"
  exit 1
}}
"""


def render_update_script(
    server_name: str,
    address: str,
    port: int,
    config_path: str = HAPROXY_CONFIG,
    backend: str = BACKEND_NAME,
) -> str:
    """Render the script that adds a control-plane node to the backend.

    The insert is skipped when the exact server line already exists
    inside the backend section. Commented lines and copies in other
    sections do not count.

    Returns:
        Complete bash script
    """
    directive = server_line(_checked_name(server_name), _checked_address(address), port)
    return (
        _script_head(config_path)
        + f"""
in_backend() {{
  awk -v want="$1" '
    /^[^ \\t#]/ {{ inside = ($1 == "backend" && $2 == "{backend}"); next }}
    inside {{
      line = $0
      sub(/^[ \\t]+/, "", line)
      sub(/[ \\t]+$/, "", line)
      if (line == want) found = 1
    }}
    END {{ exit !found }}
  ' "$CFG"
}}

if in_backend '{directive}'; then
  echo "server line already present"
else
  backend_line=$(grep -n '^backend {backend}[[:space:]]*$' "$CFG" | head -1 | cut -d: -f1 || true)
  if [ -z "$backend_line" ]; then
    echo "backend {backend} not found"
    exit 1
  fi
  sed -i "${{backend_line}}a\\\\    {directive}" "$CFG"
fi
"""
        + _guarded_tail(f"server {server_name} added to {backend}")
    )


def render_remove_script(
    server_name: str,
    config_path: str = HAPROXY_CONFIG,
    backend: str = BACKEND_NAME,
) -> str:
    """Render the script that drops a node's server line from the backend.

    Returns:
        Complete bash script
    """
    pattern = _checked_name(server_name).replace(".", "\\.")
    return (
        _script_head(config_path)
        + f"""
sed -i '/^backend {backend}/,/^[a-z]/ {{/^[[:space:]]*server {pattern} /d}}' "$CFG"
"""
        + _guarded_tail(f"server {server_name} removed from {backend}")
    )


def _run_script(path: str, body: str, password: str) -> list[str]:
    return [
        heredoc(path, body),
        f"chmod +x {path}",
        sudo(password, f"bash {path}"),
        f"rm -f {path}",
    ]


def update_commands(server_name: str, address: str, port: int, password: str) -> list[str]:
    """Commands that add a server to the load balancer backend."""
    return _run_script(UPDATE_SCRIPT, render_update_script(server_name, address, port), password)


def remove_commands(server_name: str, password: str) -> list[str]:
    """Commands that remove a server from the load balancer backend."""
    return _run_script(REMOVE_SCRIPT, render_remove_script(server_name), password)


def build_update_haproxy(params: Params) -> list[str]:
    return update_commands(
        get_str(params, "server_name"),
        get_str(params, "master_ip"),
        get_port(params),
        get_str(params, "lb_password"),
    )


def build_remove_haproxy_server(params: Params) -> list[str]:
    return remove_commands(get_str(params, "server_name"), get_str(params, "lb_password"))


def build_install_load_balancer(params: Params) -> list[str]:
    """Install HAProxy with the base TCP config, then report on the log.

    The last four commands print ``LOG_EXISTS``, ``INSTALL_COMPLETE`` and
    ``HAS_ERRORS`` markers followed by the full install log.
    """
    password = get_str(params, "password")

    def logged(command: str) -> str:
        return f"{sudo(password, command)} >> {INSTALL_LOG} 2>&1"

    install = [
        f"{sudo(password, 'apt-get update')} > {INSTALL_LOG} 2>&1",
        logged("apt-get install -y haproxy"),
        logged(f"touch {HAPROXY_CONFIG}"),
        logged(f"cp {HAPROXY_CONFIG} {HAPROXY_CONFIG}.bak"),
        heredoc("/tmp/haproxy.cfg", BASE_CONFIG),
        logged(f"cp /tmp/haproxy.cfg {HAPROXY_CONFIG}"),
        f"{sudo(password, 'systemctl restart haproxy')} || {logged('service haproxy restart')}",
        f"{sudo(password, 'systemctl enable haproxy')} || {logged('service haproxy enable')}",
        f"{sudo(password, 'systemctl status haproxy')} || {logged('service haproxy status')}",
        f"echo '{INSTALL_DONE}' >> {INSTALL_LOG}",
        "local_ip=$(hostname -I | awk '{print $1}') && echo \"load balancer IP: $local_ip\" >> " + INSTALL_LOG,
        "local_ip=$(hostname -I | awk '{print $1}') && echo \"LOAD_BALANCER_IP=$local_ip\" > " + LOAD_BALANCER_INFO,
    ]
    report = [
        f"ls -la {INSTALL_LOG} 2>/dev/null && echo 'LOG_EXISTS=true' || echo 'LOG_EXISTS=false'",
        f"grep -q '{INSTALL_DONE}' {INSTALL_LOG} 2>/dev/null"
        " && echo 'INSTALL_COMPLETE=true' || echo 'INSTALL_COMPLETE=false'",
        f"grep -i 'error\\|failed' {INSTALL_LOG} 2>/dev/null"
        " && echo 'HAS_ERRORS=true' || echo 'HAS_ERRORS=false'",
        f"cat {INSTALL_LOG} 2>/dev/null || echo 'install log unreadable'",
    ]
    return install + report


def register_haproxy_commands(registry: CommandRegistry) -> None:
    """Register the load balancer actions.

    Args:
        registry: Registry to populate
    """
    registry.register(
        actions.INSTALL_LOAD_BALANCER,
        CommandTemplate(
            validate=require("password"),
            build=build_install_load_balancer,
            description="Install HAProxy in front of the control plane",
            timeout=actions.TIMEOUTS[actions.INSTALL_LOAD_BALANCER],
        ),
    )
    registry.register(
        actions.UPDATE_HAPROXY,
        CommandTemplate(
            validate=require("server_name", "master_ip", "lb_password"),
            build=build_update_haproxy,
            description="Add a control-plane node to the HAProxy backend",
            timeout=actions.TIMEOUTS[actions.UPDATE_HAPROXY],
        ),
    )
    registry.register(
        actions.REMOVE_HAPROXY_SERVER,
        CommandTemplate(
            validate=require("server_name", "lb_password"),
            build=build_remove_haproxy_server,
            description="Remove a node from the HAProxy backend",
            timeout=actions.TIMEOUTS[actions.REMOVE_HAPROXY_SERVER],
        ),
    )
