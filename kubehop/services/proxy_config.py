"""HAProxy load-balancer configuration text.

BASE_CONFIG is what installLoadBalancer writes. The update and remove
scripts in ``kubehop.commands.haproxy`` only touch
``server <name> <host>:<port> check`` lines inside BACKEND_NAME.
"""

BACKEND_NAME = "kubernetes-backend"
FRONTEND_PORT = 6444

BASE_CONFIG = f"""global
    log /dev/log    local0
    log /dev/log    local1 notice
    chroot /var/lib/haproxy
    stats socket /run/haproxy/admin.sock mode 660 level admin expose-fd listeners
    stats timeout 30s
    user haproxy
    group haproxy
    daemon

defaults
    log     global
    mode    tcp
    option  tcplog
    option  dontlognull
    timeout connect 5000
    timeout client  50000
    timeout server  50000

frontend kubernetes-frontend
    bind *:{FRONTEND_PORT}
    mode tcp
    default_backend {BACKEND_NAME}

backend {BACKEND_NAME}
    mode tcp
    balance roundrobin
    option tcp-check
"""


def server_line(name: str, host: str, port: int) -> str:
    """Render a backend server directive without indentation."""
    return f"server {name} {host}:{port} check"
