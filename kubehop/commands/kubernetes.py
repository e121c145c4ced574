"""Kubernetes node actions: bootstrap, join, status and teardown.

Long-running work (first master install, joins) is started detached
with nohup and reported on by later status actions. Teardown actions
are plain command lists; every command runs even when an earlier one
fails, so a half-installed node is still cleaned up as far as possible.
"""

from kubehop import actions
from kubehop.bootstrap import paths
from kubehop.bootstrap.scripts import (
    DEFAULT_POD_NETWORK_CIDR,
    render_master_install_script,
    render_master_join_script,
    render_worker_join_script,
)
from kubehop.bootstrap.state import LOG_TAIL_LINES, status_commands
from kubehop.bootstrap.watcher import (
    DEFAULT_MAX_WAIT,
    DEFAULT_POLL_INTERVAL,
    render_watcher_script,
)
from kubehop.commands import haproxy
from kubehop.commands.common import get_int, get_port, get_str, require
from kubehop.models import CommandTemplate, Params
from kubehop.models.command import Builder
from kubehop.services.registry import CommandRegistry
from kubehop.utils.shell import dq, heredoc, quote_arg, sudo

NODE_TYPES = ("ha", "master", "worker")
MASTER_DELETE_LOG = "/tmp/master_delete.log"

ETCDCTL = (
    "ETCDCTL_API=3 etcdctl --endpoints=localhost:2379"
    " --cacert=/etc/kubernetes/pki/etcd/ca.crt"
    " --cert=/etc/kubernetes/pki/etcd/server.crt"
    " --key=/etc/kubernetes/pki/etcd/server.key"
)


def _launch_detached(password: str, script: str, log: str, pid_file: str) -> str:
    """Start a script under sudo in the background and record its pid."""
    return f"echo {quote_arg(password)} | nohup sudo -S bash {script} > {log} 2>&1 & echo $! > {pid_file}"


# Bootstrap


def install_first_master_builder(
    max_wait: int = DEFAULT_MAX_WAIT,
    poll_interval: int = DEFAULT_POLL_INTERVAL,
) -> Builder:
    """Build the installFirstMaster builder with the given watcher limits.

    The command list is, in order: write the install script, write the
    watcher script, make both executable, clear stale markers, start
    the watcher, start the install.
    """

    def build(params: Params) -> list[str]:
        install = render_master_install_script(
            port=get_port(params),
            lb_ip=get_str(params, "lb_ip"),
            server_name=get_str(params, "server_name"),
            pod_network_cidr=get_str(params, "pod_network_cidr", DEFAULT_POD_NETWORK_CIDR),
        )
        watcher = render_watcher_script(max_wait=max_wait, poll_interval=poll_interval)
        stale = " ".join((*paths.MARKER_FILES, paths.INSTALL_PID, paths.INSTALL_LOG))
        return [
            heredoc(paths.INSTALL_SCRIPT, install),
            heredoc(paths.WATCHER_SCRIPT, watcher),
            f"chmod +x {paths.INSTALL_SCRIPT} {paths.WATCHER_SCRIPT}",
            f"rm -f {stale}",
            f"nohup bash {paths.WATCHER_SCRIPT} > {paths.WATCHER_LOG} 2>&1 < /dev/null &",
            _launch_detached(
                get_str(params, "password"),
                paths.INSTALL_SCRIPT,
                paths.INSTALL_LOG,
                paths.INSTALL_PID,
            ),
        ]

    return build


def build_get_install_status(params: Params) -> list[str]:
    return status_commands(get_int(params, "lines", LOG_TAIL_LINES) or LOG_TAIL_LINES)


def build_fetch_join_credentials(params: Params) -> list[str]:
    """Join command, certificate key and certificate error, in that order."""
    return [
        f"cat {paths.JOIN_COMMAND_FILE} 2>/dev/null || true",
        f"cat {paths.CERTIFICATE_KEY_FILE} 2>/dev/null || true",
        f"cat {paths.CERTIFICATE_ERROR_FILE} 2>/dev/null || true",
    ]


def build_read_install_log(params: Params) -> list[str]:
    lines = get_int(params, "lines")
    if lines:
        return [f"tail -n {lines} {paths.INSTALL_LOG} 2>/dev/null || true"]
    return [f"cat {paths.INSTALL_LOG} 2>/dev/null || true"]


def build_stop_install(params: Params) -> list[str]:
    """Stop the detached install and its watcher.

    The pid file is left in place so a later status check reports the
    install as failed rather than not started.
    """
    password = get_str(params, "password")
    return [
        f'PID=$(cat {paths.INSTALL_PID} 2>/dev/null); if [ -n "$PID" ]; then '
        f'{sudo(password, "kill -TERM $PID")} 2>/dev/null || true; fi',
        f"{sudo(password, f'pkill -TERM -f {paths.INSTALL_SCRIPT}')} 2>/dev/null || true",
        f"pkill -TERM -f {paths.WATCHER_SCRIPT} 2>/dev/null || true",
        f"echo 'install stopped, log kept at {paths.INSTALL_LOG}'",
    ]


# Joins


def _join_launch(password: str, script: str) -> list[str]:
    return [
        heredoc(paths.JOIN_SCRIPT, script),
        f"chmod +x {paths.JOIN_SCRIPT}",
        f"rm -f {paths.JOIN_PID}",
        _launch_detached(password, paths.JOIN_SCRIPT, paths.JOIN_LOG, paths.JOIN_PID),
        f"echo \"join started in background, log: {paths.JOIN_LOG}, pid: $(cat {paths.JOIN_PID})\"",
    ]


def build_join_worker(params: Params) -> list[str]:
    script = render_worker_join_script(
        server_name=get_str(params, "server_name"),
        join_command=get_str(params, "join_command"),
    )
    return _join_launch(get_str(params, "password"), script)


def build_join_master(params: Params) -> list[str]:
    """Join an extra control-plane node.

    Adding the node to the load balancer is a separate updateHAProxy
    call against the load balancer host.
    """
    script = render_master_join_script(
        port=get_port(params),
        lb_ip=get_str(params, "lb_ip"),
        server_name=get_str(params, "server_name"),
        join_command=get_str(params, "join_command"),
        certificate_key=get_str(params, "certificate_key"),
    )
    return _join_launch(get_str(params, "password"), script)


# Status


def build_get_node_status(params: Params) -> list[str]:
    """One command printing KEY=value lines between START/END markers.

    Raises:
        ValueError: If ``type`` is not ha, master or worker
    """
    node_type = get_str(params, "type").lower()
    if node_type not in NODE_TYPES:
        raise ValueError(f"unsupported node type: {node_type!r}")

    if node_type == "ha":
        return [
            "echo '===START==='; "
            "if dpkg -l | grep -q haproxy; then echo 'INSTALLED=true'; else echo 'INSTALLED=false'; fi; "
            "if systemctl status haproxy | grep -q 'Active: active (running)'; "
            "then echo 'RUNNING=true'; else echo 'RUNNING=false'; fi; "
            "echo '===END==='"
        ]

    server_name = get_str(params, "server_name")
    host = dq(server_name) if server_name else "$(hostname)"
    command = (
        "echo '===START==='; "
        "if command -v kubectl >/dev/null 2>&1 && command -v kubelet >/dev/null 2>&1; "
        "then echo 'INSTALLED=true'; else echo 'INSTALLED=false'; fi; "
        "if systemctl status kubelet 2>/dev/null | grep -q 'Active: active (running)'; "
        "then echo 'KUBELET_RUNNING=true'; else echo 'KUBELET_RUNNING=false'; fi; "
        f'echo "hostname={host}"; '
    )

    if node_type == "master":
        password = get_str(params, "password")
        kubectl = sudo(password, "kubectl") if password else "kubectl"
        nodes = f"{kubectl} get nodes --no-headers 2>/dev/null"
        command += (
            f'if {nodes} | grep -E "{host}.*control-plane|{host}.*master"; '
            "then echo 'IS_MASTER=true'; else echo 'IS_MASTER=false'; fi; "
            f'if {nodes} | grep "{host}" | grep -vE "control-plane|master"; '
            "then echo 'IS_WORKER=true'; else echo 'IS_WORKER=false'; fi; "
            f'if {nodes} | grep -q "{host}"; '
            "then echo 'NODE_REGISTERED=true'; else echo 'NODE_REGISTERED=false'; fi; "
            f"{kubectl} get nodes -o wide 2>/dev/null | grep \"{host}\" || echo 'NODE_STATUS=NotFound'; "
        )

    return [command + "echo '===END==='"]


def build_get_namespace_and_pod_status(params: Params) -> list[str]:
    namespace = quote_arg(get_str(params, "namespace"))
    password = get_str(params, "password")
    kubectl = sudo(password, "kubectl") if password else "kubectl"
    return [
        f"{kubectl} get namespace {namespace} -o name 2>/dev/null || echo 'not found'",
        f"{kubectl} get pods -n {namespace} -o custom-columns="
        "NAME:.metadata.name,STATUS:.status.phase,RESTARTS:.status.containerStatuses[0].restartCount"
        " 2>/dev/null",
    ]


# Teardown steps


def drain_commands(server_name: str, password: str) -> list[str]:
    """Cordon, drain and delete a node, run on a control-plane host."""
    node = quote_arg(server_name)
    return [
        sudo(password, f"kubectl cordon {node}"),
        sudo(password, f"kubectl drain {node} --ignore-daemonsets --delete-emptydir-data --force"),
        sudo(password, f"kubectl delete node {node}"),
    ]


def _etcd_remove(server_name: str, password: str) -> str:
    pipeline = (
        f"{ETCDCTL} member list | grep {quote_arg(server_name)} | cut -d',' -f1"
        f" | xargs -I {{}} {ETCDCTL} member remove {{}}"
    )
    return sudo(password, f"bash -c {quote_arg(pipeline)}")


def etcd_member_commands(server_name: str, password: str) -> list[str]:
    """List the etcd members and remove the one named after the node."""
    return [
        sudo(password, f"{ETCDCTL} member list"),
        _etcd_remove(server_name, password),
        sudo(password, "kubectl get nodes"),
    ]


def reset_worker_commands(password: str) -> list[str]:
    """Reset kubeadm state and remove every Kubernetes package and directory."""
    root = [
        "kubeadm reset -f",
        "rm -rf /etc/cni/net.d/*",
        "iptables -F",
        "iptables -t nat -F",
        "iptables -t mangle -F",
        "iptables -X",
    ]
    cleanup = [
        "rm -rf /root/.kube",
        "rm -rf /etc/kubernetes/admin.conf",
        "rm -rf /etc/kubernetes/kubelet.conf",
        "rm -rf ~/.kube",
        "systemctl stop kubelet",
        "systemctl stop containerd",
    ]
    kill = [
        f"pkill -9 {name} 2>/dev/null || true"
        for name in ("kube-apiserver", "kube-scheduler", "kube-controller-manager")
    ]
    purge = [
        "rm -rf /var/lib/kubelet/pods/*",
        "rm -rf /var/lib/kubelet",
        "rm -rf /var/lib/etcd",
        "rm -rf /etc/kubernetes",
        "systemctl disable kubelet",
        "systemctl disable containerd",
        "DEBIAN_FRONTEND=noninteractive apt-get remove --allow-change-held-packages -y "
        "kubeadm kubectl kubelet kubernetes-cni",
        "DEBIAN_FRONTEND=noninteractive apt-get purge -y kubeadm kubectl kubelet kubernetes-cni",
        "rm -rf /opt/cni",
        "rm -rf /usr/bin/kubectl",
        "rm -rf /usr/bin/kubeadm",
        "rm -rf /usr/bin/kubelet",
        "apt-get clean",
        "DEBIAN_FRONTEND=noninteractive apt-get autoremove -y",
    ]
    return (
        [sudo(password, command) for command in root]
        + [sudo(password, "ipvsadm --clear") + " 2>/dev/null || true"]
        + [sudo(password, command) for command in cleanup]
        + [sudo(password, command) for command in kill]
        + [sudo(password, "umount -l /var/lib/kubelet/pods/*") + " 2>/dev/null || true"]
        + [sudo(password, command) for command in purge]
        + ["echo 'kubernetes node cleanup finished'"]
    )


def reset_master_commands(server_name: str, password: str) -> list[str]:
    """Tear down a control-plane node, including its local etcd data.

    Start and finish times are taken on the remote host.
    """
    node = quote_arg(server_name)
    stop = [
        "systemctl stop kubelet",
        "systemctl stop etcd",
        "pkill -9 etcd",
        "pkill -9 kube-apiserver",
        "pkill -9 kube-scheduler",
        "pkill -9 kube-controller-manager",
        f"kubectl cordon {node}",
        f"kubectl drain {node} --delete-emptydir-data --force --ignore-daemonsets",
    ]
    reset = [
        "kubeadm reset -f",
        "rm -rf /etc/cni/net.d/*",
        "rm -rf /var/lib/etcd",
        "rm -rf /var/lib/kubelet",
        "rm -rf /etc/kubernetes",
        "rm -rf $HOME/.kube",
        "iptables -F",
        "iptables -t nat -F",
        "iptables -t mangle -F",
    ]
    disable = [
        "systemctl disable kubelet",
        "systemctl disable etcd",
        "DEBIAN_FRONTEND=noninteractive apt-get remove --allow-change-held-packages -y "
        "kubeadm kubectl kubelet kubernetes-cni",
        "DEBIAN_FRONTEND=noninteractive apt-get purge -y kubeadm kubectl kubelet kubernetes-cni",
        "DEBIAN_FRONTEND=noninteractive apt-get autoremove -y",
    ]
    return (
        [
            f"echo '===== removing control-plane node {dq(server_name)} =====' > {MASTER_DELETE_LOG}",
            f'echo "started: $(date -Iseconds)" >> {MASTER_DELETE_LOG}',
        ]
        + [f"{sudo(password, command)} || true" for command in stop]
        + [f"{_etcd_remove(server_name, password)} || true"]
        + [sudo(password, command) for command in reset]
        + [f"{sudo(password, command)} || true" for command in disable]
        + [
            f"echo '===== control-plane node {dq(server_name)} removed =====' >> {MASTER_DELETE_LOG}",
            f'echo "finished: $(date -Iseconds)" >> {MASTER_DELETE_LOG}',
        ]
    )


def build_drain_node(params: Params) -> list[str]:
    return drain_commands(get_str(params, "server_name"), get_str(params, "password"))


def build_reset_worker_node(params: Params) -> list[str]:
    return reset_worker_commands(get_str(params, "password"))


def build_reset_master_node(params: Params) -> list[str]:
    return reset_master_commands(get_str(params, "server_name"), get_str(params, "password"))


def build_remove_etcd_member(params: Params) -> list[str]:
    return etcd_member_commands(get_str(params, "server_name"), get_str(params, "password"))


def build_delete_worker(params: Params) -> list[str]:
    """Drain and reset in one list, for a worker reachable from a control node.

    Callers that can reach the two hosts separately should use
    NodeLifecycleController.remove_worker instead.
    """
    server_name = get_str(params, "server_name")
    return drain_commands(server_name, get_str(params, "main_password")) + reset_worker_commands(
        get_str(params, "password")
    )


def build_delete_master(params: Params) -> list[str]:
    """All control-plane removal steps in one list.

    The load balancer and main-node steps are included only when their
    passwords are given.
    """
    server_name = get_str(params, "server_name")
    main_password = get_str(params, "main_password")
    lb_password = get_str(params, "lb_password")

    commands: list[str] = []
    if lb_password:
        commands += haproxy.remove_commands(server_name, lb_password)
    if main_password:
        commands += drain_commands(server_name, main_password)
        commands += etcd_member_commands(server_name, main_password)
    return commands + reset_master_commands(server_name, get_str(params, "password"))


def register_kubernetes_commands(
    registry: CommandRegistry,
    max_wait: int = DEFAULT_MAX_WAIT,
    poll_interval: int = DEFAULT_POLL_INTERVAL,
) -> None:
    """Register the Kubernetes actions.

    Args:
        registry: Registry to populate
        max_wait: Seconds the install watcher waits for the sentinel
        poll_interval: Seconds between watcher checks
    """
    templates = {
        actions.INSTALL_FIRST_MASTER: CommandTemplate(
            validate=require("password"),
            build=install_first_master_builder(max_wait, poll_interval),
            description="Start a detached first control-plane install",
        ),
        actions.GET_INSTALL_STATUS: CommandTemplate(
            build=build_get_install_status,
            description="Collect install marker files",
        ),
        actions.FETCH_JOIN_CREDENTIALS: CommandTemplate(
            build=build_fetch_join_credentials,
            description="Read extracted join command and certificate key",
        ),
        actions.READ_INSTALL_LOG: CommandTemplate(
            build=build_read_install_log,
            description="Read the install log",
        ),
        actions.STOP_INSTALL: CommandTemplate(
            validate=require("password"),
            build=build_stop_install,
            description="Stop a detached install and its watcher",
        ),
        actions.JOIN_WORKER: CommandTemplate(
            validate=require("server_name", "join_command", "password"),
            build=build_join_worker,
            description="Start a detached worker join",
        ),
        actions.JOIN_MASTER: CommandTemplate(
            validate=require("server_name", "join_command", "certificate_key", "password"),
            build=build_join_master,
            description="Start a detached control-plane join",
        ),
        actions.GET_NODE_STATUS: CommandTemplate(
            validate=require("type"),
            build=build_get_node_status,
            description="Probe HAProxy or Kubernetes node state",
        ),
        actions.GET_NAMESPACE_AND_POD_STATUS: CommandTemplate(
            validate=require("namespace"),
            build=build_get_namespace_and_pod_status,
            description="Namespace existence and pod phases",
        ),
        actions.DRAIN_NODE: CommandTemplate(
            validate=require("server_name", "password"),
            build=build_drain_node,
            description="Cordon, drain and delete a node",
        ),
        actions.RESET_WORKER_NODE: CommandTemplate(
            validate=require("password"),
            build=build_reset_worker_node,
            description="Reset a worker and remove Kubernetes packages",
        ),
        actions.RESET_MASTER_NODE: CommandTemplate(
            validate=require("server_name", "password"),
            build=build_reset_master_node,
            description="Reset a control-plane node and its etcd data",
        ),
        actions.REMOVE_ETCD_MEMBER: CommandTemplate(
            validate=require("server_name", "password"),
            build=build_remove_etcd_member,
            description="Remove a node's etcd member",
        ),
        actions.DELETE_WORKER: CommandTemplate(
            validate=require("server_name", "main_password", "password"),
            build=build_delete_worker,
            description="Drain and reset a worker in one list",
        ),
        actions.DELETE_MASTER: CommandTemplate(
            validate=require("server_name", "password"),
            build=build_delete_master,
            description="Remove a control-plane node in one list",
        ),
    }
    for action, template in templates.items():
        template.timeout = actions.TIMEOUTS.get(action)
        registry.register(action, template)
